import pytest

import json_grammar as jg
import json_scanner as jsc


def scanner(text):
    return jsc.Scanner(jsc.open_source(text))


def materialize(text, **kw):
    sc = scanner(text)
    out = jg.materialize(sc, sc.read_non_whitespace(), **kw)
    return out, sc


def skip(text, **kw):
    sc = scanner(text)
    jg.skip(sc, sc.read_non_whitespace(), **kw)
    return sc

# ---------------------------------------------------------------------------
# CLASSIFIER
# ---------------------------------------------------------------------------
@pytest.mark.parametrize("c, kind", [
    ("{", jg.NodeType.OBJECT),
    ("[", jg.NodeType.ARRAY),
    ('"', jg.NodeType.STRING),
    ("-", jg.NodeType.NUMBER),
    ("7", jg.NodeType.NUMBER),
    ("t", jg.NodeType.BOOLEAN),
    ("f", jg.NodeType.BOOLEAN),
    ("n", jg.NodeType.NULL),
])
def test_classify_by_first_char(c, kind):
    assert jg.classify(scanner(""), c) is kind


def test_classify_rejects_unknown_first_char():
    sc = jsc.Scanner(jsc.open_source(""), lambda: ("", "x"))
    with pytest.raises(jsc.JSONSyntaxError) as ei:
        jg.classify(sc, "}")
    assert "no valid value starts with '}'" in str(ei.value)
    assert ei.value.path == ("", "x")


def test_literals_are_validated():
    sc = scanner("alse,")
    assert jg.read_literal(sc, "f") == "false"
    assert sc.peek() == ","
    with pytest.raises(jsc.JSONSyntaxError) as ei:
        jg.read_literal(scanner("ul1"), "n")
    assert "invalid literal 'nul1'" in str(ei.value)

# ---------------------------------------------------------------------------
# NUMBERS
# ---------------------------------------------------------------------------
@pytest.mark.parametrize("text", ["0", "-0", "42", "-3.25", "0.5", "1e+5", "1E-5", "6.02E+23", "-0.0e-0"])
def test_numbers_materialize_verbatim(text):
    out, sc = materialize(text + ",")
    assert out == text
    assert sc.peek() == ","


def test_number_may_end_the_input():
    out, sc = materialize("1234")
    assert out == "1234"
    assert sc.lookahead() == ""


def test_leading_zero_stands_alone():
    out, sc = materialize("012")
    assert out == "0"
    assert sc.peek() == "1"


def test_exponent_requires_sign_in_both_variants():
    for fn in (materialize, skip):
        with pytest.raises(jsc.JSONSyntaxError) as ei:
            fn("1e5")
        assert "exponent should start with + or -" in str(ei.value)


def test_uppercase_exponent_accepted_in_both_variants():
    out, sc = materialize("2E+3]")
    assert out == "2E+3"
    assert skip("2E+3]").peek() == "]"


@pytest.mark.parametrize("text, message", [
    ("-x", "expected digit after '-'"),
    ("1.}", "expected digit after '.'"),
    ("1e+}", "expected digit in exponent"),
])
def test_malformed_numbers(text, message):
    with pytest.raises(jsc.JSONSyntaxError) as ei:
        materialize(text)
    assert message in str(ei.value)

# ---------------------------------------------------------------------------
# STRINGS AND KEYS
# ---------------------------------------------------------------------------
def test_string_escapes_are_preserved_verbatim():
    text = r'"tab\t quote\" unié slash\/ other\q"'
    out, _ = materialize(text)
    assert out == text


def test_invalid_hex_escape():
    with pytest.raises(jsc.JSONSyntaxError) as ei:
        materialize(r'"\u12g4"')
    assert "invalid hex escape \\u12g4" in str(ei.value)


def test_raw_newline_ends_string():
    for fn in (materialize, skip):
        with pytest.raises(jsc.JSONSyntaxError) as ei:
            fn('"abc\ndef"')
        assert "unexpected end of string" in str(ei.value)


def test_unterminated_string_hits_end_of_input():
    with pytest.raises(jsc.UnexpectedEnd):
        materialize('"abc')
    with pytest.raises(jsc.UnexpectedEnd):
        skip('"abc')


def test_read_key_decodes_escapes():
    sc = scanner('a\\u0041\\tb\\"c\\\\d": 1')
    assert jg.read_key(sc) == 'aA\tb"c\\d'
    assert sc.peek() == ":"


def test_read_key_joins_surrogate_pairs():
    assert jg.read_key(scanner('\\ud83d\\ude00"')) == "\U0001F600"


def test_read_key_rejects_lone_surrogate():
    with pytest.raises(jsc.JSONSyntaxError) as ei:
        jg.read_key(scanner(r'\ud83d"'))
    assert "unpaired surrogate" in str(ei.value)

# ---------------------------------------------------------------------------
# CONTAINERS
# ---------------------------------------------------------------------------
def test_object_text_keeps_whitespace():
    text = '{ "a" : [1, 2.5 ,\n "x"] , "b":{} ,"c" : null}'
    out, _ = materialize(text + "   ")
    assert out == text


def test_empty_containers():
    assert materialize("{}")[0] == "{}"
    assert materialize("[ ]")[0] == "[ ]"


@pytest.mark.parametrize("text, message", [
    ("{a: 1}", "object key should start with '\"'"),
    ('{"a" 1}', "key and value should be separated with ':'"),
    ('{"a": 1; "b": 2}', "object members should be separated by ','"),
    ('{"a": 1,}', "object key should start with '\"'"),
    ("[1; 2]", "array values should be separated by ','"),
    ("[1,]", "no valid value starts with ']'"),
    ("[tru]", "invalid literal 'tru]'"),
])
def test_container_errors(text, message):
    for fn in (materialize, skip):
        with pytest.raises(jsc.JSONSyntaxError) as ei:
            fn(text)
        assert message in str(ei.value)


def test_depth_limit():
    assert materialize("[[1]]", max_depth=2)[0] == "[[1]]"
    with pytest.raises(jsc.JSONSyntaxError) as ei:
        materialize("[[[1]]]", max_depth=2)
    assert "depth limit exceeded" in str(ei.value)


@pytest.mark.parametrize("text", [
    '{"id": 0, "tags": ["a", "b\\"c"], "geo": {"lat": -47.8e+1, "ok": true}} ,',
    '[[], {}, "", 0, -1.5E-3, false, null] ]',
    '"esc \\u263A \\n" :',
    "-0.25e+10}",
])
def test_skip_stops_where_materialize_stops(text):
    out, sc_m = materialize(text)
    sc_s = skip(text)
    assert sc_s.offset == sc_m.offset == len(out)
    assert sc_s.lookahead() == sc_m.lookahead()
