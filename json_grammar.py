# json_grammar.py
# Value classifier and grammar reader for the pull-based JSON stream reader
#
# =============================================================================
#  GRAMMAR READER: ONE SCAN ROUTINE, TWO SINKS
# =============================================================================
#
# Every grammar (object, array, string, number, literal) is scanned by a
# single recursive-descent routine that pushes the characters it accepts into
# a sink. Materializing passes a list and joins it; skipping passes a sink that
# throws everything away. Both paths therefore accept the same language and
# leave the scanner on the same character.
#
# Classification is decided by the first character alone. Literals are
# validated in full as soon as they are seen, numbers and strings are only
# scanned when the caller asks for them or the engine has to step over them.
#
# =============================================================================

from enum import Enum
from typing import List

from json_scanner import WHITESPACE, Scanner

# ---------------------------------------------------------------------------
# CONSTANTS AND TUNABLES
# ---------------------------------------------------------------------------
DEPTH_LIMIT_DEFAULT = 256      # recursion guard for materialize/skip and the path stack

DIGITS = frozenset("0123456789")
HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
EXPONENT = frozenset("eE")
SIGNS = frozenset("+-")

LITERALS = {"t": "true", "f": "false", "n": "null"}
KEY_ESCAPES = {"t": "\t", "b": "\b", "n": "\n", "r": "\r", "f": "\f"}


class NodeType(Enum):
    OBJECT = "object"
    ARRAY = "array"
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NULL = "null"


_FIRST_CHAR = {"{": NodeType.OBJECT, "[": NodeType.ARRAY, '"': NodeType.STRING,
               "t": NodeType.BOOLEAN, "f": NodeType.BOOLEAN, "n": NodeType.NULL,
               "-": NodeType.NUMBER}
_FIRST_CHAR.update((d, NodeType.NUMBER) for d in DIGITS)

# ---------------------------------------------------------------------------
# SINKS
# ---------------------------------------------------------------------------
class _Discard:
    """List stand-in for the skipping path."""
    __slots__ = ()

    def append(self, _chunk: str) -> None:
        pass


DISCARD = _Discard()

# ---------------------------------------------------------------------------
# CLASSIFIER
# ---------------------------------------------------------------------------
def classify(scanner: Scanner, c: str) -> NodeType:
    try:
        return _FIRST_CHAR[c]
    except KeyError:
        raise scanner.error(f"no valid value starts with {c!r}") from None


def read_literal(scanner: Scanner, first: str) -> str:
    """Read and check the tail of true/false/null. Returns the full literal."""
    literal = LITERALS[first]
    tail = scanner.read_exact(len(literal) - 1)
    if first + tail != literal:
        raise scanner.error(f"invalid literal {first + tail!r}")
    return literal

# ---------------------------------------------------------------------------
# NUMBER
# ---------------------------------------------------------------------------
def _scan_digits(scanner: Scanner, out) -> int:
    count = 0
    while scanner.lookahead() in DIGITS:
        out.append(scanner.read())
        count += 1
    return count


def _scan_number(scanner: Scanner, first: str, out) -> None:
    out.append(first)
    if first == "-":
        first = scanner.read()
        if first not in DIGITS:
            raise scanner.error(f"expected digit after '-', not {first!r}")
        out.append(first)
    if first != "0":
        _scan_digits(scanner, out)
    c = scanner.lookahead()
    if c == ".":
        out.append(scanner.read())
        if not _scan_digits(scanner, out):
            raise scanner.error("expected digit after '.'")
        c = scanner.lookahead()
    if c in EXPONENT:
        out.append(scanner.read())
        sign = scanner.read()
        if sign not in SIGNS:
            raise scanner.error(f"exponent should start with + or -, not {sign!r}")
        out.append(sign)
        if not _scan_digits(scanner, out):
            raise scanner.error("expected digit in exponent")

# ---------------------------------------------------------------------------
# STRING
# ---------------------------------------------------------------------------
def _read_hex4(scanner: Scanner) -> str:
    hexpart = scanner.read_exact(4)
    if not all(h in HEX_DIGITS for h in hexpart):
        raise scanner.error(f"invalid hex escape \\u{hexpart}")
    return hexpart


def _scan_string(scanner: Scanner, out) -> None:
    """Opening quote already consumed. Emits the source text verbatim."""
    out.append('"')
    while True:
        c = scanner.read()
        if c == '"':
            out.append(c)
            return
        if c == "\n":
            raise scanner.error("unexpected end of string")
        out.append(c)
        if c == "\\":
            c = scanner.read()
            if c == "\n":
                raise scanner.error("unexpected end of string")
            out.append(c)
            if c == "u":
                out.append(_read_hex4(scanner))


def read_key(scanner: Scanner) -> str:
    """
    Read an object key (opening quote already consumed) and decode it.

    Same acceptance rules as string values. Surrogate pairs written as two
    \\u escapes are joined; a lone surrogate is rejected.
    """
    chars: List[str] = []
    surrogates = False
    while True:
        c = scanner.read()
        if c == '"':
            break
        if c == "\n":
            raise scanner.error("unexpected end of string")
        if c == "\\":
            c = scanner.read()
            if c == "u":
                code = int(_read_hex4(scanner), 16)
                surrogates = surrogates or 0xD800 <= code <= 0xDFFF
                chars.append(chr(code))
                continue
            if c == "\n":
                raise scanner.error("unexpected end of string")
            c = KEY_ESCAPES.get(c, c)
        chars.append(c)
    key = "".join(chars)
    if surrogates:
        try:
            key = key.encode("utf-16-le", "surrogatepass").decode("utf-16-le")
        except UnicodeDecodeError:
            raise scanner.error("unpaired surrogate in key") from None
    return key

# ---------------------------------------------------------------------------
# CONTAINERS
# ---------------------------------------------------------------------------
def _scan_whitespace(scanner: Scanner, out) -> str:
    """Copy whitespace into the sink, return the first other character."""
    c = scanner.read()
    while c in WHITESPACE:
        out.append(c)
        c = scanner.read()
    return c


def _scan_object(scanner: Scanner, out, depth: int, max_depth: int) -> None:
    out.append("{")
    c = _scan_whitespace(scanner, out)
    if c != "}":
        while True:
            if c != '"':
                raise scanner.error(f"object key should start with '\"', not {c!r}")
            _scan_string(scanner, out)
            c = _scan_whitespace(scanner, out)
            if c != ":":
                raise scanner.error("key and value should be separated with ':'")
            out.append(c)
            _scan_value(scanner, _scan_whitespace(scanner, out), out, depth, max_depth)
            c = _scan_whitespace(scanner, out)
            if c == "}":
                break
            if c != ",":
                raise scanner.error(f"object members should be separated by ',', not {c!r}")
            out.append(c)
            c = _scan_whitespace(scanner, out)
    out.append("}")


def _scan_array(scanner: Scanner, out, depth: int, max_depth: int) -> None:
    out.append("[")
    c = _scan_whitespace(scanner, out)
    if c != "]":
        while True:
            _scan_value(scanner, c, out, depth, max_depth)
            c = _scan_whitespace(scanner, out)
            if c == "]":
                break
            if c != ",":
                raise scanner.error(f"array values should be separated by ',', not {c!r}")
            out.append(c)
            c = _scan_whitespace(scanner, out)
    out.append("]")

# ---------------------------------------------------------------------------
# DISPATCH
# ---------------------------------------------------------------------------
def _scan_value(scanner: Scanner, first: str, out, depth: int, max_depth: int) -> None:
    kind = classify(scanner, first)
    if kind is NodeType.OBJECT or kind is NodeType.ARRAY:
        if depth >= max_depth:
            raise scanner.error("depth limit exceeded")
        if kind is NodeType.OBJECT:
            _scan_object(scanner, out, depth + 1, max_depth)
        else:
            _scan_array(scanner, out, depth + 1, max_depth)
    elif kind is NodeType.STRING:
        _scan_string(scanner, out)
    elif kind is NodeType.NUMBER:
        _scan_number(scanner, first, out)
    else:
        out.append(read_literal(scanner, first))


def materialize(scanner: Scanner, first: str, max_depth: int = DEPTH_LIMIT_DEFAULT,
                depth: int = 0) -> str:
    """
    Reproduce the source text of the value whose first character was `first`
    (already consumed). `depth` is the nesting level the value sits at.
    """
    out: List[str] = []
    _scan_value(scanner, first, out, depth, max_depth)
    return "".join(out)


def skip(scanner: Scanner, first: str, max_depth: int = DEPTH_LIMIT_DEFAULT,
         depth: int = 0) -> None:
    """Advance past the value exactly as materialize() would, keeping nothing."""
    _scan_value(scanner, first, DISCARD, depth, max_depth)
