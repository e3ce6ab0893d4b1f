# json_scanner.py
# Character source and scanner for the pull-based JSON stream reader
#
# =============================================================================
#  SCANNER: ONE CHARACTER AT A TIME, ONE CHARACTER OF LOOKAHEAD
# =============================================================================
#
# The reader never holds more than a chunk of raw text in memory. The
# Character Source owns the buffering, the Scanner on top of it only knows
# four moves (read, peek, read N, skip) plus whitespace skipping, and turns
# every end-of-input or transport failure into a typed exception.
#
# Error model:
# 1. JSONSyntaxError - the text is not JSON. Carries the path breadcrumb and
#    the character offset so failures deep inside a huge payload can be found.
# 2. UnexpectedEnd   - the input ran out in the middle of a value.
# 3. TransportError  - the underlying stream itself failed (I/O, decoding).
#
# =============================================================================

import codecs
import io
from typing import Callable, Optional, Sequence

# ---------------------------------------------------------------------------
# CONSTANTS AND TUNABLES
# ---------------------------------------------------------------------------
BUFSIZE = 16 * 1024            # characters pulled from the file per refill
WHITESPACE = frozenset(" \t\n\r")

# ---------------------------------------------------------------------------
# ERRORS
# ---------------------------------------------------------------------------
class JSONSyntaxError(SyntaxError):
    """
    Grammar violation in the input document.

    `path` is the breadcrumb of names from the root ("") to the value being
    read when the error surfaced, `position` the number of characters consumed.
    """
    def __init__(self, message: str, path: Sequence[str] = (), position: int = 0):
        self.reason = message
        self.path = tuple(path)
        self.position = position
        super().__init__(f"{message} at offset {position} (path: {'/'.join(self.path)})")


class UnexpectedEnd(JSONSyntaxError):
    """Input ended while a value was still open."""


class TransportError(RuntimeError):
    """The character source raised. The original exception is the __cause__."""

# ---------------------------------------------------------------------------
# CHARACTER SOURCE
# ---------------------------------------------------------------------------
class TextSource:
    """
    Chunk-buffered character source over a text file-like object.

    End of input is signalled the way file objects do it: "" from read/peek,
    a short string from read_exact, False from skip.
    """
    def __init__(self, fp, buf_size: int = BUFSIZE):
        self._fp = fp
        self._buf_size = buf_size
        self._buf = ""
        self._pos = 0

    def _fill(self) -> bool:
        chunk = self._fp.read(self._buf_size)
        if not chunk:
            return False
        self._buf = self._buf[self._pos:] + chunk
        self._pos = 0
        return True

    def read(self) -> str:
        if self._pos >= len(self._buf) and not self._fill():
            return ""
        c = self._buf[self._pos]
        self._pos += 1
        return c

    def peek(self) -> str:
        if self._pos >= len(self._buf) and not self._fill():
            return ""
        return self._buf[self._pos]

    def read_exact(self, n: int) -> str:
        while len(self._buf) - self._pos < n and self._fill():
            pass
        chunk = self._buf[self._pos:self._pos + n]
        self._pos += len(chunk)
        return chunk

    def skip(self) -> bool:
        return self.read() != ""


def open_source(obj, encoding: Optional[str] = None, buf_size: int = BUFSIZE):
    """
    Turn whatever the caller has into a character source.

    str and bytes are treated as the whole document. Binary streams are decoded
    incrementally (UTF-8 unless told otherwise). Objects that already speak the
    read/peek/read_exact/skip protocol are passed through untouched.
    """
    if isinstance(obj, str):
        return TextSource(io.StringIO(obj), buf_size)
    if isinstance(obj, (bytes, bytearray)):
        obj = io.BytesIO(obj)
    if all(hasattr(obj, attr) for attr in ("peek", "read_exact", "skip")):
        return obj
    if isinstance(obj.read(0), bytes):
        obj = codecs.getreader(encoding or "utf-8")(obj)
    return TextSource(obj, buf_size)

# ---------------------------------------------------------------------------
# SCANNER
# ---------------------------------------------------------------------------
class Scanner:
    """
    Fatal-on-EOF view of a character source.

    `context` is called only when an error is built and must return the
    current path names; the engine hands in a closure over its stack.
    """
    def __init__(self, source, context: Optional[Callable[[], Sequence[str]]] = None):
        self._source = source
        self._context = context or (lambda: ())
        self.offset = 0

    def error(self, message: str, cls=JSONSyntaxError) -> JSONSyntaxError:
        return cls(message, self._context(), self.offset)

    def _end(self) -> UnexpectedEnd:
        return self.error("unexpected end of input", UnexpectedEnd)

    def read(self) -> str:
        try:
            c = self._source.read()
        except Exception as exc:
            raise TransportError(f"character source failed: {exc}") from exc
        if not c:
            raise self._end()
        self.offset += 1
        return c

    def lookahead(self) -> str:
        """Next character without consuming it, or "" at end of input."""
        try:
            return self._source.peek()
        except Exception as exc:
            raise TransportError(f"character source failed: {exc}") from exc

    def peek(self) -> str:
        c = self.lookahead()
        if not c:
            raise self._end()
        return c

    def read_exact(self, n: int) -> str:
        try:
            chunk = self._source.read_exact(n)
        except Exception as exc:
            raise TransportError(f"character source failed: {exc}") from exc
        self.offset += len(chunk)
        if len(chunk) < n:
            raise self._end()
        return chunk

    def skip_one(self) -> None:
        try:
            skipped = self._source.skip()
        except Exception as exc:
            raise TransportError(f"character source failed: {exc}") from exc
        if not skipped:
            raise self._end()
        self.offset += 1

    def read_non_whitespace(self) -> str:
        c = self.read()
        while c in WHITESPACE:
            c = self.read()
        return c
