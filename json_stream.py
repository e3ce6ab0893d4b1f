# json_stream.py
# Pull-based incremental JSON reader with lazy per-node materialization
#
# =============================================================================
#  PULL ENGINE: WALK THE DOCUMENT, COPY ONLY WHAT IS ASKED FOR
# =============================================================================
#
# The engine hands out one Node per advance() call, in document order, while a
# stack of Frames tracks the path from the root ("") to the current value.
# For each Node the caller either:
#   - calls value()  -> the raw source text is copied and the whole subtree is
#                       consumed, none of its children will be emitted;
#   - calls skip()   -> the subtree is stepped over without copying;
#   - does nothing   -> containers are entered (their children come next),
#                       scalars are stepped over.
#
# Nodes borrow the live stack. They stop being usable the moment the engine
# advances again; fetch_full() is the only way to keep one around.
#
# Example - print every "friends" element of a multi-gigabyte file:
#
#     with open(path, encoding="utf-8") as fp:
#         for node in JsonStream.open(fp):
#             if len(node.path) > 1 and node.path[-2].name == "friends":
#                 print(node.value())
#
# =============================================================================

import argparse
import sys
from collections.abc import Sequence
from typing import Callable, Iterator, List, NamedTuple, Optional, Tuple

from json_grammar import (
    DEPTH_LIMIT_DEFAULT,
    NodeType,
    classify,
    materialize,
    read_key,
    read_literal,
    skip,
)
from json_scanner import (
    WHITESPACE,
    JSONSyntaxError,
    Scanner,
    TransportError,
    open_source,
)

_CONTAINERS = (NodeType.OBJECT, NodeType.ARRAY)
_CLOSERS = {NodeType.OBJECT: "}", NodeType.ARRAY: "]"}

# ---------------------------------------------------------------------------
# PATH STACK
# ---------------------------------------------------------------------------
class NodeData(NamedTuple):
    """Public, immutable metadata of one path element."""
    kind: NodeType
    name: str
    first_char: str


class Frame:
    """
    One open value on the path.

    ARRAY frames count their children as they are classified; the counter
    stays private and is not part of equality.
    """
    __slots__ = ("kind", "name", "first_char", "_next_index")

    def __init__(self, kind: NodeType, name: str, first_char: str):
        self.kind = kind
        self.name = name
        self.first_char = first_char
        self._next_index = 0

    def next_index(self) -> str:
        index = self._next_index
        self._next_index += 1
        return str(index)

    def as_data(self) -> NodeData:
        return NodeData(self.kind, self.name, self.first_char)

    def __eq__(self, other):
        if isinstance(other, Frame):
            return self.as_data() == other.as_data()
        if isinstance(other, NodeData):
            return self.as_data() == other
        return NotImplemented

    def __hash__(self):
        return hash(self.as_data())

    def __repr__(self):
        return f"Frame(kind={self.kind.name}, name={self.name!r}, first_char={self.first_char!r})"


class PathView(Sequence):
    """Read-only window on the engine's stack. Not a copy."""
    __slots__ = ("_frames",)

    def __init__(self, frames: List[Frame]):
        self._frames = frames

    def __getitem__(self, index):
        if isinstance(index, slice):
            return tuple(self._frames[index])
        return self._frames[index]

    def __len__(self) -> int:
        return len(self._frames)

    def names(self) -> Tuple[str, ...]:
        return tuple(frame.name for frame in self._frames)

    def __repr__(self):
        return f"PathView({'/'.join(self.names())!r})"

# ---------------------------------------------------------------------------
# NODES
# ---------------------------------------------------------------------------
class StaleNodeError(RuntimeError):
    """A Node was used after the engine moved past it."""


class DetachedNode(NamedTuple):
    """Owned snapshot of a node: copied path plus materialized text."""
    path: Tuple[NodeData, ...]
    text: str

    @property
    def leaf(self) -> NodeData:
        return self.path[-1]

    @property
    def kind(self) -> NodeType:
        return self.path[-1].kind

    @property
    def name(self) -> str:
        return self.path[-1].name

    def value(self) -> str:
        return self.text

    def fetch_full(self) -> "DetachedNode":
        return self


class Node:
    """
    Borrowed view of the value the engine just produced.

    path and leaf read the live stack. value(), skip() and fetch_full() refuse
    to run once the engine has advanced, except that a value already cached
    is always returned.
    """
    __slots__ = ("_stream", "_generation", "_value", "_skipped")

    def __init__(self, stream: "JsonStream", generation: int, value: Optional[str] = None):
        self._stream = stream
        self._generation = generation
        self._value = value
        self._skipped = False

    @property
    def path(self) -> PathView:
        return self._stream.path

    @property
    def leaf(self) -> Frame:
        return self._stream.path[-1]

    @property
    def kind(self) -> NodeType:
        return self.leaf.kind

    @property
    def name(self) -> str:
        return self.leaf.name

    def _check_current(self):
        if self._stream._generation != self._generation:
            raise StaleNodeError("node used after the stream advanced; use fetch_full() to keep it")

    def value(self) -> str:
        """
        Raw source text of the node. The first call reads it from the input and
        consumes the subtree; later calls return the cached text.
        """
        if self._value is None:
            self._check_current()
            if self._skipped:
                raise RuntimeError("node was skipped, its value is gone")
            self._value = self._stream._consume_current(keep=True)
        return self._value

    def skip(self) -> None:
        """Step over the whole subtree without copying it."""
        if self._value is not None or self._skipped:
            return
        self._check_current()
        self._stream._consume_current(keep=False)
        self._skipped = True

    def fetch_full(self) -> DetachedNode:
        text = self.value()
        self._check_current()
        return DetachedNode(tuple(frame.as_data() for frame in self._stream.path), text)

    def __repr__(self):
        return f"Node(path={self.path!r}, value={self._value!r})"

# ---------------------------------------------------------------------------
# PULL ENGINE
# ---------------------------------------------------------------------------
class JsonStream:
    """
    Forward-only JSON walker.

    advance() returns the next Node or None once the root value is closed.
    Iterating the stream is the same as calling advance() until None.
    Any JSONSyntaxError or TransportError is final: later calls re-raise it.
    Single-threaded, not reentrant. Closing the source is the caller's job.
    """
    def __init__(self, source, max_depth: int = DEPTH_LIMIT_DEFAULT):
        self._path: List[Frame] = []
        self.path = PathView(self._path)
        self._scanner = Scanner(source, self.path_names)
        self._max_depth = max_depth
        self._consumed = False      # current top value fully read
        self._need_value = False    # last separator was ','
        self._finished = False
        self._generation = 0
        self._error: Optional[Exception] = None

    @classmethod
    def open(cls, obj, encoding: Optional[str] = None,
             max_depth: int = DEPTH_LIMIT_DEFAULT) -> "JsonStream":
        return cls(open_source(obj, encoding), max_depth=max_depth)

    def path_names(self) -> Tuple[str, ...]:
        return tuple(frame.name for frame in self._path)

    @property
    def finished(self) -> bool:
        return self._finished

    def __iter__(self) -> Iterator[Node]:
        return self

    def __next__(self) -> Node:
        node = self.advance()
        if node is None:
            raise StopIteration
        return node

    def advance(self) -> Optional[Node]:
        if self._error is not None:
            raise self._error
        if self._finished:
            return None
        self._generation += 1
        try:
            return self._advance()
        except (JSONSyntaxError, TransportError) as exc:
            self._error = exc
            raise

    def _advance(self) -> Optional[Node]:
        scanner = self._scanner
        if not self._path:
            return self._open("", scanner.read_non_whitespace())

        while True:
            top = self._path[-1]
            if not self._consumed:
                if top.kind is NodeType.OBJECT:
                    c = scanner.read_non_whitespace()
                    if c == '"':
                        self._need_value = False
                        name = read_key(scanner)
                        if scanner.read_non_whitespace() != ":":
                            raise scanner.error("non-':' character after object key")
                        return self._open(name, scanner.read_non_whitespace())
                    if c != "}" or self._need_value:
                        raise scanner.error(f"unexpected {c!r} where an object key was expected")
                elif top.kind is NodeType.ARRAY:
                    c = scanner.read_non_whitespace()
                    if c != "]":
                        self._need_value = False
                        return self._open(top.next_index(), c)
                    if self._need_value:
                        raise scanner.error("unexpected ']' where a value was expected")
                else:
                    # number or string nobody asked for
                    skip(scanner, top.first_char, self._max_depth, len(self._path) - 1)

            self._path.pop()
            self._consumed = False
            self._to_next_value()
            if not self._path:
                self._finished = True
                return None

    def _open(self, name: str, c: str) -> Node:
        kind = classify(self._scanner, c)
        if kind in _CONTAINERS and len(self._path) >= self._max_depth:
            raise self._scanner.error("depth limit exceeded")
        self._path.append(Frame(kind, name, c))
        node = Node(self, self._generation)
        if kind is NodeType.BOOLEAN or kind is NodeType.NULL:
            node._value = read_literal(self._scanner, c)
            self._consumed = True
        else:
            self._consumed = False
        return node

    def _to_next_value(self) -> None:
        """After a value closed: read ',' or close as many parents as the input says."""
        while self._path:
            c = self._scanner.read_non_whitespace()
            if c == ",":
                self._need_value = True
                return
            closer = _CLOSERS[self._path[-1].kind]
            if c != closer:
                raise self._scanner.error(f"unexpected {c!r}, expected ',' or {closer!r}")
            self._path.pop()

    def _consume_current(self, keep: bool) -> Optional[str]:
        if self._error is not None:
            raise self._error
        frame = self._path[-1]
        try:
            if keep:
                text = materialize(self._scanner, frame.first_char, self._max_depth, len(self._path) - 1)
            else:
                skip(self._scanner, frame.first_char, self._max_depth, len(self._path) - 1)
                text = None
        except (JSONSyntaxError, TransportError) as exc:
            self._error = exc
            raise
        self._consumed = True
        return text

    def ensure_exhausted(self) -> None:
        """
        Check that nothing but whitespace follows the root value. Reads the
        rest of the input, so only call it once advance() has returned None.
        """
        if self._error is not None:
            raise self._error
        if not self._finished:
            raise RuntimeError("stream is not exhausted yet")
        try:
            while True:
                c = self._scanner.lookahead()
                if not c:
                    return
                if c not in WHITESPACE:
                    raise self._scanner.error("extra data after root value")
                self._scanner.skip_one()
        except (JSONSyntaxError, TransportError) as exc:
            self._error = exc
            raise

# ---------------------------------------------------------------------------
# CONVENIENCE
# ---------------------------------------------------------------------------
def iter_nodes(source, encoding: Optional[str] = None,
               max_depth: int = DEPTH_LIMIT_DEFAULT) -> Iterator[Node]:
    """Nodes of a document given as str, bytes, a file object or a character source."""
    return iter(JsonStream.open(source, encoding=encoding, max_depth=max_depth))


def select(source, predicate: Callable[[Node], bool], encoding: Optional[str] = None,
           max_depth: int = DEPTH_LIMIT_DEFAULT) -> Iterator[DetachedNode]:
    """
    Detached copies of every node the predicate accepts. Accepted nodes are
    materialized, so nothing nested inside them is offered to the predicate.
    """
    for node in iter_nodes(source, encoding=encoding, max_depth=max_depth):
        if predicate(node):
            yield node.fetch_full()

# ---------------------------------------------------------------------------
# CLI ENTRYPOINT
# ---------------------------------------------------------------------------
def _format_path(names: Tuple[str, ...]) -> str:
    return "/".join(names) or "/"


def _matcher(args) -> Optional[Callable[[Node], bool]]:
    if args.name is None and args.parent is None and args.kind is None:
        return None
    kind = NodeType[args.kind.upper()] if args.kind else None

    def matches(node: Node) -> bool:
        path = node.path
        if args.name is not None and path[-1].name != args.name:
            return False
        if args.parent is not None and (len(path) < 2 or path[-2].name != args.parent):
            return False
        return kind is None or path[-1].kind is kind

    return matches


def _cli(argv: List[str]):
    """
    Validate a JSON file or print selected nodes.

    Exit codes: 0 on success, 1 on SyntaxError, 2 when the file cannot be opened or read.
    """
    ap = argparse.ArgumentParser(description="Pull-based JSON stream reader")
    ap.add_argument("file", help="JSON file to read")
    ap.add_argument("--name", help="print nodes stored under this key or index")
    ap.add_argument("--parent", help="print nodes whose parent is stored under this key or index")
    ap.add_argument("--kind", choices=[t.name.lower() for t in NodeType],
                    help="print nodes of this kind")
    ap.add_argument("--debug", action="store_true", help="dump the node stream and exit")
    ap.add_argument("--max-depth", type=int, default=DEPTH_LIMIT_DEFAULT)
    ap.add_argument("--encoding", default="utf-8")
    args = ap.parse_args(argv)

    matches = _matcher(args)
    try:
        with open(args.file, "r", encoding=args.encoding, newline="") as fp:
            stream = JsonStream.open(fp, max_depth=args.max_depth)
            for node in stream:
                if args.debug:
                    print(f"{_format_path(node.path.names())}\t{node.kind.name}")
                elif matches is not None and matches(node):
                    print(node.value())
            stream.ensure_exhausted()
    except SyntaxError as exc:
        print(f"SyntaxError: {exc}", file=sys.stderr)
        return 1
    except TransportError as exc:
        print(f"TransportError: {exc}", file=sys.stderr)
        return 2
    except OSError as exc:
        print(f"OSError: {exc}", file=sys.stderr)
        return 2

    if matches is None and not args.debug:
        print("OK")
    return 0


def main():
    sys.exit(_cli(sys.argv[1:]))

# ---------------------------------------------------------------------------
# MAIN GUARD
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    main()
