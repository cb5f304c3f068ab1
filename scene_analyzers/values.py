"""
TSCN Value Parser
Parses the right-hand side of a property line (or a header attribute)
into a Value tree. Pure: no I/O and no state kept between calls.
"""

import math
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Union

from .errors import ValueParseError


def readonly(mapping: Mapping) -> Mapping:
    """Read-only view over a private copy of `mapping`."""
    return MappingProxyType(dict(mapping))


def freeze_mappings(record, *names: str):
    # For frozen dataclasses: swap the named dict fields for read-only views
    for name in names:
        object.__setattr__(record, name, readonly(getattr(record, name)))


@dataclass(frozen=True)
class StringLit:
    value: str
    sigil: str = ""  # "&" for StringName, "^" for NodePath


@dataclass(frozen=True)
class NumberLit:
    value: float


@dataclass(frozen=True)
class BoolLit:
    value: bool


@dataclass(frozen=True)
class NullLit:
    pass


@dataclass(frozen=True)
class ArrayLit:
    items: tuple = ()


@dataclass(frozen=True)
class RecordLit:
    entries: Mapping = field(default_factory=dict, hash=False)

    def __post_init__(self):
        freeze_mappings(self, "entries")


@dataclass(frozen=True)
class Constructor:
    name: str
    args: tuple = ()


@dataclass(frozen=True)
class ExtRef:
    id: str


@dataclass(frozen=True)
class SubRef:
    id: str


Value = Union[StringLit, NumberLit, BoolLit, NullLit, ArrayLit, RecordLit, Constructor, ExtRef, SubRef]


_NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

_KEYWORDS = {"true": BoolLit(True), "false": BoolLit(False), "null": NullLit()}
_SPECIAL_FLOATS = {"inf": math.inf, "inf_neg": -math.inf, "nan": math.nan}

_ESCAPES = {
    "n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "a": "\a", "v": "\v",
    '"': '"', "'": "'", "\\": "\\", "/": "/",
}
_OPENERS = {"[": "]", "(": ")", "{": "}"}
_CLOSERS = set(_OPENERS.values())


class _ValueReader:
    """Recursive-descent reader over a single literal."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def error(self, message: str, start: int = None) -> ValueParseError:
        at = self.pos if start is None else start
        fragment = self.text[at:at + 40]
        if fragment:
            return ValueParseError(f"{message} at {fragment!r} in {_excerpt(self.text)!r}")
        return ValueParseError(f"{message} at end of {_excerpt(self.text)!r}")

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def skip_ws(self):
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def read_value(self, bare_identifiers: bool = False) -> Value:
        self.skip_ws()
        if self.at_end():
            raise self.error("expected a value")

        ch = self.text[self.pos]
        if ch == '"':
            return StringLit(self.read_string())
        if ch in "&^" and self.text.startswith('"', self.pos + 1):
            self.pos += 1
            return StringLit(self.read_string(), sigil=ch)
        if ch == "[":
            return ArrayLit(tuple(self.read_sequence("[", self.read_value)))
        if ch == "{":
            return self.read_record()
        if ch in _CLOSERS:
            raise self.error(f"unbalanced '{ch}'")

        if self.text.startswith("-inf", self.pos) and not _is_ident_char(self.text, self.pos + 4):
            self.pos += 4
            return NumberLit(-math.inf)

        match = _NUMBER_RE.match(self.text, self.pos)
        if match:
            if _is_ident_char(self.text, match.end()):
                raise self.error("unrecognized token")
            self.pos = match.end()
            return NumberLit(float(match.group()))

        match = _IDENT_RE.match(self.text, self.pos)
        if not match:
            raise self.error("unrecognized token")

        start = self.pos
        name = match.group()
        self.pos = match.end()
        if self.peek() == "[":
            # Typed containers: Array[int](...), Dictionary[String, int](...)
            name += self.read_balanced_raw()
        self.skip_ws()
        if self.peek() == "(":
            return self.read_call(name, start)
        if name in _KEYWORDS:
            return _KEYWORDS[name]
        if name in _SPECIAL_FLOATS:
            return NumberLit(_SPECIAL_FLOATS[name])
        if bare_identifiers and _IDENT_RE.fullmatch(name):
            return StringLit(name)
        raise self.error("unrecognized token", start)

    def read_string(self) -> str:
        start = self.pos
        self.pos += 1
        chars = []
        while True:
            if self.at_end():
                raise self.error("unterminated string", start)
            ch = self.text[self.pos]
            if ch == '"':
                self.pos += 1
                return "".join(chars)
            if ch == "\\":
                chars.append(self.read_escape())
                continue
            chars.append(ch)
            self.pos += 1

    def read_escape(self) -> str:
        self.pos += 1
        if self.at_end():
            raise self.error("dangling escape", self.pos - 1)
        esc = self.text[self.pos]
        self.pos += 1
        if esc in "uU":
            width = 4 if esc == "u" else 6
            digits = self.text[self.pos:self.pos + width]
            if len(digits) != width or not all(c in "0123456789abcdefABCDEF" for c in digits):
                raise self.error("bad unicode escape", self.pos - 2)
            self.pos += width
            return chr(int(digits, 16))
        return _ESCAPES.get(esc, esc)

    def read_balanced_raw(self) -> str:
        """Consume a bracketed chunk verbatim, honouring nesting and strings."""
        start = self.pos
        depth = 0
        while not self.at_end():
            ch = self.text[self.pos]
            if ch == '"':
                self.read_string()
                continue
            if ch in _OPENERS:
                depth += 1
            elif ch in _CLOSERS:
                depth -= 1
                if depth == 0:
                    self.pos += 1
                    return self.text[start:self.pos]
            self.pos += 1
        raise self.error(f"unbalanced '{self.text[start]}'", start)

    def read_sequence(self, opener: str, read_item) -> Iterator:
        """Yield comma-separated items up to the closer matching `opener`."""
        closer = _OPENERS[opener]
        start = self.pos
        self.pos += 1
        while True:
            self.skip_ws()
            if self.at_end():
                raise self.error(f"unbalanced '{opener}'", start)
            if self.peek() == closer:
                self.pos += 1
                return
            yield read_item()
            self.skip_ws()
            if self.at_end():
                raise self.error(f"unbalanced '{opener}'", start)
            ch = self.peek()
            if ch == ",":
                self.pos += 1
            elif ch != closer:
                raise self.error(f"expected ',' or '{closer}'")

    def read_key(self) -> str:
        start = self.pos
        key = self.read_value(bare_identifiers=True)
        if isinstance(key, StringLit):
            return key.value
        # Non-string keys are kept as written
        return self.text[start:self.pos].strip()

    def read_pair(self) -> tuple:
        key = self.read_key()
        self.skip_ws()
        if self.peek() != ":":
            raise self.error("expected ':' after dictionary key")
        self.pos += 1
        return key, self.read_value()

    def read_record(self) -> RecordLit:
        return RecordLit(dict(self.read_sequence("{", self.read_pair)))

    def read_call_arg(self) -> tuple:
        start = self.pos
        value = self.read_value(bare_identifiers=True)
        raw = self.text[start:self.pos].strip()
        self.skip_ws()
        if self.peek() == ":":
            self.pos += 1
            key = value.value if isinstance(value, StringLit) else raw
            return key, self.read_value()
        return None, (value, raw)

    def read_call(self, name: str, start: int) -> Value:
        positional = []
        pairs = {}
        for key, item in self.read_sequence("(", self.read_call_arg):
            if key is None:
                positional.append(item)
            else:
                pairs[key] = item

        if name in ("ExtResource", "SubResource"):
            if len(positional) != 1 or pairs:
                raise self.error(f"{name} takes exactly one id", start)
            value, raw = positional[0]
            if isinstance(value, StringLit):
                res_id = value.value
            elif isinstance(value, NumberLit):
                res_id = raw  # Godot 3 numeric ids
            else:
                raise self.error(f"{name} id must be a string or number", start)
            return ExtRef(res_id) if name == "ExtResource" else SubRef(res_id)

        args = [value for value, _ in positional]
        if pairs:
            args.append(RecordLit(pairs))
        return Constructor(name, tuple(args))


def _is_ident_char(text: str, index: int) -> bool:
    return index < len(text) and (text[index].isalnum() or text[index] == "_")


def _excerpt(text: str, limit: int = 60) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[:limit - 3] + "..."


def parse_value(text: str) -> Value:
    """Parse a complete literal, rejecting anything left over."""
    reader = _ValueReader(text)
    reader.skip_ws()
    if reader.at_end():
        raise ValueParseError("empty value where a value is required")
    value = reader.read_value()
    reader.skip_ws()
    if not reader.at_end():
        ch = reader.peek()
        if ch in _CLOSERS:
            raise reader.error(f"unbalanced '{ch}'")
        raise reader.error("unexpected trailing text")
    return value


def to_python(value: Value) -> Any:
    """Convert a Value tree into plain JSON-ready data."""
    match value:
        case StringLit(value=text):
            return text
        case NumberLit(value=number):
            if math.isnan(number):
                return "nan"
            if math.isinf(number):
                # Godot's own spelling; JSON has no infinity
                return "inf" if number > 0 else "inf_neg"
            if number.is_integer():
                return int(number)
            return number
        case BoolLit(value=flag):
            return flag
        case NullLit():
            return None
        case ArrayLit(items=items):
            return [to_python(item) for item in items]
        case RecordLit(entries=entries):
            return {key: to_python(item) for key, item in entries.items()}
        case Constructor(name=name, args=args):
            return {"type": name, "args": [to_python(arg) for arg in args]}
        case ExtRef(id=res_id):
            return {"type": "ExtResource", "id": res_id}
        case SubRef(id=res_id):
            return {"type": "SubResource", "id": res_id}
        case _:
            raise TypeError(f"Not a scene value: {value!r}")


def iter_references(value: Value) -> Iterator[Union[ExtRef, SubRef]]:
    """Yield every resource reference inside a Value tree, depth first."""
    match value:
        case ExtRef() | SubRef():
            yield value
        case ArrayLit(items=items) | Constructor(args=items):
            for item in items:
                yield from iter_references(item)
        case RecordLit(entries=entries):
            for item in entries.values():
                yield from iter_references(item)
        case StringLit() | NumberLit() | BoolLit() | NullLit():
            return
        case _:
            raise TypeError(f"Not a scene value: {value!r}")
