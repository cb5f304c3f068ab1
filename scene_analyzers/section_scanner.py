"""
TSCN Section Scanner
Line-driven state machine that splits scene text into bracketed sections,
reads their header attributes and collects the property lines that follow
[node] and [sub_resource] headers.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .errors import TscnParseError, ValueParseError
from .values import Value, _ValueReader, parse_value

logger = logging.getLogger(__name__)


class ScanState(Enum):
    SEEKING_SECTION = "seeking_section"
    IN_HEADER_ATTRIBUTES = "in_header_attributes"
    IN_NODE_PROPERTIES = "in_node_properties"


KNOWN_SECTIONS = ("gd_scene", "ext_resource", "sub_resource", "node", "connection", "editable")

# Sections whose header may be followed by `key = value` lines
PROPERTY_SECTIONS = ("node", "sub_resource")

_HEADER_TAG_RE = re.compile(r"\[([A-Za-z_]\w*)")
_ATTR_KEY_RE = re.compile(r"[A-Za-z_][\w-]*")
_PROPERTY_RE = re.compile(r'^(?P<key>[^\s=\[\]"]+)\s*=\s*(?P<value>.*)$')

_OPENERS = {"[": "]", "(": ")", "{": "}"}
_CLOSERS = {v: k for k, v in _OPENERS.items()}


@dataclass
class ScannedSection:
    tag: str
    attributes: dict[str, str]
    line_number: int
    properties: dict[str, Value] = field(default_factory=dict)
    script_ref: Optional[str] = None


@dataclass
class _PendingProperty:
    key: str
    lines: list[str]
    line_number: int
    open_delimiters: list[str]
    in_string: bool


def _excerpt(text: str, limit: int = 60) -> str:
    return text if len(text) <= limit else text[:limit - 3] + "..."


def track_nesting(text: str, open_delimiters: list[str], in_string: bool,
                  line: Optional[int] = None) -> tuple[list[str], bool]:
    """Carry bracket and string state across one more fragment of a value.

    Returns the still-open delimiters and whether a string is still open.
    A closer that does not match the innermost opener is a parse error.
    """
    stack = list(open_delimiters)
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in _OPENERS:
            stack.append(ch)
        elif ch in _CLOSERS:
            if not stack or stack[-1] != _CLOSERS[ch]:
                raise TscnParseError(f"unbalanced '{ch}' in {_excerpt(text.strip())!r}", line=line)
            stack.pop()
    return stack, in_string


def parse_attributes(text: str, line: Optional[int] = None) -> dict[str, str]:
    """Parse `key="quoted" key=bare key=Call("x") key=["a"]` header attributes.

    Quoted values are unescaped; everything else is kept as raw text so that
    unknown Godot metadata survives untouched.
    """
    reader = _ValueReader(text)
    attributes: dict[str, str] = {}
    while True:
        reader.skip_ws()
        if reader.at_end():
            return attributes
        match = _ATTR_KEY_RE.match(text, reader.pos)
        if not match:
            raise TscnParseError(f"malformed attribute at {_excerpt(text[reader.pos:])!r}", line=line)
        key = match.group()
        reader.pos = match.end()
        reader.skip_ws()
        if reader.peek() != "=":
            raise TscnParseError(f"attribute '{key}' has no value", line=line)
        reader.pos += 1
        reader.skip_ws()
        try:
            if reader.peek() == '"':
                attributes[key] = reader.read_string()
            else:
                attributes[key] = _read_bare_attribute(reader, key)
        except ValueParseError as exc:
            raise TscnParseError(f"attribute '{key}': {exc.detail}", line=line) from exc


def _read_bare_attribute(reader: _ValueReader, key: str) -> str:
    start = reader.pos
    depth = 0
    while not reader.at_end():
        ch = reader.peek()
        if ch == '"':
            reader.read_string()
            continue
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
            if depth < 0:
                raise reader.error(f"unbalanced '{ch}'")
        elif ch.isspace() and depth == 0:
            break
        reader.pos += 1
    if depth > 0:
        raise reader.error("unbalanced brackets", start)
    value = reader.text[start:reader.pos]
    if not value:
        raise reader.error(f"empty value for '{key}'", start)
    return value


class SectionScanner:
    """Feed lines one at a time; `finish()` returns the scanned sections.

    SEEKING_SECTION -> IN_HEADER_ATTRIBUTES(tag) -> IN_NODE_PROPERTIES(section),
    and back to SEEKING_SECTION whenever a new header line starts.
    """

    def __init__(self):
        self.state = ScanState.SEEKING_SECTION
        self.sections: list[ScannedSection] = []
        self.current: Optional[ScannedSection] = None
        self.pending: Optional[_PendingProperty] = None
        self.line_number = 0

    def feed(self, line: str):
        self.line_number += 1

        # A multi-line value swallows everything until its nesting closes
        if self.pending is not None:
            self._continue_property(line)
            return

        stripped = line.strip()
        if not stripped or stripped.startswith(";"):
            return

        if stripped.startswith("["):
            self._begin_section(stripped)
        else:
            self._begin_property(stripped)

    def finish(self) -> list[ScannedSection]:
        pending = self.pending
        if pending is not None:
            if pending.in_string:
                what = "string"
            else:
                what = f"'{pending.open_delimiters[-1]}'"
            raise TscnParseError(
                f"unterminated {what} in property '{pending.key}' of [{self.current.tag}] section",
                line=pending.line_number,
            )
        self.state = ScanState.SEEKING_SECTION
        self.current = None
        return self.sections

    def _begin_section(self, stripped: str):
        self.state = ScanState.SEEKING_SECTION
        self.current = None

        match = _HEADER_TAG_RE.match(stripped)
        if not match or not stripped.endswith("]"):
            raise TscnParseError(f"malformed section header {_excerpt(stripped)!r}", line=self.line_number)

        tag = match.group(1)
        if tag not in KNOWN_SECTIONS:
            raise TscnParseError(f"unknown section type '{tag}'", line=self.line_number)

        self.state = ScanState.IN_HEADER_ATTRIBUTES
        attributes = parse_attributes(stripped[match.end():-1], line=self.line_number)
        if tag == "gd_scene":
            self._check_format(attributes)

        section = ScannedSection(tag=tag, attributes=attributes, line_number=self.line_number)
        self.sections.append(section)

        if tag in PROPERTY_SECTIONS:
            self.state = ScanState.IN_NODE_PROPERTIES
            self.current = section
        else:
            self.state = ScanState.SEEKING_SECTION

    def _check_format(self, attributes: dict[str, str]):
        raw = attributes.get("format")
        if raw is None:
            raise TscnParseError("[gd_scene] header is missing its format attribute", line=self.line_number)
        if not raw.isdigit() or int(raw) <= 0:
            raise TscnParseError(f"[gd_scene] format must be a positive integer, got {raw!r}",
                                 line=self.line_number)

    def _begin_property(self, stripped: str):
        if self.state is not ScanState.IN_NODE_PROPERTIES:
            raise TscnParseError(
                f"property line outside any [node] section: {_excerpt(stripped)!r}", line=self.line_number
            )

        match = _PROPERTY_RE.match(stripped)
        if not match:
            raise TscnParseError(f"malformed property line {_excerpt(stripped)!r}", line=self.line_number)

        key = match.group("key")
        value = match.group("value")
        if not value:
            raise TscnParseError(f"property '{key}' has an empty value", line=self.line_number)

        open_delimiters, in_string = track_nesting(value, [], False, line=self.line_number)
        if open_delimiters or in_string:
            self.pending = _PendingProperty(key, [value], self.line_number, open_delimiters, in_string)
            return
        self._store_property(key, value, self.line_number)

    def _continue_property(self, line: str):
        pending = self.pending
        pending.lines.append(line)
        pending.open_delimiters, pending.in_string = track_nesting(
            line, pending.open_delimiters, pending.in_string, line=self.line_number
        )
        if not pending.open_delimiters and not pending.in_string:
            self.pending = None
            self._store_property(pending.key, "\n".join(pending.lines), pending.line_number)

    def _store_property(self, key: str, text: str, line: int):
        section = self.current
        if key == "script" and section.tag == "node":
            # Resolved lazily by the tree builder
            section.script_ref = text.strip()
            return
        try:
            section.properties[key] = parse_value(text)
        except ValueParseError as exc:
            raise ValueParseError(f"property '{key}': {exc.detail}", line=line) from exc


def scan_sections(text: str) -> list[ScannedSection]:
    """Scan a whole scene file's text into sections."""
    scanner = SectionScanner()
    for line in text.lstrip("\ufeff").splitlines():
        scanner.feed(line)
    sections = scanner.finish()
    logger.debug("Scanned %d sections from %d lines", len(sections), scanner.line_number)
    return sections
