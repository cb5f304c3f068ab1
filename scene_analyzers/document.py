"""
Scene Document
Typed, immutable records for one parsed scene file, and the assembler that
builds them from scanned sections.
"""

from dataclasses import dataclass, field
from typing import Mapping, Optional

from .config import DEFAULT_FORMAT_VERSION
from .errors import TscnParseError, ValueParseError
from .section_scanner import ScannedSection
from .values import ArrayLit, StringLit, freeze_mappings, parse_value


@dataclass(frozen=True)
class SceneHeader:
    format_version: int = DEFAULT_FORMAT_VERSION
    uid: Optional[str] = None
    load_steps: Optional[int] = None
    uid_type: Optional[str] = None
    attributes: Mapping = field(default_factory=dict, compare=False)

    def __post_init__(self):
        freeze_mappings(self, "attributes")


@dataclass(frozen=True)
class ExtResource:
    id: str
    type: str
    path: str
    uid: Optional[str] = None
    attributes: Mapping = field(default_factory=dict, compare=False)

    def __post_init__(self):
        freeze_mappings(self, "attributes")


@dataclass(frozen=True)
class SubResource:
    id: str
    type: str
    properties: Mapping = field(default_factory=dict, hash=False)
    attributes: Mapping = field(default_factory=dict, compare=False)

    def __post_init__(self):
        freeze_mappings(self, "properties", "attributes")


@dataclass(frozen=True)
class SceneNode:
    name: str
    type: Optional[str] = None
    parent: Optional[str] = None  # None for root, "." for child of root, name path otherwise
    script_ref: Optional[str] = None  # raw text, e.g. 'ExtResource("1_abc")'
    properties: Mapping = field(default_factory=dict, hash=False)
    instance: Optional[str] = None  # raw text of an instanced sub-scene reference
    groups: tuple = ()
    owner: Optional[str] = None
    index: Optional[int] = None
    instance_placeholder: Optional[str] = None
    attributes: Mapping = field(default_factory=dict, compare=False)

    def __post_init__(self):
        freeze_mappings(self, "properties", "attributes")

    @property
    def is_root(self) -> bool:
        return self.parent is None


@dataclass(frozen=True)
class Connection:
    signal: str
    from_node: str
    to_node: str
    method: str
    flags: int = 0
    binds: tuple = ()
    attributes: Mapping = field(default_factory=dict, compare=False)

    def __post_init__(self):
        freeze_mappings(self, "attributes")


@dataclass(frozen=True)
class EditableInstance:
    path: str


@dataclass(frozen=True)
class SceneDocument:
    header: SceneHeader = field(default_factory=SceneHeader)
    ext_resources: tuple = ()
    sub_resources: tuple = ()
    nodes: tuple = ()
    connections: tuple = ()
    editable_instances: tuple = ()
    path: str = field(default="", compare=False)


def _optional_int(attributes: dict, key: str, section: ScannedSection) -> Optional[int]:
    raw = attributes.get(key)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        raise TscnParseError(f"[{section.tag}] {key} must be an integer, got {raw!r}",
                             line=section.line_number) from None


def _required(attributes: dict, key: str, section: ScannedSection) -> str:
    try:
        return attributes[key]
    except KeyError:
        raise TscnParseError(f"[{section.tag}] section is missing its {key} attribute",
                             line=section.line_number) from None


def _array_attribute(attributes: dict, key: str, section: ScannedSection) -> tuple:
    raw = attributes.get(key)
    if raw is None:
        return ()
    try:
        value = parse_value(raw)
    except ValueParseError as exc:
        raise TscnParseError(f"[{section.tag}] {key}: {exc.detail}", line=section.line_number) from exc
    if not isinstance(value, ArrayLit):
        raise TscnParseError(f"[{section.tag}] {key} must be an array", line=section.line_number)
    return value.items


def _build_header(section: ScannedSection) -> SceneHeader:
    attrs = section.attributes
    return SceneHeader(
        format_version=int(attrs["format"]),  # validated by the scanner
        uid=attrs.get("uid"),
        load_steps=_optional_int(attrs, "load_steps", section),
        uid_type=attrs.get("uid_type"),
        attributes=dict(attrs),
    )


def _build_ext_resource(section: ScannedSection) -> ExtResource:
    attrs = section.attributes
    return ExtResource(
        id=_required(attrs, "id", section),
        type=attrs.get("type", ""),
        path=attrs.get("path", ""),
        uid=attrs.get("uid"),
        attributes=dict(attrs),
    )


def _build_sub_resource(section: ScannedSection) -> SubResource:
    attrs = section.attributes
    return SubResource(
        id=_required(attrs, "id", section),
        type=attrs.get("type", ""),
        properties=dict(section.properties),
        attributes=dict(attrs),
    )


def _build_node(section: ScannedSection) -> SceneNode:
    attrs = section.attributes
    groups = []
    for group in _array_attribute(attrs, "groups", section):
        if not isinstance(group, StringLit):
            raise TscnParseError("[node] groups must be strings", line=section.line_number)
        groups.append(group.value)

    return SceneNode(
        name=_required(attrs, "name", section),
        type=attrs.get("type"),
        parent=attrs.get("parent"),
        # A `script = ...` line takes precedence over a header attribute
        script_ref=section.script_ref or attrs.get("script"),
        properties=dict(section.properties),
        instance=attrs.get("instance"),
        groups=tuple(groups),
        owner=attrs.get("owner"),
        index=_optional_int(attrs, "index", section),
        instance_placeholder=attrs.get("instance_placeholder"),
        attributes=dict(attrs),
    )


def _build_connection(section: ScannedSection) -> Connection:
    attrs = section.attributes
    return Connection(
        signal=_required(attrs, "signal", section),
        from_node=_required(attrs, "from", section),
        to_node=_required(attrs, "to", section),
        method=_required(attrs, "method", section),
        flags=_optional_int(attrs, "flags", section) or 0,
        binds=_array_attribute(attrs, "binds", section),
        attributes=dict(attrs),
    )


def assemble_document(sections: list[ScannedSection], path: str = "") -> SceneDocument:
    """Aggregate scanned sections into one SceneDocument (all or nothing)."""
    header: Optional[SceneHeader] = None
    ext_resources: list[ExtResource] = []
    sub_resources: list[SubResource] = []
    nodes: list[SceneNode] = []
    connections: list[Connection] = []
    editable: list[EditableInstance] = []
    ext_ids: set[str] = set()
    sub_ids: set[str] = set()

    for section in sections:
        if section.tag == "gd_scene":
            if header is not None:
                raise TscnParseError("duplicate [gd_scene] header", line=section.line_number)
            header = _build_header(section)
        elif section.tag == "ext_resource":
            resource = _build_ext_resource(section)
            if resource.id in ext_ids:
                raise TscnParseError(f"duplicate ext_resource id {resource.id!r}", line=section.line_number)
            ext_ids.add(resource.id)
            ext_resources.append(resource)
        elif section.tag == "sub_resource":
            resource = _build_sub_resource(section)
            if resource.id in sub_ids:
                raise TscnParseError(f"duplicate sub_resource id {resource.id!r}", line=section.line_number)
            sub_ids.add(resource.id)
            sub_resources.append(resource)
        elif section.tag == "node":
            nodes.append(_build_node(section))
        elif section.tag == "connection":
            connections.append(_build_connection(section))
        elif section.tag == "editable":
            editable.append(EditableInstance(path=_required(section.attributes, "path", section)))
        else:
            raise TscnParseError(f"unknown section type '{section.tag}'", line=section.line_number)

    return SceneDocument(
        header=header or SceneHeader(),
        ext_resources=tuple(ext_resources),
        sub_resources=tuple(sub_resources),
        nodes=tuple(nodes),
        connections=tuple(connections),
        editable_instances=tuple(editable),
        path=path,
    )
