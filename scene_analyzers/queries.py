"""
Scene Queries
Lookups over a parsed SceneDocument: nodes by path, type or group,
resources by id, and signal connections.
"""

import logging
from typing import Optional, Union

from .document import Connection, ExtResource, SceneDocument, SceneNode, SubResource
from .errors import ValueParseError
from .values import ExtRef, SubRef, Value, parse_value

logger = logging.getLogger(__name__)


def node_path(node: SceneNode) -> str:
    """Full name path of a node from the scene root ("." for the root)."""
    if node.parent is None:
        return "."
    if node.parent == ".":
        return node.name
    return f"{node.parent}/{node.name}"


def _reference_id(ref: str, kind: str) -> str:
    # Accept both a bare id and the full `ExtResource("id")` text
    text = ref.strip()
    if not text.startswith(kind):
        return text
    try:
        value = parse_value(text)
    except ValueParseError:
        logger.debug("Unparsable %s reference %r", kind, ref)
        return text
    if isinstance(value, (ExtRef, SubRef)):
        return value.id
    return text


def find_ext_resource(doc: SceneDocument, ref: str) -> Optional[ExtResource]:
    res_id = _reference_id(ref, "ExtResource")
    for resource in doc.ext_resources:
        if resource.id == res_id:
            return resource
    return None


def find_sub_resource(doc: SceneDocument, ref: str) -> Optional[SubResource]:
    res_id = _reference_id(ref, "SubResource")
    for resource in doc.sub_resources:
        if resource.id == res_id:
            return resource
    return None


def resolve_reference(doc: SceneDocument, value: Value) -> Optional[Union[ExtResource, SubResource]]:
    """Look up the resource an ExtRef/SubRef points at; None for a miss or any other value."""
    match value:
        case ExtRef(id=res_id):
            resource = find_ext_resource(doc, res_id)
        case SubRef(id=res_id):
            resource = find_sub_resource(doc, res_id)
        case _:
            return None
    if resource is None:
        logger.debug("Dangling resource reference %r in %s", value, doc.path or "<string>")
    return resource


def find_node_by_path(doc: SceneDocument, path: str) -> Optional[SceneNode]:
    """Find a node by its full name path; "." (or "") is the root."""
    path = path.strip()
    if path in (".", ""):
        return next((n for n in doc.nodes if n.parent is None), None)
    if path.startswith("./"):
        path = path[2:]
    for node in doc.nodes:
        if node_path(node) == path:
            return node
    return None


def find_nodes_by_type(doc: SceneDocument, node_type: str) -> list[SceneNode]:
    return [n for n in doc.nodes if n.type == node_type]


def find_nodes_by_group(doc: SceneDocument, group: str) -> list[SceneNode]:
    return [n for n in doc.nodes if group in n.groups]


def find_connections(doc: SceneDocument, signal: Optional[str] = None,
                     node: Optional[str] = None) -> list[Connection]:
    """Connections filtered by signal name and/or by a node path on either end."""
    results = []
    for conn in doc.connections:
        if signal is not None and conn.signal != signal:
            continue
        if node is not None and node not in (conn.from_node, conn.to_node):
            continue
        results.append(conn)
    return results
