"""
Node Tree Builder
Rebuilds the rooted node hierarchy from a SceneDocument's flat node list.

Godot addresses parents by name path ("." for the root, "UI/TopBar" for a
grandchild). Each node gets its declaration index as a synthetic id and all
parent paths are resolved to ids in one pass, so repeated names in
different branches do not get confused.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .document import SceneDocument, SceneNode
from .errors import MultipleRootNodesError, NoRootNodeError, ValueParseError
from .queries import find_ext_resource, node_path
from .values import ExtRef, parse_value

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TreeNode:
    name: str
    type: str
    path: str
    has_script: bool = False
    script_path: Optional[str] = None
    children: tuple = ()
    property_keys: tuple = ()

    def to_dict(self, include_children: bool = True) -> dict:
        data = {
            "name": self.name,
            "type": self.type,
            "path": self.path,
            "has_script": self.has_script,
            "script_path": self.script_path,
            "properties": list(self.property_keys),
        }
        if include_children:
            data["children"] = [child.to_dict() for child in self.children]
        return data


@dataclass(frozen=True)
class NodeHierarchy:
    """Id-based parent/child links for one document."""

    root_id: int
    paths: tuple
    parent_ids: tuple
    children: dict
    orphan_ids: tuple = ()


def find_root_id(doc: SceneDocument) -> int:
    roots = [i for i, node in enumerate(doc.nodes) if node.parent is None]
    if not roots:
        raise NoRootNodeError()
    if len(roots) > 1:
        raise MultipleRootNodesError([doc.nodes[i].name for i in roots])
    return roots[0]


def resolve_hierarchy(doc: SceneDocument) -> NodeHierarchy:
    """Resolve every node's parent path to a node id, once."""
    root_id = find_root_id(doc)
    paths = tuple(node_path(node) for node in doc.nodes)

    # Later declarations own a repeated path; earlier ones still win for
    # children declared before the repeat.
    last_owner = {path: node_id for node_id, path in enumerate(paths)}
    seen: dict[str, int] = {}
    parent_ids: list[Optional[int]] = []
    children: dict[int, list[int]] = {}
    orphans: list[int] = []

    for node_id, node in enumerate(doc.nodes):
        parent_id = None
        if node_id != root_id:
            parent_id = seen.get(node.parent, last_owner.get(node.parent))
            if parent_id is None or parent_id == node_id:
                logger.warning("Node %r has unknown parent %r; left out of the tree", node.name, node.parent)
                orphans.append(node_id)
                parent_id = None
            else:
                children.setdefault(parent_id, []).append(node_id)
        parent_ids.append(parent_id)

        if paths[node_id] in seen:
            logger.warning("Node path %r is declared more than once", paths[node_id])
        seen[paths[node_id]] = node_id

    return NodeHierarchy(
        root_id=root_id,
        paths=paths,
        parent_ids=tuple(parent_ids),
        children={k: tuple(v) for k, v in children.items()},
        orphan_ids=tuple(orphans),
    )


def resolve_script_path(doc: SceneDocument, script_ref: Optional[str]) -> Optional[str]:
    """Path of the ext_resource a raw `ExtResource("id")` script reference names."""
    if script_ref is None:
        return None
    try:
        ref = parse_value(script_ref)
    except ValueParseError as exc:
        logger.debug("Unparsable script reference %r: %s", script_ref, exc)
        return None
    if not isinstance(ref, ExtRef):
        # Built-in scripts live in a sub_resource and have no file path
        return None
    resource = find_ext_resource(doc, ref.id)
    if resource is None:
        logger.debug("Script reference %r has no matching ext_resource", script_ref)
        return None
    return resource.path


def _display_type(node: SceneNode) -> str:
    if node.type:
        return node.type
    return "(instanced)" if node.instance else "Node"


def build_tree(doc: SceneDocument, max_depth: Optional[int] = None) -> Optional[TreeNode]:
    """Build the node tree, or None when the document has no nodes.

    Nodes deeper than max_depth are left out entirely; max_depth=0 gives a
    childless root. Raises NoRootNodeError / MultipleRootNodesError when
    the nodes do not form exactly one rooted tree.
    """
    if max_depth is not None and max_depth < 0:
        raise ValueError(f"max_depth must be >= 0, got {max_depth}")
    if not doc.nodes:
        return None

    hierarchy = resolve_hierarchy(doc)

    def build(node_id: int, depth: int) -> TreeNode:
        node = doc.nodes[node_id]
        children = ()
        if max_depth is None or depth < max_depth:
            children = tuple(build(child_id, depth + 1) for child_id in hierarchy.children.get(node_id, ()))
        return TreeNode(
            name=node.name,
            type=_display_type(node),
            path=hierarchy.paths[node_id],
            has_script=node.script_ref is not None,
            script_path=resolve_script_path(doc, node.script_ref),
            children=children,
            property_keys=tuple(node.properties),
        )

    return build(hierarchy.root_id, 0)


def count_nodes(tree: TreeNode) -> int:
    return 1 + sum(count_nodes(child) for child in tree.children)


def flatten_tree(tree: TreeNode) -> list[TreeNode]:
    """Pre-order list of every node in the tree."""
    nodes = [tree]
    for child in tree.children:
        nodes.extend(flatten_tree(child))
    return nodes
