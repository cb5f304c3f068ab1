"""
TSCN Scene Parser
Parses Godot .tscn files to extract node structure, resources, and connections.
Works completely offline - no Godot required.
"""

import logging
from pathlib import Path
from typing import Optional

from .document import SceneDocument, SceneNode, assemble_document
from .node_tree import build_tree
from .section_scanner import scan_sections
from .values import to_python

logger = logging.getLogger(__name__)


def parse_tscn(content: str, path: str = "") -> SceneDocument:
    """Parse TSCN text into an immutable SceneDocument.

    Raises TscnParseError on any structural problem; a partial document is
    never returned.
    """
    document = assemble_document(scan_sections(content), path=path)
    logger.debug(
        "Parsed %s: %d nodes, %d ext_resources, %d sub_resources",
        path or "<string>", len(document.nodes), len(document.ext_resources), len(document.sub_resources),
    )
    return document


class TscnParser:
    """Parse Godot .tscn scene files."""

    def parse_file(self, path: str | Path) -> SceneDocument:
        """Parse a .tscn file and return structured data."""
        path = Path(path)
        content = path.read_text(encoding='utf-8')
        return self.parse_content(content, str(path))

    def parse_content(self, content: str, path: str = "") -> SceneDocument:
        """Parse TSCN content string."""
        return parse_tscn(content, path)

    def to_dict(self, scene: SceneDocument) -> dict:
        """Convert SceneDocument to dictionary for JSON serialization."""
        return {
            "path": scene.path,
            "format_version": scene.header.format_version,
            "uid": scene.header.uid,
            "external_resources": [
                {"id": r.id, "type": r.type, "path": r.path, "uid": r.uid}
                for r in scene.ext_resources
            ],
            "sub_resources": [
                {
                    "id": r.id,
                    "type": r.type,
                    "properties": {k: to_python(v) for k, v in r.properties.items()}
                }
                for r in scene.sub_resources
            ],
            "nodes": self._nodes_to_list(scene.nodes),
            "connections": [
                {
                    "signal": c.signal,
                    "from": c.from_node,
                    "to": c.to_node,
                    "method": c.method,
                    "flags": c.flags
                }
                for c in scene.connections
            ],
            "editable_instances": [e.path for e in scene.editable_instances],
            "node_count": len(scene.nodes)
        }

    def _nodes_to_list(self, nodes: tuple[SceneNode, ...]) -> list[dict]:
        """Convert nodes to list of dicts."""
        result = []
        for node in nodes:
            node_dict = {
                "name": node.name,
                "type": node.type,
                "parent": node.parent,
                "groups": list(node.groups),
                "properties": {k: to_python(v) for k, v in node.properties.items()}
            }
            if node.script_ref:
                node_dict["script"] = node.script_ref
            if node.instance:
                node_dict["instance"] = node.instance
            result.append(node_dict)
        return result

    def get_node_tree(self, scene: SceneDocument, max_depth: Optional[int] = None) -> dict:
        """Get hierarchical node tree starting from root."""
        tree = build_tree(scene, max_depth)
        if tree is None:
            return {}
        return tree.to_dict()
