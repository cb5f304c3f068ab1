"""
Godot Scene Analyzers
Work without Godot running - pure file parsing.
"""

from .document import (
    Connection,
    EditableInstance,
    ExtResource,
    SceneDocument,
    SceneHeader,
    SceneNode,
    SubResource,
)
from .errors import (
    MultipleRootNodesError,
    NoRootNodeError,
    TreeStructureError,
    TscnParseError,
    ValueParseError,
)
from .node_tree import TreeNode, build_tree, count_nodes, flatten_tree
from .scene_analyzer import SceneAnalyzer
from .tree_renderer import render_tree
from .tscn_parser import TscnParser, parse_tscn
from .values import parse_value

__all__ = [
    'Connection',
    'EditableInstance',
    'ExtResource',
    'SceneDocument',
    'SceneHeader',
    'SceneNode',
    'SubResource',
    'MultipleRootNodesError',
    'NoRootNodeError',
    'TreeStructureError',
    'TscnParseError',
    'ValueParseError',
    'TreeNode',
    'build_tree',
    'count_nodes',
    'flatten_tree',
    'SceneAnalyzer',
    'render_tree',
    'TscnParser',
    'parse_tscn',
    'parse_value',
]
