"""
ASCII Tree Renderer
Formats a built node tree with box-drawing connectors.
"""

from .node_tree import TreeNode

BRANCH = "├── "
LAST_BRANCH = "└── "
PIPE = "│   "
SPACE = "    "


def format_label(node: TreeNode) -> str:
    label = f"{node.name} ({node.type})"
    if node.has_script:
        label += f" [script: {node.script_path or 'attached'}]"
    return label


def _render_branch(node: TreeNode, prefix: str, is_last: bool) -> list[str]:
    lines = [f"{prefix}{LAST_BRANCH if is_last else BRANCH}{format_label(node)}"]
    child_prefix = prefix + (SPACE if is_last else PIPE)
    last_index = len(node.children) - 1
    for i, child in enumerate(node.children):
        lines.extend(_render_branch(child, child_prefix, i == last_index))
    return lines


def render_tree(tree: TreeNode) -> str:
    """Render a tree; the root line carries no connector or indent."""
    lines = [format_label(tree)]
    last_index = len(tree.children) - 1
    for i, child in enumerate(tree.children):
        lines.extend(_render_branch(child, "", i == last_index))
    return "\n".join(lines)
