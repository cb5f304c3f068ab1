"""
Scene Analyzer Errors
Exception types raised by the scene parser and tree builder.
"""

from typing import Optional


class TscnParseError(ValueError):
    """Malformed section, attribute or bracket syntax in a scene file."""

    def __init__(self, message: str, line: Optional[int] = None):
        self.detail = message
        self.line = line
        if line is not None:
            message = f"{message} (line {line})"
        super().__init__(f"Parse error: {message}")


class ValueParseError(TscnParseError):
    """A property or attribute literal could not be interpreted."""


class TreeStructureError(ValueError):
    """The node list cannot be arranged into a single rooted tree."""


class NoRootNodeError(TreeStructureError):
    def __init__(self):
        super().__init__("Scene has nodes but none without a parent")


class MultipleRootNodesError(TreeStructureError):
    def __init__(self, names: list[str]):
        self.names = names
        super().__init__(f"Scene has {len(names)} root nodes: {', '.join(names)}")
