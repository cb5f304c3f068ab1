"""
Godot Scene Analyzer
Answers scene questions for one Godot project folder.
Works completely offline - no Godot required.

Every call re-reads the file from disk; nothing is cached between calls.
"""

import logging
from pathlib import Path
from typing import Optional

from .config import SCENE_EXTENSIONS
from .errors import TreeStructureError, TscnParseError
from .node_tree import build_tree, count_nodes, flatten_tree
from .tree_renderer import render_tree
from .tscn_parser import TscnParser

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("json", "ascii")


class SceneAnalyzer:
    """Analyze scene files inside a Godot project."""

    def __init__(self, project_path: str):
        self.project_path = Path(project_path)
        self.tscn_parser = TscnParser()

    def _resolve(self, relative_path: str) -> Path:
        """Map a project-relative or res:// path to a file inside the project."""
        if relative_path.startswith("res://"):
            relative_path = relative_path[len("res://"):]
        root = self.project_path.resolve()
        full_path = (root / relative_path).resolve()
        if full_path != root and root not in full_path.parents:
            raise ValueError(f"Path escapes the project folder: {relative_path}")
        return full_path

    def _scene_file(self, scene_path: str) -> tuple[Optional[Path], Optional[dict]]:
        try:
            full_path = self._resolve(scene_path)
        except ValueError as e:
            return None, {"error": str(e), "scene_path": scene_path}
        if full_path.suffix not in SCENE_EXTENSIONS:
            return None, {"error": f"Not a scene file: {scene_path}", "scene_path": scene_path}
        if not full_path.is_file():
            return None, {"error": f"Scene not found: {scene_path}", "scene_path": scene_path}
        return full_path, None

    def list_scenes(self) -> list[dict]:
        """List scene files with filesystem metadata only (no parsing)."""
        scenes = []
        for extension in SCENE_EXTENSIONS:
            for scene_file in self.project_path.rglob(f"*{extension}"):
                rel_path = scene_file.relative_to(self.project_path)
                # Godot's import cache
                if rel_path.parts and rel_path.parts[0] == ".godot":
                    continue
                scenes.append({
                    "path": rel_path.as_posix(),
                    "res_path": f"res://{rel_path.as_posix()}",
                    "size": scene_file.stat().st_size
                })
        return sorted(scenes, key=lambda s: s["path"])

    def get_scene_tree(self, scene_path: str, max_depth: Optional[int] = None,
                       output_format: str = "json") -> dict:
        """Parse a scene and return its node tree as JSON data or ASCII art."""
        if output_format not in OUTPUT_FORMATS:
            return {"error": f"Unknown output format: {output_format}", "scene_path": scene_path}
        if max_depth is not None and max_depth < 0:
            return {"error": f"max_depth must be >= 0, got {max_depth}", "scene_path": scene_path}

        full_path, error = self._scene_file(scene_path)
        if error:
            return error

        try:
            scene = self.tscn_parser.parse_file(full_path)
            tree = build_tree(scene, max_depth)
            if tree is None:
                return {"error": "Scene has no nodes", "scene_path": scene_path}

            result = {
                "scene_path": scene_path,
                "node_count": count_nodes(tree),
            }
            if output_format == "ascii":
                result["display"] = render_tree(tree)
            else:
                result["tree"] = tree.to_dict()
                result["nodes"] = [node.to_dict(include_children=False) for node in flatten_tree(tree)]
            return result
        except UnicodeDecodeError:
            return {"error": f"Parse error: {scene_path} is not a text scene file", "scene_path": scene_path}
        except (TscnParseError, TreeStructureError) as e:
            logger.info("Could not build tree for %s: %s", scene_path, e)
            return {"error": str(e), "scene_path": scene_path}
        except RecursionError:
            logger.warning("Scene %s is nested too deeply to walk", scene_path)
            return {
                "error": "Scene nesting is too deep to process; retry with a smaller max_depth",
                "scene_path": scene_path,
            }

    def get_uid(self, file_path: str) -> dict:
        """Get the uid:// of a scene (from its header) or of any file with a .uid sidecar."""
        try:
            full_path = self._resolve(file_path)
        except ValueError as e:
            return {"error": str(e), "file_path": file_path}
        if not full_path.is_file():
            return {"error": f"File not found: {file_path}", "file_path": file_path}

        if full_path.suffix in SCENE_EXTENSIONS:
            try:
                scene = self.tscn_parser.parse_file(full_path)
            except UnicodeDecodeError:
                return {"error": f"Parse error: {file_path} is not a text scene file", "file_path": file_path}
            except TscnParseError as e:
                return {"error": str(e), "file_path": file_path}
            except RecursionError:
                logger.warning("Scene %s is nested too deeply to parse", file_path)
                return {"error": f"Parse error: {file_path} is nested too deeply", "file_path": file_path}
            if scene.header.uid:
                return {"file_path": file_path, "uid": scene.header.uid}

        # Godot 4.4+ writes script and shader UIDs next to the file
        sidecar = full_path.with_name(full_path.name + ".uid")
        if sidecar.is_file():
            uid = sidecar.read_text(encoding='utf-8').strip()
            if uid:
                return {"file_path": file_path, "uid": uid}

        return {"error": f"No UID found for {file_path}", "file_path": file_path}
