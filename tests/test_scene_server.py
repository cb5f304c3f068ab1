"""Tests for scene_server.py: MCP tool dispatch."""
from __future__ import annotations

import asyncio
import json
import textwrap

import pytest

import scene_server

SCENE = textwrap.dedent("""\
    [gd_scene format=3 uid="uid://srv"]
    [node name="Root" type="Node"]
    [node name="Child" type="Node2D" parent="."]
""")


def call(name, arguments=None):
    contents = asyncio.run(scene_server.call_tool(name, arguments or {}))
    assert len(contents) == 1
    assert contents[0].type == "text"
    return json.loads(contents[0].text)


@pytest.fixture
def project(tmp_path, monkeypatch):
    (tmp_path / "project.godot").write_text("config_version=5\n", encoding="utf-8")
    (tmp_path / "main.tscn").write_text(SCENE, encoding="utf-8")
    monkeypatch.setattr(scene_server, "_active_project", str(tmp_path))
    return tmp_path


@pytest.fixture
def no_project(monkeypatch):
    monkeypatch.setattr(scene_server, "_active_project", None)


class TestListTools:
    def test_tool_names(self):
        tools = asyncio.run(scene_server.list_tools())
        assert [t.name for t in tools] == ["godot_set_project", "list_scenes", "get_scene_tree", "get_uid"]

    def test_scene_tree_schema(self):
        tools = {t.name: t for t in asyncio.run(scene_server.list_tools())}
        schema = tools["get_scene_tree"].inputSchema
        assert schema["required"] == ["scene_path"]
        assert schema["properties"]["format"]["enum"] == ["json", "ascii"]


class TestSetProject:
    def test_valid_project(self, tmp_path, no_project):
        (tmp_path / "project.godot").write_text("", encoding="utf-8")
        result = call("godot_set_project", {"project_path": str(tmp_path)})
        assert result == {"success": True, "project": str(tmp_path)}
        assert scene_server._active_project == str(tmp_path)

    def test_not_a_project(self, tmp_path, no_project):
        result = call("godot_set_project", {"project_path": str(tmp_path)})
        assert "No project.godot" in result["error"]
        assert scene_server._active_project is None


class TestSceneTools:
    def test_requires_project(self, no_project):
        assert "No project set" in call("list_scenes")["error"]

    def test_list_scenes(self, project):
        assert [s["path"] for s in call("list_scenes")["scenes"]] == ["main.tscn"]

    def test_get_scene_tree(self, project):
        result = call("get_scene_tree", {"scene_path": "main.tscn"})
        assert result["node_count"] == 2
        assert result["tree"]["children"][0]["name"] == "Child"

    def test_get_scene_tree_ascii(self, project):
        result = call("get_scene_tree", {"scene_path": "main.tscn", "format": "ascii", "max_depth": 0})
        assert result["display"] == "Root (Node)"

    def test_get_uid(self, project):
        assert call("get_uid", {"file_path": "main.tscn"})["uid"] == "uid://srv"

    def test_missing_argument(self, project):
        assert "error" in call("get_scene_tree", {})

    def test_unknown_tool(self, project):
        assert call("nope") == {"error": "Unknown tool: nope"}
