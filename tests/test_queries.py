"""Tests for scene_analyzers/queries.py: lookups over a parsed scene."""
from __future__ import annotations

import textwrap

import pytest

from scene_analyzers.queries import (
    find_connections,
    find_ext_resource,
    find_node_by_path,
    find_nodes_by_group,
    find_nodes_by_type,
    find_sub_resource,
    node_path,
    resolve_reference,
)
from scene_analyzers.tscn_parser import parse_tscn
from scene_analyzers.values import ExtRef, NumberLit, SubRef

LEVEL_SCENE = textwrap.dedent("""\
    [gd_scene load_steps=3 format=3]
    [ext_resource type="Script" path="res://level.gd" id="1_lvl"]
    [sub_resource type="RectangleShape2D" id="Rect_1"]
    size = Vector2(32, 32)
    [node name="Level" type="Node2D"]
    script = ExtResource("1_lvl")
    [node name="Enemies" type="Node2D" parent="."]
    [node name="Goblin" type="CharacterBody2D" parent="Enemies" groups=["enemies"]]
    [node name="Orc" type="CharacterBody2D" parent="Enemies" groups=["enemies", "bosses"]]
    [node name="Door" type="Area2D" parent="."]
    [node name="Shape" type="CollisionShape2D" parent="Door"]
    shape = SubResource("Rect_1")
    [connection signal="body_entered" from="Door" to="." method="_on_door_entered"]
    [connection signal="died" from="Enemies/Orc" to="." method="_on_boss_died"]
    [connection signal="died" from="Enemies/Goblin" to="." method="_on_enemy_died"]
""")


@pytest.fixture
def level():
    return parse_tscn(LEVEL_SCENE)


class TestNodeLookup:
    def test_node_path(self, level):
        assert [node_path(n) for n in level.nodes] == [
            ".", "Enemies", "Enemies/Goblin", "Enemies/Orc", "Door", "Door/Shape",
        ]

    def test_find_root(self, level):
        assert find_node_by_path(level, ".").name == "Level"
        assert find_node_by_path(level, "").name == "Level"

    def test_find_nested(self, level):
        assert find_node_by_path(level, "Enemies/Orc").type == "CharacterBody2D"
        assert find_node_by_path(level, "./Door/Shape").name == "Shape"

    def test_missing_path(self, level):
        assert find_node_by_path(level, "Enemies/Troll") is None

    def test_by_type(self, level):
        assert [n.name for n in find_nodes_by_type(level, "CharacterBody2D")] == ["Goblin", "Orc"]
        assert find_nodes_by_type(level, "Camera2D") == []

    def test_by_group(self, level):
        assert [n.name for n in find_nodes_by_group(level, "enemies")] == ["Goblin", "Orc"]
        assert [n.name for n in find_nodes_by_group(level, "bosses")] == ["Orc"]


class TestResourceLookup:
    def test_ext_resource_by_id(self, level):
        assert find_ext_resource(level, "1_lvl").path == "res://level.gd"

    def test_ext_resource_by_reference_text(self, level):
        assert find_ext_resource(level, 'ExtResource("1_lvl")').path == "res://level.gd"

    def test_sub_resource(self, level):
        rect = find_sub_resource(level, 'SubResource("Rect_1")')
        assert rect.type == "RectangleShape2D"

    def test_missing(self, level):
        assert find_ext_resource(level, "nope") is None
        assert find_sub_resource(level, "nope") is None

    def test_resolve_reference(self, level):
        shape_node = find_node_by_path(level, "Door/Shape")
        assert resolve_reference(level, shape_node.properties["shape"]).id == "Rect_1"
        assert resolve_reference(level, ExtRef("1_lvl")).path == "res://level.gd"
        assert resolve_reference(level, SubRef("gone")) is None
        assert resolve_reference(level, NumberLit(1.0)) is None


class TestConnections:
    def test_all(self, level):
        assert len(find_connections(level)) == 3

    def test_by_signal(self, level):
        assert [c.method for c in find_connections(level, signal="died")] == [
            "_on_boss_died", "_on_enemy_died",
        ]

    def test_by_node(self, level):
        assert [c.signal for c in find_connections(level, node="Door")] == ["body_entered"]
        assert len(find_connections(level, node=".")) == 3

    def test_by_signal_and_node(self, level):
        conns = find_connections(level, signal="died", node="Enemies/Goblin")
        assert [c.method for c in conns] == ["_on_enemy_died"]
