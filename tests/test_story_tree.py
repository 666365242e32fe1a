"""Tests for the branching story tree."""

import pytest

from chaos_story import story_tree
from chaos_story.errors import CorruptDataError, InvalidPathError
from chaos_story.models import GameChoice, Scene


def _scene(scene_id: str) -> Scene:
    return Scene(
        id=scene_id, title=scene_id, description="...",
        choices=[GameChoice(id=f"choice{i}", text=f"opt {i}") for i in range(1, 5)],
    )


def _active_ids(tree) -> set[str]:
    return {n.id for n in tree.nodes.values() if n.is_active}


def _grow(tree, path, *scene_ids):
    for sid in scene_ids:
        tree, path = story_tree.append_choice(tree, path, "choice1", f"to {sid}", _scene(sid), "alice")
    return tree, path


# ── create_root ──────────────────────────────────────────────


def test_root_is_active_and_childless():
    tree = story_tree.create_root(_scene("scene_0"))
    root = tree.nodes[tree.root_id]
    assert root.is_active
    assert root.children == []
    assert root.parent_id is None
    assert root.choice_id is None and root.author_user_id is None
    assert root.scene_id == "scene_0"


# ── append_choice ────────────────────────────────────────────


def test_append_extends_active_path():
    tree = story_tree.create_root(_scene("scene_0"))
    tree2, path = story_tree.append_choice(
        tree, [tree.root_id], "choice2", "Run!", _scene("scene_1"), "bob",
    )
    assert len(path) == 2 and path[0] == tree.root_id
    node = tree2.nodes[path[-1]]
    assert node.scene_id == "scene_1"
    assert node.choice_id == "choice2"
    assert node.choice_text == "Run!"
    assert node.author_user_id == "bob"
    assert node.parent_id == tree.root_id
    assert tree2.nodes[tree.root_id].children == [node.id]
    assert _active_ids(tree2) == set(path)


def test_append_does_not_mutate_input():
    tree = story_tree.create_root(_scene("scene_0"))
    story_tree.append_choice(tree, [tree.root_id], "choice1", "x", _scene("scene_1"), "bob")
    assert list(tree.nodes) == [tree.root_id]
    assert tree.nodes[tree.root_id].children == []


def test_node_ids_unique():
    tree, path = _grow(story_tree.create_root(_scene("scene_0")), ["node_0"], "s1", "s2", "s3")
    assert len(set(path)) == len(path) == 4
    assert len(tree.nodes) == 4


def test_stale_path_raises():
    tree, path = _grow(story_tree.create_root(_scene("scene_0")), ["node_0"], "s1")
    with pytest.raises(InvalidPathError):
        story_tree.append_choice(tree, ["node_0", "node_99"], "choice1", "x", _scene("s2"), "a")


def test_path_not_starting_at_root_raises():
    tree, path = _grow(story_tree.create_root(_scene("scene_0")), ["node_0"], "s1")
    with pytest.raises(InvalidPathError):
        story_tree.append_choice(tree, ["node_1"], "choice1", "x", _scene("s2"), "a")


def test_empty_path_raises():
    tree = story_tree.create_root(_scene("scene_0"))
    with pytest.raises(InvalidPathError):
        story_tree.resolve_path(tree, [])


def test_invalid_path_is_data_corruption():
    assert issubclass(InvalidPathError, CorruptDataError)


# ── Branching ────────────────────────────────────────────────


def test_branch_deactivates_abandoned_suffix():
    tree, old_path = _grow(story_tree.create_root(_scene("scene_0")), ["node_0"], "s1", "s2", "s3")
    # Branch from the first choice
    tree, new_path = story_tree.append_choice(
        tree, old_path[:2], "choice4", "other way", _scene("s4"), "carol",
    )

    assert new_path[:2] == old_path[:2]
    assert _active_ids(tree) == set(new_path)
    for node_id in old_path[2:]:
        assert tree.nodes[node_id].is_active is False
    # Abandoned nodes are retained
    assert all(node_id in tree.nodes for node_id in old_path)
    assert len(tree.nodes[old_path[1]].children) == 2


def test_exactly_one_active_root_to_leaf_path():
    tree, _ = _grow(story_tree.create_root(_scene("scene_0")), ["node_0"], "s1", "s2")
    tree, path = _grow(tree, ["node_0"], "s3", "s4")
    active = [n for n in tree.nodes.values() if n.is_active]
    leaves = [n for n in active if not any(tree.nodes[c].is_active for c in n.children)]
    assert len(leaves) == 1
    assert leaves[0].id == path[-1]
    assert story_tree.check_active_path(tree, path) is tree.nodes[path[-1]]


def test_resolve_path_detects_orphans():
    tree, path = _grow(story_tree.create_root(_scene("scene_0")), ["node_0"], "s1")
    tree.nodes["node_1"].parent_id = "ghost"
    with pytest.raises(InvalidPathError):
        story_tree.resolve_path(tree, path)


# ── check_active_path ────────────────────────────────────────


def test_check_active_path_returns_leaf():
    tree, path = _grow(story_tree.create_root(_scene("scene_0")), ["node_0"], "s1")
    assert story_tree.check_active_path(tree, path).scene_id == "s1"


def test_check_active_path_flags_out_of_sync():
    tree, path = _grow(story_tree.create_root(_scene("scene_0")), ["node_0"], "s1")
    tree.nodes["node_1"].is_active = False
    with pytest.raises(InvalidPathError):
        story_tree.check_active_path(tree, path)


def test_check_active_path_flags_short_path():
    tree, path = _grow(story_tree.create_root(_scene("scene_0")), ["node_0"], "s1")
    with pytest.raises(InvalidPathError):
        story_tree.check_active_path(tree, path[:1])


# ── to_nested ────────────────────────────────────────────────


def test_to_nested_includes_all_branches():
    tree, path = _grow(story_tree.create_root(_scene("scene_0")), ["node_0"], "s1")
    tree, path = _grow(tree, ["node_0"], "s2")
    nested = story_tree.to_nested(tree)
    assert nested["id"] == "node_0"
    assert [c["scene_id"] for c in nested["children"]] == ["s1", "s2"]
    assert [c["is_active"] for c in nested["children"]] == [False, True]
    assert nested["scene_title"] is None


def test_to_nested_with_scene_titles():
    tree, path = _grow(story_tree.create_root(_scene("scene_0")), ["node_0"], "s1")
    scenes = {"scene_0": _scene("scene_0"), "s1": _scene("s1").model_copy(update={"title": "Bridge"})}
    nested = story_tree.to_nested(tree, scenes)
    assert nested["scene_title"] == "scene_0"
    assert nested["children"][0]["scene_title"] == "Bridge"
