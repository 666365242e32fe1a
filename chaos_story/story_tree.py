"""Branching story tree with a single active path.

The tree is an arena: nodes live in a dict keyed by id and point at their
parent, so resolving a path or re-marking the active route costs one lookup
per step. Nothing is ever pruned; abandoned branches stay in the tree with
is_active=False so the whole history can still be displayed.

Operations never mutate their input tree. They return a fresh copy, which
lets callers throw the result away if a later step of the same mutation
fails.

`active_path` (kept on the Game) lists node ids from the root to the active
leaf. It must always match the is_active flags; any mismatch is reported as
InvalidPathError and treated as data corruption.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from chaos_story.errors import InvalidPathError
from chaos_story.models import Scene, StoryNode, StoryTree, utcnow


def _next_node_id(tree: StoryTree) -> str:
    return f"node_{len(tree.nodes)}"


def create_root(scene: Scene) -> StoryTree:
    root = StoryNode(id="node_0", scene_id=scene.id, is_active=True)
    return StoryTree(root_id=root.id, nodes={root.id: root})


def resolve_path(tree: StoryTree, path: list[str]) -> StoryNode:
    """Return the node at the end of `path`, checking every parent/child link."""
    if not path or path[0] != tree.root_id:
        raise InvalidPathError(f"active path {path!r} does not start at root {tree.root_id!r}")
    node = tree.nodes.get(path[0])
    if node is None:
        raise InvalidPathError(f"root node {tree.root_id!r} missing")
    for node_id in path[1:]:
        child = tree.nodes.get(node_id)
        if child is None or node_id not in node.children or child.parent_id != node.id:
            raise InvalidPathError(f"node {node_id!r} is not a child of {node.id!r}")
        node = child
    return node


def _mark_active(tree: StoryTree, path: list[str]) -> None:
    for node in tree.nodes.values():
        node.is_active = False
    for node_id in path:
        tree.nodes[node_id].is_active = True


def append_choice(
    tree: StoryTree,
    active_path: list[str],
    choice_id: str,
    choice_text: str,
    new_scene: Scene,
    author_user_id: str,
    timestamp: datetime | None = None,
) -> tuple[StoryTree, list[str]]:
    """Attach a node for `new_scene` under the active leaf and make it active.

    Returns the updated tree and `active_path + [new node id]`.
    """
    updated = tree.model_copy(deep=True)
    leaf = resolve_path(updated, active_path)

    node = StoryNode(
        id=_next_node_id(updated),
        scene_id=new_scene.id,
        parent_id=leaf.id,
        choice_id=choice_id,
        choice_text=choice_text,
        author_user_id=author_user_id,
        timestamp=timestamp or utcnow(),
    )
    updated.nodes[node.id] = node
    leaf.children.append(node.id)

    new_path = [*active_path, node.id]
    _mark_active(updated, new_path)
    return updated, new_path


def check_active_path(tree: StoryTree, active_path: list[str]) -> StoryNode:
    """Verify the flags match `active_path` exactly; return the active leaf."""
    leaf = resolve_path(tree, active_path)
    on_path = set(active_path)
    for node in tree.nodes.values():
        if node.is_active != (node.id in on_path):
            raise InvalidPathError(
                f"node {node.id!r} is_active={node.is_active} disagrees with active path"
            )
    return leaf


def to_nested(tree: StoryTree, scenes: dict[str, Scene] | None = None) -> dict[str, Any]:
    """Render the tree as nested dicts for history-tree display.

    With `scenes`, each node also carries its scene title (None if unknown).
    """
    scenes = scenes or {}

    def _render(node_id: str) -> dict[str, Any]:
        node = tree.nodes[node_id]
        return {
            "id": node.id,
            "scene_id": node.scene_id,
            "scene_title": scenes[node.scene_id].title if node.scene_id in scenes else None,
            "choice_id": node.choice_id,
            "choice_text": node.choice_text,
            "author_user_id": node.author_user_id,
            "timestamp": node.timestamp.isoformat(),
            "is_active": node.is_active,
            "children": [_render(c) for c in node.children],
        }

    return _render(tree.root_id)
