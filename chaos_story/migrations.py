"""Explicit upgrades for stored documents.

Documents carry `schema_version`. Anything without one is a v1 document
from the first release and is upgraded here, before pydantic validation.
Upgrades work on plain dicts and never drop data other than fields the
game no longer has a use for (a choice's `nextSceneId`).

    v1 → v2
      * camelCase keys become snake_case, and fields are renamed to the v2
        vocabulary (initialPrompt → premise, createdBy → owner_user_id,
        storyHistory → history, chosenBy → author_user_id,
        chaosVotes → votes, chaosLevel on an entry → chaos_score,
        totalChaosVotes → total_votes_received, ...)
      * millisecond epoch timestamps become ISO-8601 UTC datetimes
      * vote categories may be missing entirely, or hold only the three
        early ones (mild/wild/insane); every category is filled in and
        scores are recomputed with the v2 weight table
      * games get a single-chain story tree built from their flat history,
        plus a scene archive holding the current scene
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from chaos_story.aggregator import chaos_score, profile_score
from chaos_story.models import SCHEMA_VERSION, ChaosVotes, ContributionCounts, VoteCategory

logger = logging.getLogger(__name__)

_GAME_FIELDS = {
    "initialPrompt": "premise",
    "chaosLevel": "chaos_level",
    "createdAt": "created_at",
    "createdBy": "owner_user_id",
    "createdByUsername": "owner_display_name",
    "currentScene": "current_scene",
    "storyHistory": "history",
}

_ENTRY_FIELDS = {
    "sceneId": "scene_id",
    "sceneTitle": "scene_title",
    "sceneDescription": "scene_description",
    "choiceId": "choice_id",
    "choiceText": "choice_text",
    "chosenBy": "author_user_id",
    "chosenByUsername": "author_display_name",
    "chaosVotes": "votes",
    "chaosLevel": "chaos_score",
}

_PROFILE_FIELDS = {
    "userId": "user_id",
    "username": "display_name",
    "totalChaosVotes": "total_votes_received",
    "chaosContributions": "contributions",
    "globalChaosLevel": "global_chaos_score",
    "lastUpdated": "last_updated",
}


def _rename(data: dict[str, Any], fields: dict[str, str]) -> dict[str, Any]:
    for old, new in fields.items():
        if old in data:
            data.setdefault(new, data.pop(old))
    return data


def _epoch_ms_to_iso(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc).isoformat()
    return value


def _upgrade_scene(scene: dict[str, Any]) -> dict[str, Any]:
    _rename(scene, {"isEnding": "is_ending"})
    for choice in scene.get("choices", []):
        choice.pop("nextSceneId", None)
    return scene


def _upgrade_entry(entry: dict[str, Any]) -> None:
    _rename(entry, _ENTRY_FIELDS)
    if "timestamp" in entry:
        entry["timestamp"] = _epoch_ms_to_iso(entry["timestamp"])
    votes = dict(entry.get("votes") or {})
    for category in VoteCategory:
        votes.setdefault(category.value, [])
    entry["votes"] = votes
    entry["chaos_score"] = chaos_score(ChaosVotes.model_validate(votes))


def _chain_tree(data: dict[str, Any]) -> None:
    """Build a degenerate one-branch tree from a flat history."""
    history = data.get("history", [])
    current_scene_id = data["current_scene"]["id"]
    scene_ids = [e["scene_id"] for e in history] + [current_scene_id]
    timestamp = data.get("created_at")

    nodes: dict[str, dict[str, Any]] = {
        "node_0": {
            "id": "node_0", "scene_id": scene_ids[0], "parent_id": None,
            "children": [], "is_active": True, "timestamp": timestamp,
        },
    }
    path = ["node_0"]
    for i, entry in enumerate(history):
        node_id = f"node_{i + 1}"
        nodes[path[-1]]["children"].append(node_id)
        nodes[node_id] = {
            "id": node_id,
            "scene_id": scene_ids[i + 1],
            "parent_id": path[-1],
            "choice_id": entry["choice_id"],
            "choice_text": entry["choice_text"],
            "author_user_id": entry["author_user_id"],
            "timestamp": entry.get("timestamp", timestamp),
            "children": [],
            "is_active": True,
        }
        entry["node_id"] = node_id
        path.append(node_id)

    for node in nodes.values():
        if node["timestamp"] is None:
            del node["timestamp"]
    data["story_tree"] = {"root_id": "node_0", "nodes": nodes}
    data["active_path"] = path


def upgrade_game_document(data: dict[str, Any]) -> dict[str, Any]:
    version = data.get("schema_version", 1)
    if version >= SCHEMA_VERSION:
        return data

    logger.info("Upgrading game %s from schema v%d", data.get("id"), version)
    _rename(data, _GAME_FIELDS)
    if "created_at" in data:
        data["created_at"] = _epoch_ms_to_iso(data["created_at"])
    _upgrade_scene(data["current_scene"])
    for entry in data.setdefault("history", []):
        _upgrade_entry(entry)
    if "story_tree" not in data:
        _chain_tree(data)
    data.setdefault("scenes", {data["current_scene"]["id"]: data["current_scene"]})
    data["schema_version"] = SCHEMA_VERSION
    return data


def upgrade_profile_document(data: dict[str, Any]) -> dict[str, Any]:
    version = data.get("schema_version", 1)
    if version >= SCHEMA_VERSION:
        return data

    _rename(data, _PROFILE_FIELDS)
    if "last_updated" in data:
        data["last_updated"] = _epoch_ms_to_iso(data["last_updated"])
    contributions = dict(data.get("contributions") or {})
    for category in VoteCategory:
        contributions.setdefault(category.value, 0)
    data["contributions"] = contributions
    data["global_chaos_score"] = profile_score(ContributionCounts.model_validate(contributions))
    data["schema_version"] = SCHEMA_VERSION
    return data
