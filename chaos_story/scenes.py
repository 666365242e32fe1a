"""Scene writer — turns an LLM into a Scene Generator that never fails.

Each scene is one LLM attempt bounded by a timeout. The response must hold a
JSON object (first "{" to last "}") with a title, a description and exactly
four choices. Anything else (transport error, timeout, non-JSON, missing
fields, wrong choice count) falls back to a fixed scene built only from the
inputs, so creating a game or resolving a choice always gets a scene. There
is no retry.

Ending pacing lives here too: past a scene-number threshold each continuation
has a bounded chance of being an ending, whichever path built it.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
import re
from collections.abc import Callable

import pydantic
from pydantic import BaseModel, Field

from chaos_story.llm import LLM
from chaos_story.models import CHOICES_PER_SCENE, GameChoice, Scene
from chaos_story.prompts import continuation_prompt, opening_prompt

logger = logging.getLogger(__name__)

CHAOS_TIERS: dict[int, str] = {
    1: "Mild - Slightly unpredictable with minor twists",
    2: "Moderate - Some unexpected turns and surprises",
    3: "Wild - Significant plot twists and chaotic elements",
    4: "Extreme - Highly unpredictable with major chaos",
    5: "Maximum Chaos - Completely unpredictable and absurd",
}

DEFAULT_TIMEOUT = 30.0
DEFAULT_ENDING_THRESHOLD = 10
DEFAULT_ENDING_PROBABILITY = 0.3

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def describe_chaos_level(level: int) -> str:
    return CHAOS_TIERS[level]


class EndingPolicy:
    """Decides whether a freshly built continuation scene ends the story.

    Pass a seed for reproducible endings; unseeded it is genuinely random.
    """

    def __init__(
        self,
        threshold: int = DEFAULT_ENDING_THRESHOLD,
        probability: float = DEFAULT_ENDING_PROBABILITY,
        seed: int | None = None,
    ) -> None:
        self.threshold = threshold
        self.probability = probability
        self._rng = random.Random(seed)

    def roll(self, scene_number: int) -> bool:
        return scene_number > self.threshold and self._rng.random() < self.probability


# ---------------------------------------------------------------------------
# Parsing generator output
# ---------------------------------------------------------------------------

class _ChoicePayload(BaseModel):
    id: str | None = None
    text: str = Field(min_length=1)


class _ScenePayload(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    choices: list[_ChoicePayload] = Field(
        min_length=CHOICES_PER_SCENE, max_length=CHOICES_PER_SCENE
    )


def parse_scene_output(output: str) -> _ScenePayload | None:
    """Extract and validate a scene payload. Returns None if unusable."""
    if not isinstance(output, str):
        logger.warning("Scene generator returned %s, not text", type(output).__name__)
        return None
    match = _JSON_OBJECT.search(output)
    if match is None:
        logger.warning("Scene generator returned no JSON object: %r", output[:200])
        return None
    try:
        return _ScenePayload.model_validate(json.loads(match.group(0)))
    except json.JSONDecodeError as e:
        logger.warning("Scene generator returned invalid JSON: %s", e)
    except pydantic.ValidationError as e:
        logger.warning("Scene generator returned a malformed scene: %s", e)
    return None


def _choices_from_payload(payload: _ScenePayload) -> list[GameChoice]:
    ids = [c.id or "" for c in payload.choices]
    # Missing or duplicated ids: renumber the whole scene.
    if "" in ids or len(set(ids)) != len(ids):
        ids = [f"choice{i + 1}" for i in range(len(payload.choices))]
    return [GameChoice(id=i, text=c.text) for i, c in zip(ids, payload.choices)]


# ---------------------------------------------------------------------------
# Deterministic fallbacks
# ---------------------------------------------------------------------------

_FALLBACK_OPENING_CHOICES = [
    "Look around carefully and assess the situation",
    "Take immediate action without hesitation",
    "Try to find other people or allies",
    "Do something completely unexpected",
]

_FALLBACK_CONTINUATION_CHOICES = [
    "Try to adapt to the new circumstances",
    "Fight against the unexpected change",
    "Embrace the chaos and go with the flow",
    "Try to find a creative solution",
]

_FALLBACK_TWISTS = [
    "Something unexpected happens...",
    "The situation takes a surprising turn...",
    "Chaos ensues as...",
    "In a twist of fate...",
    "The unpredictable nature of this adventure reveals itself as...",
]


def _numbered_choices(texts: list[str]) -> list[GameChoice]:
    return [GameChoice(id=f"choice{i + 1}", text=t) for i, t in enumerate(texts)]


def fallback_opening(scene_id: str, title: str, premise: str, chaos_level: int) -> Scene:
    return Scene(
        id=scene_id,
        title=f"{title} - The Beginning",
        description=(
            f"{premise}\n\nYou find yourself at the start of an adventure. "
            f"The chaos level is set to {chaos_level}/5, so expect the unexpected! "
            "What will you do first?"
        ),
        choices=_numbered_choices(_FALLBACK_OPENING_CHOICES),
    )


def fallback_continuation(
    scene_id: str, chosen_text: str, scene_number: int, chaos_level: int,
    is_ending: bool = False,
) -> Scene:
    twist = _FALLBACK_TWISTS[scene_number % len(_FALLBACK_TWISTS)]
    return Scene(
        id=scene_id,
        title=f"Scene {scene_number}: Unexpected Turn",
        description=(
            f'After choosing to "{chosen_text}", {twist} You find yourself in a new '
            "situation that requires quick thinking. "
            f"The chaos level {chaos_level}/5 means anything could happen next!"
        ),
        choices=_numbered_choices(_FALLBACK_CONTINUATION_CHOICES),
        is_ending=is_ending,
    )


# ---------------------------------------------------------------------------
# SceneWriter
# ---------------------------------------------------------------------------

class SceneWriter:
    """Builds scenes from an LLM, degrading to fallbacks.

    Args:
        llm:     Text generator. None means every scene is a fallback.
        timeout: Seconds allowed for one generator attempt.
        ending:  Ending pacing for continuation scenes.
    """

    def __init__(
        self,
        llm: LLM | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        ending: EndingPolicy | None = None,
    ) -> None:
        self._llm = llm
        self._timeout = timeout
        self._ending = ending or EndingPolicy()

    async def _attempt(
        self, stage: str, build_prompt: Callable[[], str]
    ) -> _ScenePayload | None:
        if self._llm is None:
            return None
        try:
            prompt = build_prompt()
            output = await asyncio.wait_for(self._llm(stage, prompt), self._timeout)
        except asyncio.TimeoutError:
            logger.warning("Scene generator timed out after %ss (stage=%s)", self._timeout, stage)
            return None
        except Exception:
            logger.warning("Scene generator failed (stage=%s)", stage, exc_info=True)
            return None
        return parse_scene_output(output)

    async def opening(self, scene_id: str, title: str, premise: str, chaos_level: int) -> Scene:
        payload = await self._attempt("opening", lambda: opening_prompt(
            title, premise, chaos_level, describe_chaos_level(chaos_level),
        ))
        if payload is None:
            logger.warning("Using fallback opening scene for %r", title)
            return fallback_opening(scene_id, title, premise, chaos_level)
        return Scene(
            id=scene_id,
            title=payload.title,
            description=payload.description,
            choices=_choices_from_payload(payload),
        )

    async def continuation(
        self,
        scene_id: str,
        history: list[str],
        previous: Scene,
        chosen_text: str,
        chaos_level: int,
        scene_number: int,
    ) -> Scene:
        payload = await self._attempt("continuation", lambda: continuation_prompt(
            history, previous.description, chosen_text,
            chaos_level, describe_chaos_level(chaos_level), scene_number,
        ))
        is_ending = self._ending.roll(scene_number)
        if payload is None:
            logger.warning("Using fallback scene %d", scene_number)
            return fallback_continuation(
                scene_id, chosen_text, scene_number, chaos_level, is_ending=is_ending,
            )
        return Scene(
            id=scene_id,
            title=payload.title,
            description=payload.description,
            choices=_choices_from_payload(payload),
            is_ending=is_ending,
        )
