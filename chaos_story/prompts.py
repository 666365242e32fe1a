"""Handlebars prompts for the scene generator."""

from collections.abc import Callable
from typing import Any

import pybars


_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


# ── Custom Handlebars helpers ────────────────────────────


def _helper_last(this, options, items, count):
    """{{#last array N}}...{{/last}} — iterate over the last N items."""
    result = []
    for item in list(items)[-int(count):]:
        result.extend(options["fn"](item))
    return result


_HELPERS: dict[str, Callable] = {
    "last": _helper_last,
}


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return compiled(context, helpers=_HELPERS)
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


# ── Scene prompts ────────────────────────────────────────
# User-supplied text uses triple-stash so it reaches the model unescaped.

SCENE_JSON_SHAPE = """Format your response as JSON:
{
  "title": "Scene Title",
  "description": "{{shape_hint}}",
  "choices": [
    {"id": "choice1", "text": "Choice 1 description"},
    {"id": "choice2", "text": "Choice 2 description"},
    {"id": "choice3", "text": "Choice 3 description"},
    {"id": "choice4", "text": "Choice 4 description"}
  ]
}

Make sure the JSON is valid and properly formatted.
"""

OPENING_PROMPT = """You are creating the opening scene for a "Choose Your Own Adventure" story called "{{{title}}}".

Initial Setup: {{{premise}}}
Chaos Level: {{chaos_level}}/5 - {{chaos_description}}

Create an engaging opening scene that:
1. Sets up the story based on the initial prompt
2. Incorporates the specified chaos level
3. Ends with exactly 4 meaningful choices for the reader
4. Keeps the description under 200 words
5. Makes each choice lead to distinctly different story paths

""" + SCENE_JSON_SHAPE

CONTINUATION_PROMPT = """You are continuing a "Choose Your Own Adventure" story.

Previous Story Choices:
{{#last history 20}}{{n}}. {{{text}}}
{{/last}}
Previous Scene: {{{previous_description}}}
Chosen Action: {{{chosen_text}}}
Chaos Level: {{chaos_level}}/5 - {{chaos_description}}
Scene Number: {{scene_number}}

Continue the story by:
1. Building naturally from the chosen action
2. Incorporating the chaos level appropriately
3. Creating an engaging scene under 200 words
4. Providing exactly 4 new choices
5. Escalating tension and stakes as the story progresses
{{#if near_ending}}
Consider if this might be a good place to end the story with some choices leading to conclusions.
{{/if}}
""" + SCENE_JSON_SHAPE

# Scene number after which the continuation prompt hints at wrapping up.
ENDING_HINT_AFTER = 8


def opening_prompt(title: str, premise: str, chaos_level: int, chaos_description: str) -> str:
    return render_prompt(OPENING_PROMPT, {
        "title": title,
        "premise": premise,
        "chaos_level": chaos_level,
        "chaos_description": chaos_description,
        "shape_hint": "Scene description that sets up the situation",
    })


def continuation_prompt(
    history: list[str],
    previous_description: str,
    chosen_text: str,
    chaos_level: int,
    chaos_description: str,
    scene_number: int,
) -> str:
    return render_prompt(CONTINUATION_PROMPT, {
        "history": [{"n": i + 1, "text": text} for i, text in enumerate(history)],
        "previous_description": previous_description,
        "chosen_text": chosen_text,
        "chaos_level": chaos_level,
        "chaos_description": chaos_description,
        "scene_number": scene_number,
        "near_ending": scene_number > ENDING_HINT_AFTER,
        "shape_hint": "Scene description continuing from the chosen action",
    })
