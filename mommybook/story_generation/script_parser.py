"""
Parsing of structured script responses into validated drafts.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from mommybook.common.errors import ScriptParseError

_CODE_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


@dataclass(frozen=True)
class FrameDraft:
    """
    One narrative beat as returned by the script backend, before ids are assigned.
    """

    story_text: str
    scene_description: str


@dataclass(frozen=True)
class ScriptDraft:
    """
    Backend-produced script in the shape of a generated document.
    """

    title: str
    introduction: str
    character_design: str
    cover_prompt: str
    frames: tuple[FrameDraft, ...]


def parse_script_payload(payload: str | Mapping[str, Any]) -> ScriptDraft:
    """
    Validate a script response and convert it into a :class:`ScriptDraft`.

    Accepts raw JSON text (optionally wrapped in a Markdown code fence) or an already
    decoded mapping. Keys follow the camelCase wire contract; snake_case is tolerated.
    """
    data = _decode(payload) if isinstance(payload, str) else payload
    if not isinstance(data, Mapping):
        raise ScriptParseError("Script response must be a JSON object.")

    title = _required_text(data, "title")
    introduction = _required_text(data, "introduction")
    character_design = _required_text(data, "characterDesign", "character_design")
    cover_prompt = _required_text(data, "coverPrompt", "cover_prompt")

    frames_data = data.get("frames")
    if not isinstance(frames_data, list) or not frames_data:
        raise ScriptParseError("Script response must contain a non-empty 'frames' list.")

    return ScriptDraft(
        title=title,
        introduction=introduction,
        character_design=character_design,
        cover_prompt=cover_prompt,
        frames=tuple(_convert_frames(frames_data)),
    )


def _decode(raw_text: str) -> Any:
    text = raw_text.strip()
    fenced = _CODE_FENCE_PATTERN.match(text)
    if fenced:
        text = fenced.group(1)

    if not text:
        raise ScriptParseError("Script response was empty.")

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ScriptParseError("Failed to parse script response as JSON.") from exc


def _required_text(data: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    raise ScriptParseError(f"Script response is missing '{keys[0]}'.")


def _convert_frames(frames_data: Iterable[Any]) -> list[FrameDraft]:
    frames: list[FrameDraft] = []
    for position, item in enumerate(frames_data, start=1):
        if not isinstance(item, Mapping):
            raise ScriptParseError(f"Frame {position} must be a JSON object, got {item!r}.")
        try:
            story_text = _required_text(item, "storyText", "story_text")
            scene_description = _required_text(item, "sceneDescription", "scene_description")
        except ScriptParseError as exc:
            raise ScriptParseError(f"Frame {position}: {exc}") from exc
        frames.append(FrameDraft(story_text=story_text, scene_description=scene_description))
    return frames
