"""
Structured representation of the author's picture-book brief.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping

MIN_WORD_COUNT = 200
MAX_WORD_COUNT = 2000
DEFAULT_WORD_COUNT = 800

DEFAULT_STYLE_PROMPT = "Warm, hand-drawn digital watercolor children's book style"


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _coerce_word_count(value: Any) -> int:
    if value is None or value == "":
        return DEFAULT_WORD_COUNT

    try:
        count = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected an integer-compatible word count, got {value!r}") from exc

    if not MIN_WORD_COUNT <= count <= MAX_WORD_COUNT:
        raise ValueError(
            f"word_count must fall between {MIN_WORD_COUNT} and {MAX_WORD_COUNT}, received {count}."
        )
    return count


@dataclass(frozen=True)
class BookInputSpec:
    """
    Author-supplied inputs for one script generation request.

    Attributes
    ----------
    title:
        Working title. Generation does not start without one.
    theme:
        The lesson or emotional theme the story should carry.
    word_count:
        Target length of the whole script, bounded to 200-2000 words.
    visual_anchor:
        Free-form consistency cues (e.g., "the fox always wears a yellow scarf").
    style_prompt:
        Artistic medium and mood, typed in or produced by style analysis.
    introduction:
        Plot seed or any extra notes from the author.
    """

    title: str = ""
    theme: str = ""
    word_count: int = DEFAULT_WORD_COUNT
    visual_anchor: str = ""
    style_prompt: str = DEFAULT_STYLE_PROMPT
    introduction: str = ""

    def __post_init__(self) -> None:
        _coerce_word_count(self.word_count)

    @property
    def has_title(self) -> bool:
        return bool(self.title.strip())

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BookInputSpec":
        """
        Build a brief from a dict-like object (e.g., parsed JSON/YAML or form data).
        """
        style_prompt = _coerce_text(data.get("style_prompt") or data.get("stylePrompt"))
        return cls(
            title=_coerce_text(data.get("title")),
            theme=_coerce_text(data.get("theme")),
            word_count=_coerce_word_count(data.get("word_count", data.get("wordCount"))),
            visual_anchor=_coerce_text(data.get("visual_anchor") or data.get("visualAnchor")),
            style_prompt=style_prompt or DEFAULT_STYLE_PROMPT,
            introduction=_coerce_text(
                data.get("introduction") or data.get("intro") or data.get("plot")
            ),
        )

    def replace_style_prompt(self, style_prompt: str) -> "BookInputSpec":
        return replace(self, style_prompt=style_prompt.strip() or self.style_prompt)

    def context_bullets(self) -> list[str]:
        """
        Produce bullet-friendly lines describing the brief, for prompt conditioning.
        """
        bullets = [f"Title: {self.title}"]

        if self.theme:
            bullets.append(f"Theme: {self.theme}")

        bullets.append(f"Word count limit: {self.word_count}")

        if self.visual_anchor:
            bullets.append(f"Visual anchor (character/scene traits): {self.visual_anchor}")

        if self.style_prompt:
            bullets.append(f"Artistic style: {self.style_prompt}")

        if self.introduction:
            bullets.append(f"Additional info: {self.introduction}")

        return bullets

    def summary_for_prompt(self) -> str:
        return "\n".join(f"- {line}" for line in self.context_bullets())
