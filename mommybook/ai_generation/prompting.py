"""
Prompt construction utilities for MommyBook illustration generation.
"""

from __future__ import annotations

COVER_TEXT_GUARD = (
    "Focus exclusively on the main characters. No text, no letters, no titles, "
    "no Chinese characters, pure visual illustration only."
)

DEFAULT_QUALITY_SUFFIX = "Professional high-quality children's book illustration."


def build_illustration_prompt(
    scene_prompt: str,
    style_prompt: str,
    visual_anchor: str = "",
    character_design: str = "",
    *,
    quality_suffix: str = DEFAULT_QUALITY_SUFFIX,
) -> str:
    """
    Compose the scene, style, and consistency cues into a single image prompt.

    Parameters
    ----------
    scene_prompt:
        Visual brief of the frame (or the guarded cover prompt).
    style_prompt:
        Artistic medium and mood shared by every illustration in the book.
    visual_anchor:
        Author-supplied traits that must stay fixed across illustrations.
    character_design:
        Backend-produced consistency contract for the recurring characters.
    quality_suffix:
        Backend-specific closing line.
    """
    if not scene_prompt or not scene_prompt.strip():
        raise ValueError("scene_prompt must be a non-empty string.")

    sections = [f"SCENE: {_strip_period(scene_prompt)}."]
    if style_prompt and style_prompt.strip():
        sections.append(f"STYLE: {_strip_period(style_prompt)}.")
    if visual_anchor and visual_anchor.strip():
        sections.append(f"VISUAL ANCHOR: {_strip_period(visual_anchor)}.")
    if character_design and character_design.strip():
        sections.append(f"CHARACTER: {_strip_period(character_design)}.")
    if quality_suffix:
        sections.append(quality_suffix.strip())

    return "\n".join(sections)


def build_cover_prompt(cover_prompt: str) -> str:
    """
    Append the fixed no-text guard to the document's cover prompt.
    """
    base = _strip_period(cover_prompt or "")
    if not base:
        return COVER_TEXT_GUARD
    return f"{base}. {COVER_TEXT_GUARD}"


def _strip_period(text: str) -> str:
    return text.strip().rstrip(".").strip()
