"""
Prompt construction utilities for script generation and style analysis.
"""

from __future__ import annotations

from dataclasses import dataclass

from .brief import BookInputSpec

STYLE_ANALYSIS_PROMPT = """Analyze the artistic style of this children's book illustration.
Describe its:
1. Medium and technique (e.g., watercolor, digital oil painting, flat vector).
2. Color palette (e.g., soft pastels, vibrant primaries).
3. Lighting and mood (e.g., soft morning glow, moody and dark).
4. Stroke and texture details.

Return ONLY a concise, high-quality prompt fragment (under 50 words) that can be used to replicate this exact style in an AI image generator."""

DEFAULT_STYLE_FALLBACK = "Hand-drawn children's book style"

SCRIPT_JSON_SCHEMA_HINT = """{
  "title": "string",
  "introduction": "string",
  "characterDesign": "string",
  "coverPrompt": "string",
  "frames": [
    {"id": "string", "storyText": "string", "sceneDescription": "string"}
  ]
}"""


@dataclass(frozen=True)
class ScriptPrompt:
    """
    Container for the system and user prompts passed to the script model.
    """

    system: str
    user: str


def build_script_prompt(brief: BookInputSpec, *, include_schema: bool = True) -> ScriptPrompt:
    """
    Build the prompt pair used to solicit a structured picture-book script.

    ``include_schema`` embeds the JSON shape in the system prompt; backends that enforce
    a response schema themselves can leave it out.
    """
    if not brief.has_title:
        raise ValueError("A picture-book brief needs a non-empty title.")

    system_prompt = """You are a professional children's picture book author and art director.
You turn a short brief into a complete picture-book script split into illustrated frames.

CRITICAL REQUIREMENT 1 - CHARACTER CONSISTENCY:
Define a "characterDesign" with detailed visual traits (species, proportions, colors, clothing, signature accessories) so every illustration shows the same characters.

CRITICAL REQUIREMENT 2 - EMOTIONAL ALIGNMENT:
For each frame, the "sceneDescription" MUST translate the emotional tone of its "storyText" into visual cues (expression, posture, lighting, color temperature, composition).

CRITICAL REQUIREMENT 3 - COVER PROMPT:
The "coverPrompt" MUST focus exclusively on the main characters in a central, iconic pose.
It must EXPLICITLY forbid any text, titles, letters, or written characters of any script. It should be a pure illustration.

Keep the whole story within the requested word count, in child-safe language, with a clear beginning, middle, and resolution."""

    if include_schema:
        system_prompt += (
            "\n\nRespond with valid JSON matching this schema and nothing else:\n"
            f"{SCRIPT_JSON_SCHEMA_HINT}"
        )

    user_prompt = f"""Create a children's picture book script based on:
{brief.summary_for_prompt()}

Generate a structured response with optimized title, introduction, characterDesign, coverPrompt, and story frames."""

    return ScriptPrompt(system=system_prompt, user=user_prompt)
