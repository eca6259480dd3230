"""
Brief handling and script contract utilities for MommyBook picture books.
"""

from .brief import DEFAULT_STYLE_PROMPT, BookInputSpec
from .prompting import (
    DEFAULT_STYLE_FALLBACK,
    STYLE_ANALYSIS_PROMPT,
    ScriptPrompt,
    build_script_prompt,
)
from .script_parser import FrameDraft, ScriptDraft, parse_script_payload

__all__ = [
    "BookInputSpec",
    "DEFAULT_STYLE_PROMPT",
    "DEFAULT_STYLE_FALLBACK",
    "STYLE_ANALYSIS_PROMPT",
    "ScriptPrompt",
    "build_script_prompt",
    "FrameDraft",
    "ScriptDraft",
    "parse_script_payload",
]
