"""
AI generation backends for MommyBook.
"""

from .ark_provider import ArkRestBookProvider
from .base import AspectRatio, BookProvider, IllustrationImage, SUPPORTED_ASPECT_RATIOS
from .factory import build_credential_manager, build_provider
from .gemini_provider import GeminiBookProvider
from .prompting import COVER_TEXT_GUARD, build_cover_prompt, build_illustration_prompt
from .replicate_provider import ReplicateBookProvider

__all__ = [
    "ArkRestBookProvider",
    "AspectRatio",
    "BookProvider",
    "COVER_TEXT_GUARD",
    "GeminiBookProvider",
    "IllustrationImage",
    "ReplicateBookProvider",
    "SUPPORTED_ASPECT_RATIOS",
    "build_cover_prompt",
    "build_credential_manager",
    "build_illustration_prompt",
    "build_provider",
]
