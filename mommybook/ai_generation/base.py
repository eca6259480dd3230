"""
Capability interface shared by every MommyBook generation backend.
"""

from __future__ import annotations

import abc
import base64
from dataclasses import dataclass
from typing import Callable, Literal

from mommybook.common.errors import ProviderError
from mommybook.story_generation import BookInputSpec, ScriptDraft
from mommybook.story_generation.prompting import DEFAULT_STYLE_FALLBACK

AspectRatio = Literal["16:9", "9:16"]

SUPPORTED_ASPECT_RATIOS: tuple[str, ...] = ("16:9", "9:16")

MAX_STYLE_WORDS = 50


@dataclass(frozen=True)
class IllustrationImage:
    """Raster image data returned by an illustration backend."""

    data: bytes
    mime_type: str = "image/png"

    def as_data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


def validate_aspect_ratio(aspect_ratio: str) -> AspectRatio:
    if aspect_ratio not in SUPPORTED_ASPECT_RATIOS:
        raise ValueError(
            f"Unsupported aspect ratio '{aspect_ratio}'. "
            f"Supported ratios: {', '.join(SUPPORTED_ASPECT_RATIOS)}."
        )
    return aspect_ratio  # type: ignore[return-value]


def finalize_style_text(text: str | None) -> str:
    """
    Normalize a style-analysis reply: never empty, trimmed to roughly 50 words.
    """
    cleaned = " ".join((text or "").split()).strip().strip('"').strip()
    if not cleaned:
        return DEFAULT_STYLE_FALLBACK
    words = cleaned.split(" ")
    if len(words) > MAX_STYLE_WORDS:
        cleaned = " ".join(words[:MAX_STYLE_WORDS]).rstrip(",;:")
    return cleaned


def require_api_key(key_source: Callable[[], str | None], backend: str) -> str:
    """
    Read the current key right before a request; a missing key reads as an auth failure.
    """
    key = key_source()
    if not key:
        raise ProviderError(f"API_KEY is not set for the {backend} backend.", status_code=401)
    return key


class BookProvider(abc.ABC):
    """
    Style analysis, script generation, and illustration synthesis against one backend.

    Implementations raise :class:`~mommybook.common.errors.ProviderError` for transport
    and backend failures and :class:`~mommybook.common.errors.ScriptParseError` when a
    script reply does not have the expected shape. Credential classification is left to
    the caller.
    """

    name: str = "provider"

    @abc.abstractmethod
    async def analyze_style(self, image: bytes, mime_type: str) -> str:
        """Return a concise (under ~50 words) style prompt fragment for the image."""

    @abc.abstractmethod
    async def generate_script(self, brief: BookInputSpec) -> ScriptDraft:
        """Return the structured script for the brief."""

    @abc.abstractmethod
    async def generate_illustration(
        self,
        scene_prompt: str,
        style_prompt: str,
        visual_anchor: str = "",
        character_design: str = "",
        aspect_ratio: AspectRatio = "16:9",
    ) -> IllustrationImage:
        """Return raster image data for the composed prompt."""
