"""
google-genai backend using typed request and response schemas.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Callable

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from pydantic import BaseModel

from mommybook.common.errors import ProviderError
from mommybook.common.settings import ProviderSettings
from mommybook.story_generation import BookInputSpec, ScriptDraft, build_script_prompt, parse_script_payload
from mommybook.story_generation.prompting import STYLE_ANALYSIS_PROMPT

from .base import (
    AspectRatio,
    BookProvider,
    IllustrationImage,
    finalize_style_text,
    require_api_key,
    validate_aspect_ratio,
)
from .prompting import build_illustration_prompt

logger = logging.getLogger(__name__)

GEMINI_QUALITY_SUFFIX = "Professional high-quality children's book illustration."

ClientFactory = Callable[[str], genai.Client]


class FrameSchema(BaseModel):
    id: str
    storyText: str
    sceneDescription: str


class ScriptSchema(BaseModel):
    title: str
    introduction: str
    characterDesign: str
    coverPrompt: str
    frames: list[FrameSchema]


class GeminiBookProvider(BookProvider):
    """
    Multimodal backend built on ``google-genai``'s async client.

    Parameters
    ----------
    key_source:
        Callable returning the current API key; read right before every request.
    settings:
        Model ids and the transport timeout.
    client_factory:
        Optional factory building a :class:`genai.Client` for a key. Mainly useful for testing.
        One client is built per key and reused across requests.
    """

    name = "gemini"

    def __init__(
        self,
        *,
        key_source: Callable[[], str | None],
        settings: ProviderSettings | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._key_source = key_source
        self._settings = settings or ProviderSettings(backend="gemini")
        self._client_factory = client_factory or self._default_client
        self._client: genai.Client | None = None
        self._client_key: str | None = None

    async def analyze_style(self, image: bytes, mime_type: str) -> str:
        contents = [
            types.Part.from_bytes(data=image, mime_type=mime_type or "image/jpeg"),
            STYLE_ANALYSIS_PROMPT,
        ]
        response = await self._generate(
            model=self._settings.gemini_vision_model,
            contents=contents,
        )
        return finalize_style_text(_response_text(response))

    async def generate_script(self, brief: BookInputSpec) -> ScriptDraft:
        prompt = build_script_prompt(brief, include_schema=False)
        config = types.GenerateContentConfig(
            system_instruction=prompt.system,
            response_mime_type="application/json",
            response_schema=ScriptSchema,
        )
        response = await self._generate(
            model=self._settings.gemini_text_model,
            contents=prompt.user,
            config=config,
        )

        text = _response_text(response)
        if not text:
            raise ProviderError("No text generated from model")
        return parse_script_payload(text)

    async def generate_illustration(
        self,
        scene_prompt: str,
        style_prompt: str,
        visual_anchor: str = "",
        character_design: str = "",
        aspect_ratio: AspectRatio = "16:9",
    ) -> IllustrationImage:
        ratio = validate_aspect_ratio(aspect_ratio)
        prompt = build_illustration_prompt(
            scene_prompt,
            style_prompt,
            visual_anchor,
            character_design,
            quality_suffix=GEMINI_QUALITY_SUFFIX,
        )
        config = types.GenerateContentConfig(
            image_config=types.ImageConfig(aspect_ratio=ratio),
        )
        response = await self._generate(
            model=self._settings.gemini_image_model,
            contents=prompt,
            config=config,
        )
        return extract_inline_image(response)

    async def _generate(self, *, model: str, contents: Any, config: Any = None) -> Any:
        client = self._client_for_current_key()
        try:
            return await client.aio.models.generate_content(
                model=model,
                contents=contents,
                config=config,
            )
        except genai_errors.APIError as exc:
            raise ProviderError(str(exc), status_code=exc.code) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"Gemini request failed: {exc}") from exc

    def _client_for_current_key(self) -> genai.Client:
        api_key = require_api_key(self._key_source, self.name)
        if self._client is None or api_key != self._client_key:
            # A re-selected key gets a fresh client; the old one stays with its in-flight calls.
            self._client = self._client_factory(api_key)
            self._client_key = api_key
        return self._client

    def _default_client(self, api_key: str) -> genai.Client:
        timeout_ms = int(self._settings.request_timeout * 1000)
        return genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=timeout_ms),
        )


def _response_text(response: Any) -> str:
    try:
        text = response.text
    except (AttributeError, ValueError):
        logger.debug("Gemini response carried no text part.")
        return ""
    return (text or "").strip()


def extract_inline_image(response: Any) -> IllustrationImage:
    """
    Pull the first inline image part out of a ``generate_content`` response.
    """
    candidates = getattr(response, "candidates", None) or []
    if candidates:
        content = getattr(candidates[0], "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            if inline is None or not inline.data:
                continue
            data = inline.data
            if isinstance(data, str):
                data = base64.b64decode(data)
            return IllustrationImage(data=data, mime_type=inline.mime_type or "image/png")

    raise ProviderError("Failed to generate image: the response contained no image data.")
