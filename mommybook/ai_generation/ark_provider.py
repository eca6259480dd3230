"""
OpenAI-compatible REST backend (Volcengine Ark) spoken as plain JSON over HTTPS.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Callable, Mapping

import httpx

from mommybook.common.errors import ProviderError
from mommybook.common.settings import ProviderSettings
from mommybook.story_generation import BookInputSpec, ScriptDraft, build_script_prompt, parse_script_payload

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

ARK_QUALITY_SUFFIX = "High quality children's book illustration, 8k resolution."

ARK_STYLE_ANALYSIS_PROMPT = (
    "Analyze the artistic style of this children's picture book illustration. "
    "Describe its medium (e.g., watercolor, oil painting), palette, lighting, and brushwork. "
    "Return only an English prompt fragment under 50 words that an AI image generator "
    "can use to imitate this style."
)

_IMAGE_SIZES: dict[str, str] = {
    "16:9": "1280x720",
    "9:16": "720x1280",
}


class ArkRestBookProvider(BookProvider):
    """
    Backend addressed by configurable endpoint ids under a single base URL.

    Parameters
    ----------
    key_source:
        Callable returning the current API key, sent as a bearer token.
    settings:
        Base URL, endpoint ids, and the transport timeout.
    http_client:
        Optional pre-configured :class:`httpx.AsyncClient`. Mainly useful for testing.
    """

    name = "ark"

    def __init__(
        self,
        *,
        key_source: Callable[[], str | None],
        settings: ProviderSettings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._key_source = key_source
        self._settings = settings or ProviderSettings(backend="ark")
        self._base_url = self._settings.ark_base_url.rstrip("/")
        self._http_client = http_client

    async def analyze_style(self, image: bytes, mime_type: str) -> str:
        encoded = base64.b64encode(image).decode("ascii")
        payload = {
            "model": self._settings.ark_vision_endpoint,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": ARK_STYLE_ANALYSIS_PROMPT},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:{mime_type or 'image/jpeg'};base64,{encoded}"},
                        },
                    ],
                }
            ],
        }
        result = await self._post("/chat/completions", payload)
        return finalize_style_text(_message_content(result))

    async def generate_script(self, brief: BookInputSpec) -> ScriptDraft:
        prompt = build_script_prompt(brief)
        payload = {
            "model": self._settings.ark_text_endpoint,
            "messages": [
                {"role": "system", "content": prompt.system},
                {"role": "user", "content": prompt.user},
            ],
            "response_format": {"type": "json_object"},
        }
        result = await self._post("/chat/completions", payload)
        return parse_script_payload(_message_content(result))

    async def generate_illustration(
        self,
        scene_prompt: str,
        style_prompt: str,
        visual_anchor: str = "",
        character_design: str = "",
        aspect_ratio: AspectRatio = "16:9",
    ) -> IllustrationImage:
        ratio = validate_aspect_ratio(aspect_ratio)
        payload = {
            "model": self._settings.ark_image_endpoint,
            "prompt": build_illustration_prompt(
                scene_prompt,
                style_prompt,
                visual_anchor,
                character_design,
                quality_suffix=ARK_QUALITY_SUFFIX,
            ),
            "size": _IMAGE_SIZES[ratio],
            "n": 1,
            "response_format": "b64_json",
        }
        result = await self._post("/images/generations", payload)

        try:
            encoded = result["data"][0]["b64_json"]
        except (KeyError, IndexError, TypeError):
            encoded = None
        if not encoded:
            raise ProviderError("Failed to generate image: the response contained no image data.")

        try:
            data = base64.b64decode(encoded)
        except (ValueError, TypeError) as exc:
            raise ProviderError("Image payload was not valid base64.") from exc
        return IllustrationImage(data=data, mime_type="image/png")

    async def _post(self, path: str, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        api_key = require_api_key(self._key_source, self.name)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }
        url = f"{self._base_url}{path}"

        try:
            if self._http_client is not None:
                response = await self._http_client.post(url, json=payload, headers=headers)
            else:
                timeout = httpx.Timeout(self._settings.request_timeout)
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise ProviderError(f"Request to {path} failed: {exc}") from exc

        try:
            result = response.json()
        except ValueError:
            result = None

        error_message = _error_message(result)
        if response.status_code >= 400 or error_message:
            detail = error_message or response.text.strip() or response.reason_phrase
            logger.debug("Ark %s returned %s: %s", path, response.status_code, detail)
            raise ProviderError(
                f"{response.status_code} {detail}",
                status_code=response.status_code,
            )

        if not isinstance(result, Mapping):
            raise ProviderError(f"Response from {path} was not a JSON object.")
        return result


def _error_message(result: Any) -> str | None:
    if not isinstance(result, Mapping):
        return None
    error = result.get("error")
    if not error:
        return None
    if isinstance(error, Mapping):
        return str(error.get("message") or error.get("code") or error)
    return str(error)


def _message_content(result: Mapping[str, Any]) -> str:
    try:
        content = result["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ProviderError("Unexpected chat completion response format.") from exc
    return str(content or "").strip()
