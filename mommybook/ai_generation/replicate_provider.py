"""
Replicate-backed illustrations with LiteLLM handling the script and style analysis.
"""

from __future__ import annotations

import base64
import os
from collections.abc import Iterable as IterableABC
from typing import Any, Callable

import httpx
import replicate
from replicate.exceptions import ReplicateException

from mommybook.common import ChatResult, CompletionCallable, call_chat_completion
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

NEGATIVE_PROMPT = (
    "text, letters, words, watermark, logo, signature, blurry, deformed hands, "
    "extra limbs, inconsistent character design, photorealistic"
)

_SDXL_SIZES: dict[str, tuple[int, int]] = {
    "16:9": (1344, 768),
    "9:16": (768, 1344),
}


def _build_flux_input(*, prompt: str, aspect_ratio: str) -> dict[str, Any]:
    return {
        "prompt": prompt,
        "aspect_ratio": aspect_ratio,
        "num_outputs": 1,
        "output_format": "png",
    }


def _build_sdxl_input(*, prompt: str, aspect_ratio: str) -> dict[str, Any]:
    width, height = _SDXL_SIZES[aspect_ratio]
    return {
        "prompt": prompt,
        "negative_prompt": NEGATIVE_PROMPT,
        "width": width,
        "height": height,
        "num_outputs": 1,
    }


_MODEL_INPUT_BUILDERS: dict[str, Callable[..., dict[str, Any]]] = {
    "black-forest-labs/flux-schnell": _build_flux_input,
    "black-forest-labs/flux-dev": _build_flux_input,
    "black-forest-labs/flux-1.1-pro": _build_flux_input,
    "stability-ai/sdxl": _build_sdxl_input,
}


def _build_replicate_input_payload(
    *,
    model_identifier: str,
    prompt: str,
    aspect_ratio: str,
) -> dict[str, Any]:
    normalized_identifier = model_identifier.strip().lower()
    builder = _MODEL_INPUT_BUILDERS.get(normalized_identifier)
    if builder is None and ":" in normalized_identifier:
        base_identifier = normalized_identifier.split(":", maxsplit=1)[0]
        builder = _MODEL_INPUT_BUILDERS.get(base_identifier)
    if builder is None:
        supported_models = ", ".join(sorted(set(_MODEL_INPUT_BUILDERS)))
        raise ValueError(
            "Model identifier "
            f"'{model_identifier}' is not configured with a default input payload. "
            f"Supported models: {supported_models}."
        )

    return builder(prompt=prompt, aspect_ratio=aspect_ratio)


class ReplicateBookProvider(BookProvider):
    """
    Backend combining LiteLLM chat models with a Replicate image model.

    Parameters
    ----------
    key_source:
        Callable returning the Replicate API token.
    settings:
        LiteLLM model strings, the Replicate model identifier, and the transport timeout.
    text_api_key:
        Key for the LiteLLM text/vision models. Falls back to ``OPENAI_API_KEY`` or
        ``LITELLM_API_KEY``; when both are unset LiteLLM resolves its own environment.
    completion_fn:
        Optional chat completion coroutine. Mainly useful for testing.
    client_factory:
        Optional factory building a :class:`replicate.Client` for a token. The client is
        reused until the token changes.
    http_client:
        Optional :class:`httpx.AsyncClient` used to download image outputs.
    """

    name = "replicate"

    def __init__(
        self,
        *,
        key_source: Callable[[], str | None],
        settings: ProviderSettings | None = None,
        text_api_key: str | None = None,
        completion_fn: CompletionCallable | None = None,
        client_factory: Callable[[str], replicate.Client] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._key_source = key_source
        self._settings = settings or ProviderSettings(backend="replicate")
        self._text_api_key = (
            text_api_key or os.getenv("OPENAI_API_KEY") or os.getenv("LITELLM_API_KEY")
        )
        self._completion_fn: CompletionCallable = completion_fn or call_chat_completion
        self._client_factory = client_factory or (lambda token: replicate.Client(api_token=token))
        self._http_client = http_client
        self._client: replicate.Client | None = None
        self._client_token: str | None = None

    @property
    def model_identifier(self) -> str:
        return self._settings.replicate_model

    async def analyze_style(self, image: bytes, mime_type: str) -> str:
        image_url = IllustrationImage(data=image, mime_type=mime_type or "image/jpeg").as_data_url()
        result: ChatResult = await self._completion_fn(
            model=self._settings.litellm_vision_model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": STYLE_ANALYSIS_PROMPT},
                        {"type": "image_url", "image_url": {"url": image_url}},
                    ],
                }
            ],
            temperature=0.2,
            max_tokens=200,
            api_key=self._text_api_key,
            timeout=self._settings.request_timeout,
        )
        return finalize_style_text(result.text)

    async def generate_script(self, brief: BookInputSpec) -> ScriptDraft:
        prompt = build_script_prompt(brief)
        result: ChatResult = await self._completion_fn(
            model=self._settings.litellm_text_model,
            messages=[
                {"role": "system", "content": prompt.system},
                {"role": "user", "content": prompt.user},
            ],
            temperature=0.7,
            max_tokens=4000,
            api_key=self._text_api_key,
            timeout=self._settings.request_timeout,
            response_format={"type": "json_object"},
        )
        return parse_script_payload(result.text)

    async def generate_illustration(
        self,
        scene_prompt: str,
        style_prompt: str,
        visual_anchor: str = "",
        character_design: str = "",
        aspect_ratio: AspectRatio = "16:9",
    ) -> IllustrationImage:
        ratio = validate_aspect_ratio(aspect_ratio)
        prompt = build_illustration_prompt(scene_prompt, style_prompt, visual_anchor, character_design)
        replicate_input = _build_replicate_input_payload(
            model_identifier=self.model_identifier,
            prompt=prompt,
            aspect_ratio=ratio,
        )

        client = self._replicate_client()
        try:
            outputs = await client.async_run(self.model_identifier, input=replicate_input)
        except ReplicateException as exc:
            status = getattr(exc, "status", None)
            raise ProviderError(str(exc), status_code=status if isinstance(status, int) else None) from exc

        urls = normalize_image_outputs(outputs)
        if not urls:
            raise ProviderError("Failed to generate image: the response contained no image data.")
        return await self._download(urls[0])

    def _replicate_client(self) -> replicate.Client:
        token = require_api_key(self._key_source, self.name)
        if self._client is None or token != self._client_token:
            self._client = self._client_factory(token)
            self._client_token = token
        return self._client

    async def _download(self, url: str) -> IllustrationImage:
        if url.startswith("data:"):
            header, _, encoded = url.partition(",")
            mime_type = header[len("data:"):].split(";", 1)[0] or "image/png"
            return IllustrationImage(data=base64.b64decode(encoded), mime_type=mime_type)

        try:
            if self._http_client is not None:
                response = await self._http_client.get(url)
            else:
                timeout = httpx.Timeout(self._settings.request_timeout)
                async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
                    response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ProviderError(f"Downloading the generated image failed: {exc}") from exc

        if not response.content:
            raise ProviderError("Failed to generate image: the response contained no image data.")
        mime_type = response.headers.get("content-type", "image/png").split(";", 1)[0]
        return IllustrationImage(data=response.content, mime_type=mime_type)


def normalize_image_outputs(raw: Any) -> list[str]:
    """
    Normalize the image outputs returned by Replicate into a list of URL strings.

    File outputs are reduced to their ``url`` rather than iterated, since iterating
    them streams the image bytes.
    """

    if raw is None:
        return []

    file_url = getattr(raw, "url", None)
    if isinstance(file_url, str):
        return [file_url]

    if isinstance(raw, str):
        return [raw] if raw else []

    if isinstance(raw, bytes):
        return [raw.decode("utf-8", errors="ignore")]

    if isinstance(raw, IterableABC):
        collected = list(raw)
        if not collected:
            return []

        if all(isinstance(item, str) and len(item) == 1 for item in collected):
            return ["".join(collected)]

        normalized: list[str] = []
        for item in collected:
            if isinstance(item, str):
                if item:
                    normalized.append(item)
            elif isinstance(item, bytes):
                normalized.append(item.decode("utf-8", errors="ignore"))
            elif isinstance(getattr(item, "url", None), str):
                normalized.append(item.url)
            elif isinstance(item, IterableABC):
                normalized.extend(normalize_image_outputs(item))
            elif item is not None:
                normalized.append(str(item))
        return normalized

    return [str(raw)]
