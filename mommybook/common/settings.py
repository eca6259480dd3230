"""
Provider configuration loaded from the environment, mappings, or YAML files.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

SUPPORTED_BACKENDS = ("gemini", "ark", "replicate")

DEFAULT_ARK_BASE_URL = "https://ark.cn-beijing.volces.com/api/v3"

# Variables checked for every backend, before the backend-specific ones.
SHARED_CREDENTIAL_VARIABLES = ("MOMMYBOOK_API_KEY", "API_KEY")

BACKEND_CREDENTIAL_VARIABLES: dict[str, tuple[str, ...]] = {
    "gemini": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    "ark": ("ARK_API_KEY",),
    "replicate": ("REPLICATE_API_TOKEN",),
}

# Nested YAML sections map onto prefixed attribute names.
_SECTION_PREFIXES = {
    "gemini": "gemini_",
    "ark": "ark_",
    "litellm": "litellm_",
    "replicate": "replicate_",
}


@dataclass(frozen=True)
class ProviderSettings:
    """
    Backend selection and per-backend model identifiers.

    Attributes
    ----------
    backend:
        Which provider implementation is active: ``gemini``, ``ark``, or ``replicate``.
    request_timeout:
        Transport-level timeout in seconds applied to every provider request.
    gemini_text_model / gemini_vision_model / gemini_image_model:
        Model ids used by the google-genai backend.
    ark_base_url / ark_text_endpoint / ark_vision_endpoint / ark_image_endpoint:
        Base URL and inference endpoint ids for the OpenAI-compatible REST backend.
    litellm_text_model / litellm_vision_model:
        LiteLLM model strings used by the Replicate backend for script and style work.
    replicate_model:
        Replicate model identifier used for illustrations.
    """

    backend: str = "gemini"
    request_timeout: float = 120.0
    gemini_text_model: str = "gemini-3-pro-preview"
    gemini_vision_model: str = "gemini-3-flash-preview"
    gemini_image_model: str = "gemini-2.5-flash-image"
    ark_base_url: str = DEFAULT_ARK_BASE_URL
    ark_text_endpoint: str = "doubao-pro-32k"
    ark_vision_endpoint: str = "doubao-vision-pro-32k"
    ark_image_endpoint: str = "doubao-image-gen"
    litellm_text_model: str = "gpt-4.1-mini"
    litellm_vision_model: str = "gpt-4o-mini"
    replicate_model: str = "black-forest-labs/flux-schnell"

    def __post_init__(self) -> None:
        backend = self.backend.strip().lower()
        if backend not in SUPPORTED_BACKENDS:
            raise ValueError(
                f"Unsupported backend '{self.backend}'. "
                f"Supported backends: {', '.join(SUPPORTED_BACKENDS)}."
            )
        object.__setattr__(self, "backend", backend)

        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be a positive number of seconds.")

    @property
    def credential_variables(self) -> tuple[str, ...]:
        """Environment variable names searched for the active backend's credential."""
        return SHARED_CREDENTIAL_VARIABLES + BACKEND_CREDENTIAL_VARIABLES[self.backend]

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ProviderSettings":
        """
        Build settings from environment variables, falling back to the defaults.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def pick(*names: str, default: str) -> str:
            for name in names:
                value = env.get(name)
                if value and value.strip():
                    return value.strip()
            return default

        timeout_text = pick("MOMMYBOOK_REQUEST_TIMEOUT", default="")
        request_timeout = _coerce_float(timeout_text) if timeout_text else defaults.request_timeout

        return cls(
            backend=pick("MOMMYBOOK_BACKEND", default=defaults.backend),
            request_timeout=request_timeout,
            gemini_text_model=pick(
                "MOMMYBOOK_GEMINI_TEXT_MODEL", "GEMINI_TEXT_MODEL", default=defaults.gemini_text_model
            ),
            gemini_vision_model=pick(
                "MOMMYBOOK_GEMINI_VISION_MODEL", "GEMINI_VISION_MODEL", default=defaults.gemini_vision_model
            ),
            gemini_image_model=pick(
                "MOMMYBOOK_GEMINI_IMAGE_MODEL", "GEMINI_IMAGE_MODEL", default=defaults.gemini_image_model
            ),
            ark_base_url=pick("MOMMYBOOK_ARK_BASE_URL", "ARK_BASE_URL", default=defaults.ark_base_url),
            ark_text_endpoint=pick(
                "MOMMYBOOK_ARK_TEXT_ENDPOINT", "ARK_TEXT_ENDPOINT", default=defaults.ark_text_endpoint
            ),
            ark_vision_endpoint=pick(
                "MOMMYBOOK_ARK_VISION_ENDPOINT", "ARK_VISION_ENDPOINT", default=defaults.ark_vision_endpoint
            ),
            ark_image_endpoint=pick(
                "MOMMYBOOK_ARK_IMAGE_ENDPOINT", "ARK_IMAGE_ENDPOINT", default=defaults.ark_image_endpoint
            ),
            litellm_text_model=pick(
                "MOMMYBOOK_LITELLM_TEXT_MODEL", "LITELLM_STORY_MODEL", "LITELLM_MODEL",
                default=defaults.litellm_text_model,
            ),
            litellm_vision_model=pick(
                "MOMMYBOOK_LITELLM_VISION_MODEL", "LITELLM_VISION_MODEL",
                default=defaults.litellm_vision_model,
            ),
            replicate_model=pick(
                "MOMMYBOOK_REPLICATE_MODEL", "REPLICATE_MODEL", default=defaults.replicate_model
            ),
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ProviderSettings":
        """
        Build settings from a flat or sectioned mapping (e.g., parsed YAML).

        Sections named ``gemini``, ``ark``, ``litellm``, and ``replicate`` are flattened
        onto their prefixed attribute names, so ``{"ark": {"base_url": ...}}`` sets
        ``ark_base_url``. Unknown keys are rejected.
        """
        known = {field.name for field in fields(cls)}
        values: dict[str, Any] = {}

        for key, value in data.items():
            key_text = str(key).strip()
            prefix = _SECTION_PREFIXES.get(key_text)
            if prefix is not None and isinstance(value, Mapping):
                for sub_key, sub_value in value.items():
                    values[f"{prefix}{str(sub_key).strip()}"] = sub_value
            else:
                values[key_text] = value

        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown provider settings: {', '.join(unknown)}.")

        if "request_timeout" in values:
            values["request_timeout"] = _coerce_float(values["request_timeout"])

        for name, value in list(values.items()):
            if name != "request_timeout":
                values[name] = str(value).strip()

        return cls(**values)

    @classmethod
    def from_yaml(cls, source: str | Path) -> "ProviderSettings":
        path = Path(source)
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, Mapping):
            raise ValueError("Provider settings YAML must deserialize to a mapping.")
        return cls.from_mapping(data)


def load_mapping_file(path: str | Path) -> Mapping[str, Any]:
    """
    Load a YAML or JSON file that must contain a mapping (e.g., a book brief).
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        data = yaml.safe_load(text)
    elif suffix == ".json":
        data = json.loads(text)
    else:
        raise ValueError("Unsupported file format. Use YAML or JSON.")

    if not isinstance(data, Mapping):
        raise ValueError(f"{path} must deserialize to a mapping.")
    return data


def _coerce_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected a number for request_timeout, got {value!r}") from exc
