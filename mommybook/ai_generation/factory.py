"""Factory helpers for selecting the active generation backend."""

from __future__ import annotations

import logging

from mommybook.common.settings import ProviderSettings
from mommybook.credentials import CredentialManager

from .ark_provider import ArkRestBookProvider
from .base import BookProvider
from .gemini_provider import GeminiBookProvider
from .replicate_provider import ReplicateBookProvider

logger = logging.getLogger(__name__)


def build_credential_manager(settings: ProviderSettings, **kwargs) -> CredentialManager:
    """Return a credential manager searching the variables relevant to the active backend."""
    return CredentialManager(variable_names=settings.credential_variables, **kwargs)


def build_provider(settings: ProviderSettings, credentials: CredentialManager) -> BookProvider:
    """Return the provider implementation selected by ``settings.backend``."""

    if settings.backend == "ark":
        logger.debug("Using Ark REST backend at %s", settings.ark_base_url)
        return ArkRestBookProvider(key_source=credentials.current_key, settings=settings)

    if settings.backend == "replicate":
        logger.debug("Using Replicate backend with model %s", settings.replicate_model)
        return ReplicateBookProvider(key_source=credentials.current_key, settings=settings)

    logger.debug("Using Gemini backend")
    return GeminiBookProvider(key_source=credentials.current_key, settings=settings)
