"""
Error taxonomy shared by the providers, the credential manager, and the orchestrator.
"""

from __future__ import annotations

import re
from enum import Enum


class ErrorKind(str, Enum):
    """Failure categories surfaced to callers of the generation pipeline."""

    MISSING_CREDENTIAL = "missing_credential"
    CREDENTIAL_REJECTED = "credential_rejected"
    PARSE = "parse"
    PROVIDER = "provider"
    EXPORT = "export"


class MommyBookError(Exception):
    """Base class for pipeline failures."""

    kind: ErrorKind = ErrorKind.PROVIDER


class MissingCredentialError(MommyBookError):
    kind = ErrorKind.MISSING_CREDENTIAL


class CredentialRejectedError(MommyBookError):
    kind = ErrorKind.CREDENTIAL_REJECTED


class ScriptParseError(MommyBookError, ValueError):
    """The script response was not structured data of the expected shape."""

    kind = ErrorKind.PARSE


class ProviderError(MommyBookError):
    """Transport or backend failure reported by a generation provider."""

    kind = ErrorKind.PROVIDER

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ExportError(MommyBookError):
    kind = ErrorKind.EXPORT


# Backends only hand back free text, so credential failures are spotted by their wording.
_CREDENTIAL_PHRASES = (
    "requested entity was not found",
    "api_key",
    "api key not valid",
    "invalid api key",
    "invalid key",
    "unauthorized",
    "authentication",
)
_AUTH_STATUS_PATTERN = re.compile(r"\b40[13]\b")
_AUTH_STATUS_CODES = {401, 403}


def looks_like_credential_failure(message: str, status_code: int | None = None) -> bool:
    """
    Heuristically decide whether a backend error message points at a bad credential.
    """
    if status_code in _AUTH_STATUS_CODES:
        return True

    lowered = message.lower()
    if any(phrase in lowered for phrase in _CREDENTIAL_PHRASES):
        return True

    return bool(_AUTH_STATUS_PATTERN.search(message))


def classify_error(exc: BaseException) -> ErrorKind:
    """
    Map an arbitrary exception raised during generation onto an :class:`ErrorKind`.

    Pipeline errors other than :class:`ProviderError` already know their kind. Everything
    else (SDK exceptions, transport errors, provider errors) is classified from its message
    and any status code it carries. This is best-effort string matching, not authoritative.
    """
    if isinstance(exc, MommyBookError) and not isinstance(exc, ProviderError):
        return exc.kind

    status_code = getattr(exc, "status_code", None)
    if not isinstance(status_code, int):
        status_code = getattr(exc, "code", None)
        if not isinstance(status_code, int):
            status_code = None

    if looks_like_credential_failure(str(exc), status_code):
        return ErrorKind.CREDENTIAL_REJECTED

    return ErrorKind.PROVIDER


def describe_failure(kind: ErrorKind, message: str, *, can_reselect: bool = False) -> str:
    """
    Turn a classified failure into the single human-readable line shown to the user.
    """
    detail = message.strip() or "unknown error"

    if kind is ErrorKind.MISSING_CREDENTIAL:
        return (
            "No API key is configured. Set MOMMYBOOK_API_KEY (or API_KEY) in the "
            "environment before generating."
        )

    if kind is ErrorKind.CREDENTIAL_REJECTED:
        if can_reselect:
            return (
                "Authentication with the generation backend failed. "
                "Select a valid API key and try again."
            )
        return (
            "Authentication with the generation backend failed. "
            "Check that the deployment's API key variable is set correctly."
        )

    if kind is ErrorKind.PARSE:
        return f"The generated script could not be read: {detail}"

    if kind is ErrorKind.EXPORT:
        return f"Exporting the slide deck failed: {detail}"

    return f"Operation failed: {detail}"
