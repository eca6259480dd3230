"""
Common utilities shared across MommyBook modules.
"""

from .errors import (
    CredentialRejectedError,
    ErrorKind,
    ExportError,
    MissingCredentialError,
    MommyBookError,
    ProviderError,
    ScriptParseError,
    classify_error,
    describe_failure,
    looks_like_credential_failure,
)
from .llm import ChatResult, CompletionCallable, call_chat_completion
from .settings import ProviderSettings, load_mapping_file

__all__ = [
    "ChatResult",
    "CompletionCallable",
    "call_chat_completion",
    "CredentialRejectedError",
    "ErrorKind",
    "ExportError",
    "MissingCredentialError",
    "MommyBookError",
    "ProviderError",
    "ScriptParseError",
    "classify_error",
    "describe_failure",
    "looks_like_credential_failure",
    "ProviderSettings",
    "load_mapping_file",
]
