"""
API key lifecycle management for MommyBook providers.
"""

from .manager import CredentialManager, CredentialPicker, CredentialState, is_usable_key
from .pickers import ConsoleCredentialPicker

__all__ = [
    "CredentialManager",
    "CredentialPicker",
    "CredentialState",
    "ConsoleCredentialPicker",
    "is_usable_key",
]
