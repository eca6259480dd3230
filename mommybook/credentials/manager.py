"""
Credential lifecycle tracking for the generation backends.
"""

from __future__ import annotations

import asyncio
import logging
import os
from enum import Enum
from typing import Mapping, Protocol, Sequence, runtime_checkable

from mommybook.common.errors import ErrorKind, classify_error
from mommybook.common.settings import SHARED_CREDENTIAL_VARIABLES

logger = logging.getLogger(__name__)

MIN_KEY_LENGTH = 16


class CredentialState(str, Enum):
    CHECKING = "checking"
    READY = "ready"
    MISSING = "missing"


@runtime_checkable
class CredentialPicker(Protocol):
    """Host-provided interactive credential selection."""

    async def has_selected_credential(self) -> bool: ...

    async def open_select_credential(self) -> None: ...


def is_usable_key(value: str | None) -> bool:
    if not value:
        return False
    candidate = value.strip()
    return len(candidate) >= MIN_KEY_LENGTH and not any(ch.isspace() for ch in candidate)


class CredentialManager:
    """
    Owns the process-wide :class:`CredentialState` and mediates credential acquisition.

    The manager is the only writer of the state. Providers read the key through
    :meth:`current_key` right before each request, so a key injected by the picker
    (or by the host environment) is picked up without rebuilding anything.

    At most one picker session runs at a time. Callers that queue up behind an open
    picker reuse its outcome instead of prompting again.

    Parameters
    ----------
    variable_names:
        Environment variable names searched in order for a key.
    environ:
        Mapping used for lookups. Defaults to ``os.environ`` and is read lazily.
    picker:
        Optional interactive picker. Without one, a missing key cannot be remedied.
    """

    def __init__(
        self,
        *,
        variable_names: Sequence[str] = SHARED_CREDENTIAL_VARIABLES,
        environ: Mapping[str, str] | None = None,
        picker: CredentialPicker | None = None,
    ) -> None:
        if not variable_names:
            raise ValueError("At least one credential variable name is required.")
        self._variable_names = tuple(variable_names)
        self._environ = environ
        self._picker = picker
        self._state = CredentialState.CHECKING
        self._picker_lock = asyncio.Lock()
        self._picker_sessions = 0

    @property
    def state(self) -> CredentialState:
        return self._state

    @property
    def primary_variable(self) -> str:
        return self._variable_names[0]

    @property
    def has_picker(self) -> bool:
        return self._picker is not None

    def current_key(self) -> str | None:
        """Return the first usable key found in the environment, if any."""
        env = os.environ if self._environ is None else self._environ
        for name in self._variable_names:
            value = env.get(name)
            if is_usable_key(value):
                return value.strip()
        return None

    def reset(self) -> None:
        self._set_state(CredentialState.CHECKING)

    async def ensure_credential(self) -> bool:
        """
        Return True once a credential is believed to be present. Never raises.
        """
        if self.current_key() is not None:
            self._set_state(CredentialState.READY)
            return True

        if self._picker is None:
            self._set_state(CredentialState.MISSING)
            return False

        sessions_seen = self._picker_sessions
        async with self._picker_lock:
            if self.current_key() is not None:
                self._set_state(CredentialState.READY)
                return True
            try:
                selected = await self._picker.has_selected_credential()
                if not selected and self._picker_sessions != sessions_seen:
                    # The session this caller waited on ended without a key.
                    self._set_state(CredentialState.MISSING)
                    return False
                if not selected:
                    await self._open_picker()
            except Exception:
                logger.exception("Interactive credential selection failed.")
                self._set_state(CredentialState.MISSING)
                return False

        self._set_state(CredentialState.READY)
        return True

    async def handle_provider_error(self, exc: BaseException) -> ErrorKind:
        """
        Classify a provider failure, resetting the credential when it looks auth-related.
        """
        kind = classify_error(exc)
        if kind is not ErrorKind.CREDENTIAL_REJECTED:
            return kind

        logger.warning("Provider rejected the credential: %s", exc)
        self._set_state(CredentialState.MISSING)
        if self._picker is None:
            return kind

        sessions_seen = self._picker_sessions
        async with self._picker_lock:
            if self._picker_sessions != sessions_seen:
                # A picker session finished while this caller waited.
                logger.debug("Credential picker already re-opened; not prompting again.")
                return kind
            try:
                await self._open_picker()
            except Exception:
                logger.exception("Re-opening the credential picker failed.")
        return kind

    async def _open_picker(self) -> None:
        try:
            await self._picker.open_select_credential()
        finally:
            self._picker_sessions += 1

    def _set_state(self, state: CredentialState) -> None:
        if state is not self._state:
            logger.debug("Credential state %s -> %s", self._state.value, state.value)
        self._state = state
