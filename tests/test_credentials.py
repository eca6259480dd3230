"""Tests for credential lifecycle management."""

from __future__ import annotations

import asyncio

import pytest

from mommybook.common.errors import ErrorKind, ProviderError
from mommybook.credentials import (
    ConsoleCredentialPicker,
    CredentialManager,
    CredentialPicker,
    CredentialState,
    is_usable_key,
)

from tests.conftest import TEST_KEY, FakePicker


class TestCredentialManager:
    """Tests for ensure_credential and error handling."""

    def test_initial_state_is_checking(self):
        assert CredentialManager(environ={}).state is CredentialState.CHECKING

    @pytest.mark.asyncio
    async def test_present_key_is_ready(self, credentials):
        assert await credentials.ensure_credential() is True
        assert credentials.state is CredentialState.READY
        assert credentials.current_key() == TEST_KEY

    @pytest.mark.asyncio
    async def test_short_key_is_not_usable(self):
        manager = CredentialManager(environ={"MOMMYBOOK_API_KEY": "short"})

        assert await manager.ensure_credential() is False
        assert manager.state is CredentialState.MISSING

    @pytest.mark.asyncio
    async def test_fallback_variable_is_searched(self):
        manager = CredentialManager(environ={"API_KEY": TEST_KEY})

        assert await manager.ensure_credential() is True

    @pytest.mark.asyncio
    async def test_picker_is_opened_when_key_missing(self):
        environ: dict[str, str] = {}
        picker = FakePicker(environ)
        manager = CredentialManager(environ=environ, picker=picker)

        assert await manager.ensure_credential() is True
        assert picker.open_calls == 1
        assert manager.current_key() == TEST_KEY
        assert manager.state is CredentialState.READY

    @pytest.mark.asyncio
    async def test_picker_failure_never_raises(self):
        environ: dict[str, str] = {}
        manager = CredentialManager(environ=environ, picker=FakePicker(environ, fail=True))

        assert await manager.ensure_credential() is False
        assert manager.state is CredentialState.MISSING

    @pytest.mark.asyncio
    async def test_rejected_credential_resets_state(self, credentials):
        await credentials.ensure_credential()

        kind = await credentials.handle_provider_error(ProviderError("401 Unauthorized", status_code=401))

        assert kind is ErrorKind.CREDENTIAL_REJECTED
        assert credentials.state is CredentialState.MISSING

    @pytest.mark.asyncio
    async def test_other_errors_leave_state_alone(self, credentials):
        await credentials.ensure_credential()

        kind = await credentials.handle_provider_error(ProviderError("500 server error", status_code=500))

        assert kind is ErrorKind.PROVIDER
        assert credentials.state is CredentialState.READY

    @pytest.mark.asyncio
    async def test_ensure_credential_twice_with_key_is_stable(self, credentials, env_with_key):
        first = await credentials.ensure_credential()
        state_after_first = credentials.state
        second = await credentials.ensure_credential()

        assert first is second is True
        assert credentials.state is state_after_first is CredentialState.READY
        assert env_with_key == {"MOMMYBOOK_API_KEY": TEST_KEY}

    @pytest.mark.asyncio
    async def test_ensure_credential_twice_without_key_or_picker_is_stable(self):
        environ: dict[str, str] = {}
        manager = CredentialManager(environ=environ)

        first = await manager.ensure_credential()
        state_after_first = manager.state
        second = await manager.ensure_credential()

        assert first is second is False
        assert manager.state is state_after_first is CredentialState.MISSING
        assert environ == {}

    @pytest.mark.asyncio
    async def test_concurrent_ensure_credential_opens_picker_once(self):
        environ: dict[str, str] = {}
        picker = FakePicker(environ)
        manager = CredentialManager(environ=environ, picker=picker)

        results = await asyncio.gather(*(manager.ensure_credential() for _ in range(4)))

        assert results == [True, True, True, True]
        assert picker.open_calls == 1
        assert picker.max_open_at_once == 1

    @pytest.mark.asyncio
    async def test_cancelled_picker_is_not_reopened_by_waiting_callers(self):
        environ: dict[str, str] = {}
        picker = FakePicker(environ, fail=True)
        manager = CredentialManager(environ=environ, picker=picker)

        results = await asyncio.gather(*(manager.ensure_credential() for _ in range(3)))

        assert results == [False, False, False]
        assert picker.open_calls == 1
        assert manager.state is CredentialState.MISSING

    @pytest.mark.asyncio
    async def test_concurrent_rejections_open_picker_once(self):
        environ = {"MOMMYBOOK_API_KEY": "stale-key-0123456789"}
        picker = FakePicker(environ)
        manager = CredentialManager(environ=environ, picker=picker)
        errors = [ProviderError("401 Unauthorized", status_code=401) for _ in range(4)]

        kinds = await asyncio.gather(*(manager.handle_provider_error(exc) for exc in errors))

        assert kinds == [ErrorKind.CREDENTIAL_REJECTED] * 4
        assert picker.open_calls == 1
        assert picker.max_open_at_once == 1
        assert manager.current_key() == TEST_KEY

    @pytest.mark.asyncio
    async def test_cancelled_picker_is_not_reopened_by_waiting_rejections(self):
        environ = {"MOMMYBOOK_API_KEY": "stale-key-0123456789"}
        picker = FakePicker(environ, fail=True)
        manager = CredentialManager(environ=environ, picker=picker)
        errors = [ProviderError("401 Unauthorized", status_code=401) for _ in range(3)]

        await asyncio.gather(*(manager.handle_provider_error(exc) for exc in errors))

        assert picker.open_calls == 1
        assert manager.state is CredentialState.MISSING

    @pytest.mark.asyncio
    async def test_later_rejection_reopens_picker(self):
        environ = {"MOMMYBOOK_API_KEY": "stale-key-0123456789"}
        picker = FakePicker(environ)
        manager = CredentialManager(environ=environ, picker=picker)

        await manager.handle_provider_error(ProviderError("401 Unauthorized", status_code=401))
        await manager.handle_provider_error(ProviderError("403 Forbidden", status_code=403))

        assert picker.open_calls == 2

    @pytest.mark.asyncio
    async def test_reset_returns_to_checking(self, credentials):
        await credentials.ensure_credential()
        credentials.reset()

        assert credentials.state is CredentialState.CHECKING

    def test_fake_picker_satisfies_protocol(self):
        assert isinstance(FakePicker({}), CredentialPicker)

    def test_is_usable_key(self):
        assert is_usable_key(TEST_KEY)
        assert not is_usable_key("")
        assert not is_usable_key("has space in the middle of it")


class TestConsoleCredentialPicker:
    """Tests for the terminal picker."""

    @pytest.mark.asyncio
    async def test_prompt_stores_key(self):
        environ: dict[str, str] = {}
        picker = ConsoleCredentialPicker(
            variable_name="MOMMYBOOK_API_KEY",
            environ=environ,
            prompt_fn=lambda prompt: f"  {TEST_KEY}  ",
        )

        assert await picker.has_selected_credential() is False
        await picker.open_select_credential()

        assert environ["MOMMYBOOK_API_KEY"] == TEST_KEY
        assert await picker.has_selected_credential() is True

    @pytest.mark.asyncio
    async def test_malformed_key_raises(self):
        picker = ConsoleCredentialPicker(
            variable_name="MOMMYBOOK_API_KEY",
            environ={},
            prompt_fn=lambda prompt: "nope",
        )

        with pytest.raises(ValueError):
            await picker.open_select_credential()
