"""Tests for the LiteLLM chat completion helper."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from mommybook.common import llm
from mommybook.common.errors import ErrorKind, ProviderError, classify_error


class TestCallChatCompletion:
    """Tests for payload building and response unpacking."""

    @pytest.mark.asyncio
    async def test_returns_stripped_text_and_omits_unset_options(self, monkeypatch):
        response = {"choices": [{"message": {"content": "  Once upon a time.  "}}]}
        fake = AsyncMock(return_value=response)
        monkeypatch.setattr(llm, "acompletion", fake)

        result = await llm.call_chat_completion(
            model="gpt-4.1-mini",
            messages=[{"role": "user", "content": "Tell a story"}],
            timeout=30.0,
        )

        assert result.text == "Once upon a time."
        assert result.raw is response
        kwargs = fake.call_args.kwargs
        assert kwargs["timeout"] == 30.0
        assert "temperature" not in kwargs
        assert "api_key" not in kwargs

    @pytest.mark.asyncio
    async def test_error_body_becomes_classifiable_provider_error(self, monkeypatch):
        response = {"error": {"message": "Incorrect API key provided", "code": 401}}
        monkeypatch.setattr(llm, "acompletion", AsyncMock(return_value=response))

        with pytest.raises(ProviderError) as excinfo:
            await llm.call_chat_completion(model="gpt-4.1-mini", messages=[])

        assert excinfo.value.status_code == 401
        assert "Incorrect API key provided" in str(excinfo.value)
        assert classify_error(excinfo.value) is ErrorKind.CREDENTIAL_REJECTED

    @pytest.mark.asyncio
    async def test_empty_choices_is_a_provider_failure(self, monkeypatch):
        monkeypatch.setattr(llm, "acompletion", AsyncMock(return_value={"choices": []}))

        with pytest.raises(ProviderError) as excinfo:
            await llm.call_chat_completion(model="gpt-4.1-mini", messages=[])

        assert excinfo.value.status_code is None
        assert classify_error(excinfo.value) is ErrorKind.PROVIDER
