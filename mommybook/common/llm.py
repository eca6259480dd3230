"""
LiteLLM-powered chat completion helper utilities.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, MutableMapping, Sequence

from litellm import acompletion

from mommybook.common.errors import ProviderError

ChatMessage = Mapping[str, Any]


@dataclass
class ChatResult:
    """
    Structured response returned from an LLM chat completion.
    """

    text: str
    raw: Any


CompletionCallable = Callable[..., Awaitable[ChatResult]]


async def call_chat_completion(
    *,
    model: str,
    messages: Sequence[ChatMessage],
    temperature: float | None = None,
    max_tokens: int | None = None,
    api_key: str | None = None,
    timeout: float | None = None,
    **extra_kwargs: Any,
) -> ChatResult:
    """
    Invoke LiteLLM's async `acompletion` API and return the consolidated text.

    A reply without a first choice raises :class:`ProviderError` carrying whatever error
    message and code the backend put in the body, so the failure can be classified.
    """
    payload: MutableMapping[str, Any] = {
        "model": model,
        "messages": list(messages),
    }

    if temperature is not None:
        payload["temperature"] = temperature

    if max_tokens is not None:
        payload["max_tokens"] = max_tokens

    if api_key is not None:
        payload["api_key"] = api_key

    if timeout is not None:
        payload["timeout"] = timeout

    payload.update(extra_kwargs)

    response = await acompletion(**payload)

    try:
        message = response["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        detail, status_code = _response_error(response)
        raise ProviderError(
            f"Unexpected LiteLLM response format from {model}: {detail}",
            status_code=status_code,
        ) from exc

    text = str(message or "").strip()
    return ChatResult(text=text, raw=response)


def _response_error(response: Any) -> tuple[str, int | None]:
    try:
        error = response["error"]
    except (KeyError, IndexError, TypeError):
        return "the response carried no choices", None

    if isinstance(error, Mapping):
        code = error.get("code")
        return str(error.get("message") or error), code if isinstance(code, int) else None
    return str(error), None
