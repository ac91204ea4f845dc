"""
Tests for ChatCompletionsProvider — payload building and error mapping.

The HTTP layer is replaced by patching ``_post_json``; no sockets are opened.
"""

from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from serginho.core.exceptions import ProviderError
from serginho.core.types import Tier
from serginho.routing.provider_backends import (
    DEFAULT_SYSTEM_PROMPTS,
    ChatCompletionsProvider,
    GenerationOptions,
)

COMPLETION = {
    "model": "llama-3.1-8b-instant",
    "choices": [{"message": {"role": "assistant", "content": "Olá!"}}],
    "usage": {"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15},
}


def _provider(**kwargs) -> ChatCompletionsProvider:
    defaults = dict(
        provider_id="llama-8b",
        tier=Tier.FAST,
        model="llama-3.1-8b-instant",
        api_key="gsk_test",
        timeout_seconds=8.0,
    )
    defaults.update(kwargs)
    return ChatCompletionsProvider(**defaults)


class TestBuildPayload:

    def test_defaults(self):
        payload = _provider().build_payload("oi", GenerationOptions())

        assert payload["model"] == "llama-3.1-8b-instant"
        assert payload["temperature"] == 0.7
        assert payload["max_tokens"] == 2000
        assert payload["messages"] == [
            {"role": "system", "content": DEFAULT_SYSTEM_PROMPTS[Tier.FAST]},
            {"role": "user", "content": "oi"},
        ]

    def test_overrides(self):
        payload = _provider().build_payload(
            "oi", GenerationOptions(system_prompt="Seja breve.", temperature=0.2, max_tokens=64)
        )

        assert payload["messages"][0]["content"] == "Seja breve."
        assert payload["temperature"] == 0.2
        assert payload["max_tokens"] == 64

    def test_zero_temperature_is_respected(self):
        payload = _provider().build_payload("oi", GenerationOptions(temperature=0.0))
        assert payload["temperature"] == 0.0

    def test_transcript_sits_between_system_and_prompt(self):
        history = [
            {"role": "user", "content": "Qual é a capital da França?"},
            {"role": "assistant", "content": "Paris."},
        ]
        payload = _provider().build_payload("E da Itália?", GenerationOptions(messages=history))

        assert [m["role"] for m in payload["messages"]] == ["system", "user", "assistant", "user"]
        assert payload["messages"][1:3] == history
        assert payload["messages"][-1] == {"role": "user", "content": "E da Itália?"}

    def test_malformed_transcript_entries_are_dropped(self):
        history = [
            {"role": "assistant", "content": "ok", "timestamp": 123},
            {"role": "tool", "content": "x"},
            {"role": "user"},
            {"role": "user", "content": None},
        ]
        payload = _provider().build_payload("oi", GenerationOptions(messages=history))

        assert payload["messages"][1:] == [
            {"role": "assistant", "content": "ok"},
            {"role": "user", "content": "oi"},
        ]


class TestGenerate:

    @pytest.mark.asyncio
    async def test_success(self):
        provider = _provider()
        with patch.object(provider, "_post_json", AsyncMock(return_value=(200, COMPLETION))) as post:
            result = await provider.generate("oi")

        post.assert_awaited_once()
        endpoint, payload = post.await_args.args
        assert endpoint == "/chat/completions"
        assert payload["messages"][-1] == {"role": "user", "content": "oi"}
        assert result.text == "Olá!"
        assert result.usage.prompt_tokens == 12
        assert result.usage.completion_tokens == 3
        assert result.usage.total_tokens == 15
        assert result.model == "llama-3.1-8b-instant"

    @pytest.mark.asyncio
    async def test_missing_usage_defaults_to_zero(self):
        provider = _provider()
        body = {"choices": [{"message": {"content": "ok"}}]}
        with patch.object(provider, "_post_json", AsyncMock(return_value=(200, body))):
            result = await provider.generate("oi")
        assert result.usage.total_tokens == 0

    @pytest.mark.asyncio
    async def test_non_200_raises_with_status(self):
        provider = _provider()
        body = {"error": {"message": "Rate limit reached"}}
        with patch.object(provider, "_post_json", AsyncMock(return_value=(429, body))):
            with pytest.raises(ProviderError) as exc_info:
                await provider.generate("oi")

        assert exc_info.value.status == 429
        assert exc_info.value.provider_id == "llama-8b"
        assert exc_info.value.message == "llama-8b API error: Rate limit reached"

    @pytest.mark.asyncio
    async def test_non_json_error_body(self):
        provider = _provider()
        with patch.object(provider, "_post_json", AsyncMock(return_value=(502, "Bad Gateway"))):
            with pytest.raises(ProviderError) as exc_info:
                await provider.generate("oi")
        assert exc_info.value.status == 502
        assert "Bad Gateway" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_timeout(self):
        provider = _provider(timeout_seconds=8.0)
        with patch.object(provider, "_post_json", AsyncMock(side_effect=TimeoutError())):
            with pytest.raises(ProviderError) as exc_info:
                await provider.generate("oi")
        assert exc_info.value.message == "Timeout after 8.0s"
        assert exc_info.value.status is None

    @pytest.mark.asyncio
    async def test_network_error(self):
        provider = _provider()
        with patch.object(
            provider, "_post_json", AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))
        ):
            with pytest.raises(ProviderError) as exc_info:
                await provider.generate("oi")
        assert exc_info.value.message.startswith("Network error")

    @pytest.mark.asyncio
    async def test_malformed_response(self):
        provider = _provider()
        with patch.object(provider, "_post_json", AsyncMock(return_value=(200, {"choices": []}))):
            with pytest.raises(ProviderError) as exc_info:
                await provider.generate("oi")
        assert exc_info.value.message.startswith("Malformed response")


class TestSession:

    @pytest.mark.asyncio
    async def test_session_is_lazy_and_reused(self):
        provider = _provider()
        assert provider._session is None

        session = await provider._get_session()
        assert await provider._get_session() is session
        assert session.headers["Authorization"] == "Bearer gsk_test"

        await provider.close()
        assert session.closed

    @pytest.mark.asyncio
    async def test_close_without_session(self):
        await _provider().close()
