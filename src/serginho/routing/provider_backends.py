"""
Provider Backends - Adapters for OpenAI-compatible chat-completions endpoints
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import aiohttp

from serginho.core.exceptions import ProviderError
from serginho.core.types import Tier, TokenUsage

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2000
TRANSCRIPT_ROLES = frozenset({"system", "user", "assistant"})

DEFAULT_SYSTEM_PROMPTS: dict[Tier, str] = {
    Tier.GENIUS: (
        "Você é o SERGINHO, agente do KIZI 2.5 Pro, focado em excelência e "
        "raciocínio profundo. Responda de forma estruturada e completa."
    ),
    Tier.EXPERT: (
        "Você é o SERGINHO, especialista técnico do KIZI 2.5 Pro. Responda com "
        "precisão, exemplos de código quando úteis e passos claros."
    ),
    Tier.FAST: (
        "Você é o SERGINHO, assistente do KIZI 2.5 Pro. Responda de forma breve, "
        "simpática e direta."
    ),
    Tier.FALLBACK: (
        "Você é um assistente inteligente híbrido do sistema RKMMAX KIZI 2.5 Pro. "
        "Forneça respostas claras, práticas e bem estruturadas em português brasileiro."
    ),
}


@dataclass
class GenerationOptions:
    """Caller overrides for one generate() call; None means provider default."""
    system_prompt: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    messages: list[dict[str, Any]] | None = None


@dataclass
class GenerationResult:
    """Result from model generation"""

    text: str
    usage: TokenUsage
    model: str = ""


class ProviderClient(ABC):
    """
    Uniform contract for one backend model endpoint.

    ``generate`` either returns a GenerationResult or raises ProviderError.
    Retries and fallback belong to the orchestrator, never to a provider.
    """

    provider_id: str
    tier: Tier

    @abstractmethod
    async def generate(self, prompt: str, options: GenerationOptions | None = None) -> GenerationResult:
        """Generate text from model"""

    async def close(self) -> None:
        return None


class BaseHTTPProvider(ProviderClient):
    """Shared aiohttp session management for HTTP-based providers."""

    def __init__(self, base_url: str, api_key: str, timeout_seconds: float = 8.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._api_key = api_key
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def _post_json(self, endpoint: str, payload: dict) -> tuple[int, Any]:
        """POST JSON payload to an endpoint; return (http_status, parsed_body_or_text).

        Non-JSON error bodies come back as text.
        Network and timeout errors are re-raised.
        """
        session = await self._get_session()
        async with session.post(f"{self.base_url}{endpoint}", json=payload) as response:
            if response.status == 200:
                return response.status, await response.json()
            text = await response.text()
            try:
                return response.status, json.loads(text)
            except ValueError:
                return response.status, text


def _upstream_error_message(body: Any, status: int) -> str:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    if isinstance(body, str) and body.strip():
        return body.strip()[:200]
    return f"HTTP {status}"


def _transcript(messages: list[dict[str, Any]] | None) -> list[dict[str, str]]:
    """Prior turns reduced to role/content pairs; malformed entries are dropped."""
    turns = []
    for message in messages or ():
        if not isinstance(message, dict):
            continue
        role, content = message.get("role"), message.get("content")
        if role in TRANSCRIPT_ROLES and isinstance(content, str):
            turns.append({"role": role, "content": content})
    return turns


class ChatCompletionsProvider(BaseHTTPProvider):
    """One tier served by an OpenAI-compatible /chat/completions endpoint (Groq)."""

    def __init__(
        self,
        provider_id: str,
        tier: Tier,
        model: str,
        api_key: str,
        base_url: str = "https://api.groq.com/openai/v1",
        timeout_seconds: float = 8.0,
        default_temperature: float = DEFAULT_TEMPERATURE,
        default_max_tokens: int = DEFAULT_MAX_TOKENS,
        default_system_prompt: str | None = None,
    ) -> None:
        super().__init__(base_url, api_key, timeout_seconds)
        self.provider_id = provider_id
        self.tier = tier
        self.model = model
        self.default_temperature = default_temperature
        self.default_max_tokens = default_max_tokens
        self.default_system_prompt = default_system_prompt or DEFAULT_SYSTEM_PROMPTS[tier]

    def build_payload(self, prompt: str, options: GenerationOptions) -> dict[str, Any]:
        temperature = options.temperature if options.temperature is not None else self.default_temperature
        max_tokens = options.max_tokens if options.max_tokens is not None else self.default_max_tokens
        messages = [{"role": "system", "content": options.system_prompt or self.default_system_prompt}]
        messages.extend(_transcript(options.messages))
        messages.append({"role": "user", "content": prompt})
        return {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

    async def generate(self, prompt: str, options: GenerationOptions | None = None) -> GenerationResult:
        payload = self.build_payload(prompt, options or GenerationOptions())
        try:
            status, data = await self._post_json("/chat/completions", payload)
        except TimeoutError as e:
            raise ProviderError(self.provider_id, f"Timeout after {self.timeout_seconds}s") from e
        except aiohttp.ClientError as e:
            raise ProviderError(self.provider_id, f"Network error: {e}") from e

        if status != 200:
            raise ProviderError(
                self.provider_id,
                f"{self.provider_id} API error: {_upstream_error_message(data, status)}",
                status=status,
            )
        return self._parse_completion(data)

    def _parse_completion(self, data: Any) -> GenerationResult:
        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(self.provider_id, f"Malformed response: missing {e}") from e

        raw_usage = data.get("usage") or {}
        prompt_tokens = int(raw_usage.get("prompt_tokens", 0))
        completion_tokens = int(raw_usage.get("completion_tokens", 0))
        usage = TokenUsage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=int(raw_usage.get("total_tokens", prompt_tokens + completion_tokens)),
        )
        return GenerationResult(text=text or "", usage=usage, model=data.get("model", self.model))
