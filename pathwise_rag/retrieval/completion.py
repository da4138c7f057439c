"""
Completion Provider Module

Text-completion backends used to answer grounded queries. Both clients talk
to the providers' HTTP APIs directly over aiohttp.
"""

import abc
from typing import Any, Dict, Optional

import aiohttp

from ..config import ANTHROPIC_MESSAGES_URL, OPENAI_CHAT_URL
from ..errors import CompletionProviderError

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."


class CompletionProvider(abc.ABC):
    """Abstract base class for single-turn text completion."""

    @abc.abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> str:
        """
        Generate a reply to user_prompt under system_prompt.

        Raises:
            CompletionProviderError: The provider call failed
        """
        ...


class _HTTPChatClient(CompletionProvider):
    """Shared plumbing for JSON-over-HTTP chat APIs."""

    provider_name = "chat"

    def __init__(
        self,
        api_key: str,
        model_name: str,
        api_url: str,
        timeout: int = 60,
        max_tokens_cap: Optional[int] = None,
    ):
        self.api_key = api_key
        self.model_name = model_name
        self.api_url = api_url
        self.timeout = timeout
        self.max_tokens_cap = max_tokens_cap

    def cap_max_tokens(self, requested: int) -> int:
        if self.max_tokens_cap is None:
            return requested
        return min(requested, self.max_tokens_cap)

    async def _post(self, payload: Dict[str, Any], headers: Dict[str, str]) -> Dict[str, Any]:
        if not self.api_key:
            raise CompletionProviderError(f"{self.provider_name} is not configured (missing API key)")

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.api_url,
                    json=payload,
                    headers={"Content-Type": "application/json", **headers},
                    timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:
                    response.raise_for_status()
                    return await response.json()
        except CompletionProviderError:
            raise
        except Exception as e:
            raise CompletionProviderError(f"{self.provider_name} request failed: {e}") from e

    def get_info(self) -> Dict[str, Any]:
        return {
            "provider": self.provider_name,
            "api_url": self.api_url,
            "model_name": self.model_name,
            "max_tokens_cap": self.max_tokens_cap,
            "has_api_key": bool(self.api_key)
        }


class OpenAIChatClient(_HTTPChatClient):
    """OpenAI-compatible /v1/chat/completions client."""

    provider_name = "OpenAI"

    def __init__(
        self,
        api_key: str,
        model_name: str = "gpt-3.5-turbo",
        api_url: str = OPENAI_CHAT_URL,
        timeout: int = 60,
        max_tokens_cap: Optional[int] = None,
    ):
        super().__init__(api_key, model_name, api_url, timeout, max_tokens_cap)

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> str:
        payload = {
            "model": self.model_name,
            "messages": [
                {"role": "system", "content": system_prompt or DEFAULT_SYSTEM_PROMPT},
                {"role": "user", "content": str(user_prompt or "")}
            ],
            "temperature": temperature,
            "max_tokens": self.cap_max_tokens(max_tokens)
        }
        data = await self._post(payload, {"Authorization": f"Bearer {self.api_key}"})

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise CompletionProviderError(f"Malformed OpenAI response: {e}") from e
        return content if isinstance(content, str) else ""


class AnthropicChatClient(_HTTPChatClient):
    """Anthropic /v1/messages client."""

    provider_name = "Claude"
    api_version = "2023-06-01"

    def __init__(
        self,
        api_key: str,
        model_name: str = "claude-sonnet-4-5-20250929",
        api_url: str = ANTHROPIC_MESSAGES_URL,
        timeout: int = 60,
        max_tokens_cap: Optional[int] = None,
    ):
        super().__init__(api_key, model_name, api_url, timeout, max_tokens_cap)

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> str:
        payload = {
            "model": self.model_name,
            "max_tokens": self.cap_max_tokens(max_tokens),
            "system": system_prompt or DEFAULT_SYSTEM_PROMPT,
            "messages": [{"role": "user", "content": str(user_prompt or "")}],
            "temperature": temperature
        }
        data = await self._post(payload, {
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version
        })

        blocks = data.get("content") if isinstance(data, dict) else None
        if not isinstance(blocks, list):
            raise CompletionProviderError("Malformed Claude response: missing content")
        for block in blocks:
            if isinstance(block, dict) and isinstance(block.get("text"), str):
                return block["text"]
        return ""
