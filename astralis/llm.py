"""Multi-provider chat adapter supporting OpenRouter, OpenAI, Groq, Anthropic, and Ollama."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import requests

from .config import LLM_API_KEY, LLM_ENDPOINT, LLM_MODEL, LLM_PROVIDER

logger = logging.getLogger(__name__)

Messages = List[Dict[str, str]]

# Transport failures, undecodable bodies and unexpected reply shapes.
REQUEST_ERRORS = (requests.RequestException, ValueError, KeyError, IndexError, TypeError)


def _post_json(url: str, payload: dict, headers: Dict[str, str], timeout: float) -> dict:
    response = requests.post(
        url,
        headers={"Content-Type": "application/json", **headers},
        json=payload,
        timeout=timeout,
    )
    response.raise_for_status()
    return response.json()


class LLMProvider:
    """Base class for chat providers."""

    default_endpoint = ""

    def __init__(self, model: str, api_key: str = "", endpoint: str = ""):
        self.model = model
        self.api_key = api_key
        self.endpoint = endpoint or self.default_endpoint

    def chat(self, messages: Messages, max_tokens: int, temperature: float, timeout: float) -> Optional[str]:
        try:
            return self._request(messages, max_tokens, temperature, timeout)
        except REQUEST_ERRORS as exc:
            logger.warning("%s request failed: %s", type(self).__name__, exc)
            return None

    def _request(self, messages: Messages, max_tokens: int, temperature: float, timeout: float) -> Optional[str]:
        raise NotImplementedError


class OpenAICompatibleProvider(LLMProvider):
    """OpenAI chat-completions API; Groq and OpenRouter speak the same protocol."""

    default_endpoint = "https://api.openai.com/v1/chat/completions"

    def _request(self, messages, max_tokens, temperature, timeout):
        if not self.api_key:
            return None
        parsed = _post_json(
            self.endpoint,
            {"model": self.model, "messages": messages, "temperature": temperature, "max_tokens": max_tokens},
            {"Authorization": f"Bearer {self.api_key}"},
            timeout,
        )
        return parsed["choices"][0]["message"]["content"]


class OpenRouterProvider(OpenAICompatibleProvider):
    default_endpoint = "https://openrouter.ai/api/v1/chat/completions"


class GroqProvider(OpenAICompatibleProvider):
    default_endpoint = "https://api.groq.com/openai/v1/chat/completions"


class AnthropicProvider(LLMProvider):
    """Anthropic messages API; system prompts travel in a separate field."""

    default_endpoint = "https://api.anthropic.com/v1/messages"

    def _request(self, messages, max_tokens, temperature, timeout):
        if not self.api_key:
            return None
        payload: dict = {
            "model": self.model,
            "messages": [m for m in messages if m["role"] != "system"],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        if system:
            payload["system"] = system
        parsed = _post_json(
            self.endpoint,
            payload,
            {"x-api-key": self.api_key, "anthropic-version": "2023-06-01"},
            timeout,
        )
        return parsed["content"][0]["text"]


class OllamaProvider(LLMProvider):
    default_endpoint = "http://127.0.0.1:11434/api/chat"

    def _request(self, messages, max_tokens, temperature, timeout):
        parsed = _post_json(
            self.endpoint,
            {
                "model": self.model,
                "messages": messages,
                "stream": False,
                "options": {"temperature": temperature, "num_predict": max_tokens},
            },
            {},
            timeout,
        )
        return parsed["message"]["content"]


PROVIDERS = {
    "openrouter": OpenRouterProvider,
    "openai": OpenAICompatibleProvider,
    "groq": GroqProvider,
    "anthropic": AnthropicProvider,
    "ollama": OllamaProvider,
}


class LocalLLM:
    """Provider-agnostic chat client configured from ``config.toml``."""

    def __init__(
        self,
        model: Optional[str] = None,
        provider: Optional[str] = None,
        api_key: Optional[str] = None,
        endpoint: Optional[str] = None,
    ):
        self.provider_name = (provider or LLM_PROVIDER).lower()
        self.model = model or LLM_MODEL
        self.api_key = api_key or LLM_API_KEY
        self.endpoint = endpoint or LLM_ENDPOINT
        self.provider = self._create_provider()

    def _create_provider(self) -> LLMProvider:
        provider_cls = PROVIDERS.get(self.provider_name)
        if provider_cls is None:
            logger.warning("Unknown LLM provider '%s', using OpenRouter", self.provider_name)
            provider_cls = OpenRouterProvider
        return provider_cls(self.model, self.api_key, self.endpoint)

    @property
    def available(self) -> bool:
        """Ollama needs no key; every cloud provider does."""
        return self.provider_name == "ollama" or bool(self.api_key)

    def chat_completion(
        self,
        messages: Messages,
        max_tokens: int = 4000,
        temperature: float = 0.1,
        timeout: float = 60.0,
    ) -> Optional[str]:
        """Return the assistant reply, or None if the provider failed."""
        return self.provider.chat(messages, max_tokens, temperature, timeout)
