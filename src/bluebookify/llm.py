from __future__ import annotations

import json
import os
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any, Protocol, Sequence

from .config import LLMConfig
from .errors import ConfigError
from .models import LLMFn, Message

DEFAULT_MODELS: dict[str, str] = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-sonnet-latest",
    "ollama": "llama3.1",
}

API_KEY_ENV: dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


class LLMClient(Protocol):
    def complete(self, messages: Sequence[Message]) -> str: ...


def _post_json(url: str, payload: dict[str, Any], headers: dict[str, str], timeout_s: float, label: str) -> Any:
    req = urllib.request.Request(
        url=url,
        data=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json", **headers},
        method="POST",
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout_s) as resp:
            return json.loads(resp.read().decode("utf-8"))
    except urllib.error.HTTPError as e:
        body = e.read().decode("utf-8", errors="replace") if hasattr(e, "read") else ""
        raise RuntimeError(f"{label} HTTPError {e.code}: {body}") from e
    except Exception as e:
        raise RuntimeError(f"{label} request failed: {e}") from e


@dataclass(frozen=True)
class OpenAIChatCompletionsClient:
    """OpenAI Chat Completions client.

    Optional env:
      - OPENAI_BASE_URL (default https://api.openai.com)
    """

    model: str
    api_key: str
    temperature: float = 0.0
    timeout_s: float = 60.0
    max_output_tokens: int = 4000
    base_url: str | None = None

    def complete(self, messages: Sequence[Message]) -> str:
        base = (self.base_url or os.environ.get("OPENAI_BASE_URL", "https://api.openai.com")).rstrip("/")
        payload = {
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_output_tokens,
            "messages": [dict(m) for m in messages],
        }
        data = _post_json(
            f"{base}/v1/chat/completions",
            payload,
            {"Authorization": f"Bearer {self.api_key}"},
            self.timeout_s,
            "OpenAI",
        )
        try:
            return data["choices"][0]["message"]["content"]
        except Exception as e:
            raise RuntimeError(f"Unexpected OpenAI response schema: {data}") from e


@dataclass(frozen=True)
class AnthropicMessagesClient:
    """Anthropic Messages API client. The system message goes in the top-level `system` field."""

    model: str
    api_key: str
    temperature: float = 0.0
    timeout_s: float = 60.0
    max_output_tokens: int = 4000
    base_url: str | None = None
    api_version: str = "2023-06-01"

    def complete(self, messages: Sequence[Message]) -> str:
        base = (self.base_url or os.environ.get("ANTHROPIC_BASE_URL", "https://api.anthropic.com")).rstrip("/")
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        payload: dict[str, Any] = {
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_output_tokens,
            "messages": [{"role": m["role"], "content": m["content"]} for m in messages if m["role"] != "system"],
        }
        if system:
            payload["system"] = system
        data = _post_json(
            f"{base}/v1/messages",
            payload,
            {"x-api-key": self.api_key, "anthropic-version": self.api_version},
            self.timeout_s,
            "Anthropic",
        )
        try:
            return "".join(block["text"] for block in data["content"] if block.get("type") == "text")
        except Exception as e:
            raise RuntimeError(f"Unexpected Anthropic response schema: {data}") from e


@dataclass(frozen=True)
class OllamaChatClient:
    """Local Ollama chat client."""

    model: str
    temperature: float = 0.0
    timeout_s: float = 60.0
    max_output_tokens: int = 4000
    base_url: str = "http://localhost:11434"

    def complete(self, messages: Sequence[Message]) -> str:
        payload = {
            "model": self.model,
            "stream": False,
            "messages": [dict(m) for m in messages],
            "options": {"num_predict": self.max_output_tokens, "temperature": self.temperature},
        }
        data = _post_json(f"{self.base_url.rstrip('/')}/api/chat", payload, {}, self.timeout_s, "Ollama")
        try:
            return data["message"]["content"]
        except Exception as e:
            raise RuntimeError(f"Unexpected Ollama response schema: {data}") from e


def build_llm_client(
    provider: str,
    model: str,
    *,
    api_key: str | None = None,
    temperature: float = 0.0,
    timeout_s: float = 60.0,
    max_output_tokens: int = 4000,
    base_url: str | None = None,
) -> LLMClient:
    provider_norm = provider.strip().lower()
    tuning: dict[str, Any] = {
        "temperature": temperature,
        "timeout_s": timeout_s,
        "max_output_tokens": max_output_tokens,
    }
    if provider_norm == "openai":
        return OpenAIChatCompletionsClient(model=model, api_key=api_key or "", base_url=base_url, **tuning)
    if provider_norm == "anthropic":
        return AnthropicMessagesClient(model=model, api_key=api_key or "", base_url=base_url, **tuning)
    if provider_norm == "ollama":
        local = base_url or os.environ.get("OLLAMA_BASE_URL", "http://localhost:11434")
        return OllamaChatClient(model=model, base_url=local, **tuning)
    raise ConfigError(f"Unknown provider: {provider}. Known: {', '.join(sorted(DEFAULT_MODELS))}")


def _infer_provider(model: str) -> str:
    return "anthropic" if model.lower().startswith("claude") else "openai"


def resolve_llm(llm_cfg: LLMConfig, *, llm: Any = None) -> LLMFn:
    """Turn options into the callable the pipeline sends messages to.

    A direct `llm` callable takes precedence over provider settings.
    """
    if llm is not None:
        if not callable(llm):
            raise ConfigError("`llm` option must be a function taking a list of messages and returning a string")
        return llm

    provider = (llm_cfg.provider or "").strip().lower() or None
    if provider is not None and provider not in DEFAULT_MODELS:
        raise ConfigError(f"Unknown provider: {llm_cfg.provider}. Known: {', '.join(sorted(DEFAULT_MODELS))}")

    model = (llm_cfg.model or "").strip() or None
    env_key = API_KEY_ENV.get(provider or "")
    api_key = llm_cfg.api_key or (os.environ.get(env_key) if env_key else None)

    if provider is None and model is None:
        if api_key:
            raise ConfigError("bluebookify with `api_key` requires `model` or `provider`")
        raise ConfigError(
            "bluebookify requires either `llm`, `api_key` + `model`, or `api_key` + `provider`"
        )

    if provider is None:
        provider = _infer_provider(model or "")
        env_key = API_KEY_ENV.get(provider)
        api_key = llm_cfg.api_key or (os.environ.get(env_key) if env_key else None)
    if model is None:
        model = DEFAULT_MODELS[provider]

    if provider in API_KEY_ENV and not api_key:
        raise ConfigError(
            f"Provider '{provider}' requires `api_key` (or {API_KEY_ENV[provider]} in the environment)"
        )

    client = build_llm_client(
        provider,
        model,
        api_key=api_key,
        temperature=llm_cfg.temperature,
        timeout_s=llm_cfg.timeout_s,
        max_output_tokens=llm_cfg.max_output_tokens,
        base_url=llm_cfg.base_url,
    )
    return client.complete
