# src/llm/client_factory.py — v2
"""Factory: instantiate the generation client from settings.

Exactly one endpoint is active at a time; ``settings.provider`` selects it.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any

from tabautocomplete.config.settings import Settings
from tabautocomplete.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

# Registry of provider name → adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "ollama": "tabautocomplete.llm.adapters.ollama_adapter.OllamaAdapter",
    "deepseek": "tabautocomplete.llm.adapters.openai_adapter.OpenAICompatibleAdapter",
    "openai": "tabautocomplete.llm.adapters.openai_adapter.OpenAICompatibleAdapter",
}

_DEFAULT_BASE_URLS: dict[str, str] = {
    "deepseek": "https://api.deepseek.com/v1",
    "openai": "https://api.openai.com/v1",
}

_OLLAMA_DEFAULT_URL = "http://localhost:11434"


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def create_llm_client(settings: Settings, **kwargs: Any) -> BaseLLMClient:
    """Instantiate the adapter for ``settings.provider``.

    Args:
        settings: Application settings (endpoint, model, key, timeouts).
        **kwargs: Extra adapter arguments (e.g. ``http_client`` in tests).

    Returns:
        Configured BaseLLMClient instance.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    provider = settings.provider
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    adapter_cls = _import_class(_PROVIDER_REGISTRY[provider])

    init_kwargs: dict[str, Any] = dict(kwargs)
    init_kwargs["model"] = settings.model_name
    init_kwargs.setdefault("timeout_s", settings.request_timeout_s)
    init_kwargs.setdefault("max_retries", settings.transport_max_retries)

    base_url = settings.api_base_url
    if provider != "ollama":
        # The Ollama default makes no sense for a hosted API.
        if not base_url or base_url == _OLLAMA_DEFAULT_URL:
            base_url = _DEFAULT_BASE_URLS[provider]
        init_kwargs.setdefault("api_key", settings.api_key)
        init_kwargs.setdefault("provider", provider)
    init_kwargs.setdefault("base_url", base_url)

    logger.debug("Creating LLM client: provider=%s, model=%s", provider, settings.model_name)
    return adapter_cls(**init_kwargs)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
