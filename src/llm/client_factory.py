# src/llm/client_factory.py - v3
"""Factory: instantiate LLM client from provider name.

Called when the default stage plan is built, once per stage, using the
assignment resolved by llm/config.py.
"""

from __future__ import annotations

import importlib
import logging

from wavebrief.config.settings import Settings
from wavebrief.llm.base_client import BaseLLMClient
from wavebrief.llm.config import resolve_assignment

logger = logging.getLogger(__name__)

# Registry of provider name -> adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "anthropic": "wavebrief.llm.adapters.anthropic_adapter.AnthropicAdapter",
    "google": "wavebrief.llm.adapters.google_adapter.GoogleAdapter",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def create_llm_client(
    provider: str,
    model: str,
    settings: Settings | None = None,
    **kwargs: object,
) -> BaseLLMClient:
    """Instantiate the correct adapter from provider name.

    Args:
        provider: Provider identifier (anthropic, google).
        model: Model name (e.g. gemini-2.5-pro).
        settings: Application settings (for API keys).
        **kwargs: Additional provider-specific arguments.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    adapter_cls = _import_class(_PROVIDER_REGISTRY[provider])

    init_kwargs = dict(kwargs)
    init_kwargs["model"] = model
    if settings is not None:
        if provider == "anthropic":
            init_kwargs.setdefault("api_key", settings.anthropic_api_key)
        elif provider == "google":
            init_kwargs.setdefault("api_key", settings.google_api_key)

    logger.debug("Creating LLM client: provider=%s, model=%s", provider, model)
    return adapter_cls(**init_kwargs)


def create_stage_client(stage: str, settings: Settings) -> BaseLLMClient:
    """Create the client assigned to a stage by the routing cascade."""
    assignment = resolve_assignment(stage, settings)
    logger.info(
        "Stage %s uses %s (%s)", stage, assignment.key, assignment.source
    )
    return create_llm_client(assignment.provider, assignment.model, settings)


def register_provider(name: str, class_path: str) -> None:
    """Register a custom provider adapter.

    Args:
        name: Provider identifier.
        class_path: Fully qualified class path implementing BaseLLMClient.
    """
    _PROVIDER_REGISTRY[name] = class_path
    logger.info("Registered LLM provider: %s -> %s", name, class_path)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
