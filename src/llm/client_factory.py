# src/llm/client_factory.py - v3
"""Factory: instantiate an inference client from provider name."""

from __future__ import annotations

import importlib
import logging

from docscribe.config.settings import ConfigurationError, Settings
from docscribe.llm.base_client import BaseInferenceClient

logger = logging.getLogger(__name__)

# Registry of provider name -> adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "google": "docscribe.llm.adapters.google_adapter.GoogleAdapter",
    "anthropic": "docscribe.llm.adapters.anthropic_adapter.AnthropicAdapter",
}

_API_KEY_FIELDS: dict[str, str] = {
    "google": "google_api_key",
    "anthropic": "anthropic_api_key",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def create_inference_client(
    provider: str | None = None,
    settings: Settings | None = None,
    **kwargs: object,
) -> BaseInferenceClient:
    """Instantiate the correct adapter from provider name.

    Args:
        provider: Provider identifier. Defaults to settings.inference_provider.
        settings: Application settings (for API keys and output limits).
        **kwargs: Additional provider-specific arguments.

    Returns:
        Configured BaseInferenceClient instance.

    Raises:
        UnsupportedProviderError: If provider is not registered.
        ConfigurationError: If settings are given without the provider's API key.
    """
    provider = provider or (settings.inference_provider if settings else "google")
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported inference provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    adapter_cls = _import_class(_PROVIDER_REGISTRY[provider])

    init_kwargs = dict(kwargs)
    if settings is not None:
        init_kwargs.setdefault("max_output_tokens", settings.inference_max_tokens)
        key_field = _API_KEY_FIELDS.get(provider)
        if key_field is not None:
            init_kwargs.setdefault("api_key", getattr(settings, key_field))
            if not init_kwargs["api_key"]:
                raise ConfigurationError(
                    f"{key_field.upper()} must be set for provider {provider!r}"
                )

    logger.debug("Creating inference client: provider=%s", provider)
    return adapter_cls(**init_kwargs)


def register_provider(name: str, class_path: str) -> None:
    """Register a custom provider adapter.

    Args:
        name: Provider identifier.
        class_path: Fully qualified class path implementing BaseInferenceClient.
    """
    _PROVIDER_REGISTRY[name] = class_path
    logger.info("Registered inference provider: %s -> %s", name, class_path)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
