"""Environment-driven construction of connectors."""

from __future__ import annotations

import logging
import os
from typing import Literal

from .core.exceptions import ConfigurationError
from .core.llm import LLM
from .connectors import OpenAIConnector, VertexAIConnector
from .utilities.http import Transport

logger = logging.getLogger(__name__)

Provider = Literal["openai", "deepinfra", "gemini"]

# provider -> (api key variable, default base url)
PROVIDERS: dict[str, tuple[str, str]] = {
    "openai": ("OPENAI_API_KEY", "https://api.openai.com/v1"),
    "deepinfra": ("DEEPINFRA_API_KEY", "https://api.deepinfra.com/v1/openai"),
    "gemini": ("GEMINI_API_KEY", "https://generativelanguage.googleapis.com/"),
}


def env(key: str) -> str:
    """Read a required environment variable."""
    value = os.environ.get(key)
    if value is None:
        raise ConfigurationError(f"Environment variable {key} not set")
    return value


def make_connector(
    provider: Provider,
    model_name: str,
    base_url: str | None = None,
    api_key: str | None = None,
    transport: Transport | None = None,
) -> LLM:
    """Build a connector for a known provider, reading its API key from the environment when not given."""
    if provider not in PROVIDERS:
        raise ConfigurationError(f"Unknown provider '{provider}'. Known providers: {sorted(PROVIDERS)}")

    key_var, default_url = PROVIDERS[provider]
    api_key = api_key if api_key is not None else env(key_var)
    base_url = base_url or default_url
    logger.debug(f"Creating {provider} connector for {model_name} at {base_url}")

    if provider == "gemini":
        return VertexAIConnector(model_name, base_url=base_url, api_key=api_key, transport=transport)
    return OpenAIConnector(model_name, base_url=base_url, api_key=api_key, transport=transport)
