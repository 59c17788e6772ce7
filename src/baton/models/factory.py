"""
baton/models/factory.py

Builds a CompletionProvider from a kind name and keyword options.

Connection options (api_key, base_url, timeout_s, max_retries,
organization, project, extra_headers) go into a ProviderConfig, with the
environment filling whatever is not given. Anything else (transport,
backoff_s) is passed to the provider constructor.
"""

from __future__ import annotations

from typing import Any, Dict, Type

from pydantic import ValidationError

from baton.config import ProviderConfig, ProviderKind
from baton.errors import ProviderConfigError
from baton.interfaces import CompletionProvider
from baton.models.providers.anthropic import AnthropicProvider
from baton.models.providers.gemini import GeminiProvider
from baton.models.providers.http import HTTPCompletionProvider
from baton.models.providers.noop import NoOpProvider
from baton.models.providers.ollama import OllamaProvider
from baton.models.providers.openai_compat import OpenAICompatProvider

_HTTP_PROVIDERS: Dict[ProviderKind, Type[HTTPCompletionProvider]] = {
    ProviderKind.OPENAI: OpenAICompatProvider,
    ProviderKind.OLLAMA: OllamaProvider,
    ProviderKind.ANTHROPIC: AnthropicProvider,
    ProviderKind.GEMINI: GeminiProvider,
}

_CONFIG_FIELDS = set(ProviderConfig.model_fields)


def create_provider(kind: ProviderKind | str, **options: Any) -> CompletionProvider:
    """
    Example::

        provider = create_provider("openai", api_key="sk-...", max_retries=5)
        provider = create_provider("ollama", base_url="http://gpu-box:11434")
        provider = create_provider("anthropic", api_key="sk-ant-...")
    """
    try:
        kind = ProviderKind(kind)
    except ValueError:
        raise ProviderConfigError(
            field="provider",
            reason=f"unsupported provider '{kind}', known: {[k.value for k in ProviderKind]}",
            value=kind,
        ) from None

    if kind == ProviderKind.NOOP:
        return NoOpProvider()

    config_opts = {k: v for k, v in options.items() if k in _CONFIG_FIELDS}
    provider_opts = {k: v for k, v in options.items() if k not in _CONFIG_FIELDS}
    try:
        config = ProviderConfig.from_env(kind, **config_opts)
    except ValidationError as e:
        first = e.errors()[0]
        raise ProviderConfigError(
            field=".".join(str(p) for p in first["loc"]),
            reason=first["msg"],
            value=first.get("input"),
        ) from e
    return _HTTP_PROVIDERS[kind](config=config, **provider_opts)
