from typing import Any

from .base import LLMProvider
from .providers import AnthropicProvider, DeepSeekProvider, OpenAIProvider

# Provider names accepted by create_llm_provider and LLM_PROVIDER ("claude" is an alias)
PROVIDERS: dict[str, type[LLMProvider]] = {
    "openai": OpenAIProvider,
    "deepseek": DeepSeekProvider,
    "anthropic": AnthropicProvider,
    "claude": AnthropicProvider,
}

# Environment variable holding each provider's API key
API_KEY_VARS: dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "claude": "ANTHROPIC_API_KEY",
}


def create_llm_provider(provider: str, **config: Any) -> LLMProvider:
    """Create the provider registered under ``provider`` (case-insensitive).

    All providers take ``api_key`` plus optional ``model`` and ``base_url``;
    any other keyword is passed through to the SDK client. Defaults:
    gpt-4o-mini (openai), deepseek-chat at https://api.deepseek.com
    (deepseek), claude-sonnet-4-20250514 (anthropic).

    Raises:
        ValueError: If the provider name is not registered
        TypeError: If ``api_key`` is missing

    Examples:
        >>> provider = create_llm_provider("deepseek", api_key="sk-...")
    """
    provider_cls = PROVIDERS.get(provider.lower())
    if provider_cls is None:
        raise ValueError(
            f"Unsupported provider: {provider}. "
            f"Supported providers: {', '.join(repr(name) for name in PROVIDERS)}"
        )
    if "api_key" not in config:
        raise TypeError(f"{provider_cls.__name__} requires 'api_key' in config")
    return provider_cls(**config)
