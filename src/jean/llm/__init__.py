from .base import LLMProvider
from .factory import API_KEY_VARS, PROVIDERS, create_llm_provider
from .models import ProviderEvent, StreamFinished, StreamingResponse, TextDelta, ToolCallEvent
from .providers import AnthropicProvider, DeepSeekProvider, OpenAIProvider

__all__ = [
    "LLMProvider",
    "API_KEY_VARS",
    "PROVIDERS",
    "create_llm_provider",
    "ProviderEvent",
    "StreamFinished",
    "StreamingResponse",
    "TextDelta",
    "ToolCallEvent",
    "AnthropicProvider",
    "DeepSeekProvider",
    "OpenAIProvider",
]
