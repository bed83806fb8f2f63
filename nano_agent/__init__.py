"""Image generation with critique-improve loops for Gemini and OpenRouter."""

__version__ = "0.3.0"

from .schemas import GenerationResult, ImagePart, LoopIteration, Message, PipelineResult, Role, TextPart
from .errors import (
    ConfigError,
    CredentialError,
    DecodeError,
    NanoAgentError,
    NoResultError,
    ProviderError,
    ThreadStateError,
)
from .parsing import ChatJSONParser, GeminiResponseParser, ResponseParser
from .llm import get_client, normalize_gemini_model, normalize_openrouter_model
from .providers import GeminiClient, OpenRouterClient
from .thread import ConversationThread, ThreadState
from .critic import ImageCritic
from .generator import ImageGenerator
from .pipeline import CritiqueLoopPipeline

__all__ = [
    "GenerationResult",
    "ImagePart",
    "LoopIteration",
    "Message",
    "PipelineResult",
    "Role",
    "TextPart",
    "ConfigError",
    "CredentialError",
    "DecodeError",
    "NanoAgentError",
    "NoResultError",
    "ProviderError",
    "ThreadStateError",
    "ChatJSONParser",
    "GeminiResponseParser",
    "ResponseParser",
    "get_client",
    "normalize_gemini_model",
    "normalize_openrouter_model",
    "GeminiClient",
    "OpenRouterClient",
    "ConversationThread",
    "ThreadState",
    "ImageCritic",
    "ImageGenerator",
    "CritiqueLoopPipeline",
]
