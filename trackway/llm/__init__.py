"""LLM clients used by the agent controller."""

from .base import BaseChatCompletion, ChatMessage, LLMClient
from .openai import OpenAIChatCompletion

__all__ = [
    "BaseChatCompletion",
    "ChatMessage",
    "LLMClient",
    "OpenAIChatCompletion",
]
