"""
Offline prompt token counting for chat completion requests.

Predicts how many tokens messages and function definitions consume for a
model family without calling the remote service.
"""

from .core.errors import ConfigurationError
from .core.function_schema import count_fun_message_tokens, render_function_definitions
from .core.message_framer import count_message_tokens
from .core.model_family import ModelFamily, classify_model
from .core.models import (
    AssistantMessage,
    ChatRole,
    FunctionCall,
    FunctionMessage,
    FunctionSpec,
    SystemMessage,
    UserMessage,
)
from .core.token_counter import TokenCounter

__all__ = [
    "AssistantMessage",
    "ChatRole",
    "ConfigurationError",
    "FunctionCall",
    "FunctionMessage",
    "FunctionSpec",
    "ModelFamily",
    "SystemMessage",
    "TokenCounter",
    "UserMessage",
    "classify_model",
    "count_fun_message_tokens",
    "count_message_tokens",
    "render_function_definitions",
]
