"""
Prompt token counts for chat messages.

Every message is framed by the serving protocol with a fixed number of
tokens, and the reply is primed with a fixed header. Both overheads are
per-family constants.
"""

from typing import Mapping, Optional, Sequence

from .model_family import FRAMING_TABLE, FramingConstants, ModelFamily, classify_model
from .models import ChatMessage, ChatRole
from .tokenizer import BPETokenizer, TokenizerRegistry, default_registry


def message_tokens(
    message: ChatMessage,
    tokenizer: BPETokenizer,
    constants: FramingConstants
) -> int:
    """Tokens one message contributes, including its framing."""
    tokens = constants.tokens_per_message
    tokens += tokenizer.count(message.role.value)
    tokens += tokenizer.count(message.content)

    if message.name:
        tokens += tokenizer.count(message.name) + constants.tokens_per_name

    function_call = getattr(message, "function_call", None)
    if function_call is not None:
        tokens += tokenizer.count(function_call.name)
        tokens += tokenizer.count(function_call.arguments)
        tokens += constants.function_call

    if message.role == ChatRole.FUNCTION:
        tokens += constants.function_role

    return tokens


def count_family_message_tokens(
    family: ModelFamily,
    messages: Sequence[ChatMessage],
    registry: Optional[TokenizerRegistry] = None
) -> int:
    """Count prompt tokens for messages of an already classified family."""
    registry = registry or default_registry()
    tokenizer = registry.get_tokenizer(family)
    constants = FRAMING_TABLE.get_constants(family)

    total = sum(message_tokens(message, tokenizer, constants) for message in messages)
    return total + constants.reply_priming


def count_message_tokens(
    model: str,
    messages: Sequence[ChatMessage],
    registry: Optional[TokenizerRegistry] = None,
    aliases: Optional[Mapping[str, str]] = None
) -> int:
    """Count the prompt tokens a chat completion request will use.

    Args:
        model: Model identifier, e.g. "gpt-4"
        messages: Ordered chat messages
        registry: Tokenizer registry (defaults to the process-wide one)
        aliases: Optional model name aliases

    Returns:
        Predicted prompt token count. An empty conversation still costs
        the reply priming tokens.

    Raises:
        ConfigurationError: If the model is not supported
    """
    family = classify_model(model, aliases)
    return count_family_message_tokens(family, messages, registry)
