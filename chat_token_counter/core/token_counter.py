"""
Token counting facade.

Binds a tokenizer registry and model aliases so callers configured from a
file can count without passing them on every call.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

from ..config.loader import load_counter_config
from .function_schema import count_fun_message_tokens
from .message_framer import count_message_tokens
from .model_family import ModelFamily, classify_model
from .models import ChatMessage, FunctionSpec
from .tokenizer import TokenizerRegistry, default_registry


@dataclass(frozen=True)
class TokenCounter:
    """Counts prompt tokens with a fixed registry and alias table."""
    registry: TokenizerRegistry = field(default_factory=default_registry)
    aliases: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_config(cls, path: str) -> "TokenCounter":
        """Create a counter from a YAML configuration file."""
        config = load_counter_config(path)
        return cls(registry=config.build_registry(), aliases=dict(config.aliases))

    def classify(self, model: str) -> ModelFamily:
        return classify_model(model, self.aliases)

    def count_message_tokens(self, model: str, messages: Sequence[ChatMessage]) -> int:
        return count_message_tokens(model, messages, self.registry, self.aliases)

    def count_fun_message_tokens(
        self,
        model: str,
        messages: Sequence[ChatMessage],
        functions: Sequence[FunctionSpec],
        response_function_name: Optional[str] = None
    ) -> int:
        return count_fun_message_tokens(
            model,
            messages,
            functions,
            response_function_name,
            self.registry,
            self.aliases
        )

    def count_request(
        self,
        model: str,
        messages: Sequence[ChatMessage],
        functions: Optional[Sequence[FunctionSpec]] = None,
        response_function_name: Optional[str] = None
    ) -> int:
        """Count a request, choosing the function-aware path when needed."""
        if functions or response_function_name:
            return self.count_fun_message_tokens(
                model, messages, functions or [], response_function_name
            )
        return self.count_message_tokens(model, messages)
