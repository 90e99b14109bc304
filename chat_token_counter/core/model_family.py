"""
Model families and their framing constants.

The constants were calibrated empirically against prompt token counts
reported by the service. They are not derived from first principles.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional

import structlog

from .errors import ConfigurationError

logger = structlog.get_logger(__name__)


class ModelFamily(Enum):
    """Groups of models sharing framing constants and vocabulary."""
    GPT3_5 = "gpt-3.5-turbo"
    GPT4 = "gpt-4"


@dataclass(frozen=True)
class FramingConstants:
    """Fixed token overheads injected by the serving protocol."""
    tokens_per_message: int  # <|start|>{role}\n{content}<|end|>\n
    tokens_per_name: int
    reply_priming: int  # <|start|>assistant<|message|>
    function_role: int
    function_call: int
    functions_enabled: int
    system_with_functions: int
    forced_function: int
    encoding_name: str


@dataclass(frozen=True)
class FramingTable:
    """Read-only constants table keyed by model family."""
    constants: Dict[ModelFamily, FramingConstants]

    def get_constants(self, family: ModelFamily) -> FramingConstants:
        """Get framing constants for a model family.

        Raises:
            ConfigurationError: If the family has no constants
        """
        if family not in self.constants:
            raise ConfigurationError(f"No framing constants for model family: {family.value}")
        return self.constants[family]


FRAMING_TABLE = FramingTable({
    ModelFamily.GPT3_5: FramingConstants(
        tokens_per_message=3,
        tokens_per_name=0,
        reply_priming=3,
        function_role=-2,
        function_call=3,
        functions_enabled=9,
        system_with_functions=-4,
        forced_function=4,
        encoding_name="cl100k_base"
    ),
    ModelFamily.GPT4: FramingConstants(
        tokens_per_message=2,
        tokens_per_name=1,
        reply_priming=4,
        function_role=-2,
        function_call=3,
        functions_enabled=9,
        system_with_functions=-4,
        forced_function=4,
        encoding_name="cl100k_base"
    )
})

# Checked in order; gpt-4o and later use another vocabulary and must not match
_FAMILY_PATTERNS = (
    (re.compile(r"^gpt-3\.5-turbo(-.+)?$"), ModelFamily.GPT3_5),
    (re.compile(r"^gpt-35-turbo(-.+)?$"), ModelFamily.GPT3_5),
    (re.compile(r"^gpt-4(-.+)?$"), ModelFamily.GPT4),
)


def family_from_value(value: str) -> Optional[ModelFamily]:
    """Return the family whose value is exactly `value`, if any."""
    for family in ModelFamily:
        if family.value == value:
            return family
    return None


def classify_model(model: str, aliases: Optional[Mapping[str, str]] = None) -> ModelFamily:
    """Classify a model identifier into its family.

    Aliases are resolved first; an alias target may be a family value
    or another model name that classifies.

    Args:
        model: Model identifier, e.g. "gpt-4" or "gpt-3.5-turbo-0613"
        aliases: Optional mapping of model name to family value or model name

    Returns:
        ModelFamily for the model

    Raises:
        ConfigurationError: If the model matches no supported family
    """
    if not model or not model.strip():
        raise ConfigurationError("model is required and cannot be empty")

    name = model.strip()
    if aliases and name in aliases:
        name = aliases[name]

    for pattern, family in _FAMILY_PATTERNS:
        if pattern.match(name):
            return family

    logger.warning("model_classification_failed", model=model)
    raise ConfigurationError(f"Unsupported model: {model}")
