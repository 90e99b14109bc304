"""
Configuration management and loading.

Handles vocabulary sources per model family and model name aliases.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import structlog
import yaml

from ..core.errors import ConfigurationError
from ..core.model_family import ModelFamily, classify_model, family_from_value
from ..core.models import (
    ChatMessage,
    FunctionSpec,
    function_from_dict,
    message_from_dict,
)
from ..core.tokenizer import EncodingSource, TokenizerRegistry, default_sources

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CounterConfig:
    """Complete token counter configuration."""
    encodings: Dict[ModelFamily, EncodingSource] = field(default_factory=dict)
    aliases: Dict[str, str] = field(default_factory=dict)

    def get_source(self, family: ModelFamily) -> EncodingSource:
        """Get the vocabulary source for a family, using the table default if not configured."""
        return self.encodings.get(family, default_sources()[family])

    def build_registry(self) -> TokenizerRegistry:
        """Create a tokenizer registry covering every family."""
        return TokenizerRegistry({family: self.get_source(family) for family in ModelFamily})


def load_counter_config(path: str) -> CounterConfig:
    """Load and validate token counter configuration from YAML file.

    Strict validation ensures a misspelled family or alias fails loudly
    instead of silently counting with the wrong vocabulary.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated CounterConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ConfigurationError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Counter config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ConfigurationError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ConfigurationError("Configuration must be a dictionary")

    allowed_top_keys = {'encodings', 'aliases'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ConfigurationError(f"Unknown configuration keys: {unknown_keys}")

    encodings_data = raw_config.get('encodings') or {}
    if not isinstance(encodings_data, dict):
        raise ConfigurationError("'encodings' must be a dictionary")

    encodings = {}
    for family_name, source_data in encodings_data.items():
        family = family_from_value(str(family_name))
        if family is None:
            valid_families = [f.value for f in ModelFamily]
            raise ConfigurationError(
                f"Unknown model family in encodings: '{family_name}'. Must be one of: {valid_families}"
            )
        encodings[family] = _parse_encoding_source(
            source_data, f"encodings.{family_name}", config_path.parent
        )

    aliases_data = raw_config.get('aliases') or {}
    if not isinstance(aliases_data, dict):
        raise ConfigurationError("'aliases' must be a dictionary")

    aliases = {}
    for alias, target in aliases_data.items():
        if not isinstance(target, str) or not target.strip():
            raise ConfigurationError(f"Alias '{alias}' must map to a model name")
        # Fails for targets that do not classify
        classify_model(target)
        aliases[str(alias)] = target.strip()

    logger.info(
        "config_loaded",
        path=str(config_path),
        families=[f.value for f in encodings],
        aliases=len(aliases)
    )
    return CounterConfig(encodings=encodings, aliases=aliases)


def _parse_encoding_source(data: Dict, path: str, base_dir: Path) -> EncodingSource:
    """Parse and validate one vocabulary source.

    Args:
        data: Source configuration data
        path: Path for error messages
        base_dir: Directory relative vocab_file paths resolve against

    Returns:
        Validated EncodingSource

    Raises:
        ConfigurationError: If configuration is invalid
    """
    if not isinstance(data, dict):
        raise ConfigurationError(f"'{path}' must be a dictionary")

    allowed_keys = {'encoding', 'vocab_file'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ConfigurationError(f"Unknown keys in {path}: {unknown_keys}")

    if ('encoding' in data) == ('vocab_file' in data):
        raise ConfigurationError(f"Exactly one of 'encoding' or 'vocab_file' is required in {path}")

    if 'encoding' in data:
        encoding_name = data['encoding']
        if not isinstance(encoding_name, str) or not encoding_name.strip():
            raise ConfigurationError(f"'encoding' in {path} must be a non-empty string")
        return EncodingSource(encoding_name=encoding_name.strip())

    vocab_file = data['vocab_file']
    if not isinstance(vocab_file, str) or not vocab_file.strip():
        raise ConfigurationError(f"'vocab_file' in {path} must be a non-empty string")

    vocab_path = Path(vocab_file.strip()).expanduser()
    if not vocab_path.is_absolute():
        vocab_path = base_dir / vocab_path
    return EncodingSource(vocab_file=vocab_path)


@dataclass(frozen=True)
class CountRequest:
    """A chat completion request read from a file, for offline counting."""
    messages: List[ChatMessage]
    functions: List[FunctionSpec] = field(default_factory=list)
    response_function_name: Optional[str] = None
    model: Optional[str] = None


def load_count_request(path: str) -> CountRequest:
    """Load a request in OpenAI's wire shape from a YAML or JSON file.

    Accepts `model`, `messages`, `functions`, and either `function_call`
    ({"name": ...}) or `response_function_name`. A string `function_call`
    such as "auto" forces nothing.

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If the file cannot be parsed
        ValueError: If the request is malformed
    """
    request_path = Path(path)
    if not request_path.exists():
        raise FileNotFoundError(f"Request file not found: {path}")

    with open(request_path, 'r', encoding='utf-8') as f:
        try:
            raw_request = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid request file {path}: {e}")

    if not isinstance(raw_request, dict):
        raise ValueError("Request must be a dictionary")

    raw_messages = raw_request.get('messages') or []
    if not isinstance(raw_messages, list):
        raise ValueError("'messages' must be a list")

    raw_functions = raw_request.get('functions') or []
    if not isinstance(raw_functions, list):
        raise ValueError("'functions' must be a list")

    response_function_name = raw_request.get('response_function_name')
    function_call = raw_request.get('function_call')
    if isinstance(function_call, dict) and function_call.get('name'):
        response_function_name = function_call['name']

    model = raw_request.get('model')
    return CountRequest(
        messages=[message_from_dict(m) for m in raw_messages],
        functions=[function_from_dict(f) for f in raw_functions],
        response_function_name=response_function_name,
        model=str(model) if model else None
    )
