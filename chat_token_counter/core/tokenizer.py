"""
Byte-pair-encoding tokenizer per model family.

Wraps tiktoken: byte-level pre-tokenization with the family's split regex,
then greedy merges by rank from a fixed merge table. Vocabularies load
lazily, once per family, and are shared read-only afterwards.
"""

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional

import structlog
import tiktoken
from tiktoken.load import load_tiktoken_bpe

from .errors import ConfigurationError
from .model_family import FRAMING_TABLE, ModelFamily

logger = structlog.get_logger(__name__)

# Split pattern and special tokens of the cl100k scheme, used for local merge files
CL100K_PAT_STR = (
    r"""(?i:'s|'t|'re|'ve|'m|'ll|'d)|[^\r\n\p{L}\p{N}]?\p{L}+|\p{N}{1,3}"""
    r"""| ?[^\s\p{L}\p{N}]+[\r\n]*|\s*[\r\n]+|\s+(?!\S)|\s+"""
)
CL100K_SPECIAL_TOKENS = {
    "<|endoftext|>": 100257,
    "<|fim_prefix|>": 100258,
    "<|fim_middle|>": 100259,
    "<|fim_suffix|>": 100260,
    "<|endofprompt|>": 100276,
}


@dataclass(frozen=True)
class EncodingSource:
    """Where a family's vocabulary comes from.

    Exactly one of `encoding_name` (a tiktoken encoding) or `vocab_file`
    (a local .tiktoken merge-rank file) is set.
    """
    encoding_name: Optional[str] = None
    vocab_file: Optional[Path] = None

    def __post_init__(self):
        """Validate exactly one source is given."""
        if (self.encoding_name is None) == (self.vocab_file is None):
            raise ConfigurationError("exactly one of encoding_name or vocab_file is required")

    def describe(self) -> str:
        return self.encoding_name or str(self.vocab_file)


class BPETokenizer:
    """Counts tokens with a loaded vocabulary. Stateless after construction."""

    def __init__(self, encoding: tiktoken.Encoding):
        self._encoding = encoding

    @property
    def name(self) -> str:
        return self._encoding.name

    def encode(self, text: Optional[str]) -> List[int]:
        """Encode text to token ids.

        Special-token markers in user text are encoded as plain text
        rather than rejected.
        """
        if not text:
            return []
        return self._encoding.encode(text, disallowed_special=())

    def count(self, text: Optional[str]) -> int:
        """Number of tokens in text; 0 for empty or missing text."""
        return len(self.encode(text))


def _load_encoding(family: ModelFamily, source: EncodingSource) -> tiktoken.Encoding:
    if source.encoding_name is not None:
        return tiktoken.get_encoding(source.encoding_name)

    path = source.vocab_file
    if not path.exists():
        raise FileNotFoundError(f"Vocabulary file not found: {path}")
    return tiktoken.Encoding(
        name=f"{family.value}-{path.stem}",
        pat_str=CL100K_PAT_STR,
        mergeable_ranks=load_tiktoken_bpe(str(path)),
        special_tokens=CL100K_SPECIAL_TOKENS
    )


class TokenizerRegistry:
    """Maps model families to lazily loaded tokenizers.

    Loading is serialized by a lock so concurrent first use loads each
    vocabulary once; lookups after that are lock-free reads.
    """

    def __init__(self, sources: Mapping[ModelFamily, EncodingSource]):
        self._sources = dict(sources)
        self._tokenizers: Dict[ModelFamily, BPETokenizer] = {}
        self._lock = threading.Lock()

    @property
    def families(self) -> List[ModelFamily]:
        return list(self._sources)

    def source_for(self, family: ModelFamily) -> EncodingSource:
        """Get the configured source for a family.

        Raises:
            ConfigurationError: If no vocabulary is registered for the family
        """
        if family not in self._sources:
            raise ConfigurationError(f"No vocabulary registered for model family: {family.value}")
        return self._sources[family]

    def get_tokenizer(self, family: ModelFamily) -> BPETokenizer:
        """Get the tokenizer for a family, loading its vocabulary on first use.

        Raises:
            ConfigurationError: If the family has no registered vocabulary
                or the vocabulary cannot be loaded
        """
        tokenizer = self._tokenizers.get(family)
        if tokenizer is not None:
            return tokenizer

        source = self.source_for(family)
        with self._lock:
            tokenizer = self._tokenizers.get(family)
            if tokenizer is None:
                try:
                    encoding = _load_encoding(family, source)
                except (OSError, ValueError) as e:
                    raise ConfigurationError(
                        f"Cannot load vocabulary {source.describe()} for model family "
                        f"{family.value}: {e}"
                    ) from e
                tokenizer = BPETokenizer(encoding)
                self._tokenizers[family] = tokenizer
                logger.info("tokenizer_loaded", family=family.value, source=source.describe())
        return tokenizer


def default_sources() -> Dict[ModelFamily, EncodingSource]:
    """Encoding sources named in the framing constants table."""
    return {
        family: EncodingSource(encoding_name=constants.encoding_name)
        for family, constants in FRAMING_TABLE.constants.items()
    }


_default_registry: Optional[TokenizerRegistry] = None
_default_registry_lock = threading.Lock()


def default_registry() -> TokenizerRegistry:
    """Process-wide registry backed by the table's tiktoken encodings."""
    global _default_registry
    if _default_registry is None:
        with _default_registry_lock:
            if _default_registry is None:
                _default_registry = TokenizerRegistry(default_sources())
    return _default_registry
