"""
Unit tests for model family classification.

Tests pattern matching, aliases, and the constants table.
"""

import pytest

from chat_token_counter.core.errors import ConfigurationError
from chat_token_counter.core.model_family import (
    FRAMING_TABLE,
    FramingTable,
    ModelFamily,
    classify_model,
    family_from_value,
)


class TestClassifyModel:
    """Test model name classification."""

    @pytest.mark.parametrize("model", [
        "gpt-3.5-turbo",
        "gpt-3.5-turbo-0613",
        "gpt-3.5-turbo-16k",
        "gpt-35-turbo",
    ])
    def test_gpt35_models(self, model):
        """Verify gpt-3.5-turbo variants map to GPT3_5."""
        assert classify_model(model) == ModelFamily.GPT3_5

    @pytest.mark.parametrize("model", ["gpt-4", "gpt-4-0613", "gpt-4-32k", "gpt-4-turbo"])
    def test_gpt4_models(self, model):
        """Verify gpt-4 variants map to GPT4."""
        assert classify_model(model) == ModelFamily.GPT4

    @pytest.mark.parametrize("model", ["gpt-4o", "gpt-3.5", "text-davinci-003", "claude-3-opus"])
    def test_unsupported_model_raises_error(self, model):
        """Verify unknown models fail instead of defaulting."""
        with pytest.raises(ConfigurationError, match=f"Unsupported model: {model}"):
            classify_model(model)

    def test_empty_model_raises_error(self):
        """Verify empty model names are rejected."""
        with pytest.raises(ConfigurationError, match="model is required"):
            classify_model("  ")

    def test_alias_to_family_value(self):
        """Verify aliases resolve before pattern matching."""
        aliases = {"my-deployment": "gpt-4"}
        assert classify_model("my-deployment", aliases) == ModelFamily.GPT4

    def test_alias_to_dated_model(self):
        """Verify aliases may target any classifiable model name."""
        aliases = {"cheap": "gpt-3.5-turbo-0613"}
        assert classify_model("cheap", aliases) == ModelFamily.GPT3_5

    def test_alias_to_unsupported_model(self):
        """Verify an alias cannot smuggle in an unsupported model."""
        with pytest.raises(ConfigurationError, match="Unsupported model: broken"):
            classify_model("broken", {"broken": "gpt-4o"})


class TestFramingTable:
    """Test the framing constants table."""

    def test_every_family_has_constants(self):
        """Verify each family has a constants entry."""
        for family in ModelFamily:
            assert FRAMING_TABLE.get_constants(family).encoding_name == "cl100k_base"

    def test_gpt4_has_lower_message_overhead(self):
        """Verify GPT-4 frames messages with fewer tokens than GPT-3.5."""
        gpt4 = FRAMING_TABLE.get_constants(ModelFamily.GPT4)
        gpt35 = FRAMING_TABLE.get_constants(ModelFamily.GPT3_5)
        assert gpt4.tokens_per_message < gpt35.tokens_per_message

    def test_missing_family_raises_error(self):
        """Verify lookups in an incomplete table fail loudly."""
        table = FramingTable({})
        with pytest.raises(ConfigurationError, match="gpt-4"):
            table.get_constants(ModelFamily.GPT4)

    def test_family_from_value(self):
        """Verify exact family value lookup."""
        assert family_from_value("gpt-4") == ModelFamily.GPT4
        assert family_from_value("gpt-3.5-turbo") == ModelFamily.GPT3_5
        assert family_from_value("gpt-4-0613") is None
