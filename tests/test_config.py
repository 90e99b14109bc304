"""
Unit tests for configuration loading and validation.

Tests strict validation of counter configs and request files.
"""

import os
import tempfile
from pathlib import Path

import pytest
import yaml

from chat_token_counter.config.loader import (
    CounterConfig,
    load_count_request,
    load_counter_config,
)
from chat_token_counter.core.errors import ConfigurationError
from chat_token_counter.core.model_family import ModelFamily
from chat_token_counter.core.models import (
    AssistantMessage,
    FunctionCall,
    FunctionMessage,
    SystemMessage,
    UserMessage,
)
from chat_token_counter.core.token_counter import TokenCounter


class TestConfigLoading:
    """Test counter configuration loading and validation."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, config_data, filename: str = "config.yaml") -> str:
        """Write configuration data to temporary file."""
        config_path = os.path.join(self.temp_dir, filename)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_data, f)
        return config_path

    def test_valid_config_loads_correctly(self):
        """Test that a valid configuration loads correctly."""
        config_data = {
            "encodings": {
                "gpt-4": {"encoding": "cl100k_base"},
                "gpt-3.5-turbo": {"vocab_file": "vocab/cl100k_base.tiktoken"}
            },
            "aliases": {"my-deployment": "gpt-4"}
        }

        config = load_counter_config(self._write_config(config_data))

        assert config.encodings[ModelFamily.GPT4].encoding_name == "cl100k_base"
        vocab_file = config.encodings[ModelFamily.GPT3_5].vocab_file
        assert vocab_file == Path(self.temp_dir) / "vocab" / "cl100k_base.tiktoken"
        assert config.aliases == {"my-deployment": "gpt-4"}

    def test_absolute_vocab_file_kept(self):
        """Test that absolute vocabulary paths are not rebased."""
        config_data = {"encodings": {"gpt-4": {"vocab_file": "/opt/vocab/cl100k.tiktoken"}}}
        config = load_counter_config(self._write_config(config_data))
        assert config.encodings[ModelFamily.GPT4].vocab_file == Path("/opt/vocab/cl100k.tiktoken")

    def test_unconfigured_family_uses_default(self):
        """Test that families without an entry fall back to the table encoding."""
        config = load_counter_config(self._write_config({"aliases": {"prod": "gpt-4-0613"}}))
        assert config.get_source(ModelFamily.GPT3_5).encoding_name == "cl100k_base"
        assert set(config.build_registry().families) == set(ModelFamily)

    def test_file_not_found(self):
        """Test that missing config file raises error."""
        with pytest.raises(FileNotFoundError, match="Counter config file not found"):
            load_counter_config(os.path.join(self.temp_dir, "missing.yaml"))

    def test_invalid_yaml(self):
        """Test that malformed YAML raises error."""
        config_path = os.path.join(self.temp_dir, "bad.yaml")
        with open(config_path, 'w', encoding='utf-8') as f:
            f.write("encodings: [unclosed")
        with pytest.raises(yaml.YAMLError, match="Invalid YAML"):
            load_counter_config(config_path)

    def test_empty_file(self):
        """Test that empty config file raises error."""
        config_path = os.path.join(self.temp_dir, "empty.yaml")
        Path(config_path).write_text("", encoding='utf-8')
        with pytest.raises(ConfigurationError, match="Configuration file is empty"):
            load_counter_config(config_path)

    def test_unknown_top_level_key(self):
        """Test that unknown top-level keys are rejected."""
        with pytest.raises(ConfigurationError, match="Unknown configuration keys"):
            load_counter_config(self._write_config({"encodings": {}, "pricing": {}}))

    def test_unknown_family(self):
        """Test that encodings for unknown families are rejected."""
        config_data = {"encodings": {"gpt-4o": {"encoding": "o200k_base"}}}
        with pytest.raises(ConfigurationError, match="Unknown model family in encodings: 'gpt-4o'"):
            load_counter_config(self._write_config(config_data))

    def test_both_sources_rejected(self):
        """Test that an entry with two sources is rejected."""
        config_data = {"encodings": {"gpt-4": {"encoding": "cl100k_base", "vocab_file": "x.tiktoken"}}}
        with pytest.raises(ConfigurationError, match="Exactly one of 'encoding' or 'vocab_file'"):
            load_counter_config(self._write_config(config_data))

    def test_unknown_source_key(self):
        """Test that unknown keys in an encoding entry are rejected."""
        config_data = {"encodings": {"gpt-4": {"encoding": "cl100k_base", "merges": "x"}}}
        with pytest.raises(ConfigurationError, match="Unknown keys in encodings.gpt-4"):
            load_counter_config(self._write_config(config_data))

    def test_alias_to_unsupported_model(self):
        """Test that aliases must target a supported model."""
        with pytest.raises(ConfigurationError, match="Unsupported model: gpt-4o"):
            load_counter_config(self._write_config({"aliases": {"prod": "gpt-4o"}}))

    def test_alias_must_be_string(self):
        """Test that alias targets must be model names."""
        with pytest.raises(ConfigurationError, match="Alias 'prod' must map to a model name"):
            load_counter_config(self._write_config({"aliases": {"prod": 4}}))

    def test_counter_from_config_uses_aliases(self):
        """Test that a configured counter resolves aliases."""
        config_path = self._write_config({"aliases": {"my-deployment": "gpt-4"}})
        counter = TokenCounter.from_config(config_path)

        assert counter.classify("my-deployment") == ModelFamily.GPT4
        assert counter.count_message_tokens("my-deployment", [UserMessage("hello")]) == 8

    def test_counter_config_defaults(self):
        """Test that an empty CounterConfig has no overrides."""
        config = CounterConfig()
        assert config.encodings == {}
        assert config.aliases == {}


class TestRequestLoading:
    """Test loading requests in the chat completions wire shape."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_request(self, request_data) -> str:
        request_path = os.path.join(self.temp_dir, "request.yaml")
        with open(request_path, 'w', encoding='utf-8') as f:
            yaml.dump(request_data, f, sort_keys=False)
        return request_path

    def test_messages_become_role_variants(self):
        """Test that each role builds its own message variant."""
        request = load_count_request(self._write_request({
            "model": "gpt-4",
            "messages": [
                {"role": "system", "content": "Be brief."},
                {"role": "user", "content": "Weather?", "name": "alice"},
                {"role": "assistant", "content": None,
                 "function_call": {"name": "get_weather", "arguments": "{}"}},
                {"role": "function", "name": "get_weather", "content": "sunny"}
            ]
        }))

        assert request.model == "gpt-4"
        assert request.messages == [
            SystemMessage("Be brief."),
            UserMessage("Weather?", name="alice"),
            AssistantMessage(None, function_call=FunctionCall("get_weather", "{}")),
            FunctionMessage(name="get_weather", content="sunny"),
        ]

    def test_function_call_object_forces_function(self):
        """Test that a function_call object sets the forced function name."""
        request = load_count_request(self._write_request({
            "messages": [{"role": "user", "content": "hello"}],
            "functions": [{"name": "do_stuff", "parameters": {"type": "object", "properties": {}}}],
            "function_call": {"name": "do_stuff"}
        }))

        assert request.model is None
        assert request.functions[0].name == "do_stuff"
        assert request.response_function_name == "do_stuff"

    def test_function_call_auto_forces_nothing(self):
        """Test that string function_call values do not force a function."""
        request = load_count_request(self._write_request({
            "messages": [{"role": "user", "content": "hello"}],
            "function_call": "auto"
        }))
        assert request.response_function_name is None

    def test_json_request(self):
        """Test that JSON request files are accepted."""
        request_path = os.path.join(self.temp_dir, "request.json")
        Path(request_path).write_text(
            '{"messages": [{"role": "user", "content": "hello"}], "response_function_name": "f"}',
            encoding='utf-8'
        )
        request = load_count_request(request_path)
        assert request.messages == [UserMessage("hello")]
        assert request.response_function_name == "f"

    def test_unknown_role(self):
        """Test that unknown roles are rejected."""
        request_path = self._write_request({"messages": [{"role": "tool", "content": "x"}]})
        with pytest.raises(ValueError, match="message role must be one of"):
            load_count_request(request_path)

    def test_function_message_requires_name(self):
        """Test that function results must name their function."""
        request_path = self._write_request({"messages": [{"role": "function", "content": "x"}]})
        with pytest.raises(ValueError, match="function message requires a 'name'"):
            load_count_request(request_path)

    def test_function_requires_name(self):
        """Test that function specs must be named."""
        request_path = self._write_request({"messages": [], "functions": [{"parameters": {}}]})
        with pytest.raises(ValueError, match="function name is required"):
            load_count_request(request_path)

    def test_messages_must_be_list(self):
        """Test that messages must be a list."""
        request_path = self._write_request({"messages": {"role": "user"}})
        with pytest.raises(ValueError, match="'messages' must be a list"):
            load_count_request(request_path)

    def test_request_not_found(self):
        """Test that missing request file raises error."""
        with pytest.raises(FileNotFoundError, match="Request file not found"):
            load_count_request(os.path.join(self.temp_dir, "missing.yaml"))
