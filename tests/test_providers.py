from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from genagent.errors import ConfigurationError
from genagent.providers import create_client, load_model, parse_model_string, resolve_model_alias

# ---------------------------------------------------------------------------
# Model strings and aliases
# ---------------------------------------------------------------------------

def test_full_model_string_passes_through():
    assert resolve_model_alias("openai:gpt-4") == "openai:gpt-4"

def test_alias_resolves_from_environment(monkeypatch):
    monkeypatch.setenv("GEN_MODEL_SMALL", "openrouter:anthropic/claude-3.5-haiku")
    assert resolve_model_alias("small") == "openrouter:anthropic/claude-3.5-haiku"
    assert parse_model_string("small") == ("openrouter", "anthropic/claude-3.5-haiku")

def test_unknown_alias_is_a_configuration_error(monkeypatch):
    monkeypatch.delenv("GEN_MODEL_MISSING", raising=False)
    with pytest.raises(ConfigurationError, match="GEN_MODEL_MISSING"):
        resolve_model_alias("missing")

@pytest.mark.parametrize("model", [":gpt-4", "openai:"])
def test_malformed_model_string(model):
    with pytest.raises(ConfigurationError, match="Malformed"):
        parse_model_string(model)

def test_model_id_may_contain_colons():
    assert parse_model_string("ollama:llama3:8b") == ("ollama", "llama3:8b")

# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------

def test_custom_openai_compatible_provider(monkeypatch):
    monkeypatch.setenv("ZAI_API_KEY", "secret")
    monkeypatch.setenv("ZAI_API_BASE", "https://api.z.ai/v1")
    monkeypatch.setenv("ZAI_API_TYPE", "openai")

    client = create_client("zai")

    assert str(client.base_url).startswith("https://api.z.ai/v1")
    assert client.api_key == "secret"

def test_openrouter_uses_its_base_url(monkeypatch):
    monkeypatch.delenv("OPENROUTER_API_BASE", raising=False)
    monkeypatch.setenv("OPENROUTER_API_KEY", "key")

    client = create_client("openrouter")

    assert "openrouter.ai" in str(client.base_url)

def test_unknown_provider_is_a_configuration_error(monkeypatch):
    monkeypatch.delenv("MYSTERY_API_KEY", raising=False)
    with pytest.raises(ConfigurationError, match="MYSTERY_API_KEY"):
        create_client("mystery")

def test_load_model_uses_supplied_client():
    client = MagicMock()
    handle = load_model("openai:gpt-4o-mini", client=client)

    assert handle.client is client
    assert handle.provider == "openai"
    assert handle.model_id == "gpt-4o-mini"
    assert handle.name == "openai:gpt-4o-mini"

def test_model_handle_is_immutable():
    handle = load_model("openai:gpt-4o-mini", client=MagicMock())
    with pytest.raises(ValidationError):
        handle.model_id = "gpt-4"
