# providers.py
# Model-string resolution and provider client construction.
#
# A model is named "<provider>:<modelId>". A bare alias is looked up in the
# environment as GEN_MODEL_<ALIAS>. Every provider is reached through an
# OpenAI-compatible chat completions endpoint.

import os
from typing import Any

from openai import OpenAI, OpenAIError
from pydantic import BaseModel, ConfigDict

from genagent import config
from genagent.errors import ConfigurationError


class ModelHandle(BaseModel):
    """A resolved model: which provider, which model id, and a client for it."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    provider: str
    model_id: str
    # OpenAI or any client exposing chat.completions.create.
    client: Any

    @property
    def name(self) -> str:
        return f"{self.provider}:{self.model_id}"


def resolve_model_alias(model: str) -> str:
    if ":" in model:
        return model

    env_key = f"{config.MODEL_ALIAS_PREFIX}{model.upper()}"
    resolved = os.getenv(env_key)
    if not resolved:
        raise ConfigurationError(
            f'Model alias "{model}" not found. '
            f'Please define {env_key} in your .env file with format "provider:modelId" '
            f"(e.g., {env_key}=openai:gpt-4)"
        )
    return resolved


def parse_model_string(model: str) -> tuple[str, str]:
    resolved = resolve_model_alias(model)
    provider, _, model_id = resolved.partition(":")
    if not provider or not model_id:
        raise ConfigurationError(
            f'Malformed model string "{resolved}". Expected "provider:modelId".'
        )
    return provider, model_id


def _custom_provider_client(provider: str) -> OpenAI | None:
    prefix = provider.upper()
    api_key = os.getenv(f"{prefix}_API_KEY")
    base_url = os.getenv(f"{prefix}_API_BASE")
    api_type = os.getenv(f"{prefix}_API_TYPE")
    if api_key and base_url and api_type == "openai":
        return OpenAI(api_key=api_key, base_url=base_url)
    return None


def create_client(provider: str) -> OpenAI:
    client = _custom_provider_client(provider)
    if client is not None:
        return client

    try:
        if provider == "openai":
            return OpenAI(api_key=os.getenv("OPENAI_API_KEY"))
        if provider == "openrouter":
            return OpenAI(base_url=config.OPENROUTER_BASE_URL, api_key=os.getenv("OPENROUTER_API_KEY"))
    except OpenAIError as exc:
        raise ConfigurationError(f'Could not create a client for provider "{provider}": {exc}') from exc

    prefix = provider.upper()
    raise ConfigurationError(
        f'Unknown model provider "{provider}". Configure an OpenAI-compatible endpoint with '
        f"{prefix}_API_KEY, {prefix}_API_BASE and {prefix}_API_TYPE=openai."
    )


def load_model(model: str, client: OpenAI | None = None) -> ModelHandle:
    """
    Resolve `model` to a ModelHandle. Raises ConfigurationError immediately on
    an unknown alias, a malformed string or an unusable provider.

    Passing `client` skips client construction (tests, shared clients).
    """
    provider, model_id = parse_model_string(model)
    return ModelHandle(provider=provider, model_id=model_id, client=client or create_client(provider))
