# config.py
# Run-wide settings. Values come from the environment, optionally seeded
# from a local .env file.

import os

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return float(raw)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


# Additional generation attempts after a schema-validation failure.
MAX_VALIDATION_RETRIES = 3

# Model steps allowed inside one attempt while the model keeps calling tools.
MAX_TOOL_STEPS = 10

MODEL_ALIAS_PREFIX = "GEN_MODEL_"

DEFAULT_AGENT_MODEL = os.getenv("GEN_MODEL_AGENT_DEFAULT", "openai:gpt-4o-mini")

DEFAULT_TEMPERATURE = _env_float("GENAGENT_TEMPERATURE")

QUIET = _env_flag("GENAGENT_QUIET")

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
