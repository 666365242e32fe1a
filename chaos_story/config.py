"""Runtime settings, read from the environment (and a .env file if present)."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from chaos_story.leaderboard import DEFAULT_LEADERBOARD_SIZE
from chaos_story.llm import ProviderFormat
from chaos_story.scenes import (
    DEFAULT_ENDING_PROBABILITY,
    DEFAULT_ENDING_THRESHOLD,
    DEFAULT_TIMEOUT,
)

ROOT = Path(__file__).parent.parent
DEFAULT_DATA_DIR = ROOT / "data"

# env var → Settings field
_ENV_FIELDS = {
    "DATA_DIR": "data_dir",
    "LLM_PROVIDER_URL": "llm_provider_url",
    "LLM_API_KEY": "llm_api_key",
    "LLM_FORMAT": "llm_format",
    "LLM_MODEL": "llm_model",
    "GENERATOR_TIMEOUT": "generator_timeout",
    "ENDING_THRESHOLD": "ending_threshold",
    "ENDING_PROBABILITY": "ending_probability",
    "ENDING_SEED": "ending_seed",
    "LEADERBOARD_SIZE": "leaderboard_size",
}


class Settings(BaseModel):
    data_dir: Path = DEFAULT_DATA_DIR
    llm_provider_url: str = ""  # empty: gemini default endpoint when a key is set
    llm_api_key: str = ""
    llm_format: ProviderFormat = "gemini"
    llm_model: str = ""
    generator_timeout: float = Field(DEFAULT_TIMEOUT, gt=0)
    ending_threshold: int = Field(DEFAULT_ENDING_THRESHOLD, ge=0)
    ending_probability: float = Field(DEFAULT_ENDING_PROBABILITY, ge=0, le=1)
    ending_seed: int | None = None
    leaderboard_size: int = Field(DEFAULT_LEADERBOARD_SIZE, ge=1)


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from `env` (default: os.environ after loading .env).

    Empty variables count as unset. Bad values raise pydantic.ValidationError.
    """
    if env is None:
        load_dotenv(ROOT / ".env")
        env = os.environ
    fields = {
        field: env[var]
        for var, field in _ENV_FIELDS.items()
        if env.get(var, "") != ""
    }
    return Settings.model_validate(fields)
