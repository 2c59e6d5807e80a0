"""Shared configuration loaded from environment / ``.env``, plus the
persisted application state (API credentials and the ``configured`` flag).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # LLM
    openai_api_key: str = Field(default="", description="OpenAI API key")
    llm_model_name: str = Field(default="gpt-4o-mini", description="Chat model used for QA generation")
    llm_base_url: str = Field(
        default="",
        description=(
            "Base URL for an OpenAI-compatible completion API. "
            "Leave empty to use OpenAI cloud."
        ),
    )

    # Embedding
    embedding_provider: str = Field(default="openai", description="'openai' or 'huggingface'")
    embedding_model: str = "text-embedding-3-small"
    embedding_dimension: int = 1536
    embedding_max_input_chars: int = 8000

    # Vector store
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_collection: str = "documents"

    # Chunking / pacing
    chunk_size: int = 1000
    chunk_overlap: int = 200
    batch_size: int = 2
    batch_delay_seconds: float = 1.0
    item_delay_seconds: float = 0.5
    qa_pairs_per_chunk: int = 3

    # Runtime
    state_file: str = ".knowledge_ingest/state.json"
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton — import `settings` wherever needed.
settings = Settings()


def configure_logging(level: str | None = None) -> None:
    """Install a basic console handler at ``settings.log_level``."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Application state
# ---------------------------------------------------------------------------


class ApiConfig(BaseModel):
    """Credentials and endpoints for the external collaborators."""

    openai_api_key: str = ""
    chroma_host: str = ""
    chroma_port: int = 8000
    chroma_collection: str = ""

    def missing_keys(self) -> list[str]:
        """Return the names of required fields that are still empty."""
        required = ("openai_api_key", "chroma_host", "chroma_collection")
        return [name for name in required if not getattr(self, name)]

    def masked(self) -> dict[str, object]:
        """Dump for display, with the API key reduced to its last 4 chars."""
        data = self.model_dump()
        key = data["openai_api_key"]
        data["openai_api_key"] = f"...{key[-4:]}" if key else ""
        return data


class AppState(BaseModel):
    """Process-wide state: whether the app has been configured, and with what."""

    configured: bool = False
    api: ApiConfig = Field(default_factory=ApiConfig)


def _state_path(path: str | Path | None) -> Path:
    return Path(path) if path is not None else Path(settings.state_file)


def load_state(path: str | Path | None = None) -> AppState:
    """Load the persisted :class:`AppState`.

    A missing or unreadable file yields the default, unconfigured state.
    A state flagged ``configured`` but lacking a required key is
    downgraded to unconfigured.
    """
    state_path = _state_path(path)
    if not state_path.exists():
        return AppState()

    try:
        state = AppState.model_validate(json.loads(state_path.read_text(encoding="utf-8")))
    except (OSError, json.JSONDecodeError, ValidationError):
        logger.error("Could not load application state from %s", state_path, exc_info=True)
        return AppState()

    missing = state.api.missing_keys()
    if state.configured and missing:
        logger.warning("State marked as configured but missing keys: %s", ", ".join(missing))
        state.configured = False
    return state


def save_state(state: AppState, path: str | Path | None = None) -> None:
    """Persist *state* as JSON, creating parent directories as needed."""
    state_path = _state_path(path)
    state_path.parent.mkdir(parents=True, exist_ok=True)
    state_path.write_text(state.model_dump_json(indent=2), encoding="utf-8")


def save_api_config(api: ApiConfig, path: str | Path | None = None) -> AppState:
    """Store *api* in the persisted state and mark the app as configured."""
    state = load_state(path)
    state = state.model_copy(update={"configured": True, "api": api})
    save_state(state, path)
    return state


def clear_state(path: str | Path | None = None) -> None:
    """Reset the persisted state to its unconfigured default."""
    save_state(AppState(), path)
