import logging
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from patchkit.engine.models import V4ASearchMode

logger = logging.getLogger(__name__)

ENV_PREFIX = "PATCHKIT_"


def _env_truthy(name: str) -> bool:
    return os.getenv(name, "").lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, value)
        return default


class EngineSettings(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
    )

    v4a_search_mode: V4ASearchMode = V4ASearchMode.RESTART
    log_level: str = "WARNING"
    events_file: Path | None = None
    allow_symlinks: bool = False
    preview_max_chars: int = Field(default=20000, ge=0)

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {v}")
        return level

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """
        Build settings from PATCHKIT_* environment variables.

        - PATCHKIT_V4A_SEARCH_MODE: restart | continue
        - PATCHKIT_LOG_LEVEL: logging level name
        - PATCHKIT_EVENTS_FILE: JSONL event log path
        - PATCHKIT_ALLOW_SYMLINKS: truthy to allow symlinked targets
        - PATCHKIT_PREVIEW_MAX_CHARS: preview truncation, 0 disables
        """

        values: dict = {
            "allow_symlinks": _env_truthy(f"{ENV_PREFIX}ALLOW_SYMLINKS"),
            "preview_max_chars": _env_int(f"{ENV_PREFIX}PREVIEW_MAX_CHARS", 20000),
        }

        search_mode = os.getenv(f"{ENV_PREFIX}V4A_SEARCH_MODE")
        if search_mode:
            values["v4a_search_mode"] = search_mode.strip().lower()

        log_level = os.getenv(f"{ENV_PREFIX}LOG_LEVEL")
        if log_level:
            values["log_level"] = log_level.strip()

        events_file = os.getenv(f"{ENV_PREFIX}EVENTS_FILE")
        if events_file:
            values["events_file"] = Path(events_file)

        return cls(**values)
