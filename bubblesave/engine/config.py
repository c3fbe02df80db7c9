from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from platformdirs import PlatformDirs
from pydantic import BaseModel, ConfigDict, Field, field_validator

APP_NAME = "bubblesave"

MIN_AUTOSAVE_INTERVAL = 0.2

# Environment overrides
ENV_SAVE_DIR = "BUBBLESAVE_SAVE_DIR"
ENV_LOG_DIR = "BUBBLESAVE_LOG_DIR"
ENV_AUTOSAVE_INTERVAL = "BUBBLESAVE_AUTOSAVE_INTERVAL"


class SaveSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    autosave_interval_seconds: float = 1.5
    autosave_only_in_game_context: bool = True
    game_context_name: str = "GameScene"
    handle_lifecycle_saves: bool = False
    lifecycle_save_cooldown_seconds: float = Field(default=0.25, ge=0.0)
    save_dir: Path | None = None
    log_file: Path | None = None

    @field_validator("autosave_interval_seconds")
    @classmethod
    def clamp_interval(cls, value: float) -> float:
        return max(MIN_AUTOSAVE_INTERVAL, value)

    def resolved_save_dir(self) -> Path:
        return self.save_dir or default_save_dir()

    def resolved_log_file(self) -> Path:
        return self.log_file or default_log_dir() / f"{APP_NAME}.log"


def _dir_with_override(env_var: str, default: str | Path) -> Path:
    override = os.getenv(env_var)
    if override:
        return Path(override).expanduser()
    return Path(default)


def default_save_dir() -> Path:
    dirs = PlatformDirs(appname=APP_NAME, appauthor=False)
    return _dir_with_override(ENV_SAVE_DIR, Path(dirs.user_data_dir) / "saves")


def default_log_dir() -> Path:
    dirs = PlatformDirs(appname=APP_NAME, appauthor=False)
    return _dir_with_override(ENV_LOG_DIR, dirs.user_log_dir)


def load_settings(path: Path | None = None) -> SaveSettings:
    data: dict[str, Any] = {}
    if path is not None and path.exists():
        with path.open("r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Settings file must contain a mapping: {path}")
        data.update(loaded.get("save", loaded))

    save_dir = os.getenv(ENV_SAVE_DIR)
    if save_dir:
        data["save_dir"] = Path(save_dir).expanduser()
    interval = os.getenv(ENV_AUTOSAVE_INTERVAL)
    if interval:
        data["autosave_interval_seconds"] = float(interval)

    return SaveSettings.model_validate(data)
