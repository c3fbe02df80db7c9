from pathlib import Path

import pytest
from pydantic import ValidationError

from bubblesave.engine.config import (
    ENV_AUTOSAVE_INTERVAL,
    ENV_LOG_DIR,
    ENV_SAVE_DIR,
    SaveSettings,
    default_save_dir,
    load_settings,
)


def test_defaults():
    settings = SaveSettings()
    assert settings.autosave_interval_seconds == 1.5
    assert settings.autosave_only_in_game_context is True
    assert settings.game_context_name == "GameScene"
    assert settings.handle_lifecycle_saves is False
    assert settings.lifecycle_save_cooldown_seconds == 0.25


@pytest.mark.parametrize("interval", [0.0, -3.0, 0.05])
def test_autosave_interval_is_clamped(interval: float):
    assert SaveSettings(autosave_interval_seconds=interval).autosave_interval_seconds == 0.2


def test_negative_cooldown_rejected():
    with pytest.raises(ValidationError):
        SaveSettings(lifecycle_save_cooldown_seconds=-1)


def test_unknown_option_rejected():
    with pytest.raises(ValidationError):
        SaveSettings(cloud_sync=True)


def test_load_settings_from_yaml(tmp_path: Path, monkeypatch):
    monkeypatch.delenv(ENV_SAVE_DIR, raising=False)
    monkeypatch.delenv(ENV_AUTOSAVE_INTERVAL, raising=False)
    path = tmp_path / "settings.yaml"
    path.write_text(
        "save:\n"
        "  autosave_interval_seconds: 3\n"
        "  game_context_name: Field\n"
        "  handle_lifecycle_saves: true\n"
        f"  save_dir: {tmp_path / 'saves'}\n",
        encoding="utf-8",
    )

    settings = load_settings(path)
    assert settings.autosave_interval_seconds == 3.0
    assert settings.game_context_name == "Field"
    assert settings.handle_lifecycle_saves is True
    assert settings.resolved_save_dir() == tmp_path / "saves"


def test_missing_file_gives_defaults(tmp_path: Path, monkeypatch):
    monkeypatch.delenv(ENV_SAVE_DIR, raising=False)
    monkeypatch.delenv(ENV_AUTOSAVE_INTERVAL, raising=False)
    assert load_settings(tmp_path / "nope.yaml") == SaveSettings()


def test_env_overrides(tmp_path: Path, monkeypatch):
    monkeypatch.setenv(ENV_SAVE_DIR, str(tmp_path / "env_saves"))
    monkeypatch.setenv(ENV_AUTOSAVE_INTERVAL, "0.1")

    settings = load_settings()
    assert settings.save_dir == tmp_path / "env_saves"
    assert settings.autosave_interval_seconds == 0.2
    assert default_save_dir() == tmp_path / "env_saves"


def test_log_file_defaults_under_log_dir(tmp_path: Path, monkeypatch):
    monkeypatch.setenv(ENV_LOG_DIR, str(tmp_path / "logs"))
    assert SaveSettings().resolved_log_file() == tmp_path / "logs" / "bubblesave.log"
