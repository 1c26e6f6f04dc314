from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from app.config import AppSettings, EditorSettings, load_settings


def test_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    settings = load_settings()

    assert settings.editor.grid_size == 10.0
    assert settings.editor.zoom_step == 0.1
    assert (settings.editor.min_scale, settings.editor.max_scale) == (0.2, 3.0)
    assert settings.editor.fit_padding == 50.0
    assert settings.editor.route_tolerance == 10.0
    assert settings.storage.workspace_path == Path("data/workspace.json")


def test_yaml_file_and_env_override(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config = tmp_path / "app.yaml"
    config.write_text(
        "editor:\n  grid_size: 20\n  fit_padding: 80\nweb:\n  title: From YAML\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("PCV_CONFIG_PATH", str(config))
    monkeypatch.setenv("PCV_EDITOR__GRID_SIZE", "5")

    settings = load_settings()

    assert settings.editor.grid_size == 5.0
    assert settings.editor.fit_padding == 80.0
    assert settings.web.title == "From YAML"


def test_cors_origins_from_comma_separated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PCV_WEB__CORS_ORIGINS", "http://a.test, http://b.test")
    settings = AppSettings()
    assert settings.web.cors_origins == ["http://a.test", "http://b.test"]


def test_missing_config_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "missing.yaml")


def test_scale_range_is_validated() -> None:
    with pytest.raises(ValidationError):
        EditorSettings(min_scale=2.0, max_scale=1.0)


def test_scale_bounds_stay_inside_viewport_range() -> None:
    with pytest.raises(ValidationError):
        EditorSettings(max_scale=5.0)
    assert EditorSettings(min_scale=0.5, max_scale=2.0).viewport_size.width == 1200.0
