from __future__ import annotations

import os
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from app.config import AppSettings, EditorSettings, StorageSettings, WebSettings


def _clear_pcv_env() -> None:
    for key in list(os.environ):
        if key.startswith("PCV_"):
            os.environ.pop(key, None)


_clear_pcv_env()


@pytest.fixture(autouse=True)
def clear_pcv_env() -> Generator[None, None, None]:
    _clear_pcv_env()
    yield
    _clear_pcv_env()


@pytest.fixture
def storage_settings(tmp_path: Path) -> StorageSettings:
    return StorageSettings(
        workspace_path=tmp_path / "workspace.json",
        bpmn_out_dir=tmp_path / "bpmn_out",
        bpmn_in_dir=tmp_path / "bpmn_in",
    )


@pytest.fixture
def app_settings(storage_settings: StorageSettings) -> AppSettings:
    return AppSettings(
        editor=EditorSettings(),
        storage=storage_settings,
        web=WebSettings(title="Test Canvas"),
    )


@pytest.fixture
def app_settings_factory(
    storage_settings: StorageSettings,
) -> Callable[..., AppSettings]:
    def _factory(**editor_overrides: object) -> AppSettings:
        return AppSettings(
            editor=EditorSettings.model_validate(editor_overrides),
            storage=storage_settings,
        )

    return _factory
