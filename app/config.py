from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated, ClassVar

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, YamlConfigSettingsSource

from domain.geometry import (
    DEFAULT_FIT_PADDING,
    DEFAULT_GRID_SIZE,
    MAX_SCALE,
    MIN_SCALE,
    ZOOM_STEP,
)
from domain.models import Size
from domain.services.routing import DEFAULT_ALIGN_TOLERANCE

DEFAULT_CONFIG_PATH = Path("config/app.yaml")


class EditorSettings(BaseModel):
    grid_size: float = Field(default=DEFAULT_GRID_SIZE, ge=0)
    zoom_step: float = Field(default=ZOOM_STEP, gt=0)
    min_scale: float = Field(default=MIN_SCALE, ge=MIN_SCALE, le=MAX_SCALE)
    max_scale: float = Field(default=MAX_SCALE, ge=MIN_SCALE, le=MAX_SCALE)
    fit_padding: float = Field(default=DEFAULT_FIT_PADDING, ge=0)
    route_tolerance: float = Field(default=DEFAULT_ALIGN_TOLERANCE, ge=0)
    viewport_width: float = Field(default=1200.0, gt=0)
    viewport_height: float = Field(default=800.0, gt=0)

    @model_validator(mode="after")
    def ensure_scale_range(self) -> EditorSettings:
        if self.min_scale > self.max_scale:
            msg = f"editor.min_scale ({self.min_scale}) exceeds max_scale ({self.max_scale})"
            raise ValueError(msg)
        return self

    @property
    def viewport_size(self) -> Size:
        return Size(self.viewport_width, self.viewport_height)


class StorageSettings(BaseModel):
    workspace_path: Path = Path("data/workspace.json")
    bpmn_out_dir: Path = Path("data/bpmn_out")
    bpmn_in_dir: Path = Path("data/bpmn_in")


class WebSettings(BaseModel):
    title: str = "Process Canvas"
    cors_origins: Annotated[list[str], NoDecode] = Field(default_factory=list)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def normalize_origins(cls, value: object) -> list[str]:
        if value is None or value == "":
            return []
        if isinstance(value, str):
            return [token.strip() for token in value.split(",") if token.strip()]
        if isinstance(value, list):
            return [str(item).strip() for item in value if str(item).strip()]
        msg = "web.cors_origins must be a list or a comma separated string"
        raise ValueError(msg)


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PCV_", env_nested_delimiter="__")

    editor: EditorSettings = EditorSettings()
    storage: StorageSettings = StorageSettings()
    web: WebSettings = WebSettings()

    _yaml_path: ClassVar[Path | None] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: list[PydanticBaseSettingsSource] = [
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        ]
        if cls._yaml_path:
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=cls._yaml_path))
        return tuple(sources)


def load_settings(config_path: Path | None = None) -> AppSettings:
    env_path = os.getenv("PCV_CONFIG_PATH")
    resolved_path: Path | None = None

    if config_path is not None:
        resolved_path = config_path
    elif env_path:
        resolved_path = Path(env_path)
    elif DEFAULT_CONFIG_PATH.exists():
        resolved_path = DEFAULT_CONFIG_PATH

    previous = AppSettings._yaml_path
    try:
        if resolved_path is not None:
            if not resolved_path.exists():
                msg = f"Config file not found: {resolved_path}"
                raise FileNotFoundError(msg)
            AppSettings._yaml_path = resolved_path
        return AppSettings()
    finally:
        AppSettings._yaml_path = previous
