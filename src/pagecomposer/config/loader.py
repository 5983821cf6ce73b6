"""Configuration loading for Pagecomposer."""

from __future__ import annotations

import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from pagecomposer.blocks.preferences import AUTO

DEFAULT_CONFIG_PATH = Path("config/default.yaml")
LOCAL_CONFIG_PATH = Path("config/local.yaml")
PACKAGED_CONFIG = ("pagecomposer.config", "default.yaml")


class LoggingSettings(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra="forbid")

    path: Path | None = None
    level: str = Field(default="info")

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        if not isinstance(value, str):
            raise TypeError("Logging level must be a string.")
        normalized = value.strip().lower()
        if normalized not in {"debug", "info", "warn", "warning", "error", "critical"}:
            raise ValueError(f"Unsupported logging level: {value!r}")
        return normalized


class DiscoverySettings(BaseModel):
    """Where the plugin registry and block catalog come from."""

    model_config = ConfigDict(extra="forbid")

    mode: Literal["static", "file", "rest"] = "static"
    snapshot_path: Path | None = None
    base_url: str | None = None
    timeout_seconds: float = Field(default=10.0, ge=0.1)
    cache_ttl_seconds: float = Field(default=3600.0, gt=0.0)
    max_retries: int = Field(default=3, ge=0)
    backoff_min_seconds: float = Field(default=1.0, ge=0.0)
    backoff_max_seconds: float = Field(default=30.0, ge=0.0)
    active_plugins: list[str] = Field(default_factory=lambda: ["core"])
    username: str | None = None
    application_password: str | None = Field(default=None, repr=False)

    @field_validator("base_url", mode="before")
    @classmethod
    def _normalize_base_url(cls, value: Any) -> str | None:
        if value is None:
            return None
        if not isinstance(value, str):
            raise TypeError("base_url must be a string.")
        cleaned = value.strip().rstrip("/")
        if cleaned and not cleaned.startswith(("http://", "https://")):
            raise ValueError(f"base_url must start with http:// or https://: {value!r}")
        return cleaned or None

    @field_validator("active_plugins", mode="before")
    @classmethod
    def _normalize_plugins(cls, value: Any) -> list[str]:
        if value is None:
            return ["core"]
        if not isinstance(value, list):
            raise TypeError("active_plugins must be a list of plugin keys.")
        cleaned = [str(item).strip() for item in value if str(item).strip()]
        return list(dict.fromkeys(cleaned))

    @model_validator(mode="after")
    def _validate_mode(self) -> DiscoverySettings:
        if self.mode == "file" and self.snapshot_path is None:
            raise ValueError("discovery.snapshot_path is required when mode is 'file'.")
        if self.mode == "rest" and not self.base_url:
            raise ValueError("discovery.base_url is required when mode is 'rest'.")
        if self.backoff_max_seconds < self.backoff_min_seconds:
            raise ValueError("backoff_max_seconds must be >= backoff_min_seconds.")
        return self


class PreferenceSettings(BaseModel):
    """Site-wide block preferences."""

    model_config = ConfigDict(extra="forbid")

    section_mappings: dict[str, str] = Field(default_factory=dict)
    plugin_priorities: dict[str, int] = Field(default_factory=dict)

    @field_validator("section_mappings", mode="before")
    @classmethod
    def _normalize_mappings(cls, value: Any) -> dict[str, str]:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise TypeError("section_mappings must be a mapping of content type -> plugin key.")
        return {str(key).strip(): str(item or AUTO).strip() for key, item in value.items()}

    @field_validator("plugin_priorities")
    @classmethod
    def _check_priorities(cls, value: dict[str, int]) -> dict[str, int]:
        for key, priority in value.items():
            if not 0 <= priority <= 10:
                raise ValueError(f"Priority for {key!r} must be between 0 and 10.")
        return value


class AssemblySettings(BaseModel):
    """Defaults for each assembly call."""

    model_config = ConfigDict(extra="forbid")

    optimize_images: bool = True
    validate_html: bool = True
    include_recommendations: bool = True
    max_internal_links: int = Field(default=10, ge=0)
    max_text_length: int = Field(default=5000, ge=1)
    parallel: bool = False
    site_url: str | None = None


class OutputSettings(BaseModel):
    """Output directory configuration."""

    model_config = ConfigDict(extra="forbid")

    base_path: Path = Path("data")
    runs_subdir: str = "runs"
    report_name: str = "STATUS.md"


class ConfigModel(BaseModel):
    """Root configuration model."""

    model_config = ConfigDict(extra="forbid")

    version: int = 1
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    discovery: DiscoverySettings = Field(default_factory=DiscoverySettings)
    preferences: PreferenceSettings = Field(default_factory=PreferenceSettings)
    assembly: AssemblySettings = Field(default_factory=AssemblySettings)
    outputs: OutputSettings = Field(default_factory=OutputSettings)


@dataclass(slots=True)
class Config:
    """Validated configuration with convenience helpers."""

    model: ConfigModel
    raw: Mapping[str, Any] = field(repr=False)
    loaded_from: tuple[str, ...] = field(default_factory=tuple, repr=False)

    @property
    def logging(self) -> LoggingSettings:
        return self.model.logging

    @property
    def discovery(self) -> DiscoverySettings:
        return self.model.discovery

    @property
    def preferences(self) -> PreferenceSettings:
        return self.model.preferences

    @property
    def assembly(self) -> AssemblySettings:
        return self.model.assembly

    @property
    def outputs(self) -> OutputSettings:
        return self.model.outputs

    @property
    def runs_dir(self) -> Path:
        """Directory holding one JSON record per assembly run."""

        return self.outputs.base_path / self.outputs.runs_subdir

    @property
    def report_path(self) -> Path:
        return self.outputs.base_path / self.outputs.report_name

    def model_dump(self) -> Mapping[str, Any]:
        """Expose the parsed configuration as a mapping."""

        return self.model.model_dump()


def load_config(path: Path | None = None) -> Config:
    """Load configuration from defaults/local overrides, or from an explicit config document."""

    merged: dict[str, Any] = {}
    loaded_from: list[str] = []

    if path is not None:
        override_path = _resolve_path(path)
        if override_path is None or not override_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        merged = _merge_dicts(merged, _read_yaml(override_path))
        loaded_from.append(str(override_path))
    else:
        default_candidate = _resolve_path(DEFAULT_CONFIG_PATH)
        packaged_default = _resolve_packaged_path(DEFAULT_CONFIG_PATH)
        if default_candidate and default_candidate.exists():
            merged = _merge_dicts(merged, _read_yaml(default_candidate))
            loaded_from.append(str(default_candidate))
        elif packaged_default and packaged_default.exists():
            merged = _merge_dicts(merged, _read_yaml(packaged_default))
            loaded_from.append(str(packaged_default))
        else:
            packaged_payload = _read_packaged_yaml(*PACKAGED_CONFIG)
            if packaged_payload is not None:
                merged = _merge_dicts(merged, packaged_payload)
                loaded_from.append(":".join(PACKAGED_CONFIG))

        local_candidate = _resolve_path(LOCAL_CONFIG_PATH)
        if local_candidate and local_candidate.exists():
            merged = _merge_dicts(merged, _read_yaml(local_candidate))
            loaded_from.append(str(local_candidate))

    if not merged:
        raise FileNotFoundError("No configuration data could be loaded.")

    try:
        model = ConfigModel.model_validate(merged)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc

    return Config(model=model, raw=merged, loaded_from=tuple(loaded_from))


def _resolve_path(path: Path) -> Path | None:
    """Resolve configuration paths relative to the current working directory."""

    if path is None:
        return None
    return path if path.is_absolute() else Path.cwd() / path


def _resolve_packaged_path(path: Path) -> Path | None:
    """Resolve paths embedded in frozen binaries (e.g., PyInstaller)."""

    base = getattr(sys, "_MEIPASS", None)
    if not base:
        return None
    return Path(base) / path


def _read_yaml(path: Path) -> dict[str, Any]:
    content = path.read_text(encoding="utf-8")
    data = yaml.safe_load(content) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must define a mapping at the top level.")
    return data


def _read_packaged_yaml(package: str, name: str) -> dict[str, Any] | None:
    """Read YAML embedded in a Python package via importlib.resources."""

    try:
        content = resources.files(package).joinpath(name).read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    data = yaml.safe_load(content) or {}
    if not isinstance(data, dict):
        raise ValueError(
            f"Packaged configuration {package}:{name} must define a mapping at the top level."
        )
    return data


def _merge_dicts(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge two dictionaries, with override values taking precedence."""

    result: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dicts(result[key], value)
        else:
            result[key] = value
    return result
