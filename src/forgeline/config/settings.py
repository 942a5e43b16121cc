"""Forgeline config models and loading helpers."""

from __future__ import annotations

import json
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from forgeline.files.models import ProjectType


class AutosaveSettings(BaseModel):
    """Editor auto-save debounce configuration."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    quiescence_seconds: float = Field(default=2.0, gt=0)


class GenerationSettings(BaseModel):
    """Generation request defaults and merge policy."""

    model_config = ConfigDict(extra="forbid")

    default_project_type: ProjectType = ProjectType.REACT_APP
    navigate_to_first_file: bool = True


class ChatSettings(BaseModel):
    """Chat log persistence flags."""

    model_config = ConfigDict(extra="forbid")

    persist_messages: bool = True


class ForgelineConfig(BaseModel):
    """Root forgeline configuration model."""

    model_config = ConfigDict(extra="forbid")

    autosave: AutosaveSettings = AutosaveSettings()
    generation: GenerationSettings = GenerationSettings()
    chat: ChatSettings = ChatSettings()


class ConfigError(RuntimeError):
    """Raised when config cannot be decoded or validated."""


def _decode_config_payload(path: Path) -> dict[str, object]:
    """Decode config payload from JSON or YAML.

    Args:
        path: Config file path.

    Returns:
        Parsed mapping payload.

    Raises:
        ConfigError: If decode fails or payload is not an object.
    """
    raw = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid config JSON: {exc}") from exc
    else:
        try:
            payload = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid config YAML: {exc}") from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigError("Invalid config payload: root must be an object")
    return payload


def load_config(path: Path) -> ForgelineConfig:
    """Load forgeline config from disk, defaulting when missing.

    Args:
        path: Config file path.

    Returns:
        Parsed config payload, or defaults when file does not exist.

    Raises:
        ConfigError: If payload decode or validation fails.
    """
    if not path.exists():
        return ForgelineConfig()
    payload = _decode_config_payload(path)
    try:
        return ForgelineConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config payload: {exc}") from exc


def dump_default_config(path: Path, *, overwrite: bool = False) -> bool:
    """Write default config as YAML unless it already exists.

    Args:
        path: Target config path.
        overwrite: Whether to replace an existing file.

    Returns:
        True when the file was written.
    """
    if path.exists() and not overwrite:
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = ForgelineConfig().model_dump(mode="json")
    path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
    return True
