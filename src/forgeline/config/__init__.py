"""Forgeline configuration loading."""

from forgeline.config.settings import (
    AutosaveSettings,
    ChatSettings,
    ConfigError,
    ForgelineConfig,
    GenerationSettings,
    dump_default_config,
    load_config,
)

__all__ = [
    "AutosaveSettings",
    "ChatSettings",
    "ConfigError",
    "ForgelineConfig",
    "GenerationSettings",
    "dump_default_config",
    "load_config",
]
