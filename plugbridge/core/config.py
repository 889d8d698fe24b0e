"""Unified configuration via pydantic-settings."""

import json
from pathlib import Path
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from plugbridge.core.platform import (
    current_arch_type,
    current_os_type,
    normalize_arch_type,
    normalize_os_type,
)


def default_plugin_dir() -> Path:
    return Path.home() / ".version-fox" / "plugins"


class BridgeConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PLUGBRIDGE_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Plugin discovery
    # NoDecode: env values reach parse_plugin_dirs as raw CSV or JSON text
    plugin_dirs: Annotated[list[Path], NoDecode] = [default_plugin_dir()]

    # Values bound to OS_TYPE / ARCH_TYPE inside every plugin
    os_type: str = current_os_type()
    arch_type: str = current_arch_type()

    # Logging
    log_level: str = "INFO"
    log_dir: Path | None = None
    log_max_bytes: int = 10_485_760
    log_backup_count: int = 5

    @field_validator("plugin_dirs", mode="before")
    @classmethod
    def parse_plugin_dirs(cls, v: list[Path] | str | Path) -> list[Path]:
        if isinstance(v, Path):
            return [v]
        if isinstance(v, str):
            if v.lstrip().startswith("["):
                return [Path(p) for p in json.loads(v)]
            return [Path(p.strip()) for p in v.split(",") if p.strip()]
        return v

    @field_validator("plugin_dirs")
    @classmethod
    def expand_plugin_dirs(cls, v: list[Path]) -> list[Path]:
        return [p.expanduser() for p in v]

    @field_validator("os_type")
    @classmethod
    def normalize_os(cls, v: str) -> str:
        v = normalize_os_type(v)
        if not v:
            raise ValueError("os_type must not be empty")
        return v

    @field_validator("arch_type")
    @classmethod
    def normalize_arch(cls, v: str) -> str:
        v = normalize_arch_type(v)
        if not v:
            raise ValueError("arch_type must not be empty")
        return v

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper()
