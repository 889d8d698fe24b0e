"""Host-side bridge for Lua version-manager plugins."""

from plugbridge.core.models import EnvKV, Info, Package, Version
from plugbridge.exceptions import (
    BridgeError,
    CallError,
    ContractError,
    EmptyResultError,
    LoadError,
    PluginCallError,
    PluginReleasedError,
    PluginUnusableError,
    ShapeError,
)
from plugbridge.plugin import LuaPlugin

__all__ = [
    "BridgeError",
    "CallError",
    "ContractError",
    "EmptyResultError",
    "EnvKV",
    "Info",
    "LoadError",
    "LuaPlugin",
    "Package",
    "PluginCallError",
    "PluginReleasedError",
    "PluginUnusableError",
    "ShapeError",
    "Version",
]
