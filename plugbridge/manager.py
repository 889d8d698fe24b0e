"""Plugin manager: loads Lua plugins from directories and owns them."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from plugbridge.exceptions import BridgeError
from plugbridge.plugin import LuaPlugin
from plugbridge.runtime.environment import OutputWriter

logger = structlog.get_logger()


@dataclass(frozen=True)
class PluginLoadResult:
    plugins: list[LuaPlugin] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class PluginManager:
    def __init__(
        self,
        os_type: str,
        arch_type: str,
        *,
        modules: Mapping[str, str] | None = None,
        output: OutputWriter | None = None,
    ) -> None:
        self._os_type = os_type
        self._arch_type = arch_type
        self._modules = dict(modules or {})
        self._output = output
        self._plugins: dict[str, LuaPlugin] = {}

    def register(self, plugin: LuaPlugin) -> None:
        name = plugin.name
        if not name:
            raise BridgeError("Plugin has no name")
        if name in self._plugins:
            raise BridgeError(f"Plugin already registered: {name}")
        self._plugins[name] = plugin
        logger.info("plugin_registered", name=name, version=plugin.version)

    def get(self, name: str) -> LuaPlugin | None:
        return self._plugins.get(name)

    @property
    def plugins(self) -> list[LuaPlugin]:
        return list(self._plugins.values())

    def load_file(self, path: Path) -> LuaPlugin:
        plugin = LuaPlugin.from_file(
            path,
            self._os_type,
            self._arch_type,
            modules=self._modules,
            output=self._output,
        )
        try:
            self.register(plugin)
        except BridgeError:
            plugin.release()
            raise
        return plugin

    def load_dirs(self, plugin_dirs: Sequence[Path]) -> PluginLoadResult:
        """Load every ``*.lua`` file; failures are collected, not raised.

        Files starting with ``_`` are skipped. Directories are scanned in the
        given order with duplicates removed.
        """
        result = PluginLoadResult()
        seen: set[Path] = set()
        for d in plugin_dirs:
            d = d.expanduser()
            if d in seen:
                continue
            seen.add(d)
            if not d.is_dir():
                result.errors.append(f"Plugins dir does not exist: {d}")
                continue
            for lua_file in sorted(d.glob("*.lua")):
                if lua_file.name.startswith("_"):
                    continue
                try:
                    result.plugins.append(self.load_file(lua_file))
                except (BridgeError, OSError, UnicodeDecodeError) as e:
                    logger.error("plugin_load_failed", path=str(lua_file), error=str(e))
                    result.errors.append(f"Failed to load plugin {lua_file}: {e}")
        logger.info(
            "plugins_loaded", count=len(result.plugins), failures=len(result.errors)
        )
        return result

    def close_all(self) -> None:
        for plugin in reversed(list(self._plugins.values())):
            if not plugin.released:
                plugin.release()
        self._plugins.clear()
