"""Lua-backed plugin: loading, domain operations and release."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from lupa import LuaError

from plugbridge.core.models import EnvKV, Info, Package
from plugbridge.exceptions import LoadError, PluginReleasedError, ShapeError
from plugbridge.runtime import codec
from plugbridge.runtime.bridge import CallBridge
from plugbridge.runtime.capabilities import Capability, validate_capabilities
from plugbridge.runtime.environment import GuestEnvironment, OutputWriter

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = structlog.get_logger()

PLUGIN_OBJECT_KEY = "PLUGIN"
OS_TYPE_KEY = "OS_TYPE"
ARCH_TYPE_KEY = "ARCH_TYPE"

_METADATA_FIELDS = {
    "name": "name",
    "version": "version",
    "author": "author",
    "updateUrl": "update_url",
}


class LuaPlugin:
    """A plugin instance exclusively owning one Lua runtime.

    Calls into a single instance must be serialized by the caller; separate
    instances share no state. ``release()`` must be called exactly once: a
    second release, or any operation after it, raises PluginReleasedError.
    """

    def __init__(
        self, env: GuestEnvironment, plugin_obj: Any, functions: dict[Capability, Any]
    ) -> None:
        self._env: GuestEnvironment | None = env
        self._bridge = CallBridge(plugin_obj, functions)
        self.name = ""
        self.author = ""
        self.version = ""
        self.update_url = ""

    @classmethod
    def load(
        cls,
        source: str,
        os_type: str,
        arch_type: str,
        *,
        modules: Mapping[str, str] | None = None,
        output: OutputWriter | None = None,
        default_name: str = "",
    ) -> LuaPlugin:
        env = GuestEnvironment(output=output)
        try:
            if modules:
                try:
                    env.preload(modules)
                except LuaError as e:
                    raise LoadError(f"preloaded module cannot be compiled: {e}") from e
            env.bind_constants({OS_TYPE_KEY: os_type, ARCH_TYPE_KEY: arch_type})

            try:
                env.execute(source)
            except LuaError as e:
                logger.warning("plugin_source_failed", error=str(e))
                raise LoadError("content cannot be executed") from e

            plugin_obj = env.get_global(PLUGIN_OBJECT_KEY)
            if not codec.is_table(plugin_obj):
                raise LoadError("plugin object not found")

            try:
                plugin_fields = codec.raw_fields(plugin_obj, PLUGIN_OBJECT_KEY)
                plugin = cls(env, plugin_obj, validate_capabilities(plugin_fields))
                plugin._read_metadata(env, plugin_fields)
            except (LuaError, ShapeError) as e:
                logger.warning("plugin_object_unreadable", error=str(e))
                raise LoadError(f"plugin object cannot be read: {e}") from e
            if not plugin.name:
                plugin.name = default_name
        except Exception:
            env.close()
            raise

        logger.info(
            "plugin_loaded",
            name=plugin.name,
            version=plugin.version,
            author=plugin.author,
            os_type=os_type,
            arch_type=arch_type,
        )
        return plugin

    @classmethod
    def from_file(
        cls, path: Path | str, os_type: str, arch_type: str, **kwargs: Any
    ) -> LuaPlugin:
        """Load a ``.lua`` file; the file stem names plugins that declare no name."""
        path = Path(path)
        kwargs.setdefault("default_name", path.stem)
        return cls.load(path.read_text(encoding="utf-8"), os_type, arch_type, **kwargs)

    def _read_metadata(
        self, env: GuestEnvironment, plugin_fields: Mapping[Any, Any]
    ) -> None:
        for guest_key, attr in _METADATA_FIELDS.items():
            value = plugin_fields.get(guest_key)
            if value is None:
                continue
            setattr(self, attr, value if isinstance(value, str) else env.tostring(value))

    def _live_env(self) -> GuestEnvironment:
        if self._env is None:
            raise PluginReleasedError(f"plugin {self.name!r} has been released")
        return self._env

    def _call(self, capability: Capability, ctx: dict[str, Any]) -> Any:
        env = self._live_env()
        logger.debug("plugin_call", plugin=self.name, capability=capability.guest_name)
        return self._bridge.call(capability, env.encode(ctx))

    @property
    def released(self) -> bool:
        return self._env is None

    @property
    def supports_resolve(self) -> bool:
        return self._bridge.supports(Capability.RESOLVE)

    def label(self, version: str) -> str:
        return f"{self.name}@{version}"

    def discover(self) -> list[Package]:
        """Available versions, preferred one first."""
        result = self._call(Capability.DISCOVER, codec.discover_context())
        return codec.decode_available(result, self.name)

    def resolve(self, version: str) -> Package | None:
        """Install source for *version*, or None to use the default resolution."""
        self._live_env()
        if not self.supports_resolve:
            return None
        result = self._call(Capability.RESOLVE, codec.resolve_context(version))
        return codec.decode_pre_install(result, self.name)

    def finalize(self, root_path: Path | str, installed: Iterable[Info]) -> None:
        self._call(Capability.FINALIZE, codec.finalize_context(root_path, installed))

    def environment_keys(self, pkg: Package) -> list[EnvKV]:
        result = self._call(Capability.ENVIRONMENT_KEYS, codec.environment_context(pkg))
        return codec.decode_env_keys(result)

    def release(self) -> None:
        env = self._live_env()
        self._bridge.clear()
        self._env = None
        env.close()
        logger.debug("plugin_released", name=self.name)

    def __enter__(self) -> LuaPlugin:
        return self

    def __exit__(self, *exc_info: object) -> None:
        if not self.released:
            self.release()

    def __repr__(self) -> str:
        state = "released" if self.released else "live"
        return f"<LuaPlugin {self.name!r} {self.version!r} ({state})>"
