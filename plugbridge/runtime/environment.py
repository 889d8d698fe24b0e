"""One isolated Lua runtime and the globals the host binds into it."""

from __future__ import annotations

import sys
from collections.abc import Callable, Mapping
from typing import Any

import structlog
from lupa import LuaRuntime

from plugbridge.exceptions import PluginReleasedError
from plugbridge.runtime.codec import to_guest

logger = structlog.get_logger()

OutputWriter = Callable[[str], None]

_PRELOAD_MODULE = """
function(name, source)
  local chunk, err = load(source, "=" .. name)
  if not chunk then error(err, 0) end
  package.preload[name] = chunk
end
"""

# Constants live behind _G's metatable so guest assignment can be rejected.
# __metatable locks it: setmetatable(_G, ...) would otherwise drop them.
_BIND_CONSTANTS = """
function(consts)
  setmetatable(_G, {
    __index = function(_, k) return consts[k] end,
    __newindex = function(t, k, v)
      if consts[k] ~= nil then
        error("attempt to assign read-only global '" .. tostring(k) .. "'", 2)
      end
      rawset(t, k, v)
    end,
    __metatable = false,
  })
end
"""

# Arguments are rendered in Lua so tables, functions and floats print exactly
# as the stock print would; the host only receives the finished line.
_MAKE_PRINT = """
function(write)
  local tostring, select, concat = tostring, select, table.concat
  return function(...)
    local parts = {}
    for i = 1, select("#", ...) do
      parts[i] = tostring((select(i, ...)))
    end
    write(concat(parts, "\\t"))
  end
end
"""


def write_stdout(line: str) -> None:
    sys.stdout.write(f"{line}\n")
    sys.stdout.flush()


def make_writer(output: OutputWriter) -> OutputWriter:
    def write(line: str) -> None:
        logger.debug("plugin_print", line=line)
        output(line)

    return write


class GuestEnvironment:
    """Owns a LuaRuntime until :meth:`close` is called."""

    def __init__(self, *, output: OutputWriter | None = None) -> None:
        self._runtime: LuaRuntime | None = LuaRuntime(register_eval=False)
        self._collect = self._runtime.eval("collectgarbage")
        self._tostring = self._runtime.eval("tostring")
        make_print = self._runtime.eval(_MAKE_PRINT)
        self._runtime.globals()["print"] = make_print(
            make_writer(output or write_stdout)
        )

    @property
    def runtime(self) -> LuaRuntime:
        if self._runtime is None:
            raise PluginReleasedError("guest environment is closed")
        return self._runtime

    @property
    def closed(self) -> bool:
        return self._runtime is None

    def preload(self, modules: Mapping[str, str]) -> None:
        """Make each Lua source available to ``require`` under its name."""
        register = self.runtime.eval(_PRELOAD_MODULE)
        for name, source in modules.items():
            register(name, source)
            logger.debug("guest_module_preloaded", module=name)

    def bind_constants(self, constants: Mapping[str, str]) -> None:
        bind = self.runtime.eval(_BIND_CONSTANTS)
        bind(to_guest(self.runtime, constants))

    def execute(self, source: str) -> None:
        self.runtime.execute(source)

    def get_global(self, name: str) -> Any:
        return self.runtime.globals()[name]

    def encode(self, value: Any) -> Any:
        return to_guest(self.runtime, value)

    def tostring(self, value: Any) -> str:
        """Render a guest value with the runtime's own ``tostring``."""
        if self._runtime is None:
            raise PluginReleasedError("guest environment is closed")
        return self._tostring(value)

    def close(self) -> None:
        if self._runtime is None:
            raise PluginReleasedError("guest environment is already closed")
        self._collect("collect")
        self._collect = None
        self._tostring = None
        self._runtime = None
        logger.debug("guest_environment_closed")
