"""Protected invocation of plugin capabilities."""

from __future__ import annotations

from typing import Any

import structlog
from lupa import LuaError

from plugbridge.exceptions import CallError
from plugbridge.runtime.capabilities import Capability

logger = structlog.get_logger()


class CallBridge:
    """Calls validated capability functions with the plugin object as ``self``.

    Lua runtime errors raised by the guest surface as CallError. Exceptions
    raised by host callables the guest invokes propagate unchanged.
    """

    def __init__(self, plugin_obj: Any, functions: dict[Capability, Any]) -> None:
        self._plugin_obj = plugin_obj
        self._functions = dict(functions)

    def supports(self, capability: Capability) -> bool:
        return capability in self._functions

    def call(self, capability: Capability, ctx: Any) -> Any:
        fn = self._functions[capability]
        try:
            result = fn(self._plugin_obj, ctx)
        except LuaError as e:
            logger.warning(
                "plugin_call_failed", capability=capability.guest_name, error=str(e)
            )
            raise CallError(capability, str(e)) from e
        # Multiple return values arrive as a tuple; only the first one counts.
        if isinstance(result, tuple):
            return result[0] if result else None
        return result

    def clear(self) -> None:
        self._functions.clear()
        self._plugin_obj = None
