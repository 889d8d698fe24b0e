"""The fixed set of functions a plugin object can provide."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

import structlog
from lupa import lua_type

from plugbridge.exceptions import ContractError

logger = structlog.get_logger()


class Capability(Enum):
    DISCOVER = "Available"
    RESOLVE = "PreInstall"
    FINALIZE = "PostInstall"
    ENVIRONMENT_KEYS = "EnvKeys"

    @property
    def guest_name(self) -> str:
        return self.value


REQUIRED_CAPABILITIES: tuple[Capability, ...] = (
    Capability.DISCOVER,
    Capability.FINALIZE,
    Capability.ENVIRONMENT_KEYS,
)
OPTIONAL_CAPABILITIES: tuple[Capability, ...] = (Capability.RESOLVE,)


def validate_capabilities(plugin_fields: Mapping[Any, Any]) -> dict[Capability, Any]:
    """Collect the plugin object's capability functions.

    *plugin_fields* is the raw field view of the plugin table, so functions
    inherited through a metatable do not count. Raises ContractError for the
    first required capability that is not a Lua function. Optional
    capabilities are included only when present.
    """
    found: dict[Capability, Any] = {}
    for capability in REQUIRED_CAPABILITIES:
        fn = plugin_fields.get(capability.guest_name)
        if lua_type(fn) != "function":
            logger.warning("plugin_capability_missing", capability=capability.guest_name)
            raise ContractError(capability)
        found[capability] = fn

    for capability in OPTIONAL_CAPABILITIES:
        fn = plugin_fields.get(capability.guest_name)
        if fn is None:
            continue
        if lua_type(fn) != "function":
            raise ContractError(capability)
        found[capability] = fn
    return found
