"""Shared exception types for plugbridge."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from plugbridge.runtime.capabilities import Capability


class BridgeError(Exception):
    """Base exception for all plugbridge errors."""


class PluginUnusableError(BridgeError):
    """The plugin could not be constructed at all."""


class LoadError(PluginUnusableError):
    """Plugin source failed to execute or lacks its PLUGIN object."""


class ContractError(PluginUnusableError):
    """A required capability is missing from the plugin object."""

    def __init__(self, capability: Capability) -> None:
        self.capability = capability
        super().__init__(f"[{capability.guest_name}] function not found")


class PluginCallError(BridgeError):
    """A single plugin call failed; the plugin itself stays usable."""


class CallError(PluginCallError):
    """The guest function raised a runtime error."""

    def __init__(self, capability: Capability, message: str) -> None:
        self.capability = capability
        self.message = message
        super().__init__(f"[{capability.guest_name}] {message}")


class ShapeError(PluginCallError):
    """A returned guest value does not match the expected record shape."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class EmptyResultError(PluginCallError):
    """A capability that must produce entries produced none."""


class PluginReleasedError(BridgeError):
    """The plugin's runtime has already been released."""
