"""CLI entry point: list installed plugins and the versions they offer."""

import sys

import structlog

from plugbridge.app import build_manager
from plugbridge.core.config import BridgeConfig
from plugbridge.exceptions import PluginCallError
from plugbridge.manager import PluginManager
from plugbridge.plugin import LuaPlugin

logger = structlog.get_logger()


def _show_plugin(plugin: LuaPlugin) -> None:
    header = plugin.name
    if plugin.version:
        header += f" (plugin {plugin.version})"
    if plugin.author:
        header += f" by {plugin.author}"
    print(header)

    try:
        packages = plugin.discover()
    except PluginCallError as e:
        logger.warning("plugin_discover_failed", name=plugin.name, error=str(e))
        print(f"  error: {e}")
        return

    if not packages:
        print("  no versions available")
        return
    for pkg in packages:
        line = f"  {plugin.label(pkg.main.version)}"
        if pkg.main.note:
            line += f"  [{pkg.main.note}]"
        extras = ", ".join(info.label() for info in pkg.additional)
        if extras:
            line += f"  + {extras}"
        print(line)


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv

    try:
        config = BridgeConfig()
    except Exception as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        print("Check the PLUGBRIDGE_* environment or your .env file.", file=sys.stderr)
        return 1

    manager: PluginManager = build_manager(config)
    try:
        if args:
            plugin = manager.get(args[0])
            if plugin is None:
                print(f"Unknown plugin: {args[0]}", file=sys.stderr)
                return 1
            _show_plugin(plugin)
        else:
            if not manager.plugins:
                print("No plugins installed.")
            for plugin in manager.plugins:
                _show_plugin(plugin)
    finally:
        manager.close_all()
    return 0


def run() -> None:
    sys.exit(main())
