"""Shared fixtures and plugin sources for testing."""

from __future__ import annotations

import os

import pytest
from lupa import LuaRuntime
from structlog.testing import capture_logs

from plugbridge.core.config import BridgeConfig
from plugbridge.plugin import LuaPlugin


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Prevent .env file and shell env from leaking into tests."""
    monkeypatch.setitem(BridgeConfig.model_config, "env_file", None)
    for key in list(os.environ):
        if key.startswith("PLUGBRIDGE_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def captured_logs():
    """Keep structlog output off stdout and expose emitted events."""
    with capture_logs() as logs:
        yield logs


NODE_PLUGIN = """
PLUGIN = {
    name = "node",
    author = "tester",
    version = "0.1.0",
    updateUrl = "https://example.com/node.lua",
}

function PLUGIN:Available(ctx)
    return {
        {
            version = "20.1.0",
            note = "latest",
            additional = { { name = "npm", version = "9.6.4" } },
        },
        { version = "18.16.0", note = "lts" },
        { version = "16.20.0" },
    }
end

function PLUGIN:PreInstall(ctx)
    return {
        version = ctx.version,
        url = "https://nodejs.org/dist/v" .. ctx.version .. "/node-"
            .. OS_TYPE .. "-" .. ARCH_TYPE .. ".tar.gz",
    }
end

function PLUGIN:PostInstall(ctx)
    print("installed", ctx.rootPath)
end

function PLUGIN:EnvKeys(ctx)
    return {
        { key = "NODE_HOME", value = ctx.path },
        { key = "PATH", value = ctx.path .. "/bin" },
    }
end
"""


def plugin_source(
    available: str = "return nil",
    env_keys: str = 'return { { key = "K", value = "V" } }',
    post_install: str = "",
    pre_install: str | None = None,
    name: str = "sdk",
) -> str:
    """Build a minimal plugin whose capability bodies are given as Lua code."""
    parts = [
        f'PLUGIN = {{ name = "{name}" }}',
        f"function PLUGIN:Available(ctx)\n{available}\nend",
        f"function PLUGIN:PostInstall(ctx)\n{post_install}\nend",
        f"function PLUGIN:EnvKeys(ctx)\n{env_keys}\nend",
    ]
    if pre_install is not None:
        parts.append(f"function PLUGIN:PreInstall(ctx)\n{pre_install}\nend")
    return "\n".join(parts)


@pytest.fixture
def printed():
    return []


@pytest.fixture
def load_plugin(printed):
    """Load plugins for linux/amd64, releasing whatever is still live afterwards."""
    loaded: list[LuaPlugin] = []

    def _load(source, os_type="linux", arch_type="amd64", **kwargs):
        kwargs.setdefault("output", printed.append)
        plugin = LuaPlugin.load(source, os_type, arch_type, **kwargs)
        loaded.append(plugin)
        return plugin

    yield _load
    for plugin in loaded:
        if not plugin.released:
            plugin.release()


@pytest.fixture
def node_plugin(load_plugin):
    return load_plugin(NODE_PLUGIN)


@pytest.fixture
def lua():
    return LuaRuntime()


@pytest.fixture
def config(tmp_path):
    return BridgeConfig(
        plugin_dirs=[tmp_path],
        os_type="linux",
        arch_type="amd64",
        log_level="WARNING",
    )


@pytest.fixture
def make_source():
    return plugin_source


@pytest.fixture
def node_source():
    return NODE_PLUGIN
