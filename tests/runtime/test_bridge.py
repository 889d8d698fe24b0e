"""Tests for protected capability calls."""

import pytest

from plugbridge.exceptions import CallError
from plugbridge.runtime.bridge import CallBridge
from plugbridge.runtime.capabilities import Capability


@pytest.fixture
def plugin_obj(lua):
    return lua.eval('{ name = "demo" }')


def bridge_for(plugin_obj, fn, capability=Capability.DISCOVER):
    return CallBridge(plugin_obj, {capability: fn})


class TestCallBridge:
    def test_passes_receiver_and_context(self, lua, plugin_obj):
        fn = lua.eval("function(self, ctx) return self.name .. ':' .. ctx.x end")
        bridge = bridge_for(plugin_obj, fn)
        assert bridge.call(Capability.DISCOVER, lua.table_from({"x": "1"})) == "demo:1"

    def test_keeps_first_return_value(self, lua, plugin_obj):
        bridge = bridge_for(plugin_obj, lua.eval("function() return 'a', 'b' end"))
        assert bridge.call(Capability.DISCOVER, None) == "a"

    def test_nil_and_error_pair(self, lua, plugin_obj):
        bridge = bridge_for(plugin_obj, lua.eval("function() return nil, 'err' end"))
        assert bridge.call(Capability.DISCOVER, None) is None

    def test_no_return_value(self, lua, plugin_obj):
        bridge = bridge_for(plugin_obj, lua.eval("function() end"))
        assert bridge.call(Capability.DISCOVER, None) is None

    def test_lua_error_becomes_call_error(self, lua, plugin_obj):
        bridge = bridge_for(
            plugin_obj, lua.eval("function() error('kaboom') end"), Capability.FINALIZE
        )
        with pytest.raises(CallError) as exc_info:
            bridge.call(Capability.FINALIZE, None)
        assert exc_info.value.capability is Capability.FINALIZE
        assert "kaboom" in exc_info.value.message
        assert str(exc_info.value).startswith("[PostInstall]")

    def test_failure_logged(self, lua, plugin_obj, captured_logs):
        bridge = bridge_for(plugin_obj, lua.eval("function() error('kaboom') end"))
        with pytest.raises(CallError):
            bridge.call(Capability.DISCOVER, None)
        failures = [e for e in captured_logs if e["event"] == "plugin_call_failed"]
        assert failures[0]["capability"] == "Available"
        assert failures[0]["log_level"] == "warning"

    def test_runtime_type_error(self, lua, plugin_obj):
        bridge = bridge_for(plugin_obj, lua.eval("function(self, ctx) return ctx.a.b end"))
        with pytest.raises(CallError):
            bridge.call(Capability.DISCOVER, lua.table())

    def test_host_exception_propagates(self, lua, plugin_obj):
        def explode():
            raise ZeroDivisionError("host bug")

        lua.globals()["explode"] = explode
        bridge = bridge_for(plugin_obj, lua.eval("function() explode() end"))
        with pytest.raises(ZeroDivisionError):
            bridge.call(Capability.DISCOVER, None)

    def test_supports(self, lua, plugin_obj):
        bridge = bridge_for(plugin_obj, lua.eval("function() end"))
        assert bridge.supports(Capability.DISCOVER)
        assert not bridge.supports(Capability.RESOLVE)

    def test_clear(self, lua, plugin_obj):
        bridge = bridge_for(plugin_obj, lua.eval("function() end"))
        bridge.clear()
        assert not bridge.supports(Capability.DISCOVER)
