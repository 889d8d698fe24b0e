"""Tests for host-side plugin records."""

import pytest
from pydantic import ValidationError

from plugbridge.core.models import EnvKV, Info, Package


class TestInfo:
    def test_defaults(self):
        info = Info(name="node", version="18.0.0")
        assert info.note == ""
        assert info.path == ""

    def test_label(self):
        assert Info(name="node", version="18.0.0").label() == "node@18.0.0"

    def test_frozen_immutability(self):
        info = Info(name="node", version="18.0.0")
        with pytest.raises(ValidationError):
            info.version = "20.0.0"  # type: ignore[misc]

    def test_requires_version(self):
        with pytest.raises(ValidationError):
            Info(name="node")  # type: ignore[call-arg]


class TestPackage:
    def test_additional_defaults_empty(self):
        pkg = Package(main=Info(name="node", version="18"))
        assert pkg.additional == []

    def test_requires_main(self):
        with pytest.raises(ValidationError):
            Package()  # type: ignore[call-arg]

    def test_rejects_unnamed_additional(self):
        with pytest.raises(ValidationError, match="must be named"):
            Package(
                main=Info(name="node", version="18"),
                additional=[Info(name="", version="9")],
            )

    def test_artifacts_main_first(self):
        main = Info(name="node", version="18")
        npm = Info(name="npm", version="9")
        assert Package(main=main, additional=[npm]).artifacts() == [main, npm]

    def test_equality(self):
        a = Package(main=Info(name="node", version="18"))
        b = Package(main=Info(name="node", version="18"))
        assert a == b


class TestEnvKV:
    def test_create(self):
        kv = EnvKV(key="PATH", value="/bin")
        assert (kv.key, kv.value) == ("PATH", "/bin")

    def test_requires_value(self):
        with pytest.raises(ValidationError):
            EnvKV(key="PATH")  # type: ignore[call-arg]
