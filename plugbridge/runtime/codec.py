"""Conversion between host records and Lua values.

Context records are built as plain Python structures and encoded into Lua
tables with :func:`to_guest`. Guest return values are decoded through
:class:`Shape` declarations; every mismatch raises :class:`ShapeError` naming
the offending location (e.g. ``Available[2].additional[npm].version``).
Decoders are all-or-nothing: they never return a partially parsed result.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import PurePath
from typing import TYPE_CHECKING, Any

from lupa import LuaError, lua_type

from plugbridge.core.models import EnvKV, Info, Package, Version
from plugbridge.exceptions import EmptyResultError, ShapeError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from lupa import LuaRuntime

PLUGIN_PROTOCOL_VERSION = "0.0.1"


# --- Encoding -------------------------------------------------------------


def to_guest(runtime: LuaRuntime, value: Any) -> Any:
    """Recursively convert dicts, lists and paths into Lua values."""
    if isinstance(value, PurePath):
        return str(value)
    if isinstance(value, Mapping):
        table = runtime.table()
        for key, item in value.items():
            if item is not None:
                table[key] = to_guest(runtime, item)
        return table
    if isinstance(value, (list, tuple)):
        table = runtime.table()
        for index, item in enumerate(value, start=1):
            table[index] = to_guest(runtime, item)
        return table
    return value


def info_record(info: Info) -> dict[str, str]:
    return {
        "name": info.name,
        "version": info.version,
        "note": info.note,
        "path": info.path,
    }


def package_record(pkg: Package) -> dict[str, Any]:
    """Full package as a guest record; ``additional`` is a sequence so order survives."""
    return {
        **info_record(pkg.main),
        "additional": [info_record(info) for info in pkg.additional],
    }


def discover_context() -> dict[str, Any]:
    return {"plugin_version": PLUGIN_PROTOCOL_VERSION}


def resolve_context(version: str) -> dict[str, Any]:
    return {"version": version}


def finalize_context(root_path: str | PurePath, installed: Iterable[Info]) -> dict[str, Any]:
    sdk_info = {
        info.name: {"name": info.name, "version": info.version, "path": info.path}
        for info in installed
    }
    return {"rootPath": str(root_path), "sdkInfo": sdk_info}


def environment_context(pkg: Package) -> dict[str, Any]:
    ctx: dict[str, Any] = {"path": pkg.main.path}
    if pkg.additional:
        ctx["additional_path"] = {info.name: info.path for info in pkg.additional}
    return ctx


# --- Decoding -------------------------------------------------------------


def guest_type(value: Any) -> str:
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return lua_type(value) or type(value).__name__


def is_table(value: Any) -> bool:
    return lua_type(value) == "table"


def entries(value: Any, path: str) -> list[tuple[Any, Any]]:
    """Key/value pairs of a Lua table, in the table's iteration order.

    Iteration uses raw ``next``, so metamethods on the table never run.
    """
    if not is_table(value):
        raise ShapeError(path, f"expected table, got {guest_type(value)}")
    try:
        return list(value.items())
    except LuaError as e:
        raise ShapeError(path, f"table cannot be read: {e}") from e


def raw_fields(value: Any, path: str) -> dict[Any, Any]:
    """Raw view of a Lua table's fields, the equivalent of ``rawget`` per key."""
    return dict(entries(value, path))


def as_string(value: Any, path: str) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise ShapeError(path, f"expected string, got {guest_type(value)}")


@dataclass(frozen=True)
class Field:
    name: str
    required: bool = True
    allow_empty: bool = True


class Shape:
    """Required/optional string fields of one guest record type."""

    def __init__(self, *fields: Field) -> None:
        self.fields = fields

    def decode(self, value: Any, path: str) -> dict[str, str]:
        return self.decode_fields(raw_fields(value, path), path)

    def decode_fields(self, table: Mapping[Any, Any], path: str) -> dict[str, str]:
        record: dict[str, str] = {}
        for field in self.fields:
            field_path = f"{path}.{field.name}"
            raw = table.get(field.name)
            if raw is None:
                if field.required:
                    raise ShapeError(field_path, "required field missing")
                record[field.name] = ""
                continue
            text = as_string(raw, field_path)
            if not text and not field.allow_empty:
                raise ShapeError(field_path, "must not be empty")
            record[field.name] = text
        return record


AVAILABLE_ENTRY = Shape(Field("version"), Field("note", required=False))
AVAILABLE_ADDITIONAL = Shape(Field("name", allow_empty=False), Field("version"))
PRE_INSTALL = Shape(Field("version"), Field("url"))
PRE_INSTALL_ADDITIONAL = Shape(
    Field("name", allow_empty=False), Field("version"), Field("url")
)
ENV_ENTRY = Shape(Field("key"), Field("value"))
INFO_RECORD = Shape(
    Field("name", allow_empty=False),
    Field("version"),
    Field("note", required=False),
    Field("path", required=False),
)


def _sub_records(
    table: Mapping[Any, Any], path: str, shape: Shape
) -> list[dict[str, str]]:
    additional = table.get("additional")
    if additional is None:
        return []
    sub_path = f"{path}.additional"
    return [
        shape.decode(item, f"{sub_path}[{key}]")
        for key, item in entries(additional, sub_path)
    ]


def decode_available(value: Any, plugin_name: str) -> list[Package]:
    """Decode an ``Available`` result; nil means no versions."""
    if value is None:
        return []
    packages: list[Package] = []
    for key, item in entries(value, "Available"):
        path = f"Available[{key}]"
        table = raw_fields(item, path)
        record = AVAILABLE_ENTRY.decode_fields(table, path)
        main = Info(
            name=plugin_name, version=Version(record["version"]), note=record["note"]
        )
        additional = [
            Info(name=r["name"], version=Version(r["version"]))
            for r in _sub_records(table, path, AVAILABLE_ADDITIONAL)
        ]
        packages.append(Package(main=main, additional=additional))
    return packages


def decode_pre_install(value: Any, plugin_name: str) -> Package | None:
    """Decode a ``PreInstall`` result; nil means no override."""
    if value is None:
        return None
    path = "PreInstall"
    table = raw_fields(value, path)
    record = PRE_INSTALL.decode_fields(table, path)
    main = Info(name=plugin_name, version=Version(record["version"]), path=record["url"])
    additional = [
        Info(name=r["name"], version=Version(r["version"]), path=r["url"])
        for r in _sub_records(table, path, PRE_INSTALL_ADDITIONAL)
    ]
    return Package(main=main, additional=additional)


def decode_env_keys(value: Any) -> list[EnvKV]:
    if value is None:
        raise EmptyResultError("no environment variables provided")
    items = entries(value, "EnvKeys")
    if not items:
        raise EmptyResultError("no environment variables provided")
    result: list[EnvKV] = []
    for key, item in items:
        record = ENV_ENTRY.decode(item, f"EnvKeys[{key}]")
        result.append(EnvKV(key=record["key"], value=record["value"]))
    return result


def _info_from(record: dict[str, str]) -> Info:
    return Info(
        name=record["name"],
        version=Version(record["version"]),
        note=record["note"],
        path=record["path"],
    )


def decode_package(value: Any, path: str = "package") -> Package:
    """Inverse of :func:`package_record`."""
    table = raw_fields(value, path)
    main = _info_from(INFO_RECORD.decode_fields(table, path))
    additional = [_info_from(r) for r in _sub_records(table, path, INFO_RECORD)]
    return Package(main=main, additional=additional)
