"""Host OS and CPU architecture families, as plugin authors see them."""

import platform

_OS_ALIASES: dict[str, str] = {
    "macos": "darwin",
    "win32": "windows",
    "cygwin": "windows",
}

_ARCH_ALIASES: dict[str, str] = {
    "x86_64": "amd64",
    "x64": "amd64",
    "aarch64": "arm64",
    "armv8l": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv6l": "arm",
    "armv7l": "arm",
}


def normalize_os_type(value: str) -> str:
    v = value.strip().lower()
    return _OS_ALIASES.get(v, v)


def normalize_arch_type(value: str) -> str:
    v = value.strip().lower()
    return _ARCH_ALIASES.get(v, v)


def current_os_type() -> str:
    return normalize_os_type(platform.system())


def current_arch_type() -> str:
    return normalize_arch_type(platform.machine())
