# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Platform adapter protocol and OS query result models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from ..errors import PlatformError

REG_SZ = "REG_SZ"
REG_EXPAND_SZ = "REG_EXPAND_SZ"
REG_DWORD = "REG_DWORD"
REG_QWORD = "REG_QWORD"
REGISTRY_VALUE_TYPES = (REG_SZ, REG_EXPAND_SZ, REG_DWORD, REG_QWORD)

_HIVE_ALIASES = {
    "HKLM": "HKLM",
    "HKEY_LOCAL_MACHINE": "HKLM",
    "HKCU": "HKCU",
    "HKEY_CURRENT_USER": "HKCU",
    "HKCR": "HKCR",
    "HKEY_CLASSES_ROOT": "HKCR",
    "HKU": "HKU",
    "HKEY_USERS": "HKU",
}


@dataclass(frozen=True)
class InstalledPackage:
    name: str
    version: str | None = None
    publisher: str | None = None
    provider_name: str | None = None


@dataclass(frozen=True)
class ServiceStatus:
    status: str
    start_type: str | None = None


@dataclass(frozen=True)
class SystemInfo:
    caption: str | None = None
    version_string: str | None = None
    build_number: str | None = None

    def field(self, name: str) -> str | None:
        return {
            "caption": self.caption,
            "versionString": self.version_string,
            "version_string": self.version_string,
            "buildNumber": self.build_number,
            "build_number": self.build_number,
        }.get(name)


def split_registry_path(path: str) -> tuple[str, str]:
    """
    Split a registry path into (hive, subkey).

    Accepts short (`HKLM\\...`), long (`HKEY_LOCAL_MACHINE\\...`) and PowerShell
    drive (`HKLM:\\...`) forms with either slash direction.
    """
    normalized = str(path or "").strip().replace("/", "\\")
    head, _, tail = normalized.partition("\\")
    hive = _HIVE_ALIASES.get(head.rstrip(":").upper())
    if hive is None:
        raise PlatformError(f"Unsupported registry hive in path: {path!r}")
    return hive, tail.strip("\\")


def normalize_registry_path(path: str) -> str:
    hive, subkey = split_registry_path(path)
    return f"{hive}\\{subkey}" if subkey else hive


def join_registry_path(path: str, child: str) -> str:
    return normalize_registry_path(path) + "\\" + child.strip("\\")


class PlatformAdapter(Protocol):
    """Thin OS query primitives consumed by probes and remediators."""

    def read_registry_value(self, path: str, name: str) -> Any | None: ...

    def write_registry_value(self, path: str, name: str, value: Any, value_type: str) -> None: ...

    def delete_registry_value(self, path: str, name: str) -> None: ...

    def enumerate_registry_subkeys(self, path: str) -> list[str]: ...

    def query_installed_packages(self, name_pattern: str) -> list[InstalledPackage]: ...

    def query_service_status(self, service_name: str) -> ServiceStatus | None: ...

    def query_system_info(self) -> SystemInfo: ...

    def is_current_user_elevated(self) -> bool: ...

    def run_process(self, path: str, args: list[str], *, timeout: float | None = None) -> int: ...
