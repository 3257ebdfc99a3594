# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Deterministic, programmable platform adapter for tests and offline runs."""

from __future__ import annotations

from collections.abc import Callable
from fnmatch import fnmatch
from typing import Any

from ..errors import PlatformError
from .base import (
    InstalledPackage,
    PlatformAdapter,
    ServiceStatus,
    SystemInfo,
    join_registry_path,
    normalize_registry_path,
)

ProcessHandler = Callable[[str, list[str]], int]


class StubPlatform(PlatformAdapter):
    """
    In-memory platform.

    Registry values live in a dict keyed by (normalized path, name). Writes listed
    in `ignored_writes` are accepted but do not stick (e.g. a policy re-applied by
    Group Policy); writes listed in `failing_writes` raise PlatformError.
    """

    def __init__(
        self,
        *,
        registry: dict[tuple[str, str], Any] | None = None,
        packages: list[InstalledPackage] | None = None,
        services: dict[str, ServiceStatus] | None = None,
        system_info: SystemInfo | None = None,
        elevated: bool = False,
        process_exit_codes: dict[str, int] | None = None,
        process_handler: ProcessHandler | None = None,
    ):
        self.registry: dict[tuple[str, str], Any] = {}
        for (path, name), value in (registry or {}).items():
            self.registry[(normalize_registry_path(path), name)] = value
        self.packages = list(packages or [])
        self.services = {name.lower(): status for name, status in (services or {}).items()}
        self.system_info = system_info or SystemInfo()
        self.elevated = elevated
        self.process_exit_codes = dict(process_exit_codes or {})
        self.process_handler = process_handler
        self.ignored_writes: set[tuple[str, str]] = set()
        self.failing_writes: set[tuple[str, str]] = set()
        self.failing_reads: set[tuple[str, str]] = set()
        self.writes: list[tuple[str, str, Any, str]] = []
        self.deletes: list[tuple[str, str]] = []
        self.processes: list[tuple[str, list[str]]] = []
        self.package_queries: list[str] = []

    def _key(self, path: str, name: str) -> tuple[str, str]:
        return (normalize_registry_path(path), name)

    def read_registry_value(self, path: str, name: str) -> Any | None:
        key = self._key(path, name)
        if key in self.failing_reads:
            raise PlatformError(f"Access denied reading {key[0]}\\{name}")
        return self.registry.get(key)

    def write_registry_value(self, path: str, name: str, value: Any, value_type: str) -> None:
        key = self._key(path, name)
        self.writes.append((key[0], name, value, value_type))
        if key in self.failing_writes:
            raise PlatformError(f"Access denied writing {key[0]}\\{name}")
        if key in self.ignored_writes:
            return
        self.registry[key] = value

    def delete_registry_value(self, path: str, name: str) -> None:
        key = self._key(path, name)
        self.deletes.append(key)
        self.registry.pop(key, None)

    def enumerate_registry_subkeys(self, path: str) -> list[str]:
        prefix = normalize_registry_path(path) + "\\"
        children: list[str] = []
        for key_path, _name in self.registry:
            if not key_path.startswith(prefix):
                continue
            child = key_path[len(prefix) :].split("\\", 1)[0]
            if child and child not in children:
                children.append(child)
        return children

    def set_subkey_values(self, path: str, subkey: str, values: dict[str, Any]) -> None:
        child = join_registry_path(path, subkey)
        for name, value in values.items():
            self.registry[(child, name)] = value

    def query_installed_packages(self, name_pattern: str) -> list[InstalledPackage]:
        self.package_queries.append(name_pattern)
        return [pkg for pkg in self.packages if fnmatch(pkg.name.lower(), name_pattern.lower())]

    def query_service_status(self, service_name: str) -> ServiceStatus | None:
        return self.services.get(service_name.lower())

    def query_system_info(self) -> SystemInfo:
        return self.system_info

    def is_current_user_elevated(self) -> bool:
        return self.elevated

    def run_process(self, path: str, args: list[str], *, timeout: float | None = None) -> int:
        self.processes.append((path, list(args)))
        if self.process_handler is not None:
            return self.process_handler(path, list(args))
        for suffix, code in self.process_exit_codes.items():
            if path.lower().endswith(suffix.lower()):
                return code
        return 0
