# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Probe catalogue: file, registry, uninstall key, package, policy, service and OS build."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from fnmatch import fnmatch
from pathlib import Path
from typing import Any

from ..errors import ProbeFailure, ProfileError
from ..models import ProbeResult
from ..platform import PlatformAdapter, join_registry_path
from ..utils import extract_version, highest_version
from .base import Probe

logger = logging.getLogger(__name__)

UNINSTALL_ROOTS = (
    r"HKLM\SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall",
    r"HKLM\SOFTWARE\WOW6432Node\Microsoft\Windows\CurrentVersion\Uninstall",
)


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(str(item) for item in value).strip()
    return str(value).strip()


class FileVersionProbe(Probe):
    """Reads a version string out of a text file shipped next to the software."""

    type_name = "file_version"
    name = "file_version"
    priority = 10

    def __init__(
        self,
        platform: PlatformAdapter,
        path: str,
        *,
        pattern: str | None = None,
        encoding: str = "utf-8",
        name: str | None = None,
        priority: int | None = None,
    ):
        super().__init__(platform, name=name, priority=priority)
        self.path = Path(path)
        self.pattern = re.compile(pattern) if pattern else None
        self.encoding = encoding

    @classmethod
    def from_spec(cls, spec: Mapping[str, Any], platform: PlatformAdapter) -> Probe:
        try:
            return cls(
                platform,
                cls._require(spec, "path"),
                pattern=spec.get("pattern"),
                encoding=spec.get("encoding", "utf-8"),
                name=spec.get("name"),
                priority=spec.get("priority"),
            )
        except re.error as exc:
            raise ProfileError(f"Invalid file_version pattern: {exc}") from exc

    def run(self) -> ProbeResult:
        provenance = f"file {self.path}"
        if not self.path.is_file():
            return ProbeResult.failure("version file not found", provenance)
        try:
            content = self.path.read_text(encoding=self.encoding, errors="strict")
        except (OSError, UnicodeDecodeError) as exc:
            # Unreadable content only fails this probe.
            logger.debug("Could not read %s: %s", self.path, exc)
            return ProbeResult.failure(f"version file unreadable: {exc}", provenance)

        version = self._match(content)
        if not version:
            return ProbeResult.failure("no version found in file", provenance)
        return ProbeResult.success(version, provenance)

    def _match(self, content: str) -> str | None:
        if self.pattern is None:
            return extract_version(content)
        match = self.pattern.search(content)
        if not match:
            return None
        if "version" in self.pattern.groupindex:
            return (match.group("version") or "").strip() or None
        if self.pattern.groups:
            return (match.group(1) or "").strip() or None
        return match.group(0).strip() or None


class RegistryValueProbe(Probe):
    type_name = "registry_value"
    name = "registry_value"
    priority = 20

    def __init__(self, platform: PlatformAdapter, path: str, value_name: str, *, name: str | None = None, priority: int | None = None):
        super().__init__(platform, name=name, priority=priority)
        self.path = path
        self.value_name = value_name

    @classmethod
    def from_spec(cls, spec: Mapping[str, Any], platform: PlatformAdapter) -> Probe:
        return cls(
            platform,
            cls._require(spec, "path"),
            cls._require(spec, "value"),
            name=spec.get("name"),
            priority=spec.get("priority"),
        )

    def run(self) -> ProbeResult:
        provenance = f"registry {self.path}\\{self.value_name}"
        value = _text(self.platform.read_registry_value(self.path, self.value_name))
        if not value:
            return ProbeResult.failure("registry value absent", provenance)
        return ProbeResult.success(value, provenance)


class UninstallKeyProbe(Probe):
    """Scans the Add/Remove Programs hives for a product whose DisplayName matches a glob."""

    type_name = "uninstall_key"
    name = "uninstall_key"
    priority = 30

    def __init__(
        self,
        platform: PlatformAdapter,
        display_name: str,
        *,
        roots: Sequence[str] = UNINSTALL_ROOTS,
        name: str | None = None,
        priority: int | None = None,
    ):
        super().__init__(platform, name=name, priority=priority)
        self.display_name = display_name
        self.roots = tuple(roots)

    @classmethod
    def from_spec(cls, spec: Mapping[str, Any], platform: PlatformAdapter) -> Probe:
        return cls(
            platform,
            cls._require(spec, "display_name"),
            roots=spec.get("roots") or UNINSTALL_ROOTS,
            name=spec.get("name"),
            priority=spec.get("priority"),
        )

    def run(self) -> ProbeResult:
        matches: dict[str, str] = {}
        pattern = self.display_name.casefold()
        for root in self.roots:
            for subkey in self.platform.enumerate_registry_subkeys(root):
                key_path = join_registry_path(root, subkey)
                display = _text(self.platform.read_registry_value(key_path, "DisplayName"))
                if not display or not fnmatch(display.casefold(), pattern):
                    continue
                version = _text(self.platform.read_registry_value(key_path, "DisplayVersion"))
                if version:
                    matches[version] = key_path

        if not matches:
            return ProbeResult.failure(f"no uninstall entry matching {self.display_name!r}", "uninstall registry")
        best = highest_version(matches) or next(iter(matches))
        return ProbeResult.success(best, f"uninstall key {matches[best]}")


class PackageProbe(Probe):
    type_name = "package"
    name = "package"
    priority = 40

    def __init__(
        self,
        platform: PlatformAdapter,
        name_pattern: str,
        *,
        provider: str | None = None,
        name: str | None = None,
        priority: int | None = None,
    ):
        super().__init__(platform, name=name, priority=priority)
        self.name_pattern = name_pattern
        self.provider = provider

    @classmethod
    def from_spec(cls, spec: Mapping[str, Any], platform: PlatformAdapter) -> Probe:
        return cls(
            platform,
            cls._require(spec, "package"),
            provider=spec.get("provider"),
            name=spec.get("name"),
            priority=spec.get("priority"),
        )

    def run(self) -> ProbeResult:
        packages = self.platform.query_installed_packages(self.name_pattern)
        if self.provider:
            packages = [pkg for pkg in packages if (pkg.provider_name or "").casefold() == self.provider.casefold()]
        versioned = {pkg.version.strip(): pkg for pkg in packages if pkg.version and pkg.version.strip()}
        if not versioned:
            return ProbeResult.failure(f"no installed package matching {self.name_pattern!r}", "package query")
        best = highest_version(versioned) or next(iter(versioned))
        pkg = versioned[best]
        provider = f" via {pkg.provider_name}" if pkg.provider_name else ""
        return ProbeResult.success(best, f"package {pkg.name}{provider}")


class PolicyProbe(Probe):
    """
    Reads a policy registry value.

    The read itself is the fact: an absent value reports `absent_value`; a value
    listed in `restricting_values` marks the detection as restricted.
    """

    type_name = "policy"
    name = "policy"
    priority = 10

    def __init__(
        self,
        platform: PlatformAdapter,
        path: str,
        value_name: str,
        *,
        restricting_values: Sequence[Any] = ("1",),
        reason: str = "disabled by policy",
        absent_value: str = "not configured",
        name: str | None = None,
        priority: int | None = None,
    ):
        super().__init__(platform, name=name, priority=priority)
        self.path = path
        self.value_name = value_name
        self.restricting_values = {_text(value).casefold() for value in restricting_values}
        self.reason = reason
        self.absent_value = absent_value

    @classmethod
    def from_spec(cls, spec: Mapping[str, Any], platform: PlatformAdapter) -> Probe:
        restricting = spec.get("restricting_values", ("1",))
        if not isinstance(restricting, (list, tuple)):
            restricting = (restricting,)
        return cls(
            platform,
            cls._require(spec, "path"),
            cls._require(spec, "value"),
            restricting_values=restricting,
            reason=spec.get("reason", "disabled by policy"),
            absent_value=str(spec.get("absent_value", "not configured")),
            name=spec.get("name"),
            priority=spec.get("priority"),
        )

    def run(self) -> ProbeResult:
        provenance = f"policy {self.path}\\{self.value_name}"
        raw = self.platform.read_registry_value(self.path, self.value_name)
        if raw is None:
            return ProbeResult.success(self.absent_value, provenance)
        value = _text(raw)
        if value.casefold() in self.restricting_values:
            return ProbeResult.success(value, provenance, restriction=f"{self.reason} ({self.value_name}={value})")
        return ProbeResult.success(value, provenance)


class ServiceProbe(Probe):
    """Reports `Enabled` for an installed service unless its start type is disabled."""

    type_name = "service"
    name = "service"
    priority = 10

    def __init__(
        self,
        platform: PlatformAdapter,
        service_name: str,
        *,
        disabled_start_types: Sequence[str] = ("Disabled",),
        name: str | None = None,
        priority: int | None = None,
    ):
        super().__init__(platform, name=name, priority=priority)
        self.service_name = service_name
        self.disabled_start_types = {item.casefold() for item in disabled_start_types}

    @classmethod
    def from_spec(cls, spec: Mapping[str, Any], platform: PlatformAdapter) -> Probe:
        return cls(
            platform,
            cls._require(spec, "service"),
            disabled_start_types=spec.get("disabled_start_types") or ("Disabled",),
            name=spec.get("name"),
            priority=spec.get("priority"),
        )

    def run(self) -> ProbeResult:
        status = self.platform.query_service_status(self.service_name)
        if status is None:
            return ProbeResult.failure("service not installed", f"service {self.service_name}")
        provenance = f"service {self.service_name} ({status.status}, start type {status.start_type or 'unknown'})"
        if status.start_type and status.start_type.casefold() in self.disabled_start_types:
            return ProbeResult.success(
                "Disabled",
                provenance,
                restriction=f"service {self.service_name} start type is {status.start_type}",
            )
        return ProbeResult.success("Enabled", provenance)


class SystemInfoProbe(Probe):
    type_name = "system_info"
    name = "system_info"
    priority = 10

    FIELDS = ("buildNumber", "versionString", "caption")

    def __init__(self, platform: PlatformAdapter, field: str = "buildNumber", *, name: str | None = None, priority: int | None = None):
        super().__init__(platform, name=name, priority=priority)
        if field not in self.FIELDS:
            raise ProfileError(f"system_info field must be one of {', '.join(self.FIELDS)}")
        self.field = field

    @classmethod
    def from_spec(cls, spec: Mapping[str, Any], platform: PlatformAdapter) -> Probe:
        return cls(platform, spec.get("field", "buildNumber"), name=spec.get("name"), priority=spec.get("priority"))

    def run(self) -> ProbeResult:
        info = self.platform.query_system_info()
        value = _text(info.field(self.field))
        if not value:
            raise ProbeFailure(f"Win32_OperatingSystem did not report {self.field}")
        return ProbeResult.success(value, f"system info {self.field} ({info.caption or 'unknown OS'})")
