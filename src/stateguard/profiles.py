# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Tracked-item profiles.

A profile names the item, the ordered probes that detect it, the baseline it is
judged against and, optionally, how to remediate it. Profiles are either built
in or loaded from a JSON file with the same shape as `TrackedItem.to_dict()`.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Union

from .errors import ProfileError
from .models import Baseline
from .platform import REG_DWORD, REGISTRY_VALUE_TYPES


@dataclass(frozen=True)
class PolicyFix:
    """Write `value` at `path`\\`value_name`; fall back to deleting the value."""

    path: str
    value_name: str
    value: Any
    value_type: str = REG_DWORD

    def to_dict(self) -> dict[str, Any]:
        return {"type": "policy", "path": self.path, "name": self.value_name, "value": self.value, "value_type": self.value_type}


@dataclass(frozen=True)
class PackageSource:
    """Shared download reference for a newer installer."""

    url: str
    artifact_name: str | None = None
    installer_args: tuple[str, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "package",
            "url": self.url,
            "artifact_name": self.artifact_name,
            "installer_args": list(self.installer_args) if self.installer_args is not None else None,
        }


RemediationSource = Union[PolicyFix, PackageSource]


@dataclass(frozen=True)
class TrackedItem:
    name: str
    probes: tuple[Mapping[str, Any], ...]
    baseline: Baseline = field(default_factory=Baseline)
    remediation: RemediationSource | None = None
    description: str = ""

    def with_target(self, target: str | None) -> TrackedItem:
        if target is None:
            return self
        return replace(self, baseline=Baseline(target_value=str(target)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "probes": [dict(spec) for spec in self.probes],
            "baseline": {"target": self.baseline.target_value},
            "remediation": self.remediation.to_dict() if self.remediation else None,
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> TrackedItem:
        if not isinstance(data, Mapping):
            raise ProfileError("Profile must be a JSON object")
        name = str(data.get("name") or "").strip()
        if not name:
            raise ProfileError("Profile requires a 'name'")
        probes = data.get("probes")
        if not isinstance(probes, list) or not probes:
            raise ProfileError(f"Profile {name!r} requires a non-empty 'probes' list")

        baseline_raw = data.get("baseline") or {}
        if not isinstance(baseline_raw, Mapping):
            baseline_raw = {"target": baseline_raw}
        target = baseline_raw.get("target")

        return cls(
            name=name,
            description=str(data.get("description") or ""),
            probes=tuple(dict(spec) if isinstance(spec, Mapping) else spec for spec in probes),
            baseline=Baseline(target_value=None if target is None else str(target)),
            remediation=_parse_remediation(data.get("remediation")),
        )


def _parse_remediation(raw: Any) -> RemediationSource | None:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise ProfileError("'remediation' must be an object")
    kind = raw.get("type")
    if kind == "policy":
        for key in ("path", "name", "value"):
            if raw.get(key) is None:
                raise ProfileError(f"Policy remediation requires {key!r}")
        value_type = str(raw.get("value_type") or REG_DWORD).upper()
        if value_type not in REGISTRY_VALUE_TYPES:
            raise ProfileError(f"Unsupported value_type {value_type!r}")
        return PolicyFix(path=str(raw["path"]), value_name=str(raw["name"]), value=raw["value"], value_type=value_type)
    if kind == "package":
        url = str(raw.get("url") or "").strip()
        if not url:
            raise ProfileError("Package remediation requires 'url'")
        args = raw.get("installer_args")
        if args is not None and not isinstance(args, list):
            raise ProfileError("'installer_args' must be a list of strings")
        return PackageSource(
            url=url,
            artifact_name=raw.get("artifact_name") or None,
            installer_args=tuple(str(arg) for arg in args) if args is not None else None,
        )
    raise ProfileError(f"Unknown remediation type {kind!r}; expected 'policy' or 'package'")


AU_POLICY_PATH = r"HKLM\SOFTWARE\Policies\Microsoft\Windows\WindowsUpdate\AU"

BUILTIN_PROFILES: dict[str, TrackedItem] = {
    "windows-auto-update": TrackedItem(
        name="windows-auto-update",
        description="Automatic Updates must not be disabled by policy",
        probes=(
            {
                "type": "policy",
                "name": "au_policy",
                "path": AU_POLICY_PATH,
                "value": "NoAutoUpdate",
                "restricting_values": ["1"],
                "absent_value": "0",
                "reason": "automatic updates disabled by policy",
            },
        ),
        baseline=Baseline(target_value="0"),
        remediation=PolicyFix(path=AU_POLICY_PATH, value_name="NoAutoUpdate", value=0, value_type=REG_DWORD),
    ),
    "windows-update-service": TrackedItem(
        name="windows-update-service",
        description="Windows Update service must be installed and not disabled",
        probes=({"type": "service", "name": "wuauserv", "service": "wuauserv"},),
        baseline=Baseline(target_value="Enabled"),
    ),
    "windows-build": TrackedItem(
        name="windows-build",
        description="OS build number must meet the target build (pass --target)",
        probes=({"type": "system_info", "name": "os_build", "field": "buildNumber"},),
    ),
}


def load_profile(reference: str) -> TrackedItem:
    """Resolve a built-in profile name or load a JSON profile file."""
    if reference in BUILTIN_PROFILES:
        return BUILTIN_PROFILES[reference]
    path = Path(reference)
    if not path.is_file():
        raise ProfileError(
            f"Unknown profile {reference!r}: not a built-in ({', '.join(sorted(BUILTIN_PROFILES))}) and no such file"
        )
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ProfileError(f"Cannot read profile {path}: {exc}") from exc
    return TrackedItem.from_mapping(data)


__all__ = [
    "BUILTIN_PROFILES",
    "PackageSource",
    "PolicyFix",
    "RemediationSource",
    "TrackedItem",
    "load_profile",
]
