# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Probe registry: builds priority-ordered probes from tracked-item specs."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from ..errors import ProfileError
from ..platform import PlatformAdapter
from .base import Probe
from .probes import (
    FileVersionProbe,
    PackageProbe,
    PolicyProbe,
    RegistryValueProbe,
    ServiceProbe,
    SystemInfoProbe,
    UninstallKeyProbe,
)

PROBE_TYPES: dict[str, type[Probe]] = {
    probe_cls.type_name: probe_cls
    for probe_cls in (
        FileVersionProbe,
        RegistryValueProbe,
        UninstallKeyProbe,
        PackageProbe,
        PolicyProbe,
        ServiceProbe,
        SystemInfoProbe,
    )
}


def build_probe(spec: Mapping[str, Any], platform: PlatformAdapter) -> Probe:
    probe_type = spec.get("type")
    probe_cls = PROBE_TYPES.get(str(probe_type))
    if probe_cls is None:
        raise ProfileError(f"Unknown probe type {probe_type!r}; expected one of {', '.join(sorted(PROBE_TYPES))}")
    return probe_cls.from_spec(spec, platform)


def build_probes(specs: Iterable[Mapping[str, Any]], platform: PlatformAdapter) -> list[Probe]:
    """
    Build probes in declaration order.

    Specs without an explicit priority are ranked by position, so the order they
    are listed in is the trust order.
    """
    probes: list[Probe] = []
    for index, spec in enumerate(specs):
        if not isinstance(spec, Mapping):
            raise ProfileError(f"Probe spec #{index} must be an object")
        if spec.get("priority") is None:
            spec = {**spec, "priority": (index + 1) * 10}
        probe = build_probe(spec, platform)
        if not spec.get("name"):
            probe.name = f"{probe.type_name}#{index + 1}"
        probes.append(probe)
    return sorted(probes, key=lambda probe: probe.priority)


__all__ = ["PROBE_TYPES", "build_probe", "build_probes"]
