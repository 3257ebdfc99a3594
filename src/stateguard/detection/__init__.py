# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Detection exports."""

from .base import Probe
from .chain import ProbeChain
from .probes import (
    FileVersionProbe,
    PackageProbe,
    PolicyProbe,
    RegistryValueProbe,
    ServiceProbe,
    SystemInfoProbe,
    UninstallKeyProbe,
)
from .registry import PROBE_TYPES, build_probe, build_probes

__all__ = [
    "FileVersionProbe",
    "PROBE_TYPES",
    "PackageProbe",
    "PolicyProbe",
    "Probe",
    "ProbeChain",
    "RegistryValueProbe",
    "ServiceProbe",
    "SystemInfoProbe",
    "UninstallKeyProbe",
    "build_probe",
    "build_probes",
]
