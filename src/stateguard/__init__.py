# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
StateGuard package entrypoint.

This package provides a probe-and-remediate engine: an ordered probe chain
detects whether a tracked item (installed software, an OS policy, a service)
is present, current and enabled; a verdict resolver compares the detection to
a baseline; and a privilege-gated remediation pipeline fixes policy values or
downloads and installs a newer package. OS primitives sit behind an injectable
platform adapter and HTTP behind an injectable client.
"""

from .config import HttpSettings, RemediationSettings, load_http_settings, load_remediation_settings
from .detection import Probe, ProbeChain, build_probes
from .http import HttpClient, HttpRequest, HttpResponse, HttpxClient, create_default_http_client
from .log import setup_logging
from .models import (
    ArtifactKind,
    Baseline,
    DetectionResult,
    PrivilegeContext,
    ProbeResult,
    RemediationArtifact,
    RemediationOutcome,
    RunReport,
    Verdict,
    VerdictKind,
)
from .platform import PlatformAdapter, StubPlatform, create_default_platform
from .profiles import BUILTIN_PROFILES, PackageSource, PolicyFix, TrackedItem, load_profile
from .remediation import RemediationPipeline
from .runtime import StateGuard
from .verdict import resolve
from .version import __version__

__all__ = [
    "ArtifactKind",
    "BUILTIN_PROFILES",
    "Baseline",
    "DetectionResult",
    "HttpClient",
    "HttpRequest",
    "HttpResponse",
    "HttpSettings",
    "HttpxClient",
    "PackageSource",
    "PlatformAdapter",
    "PolicyFix",
    "PrivilegeContext",
    "Probe",
    "ProbeChain",
    "ProbeResult",
    "RemediationArtifact",
    "RemediationOutcome",
    "RemediationPipeline",
    "RemediationSettings",
    "RunReport",
    "StateGuard",
    "StubPlatform",
    "TrackedItem",
    "Verdict",
    "VerdictKind",
    "build_probes",
    "create_default_http_client",
    "create_default_platform",
    "load_http_settings",
    "load_profile",
    "load_remediation_settings",
    "resolve",
    "setup_logging",
    "__version__",
]
