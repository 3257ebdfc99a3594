# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Dataclass exports for StateGuard."""

from .probe import DetectionResult, ProbeAttempt, ProbeResult
from .remediation import (
    INSTALLER_EXTENSIONS,
    ArtifactKind,
    PrivilegeContext,
    RemediationArtifact,
    RemediationOutcome,
    classify_artifact,
)
from .report import EXIT_ACTION_REQUIRED, EXIT_OK, RunReport, compute_exit_code
from .verdict import Baseline, Verdict, VerdictKind

__all__ = [
    "ArtifactKind",
    "Baseline",
    "DetectionResult",
    "EXIT_ACTION_REQUIRED",
    "EXIT_OK",
    "INSTALLER_EXTENSIONS",
    "PrivilegeContext",
    "ProbeAttempt",
    "ProbeResult",
    "RemediationArtifact",
    "RemediationOutcome",
    "RunReport",
    "Verdict",
    "VerdictKind",
    "classify_artifact",
    "compute_exit_code",
]
