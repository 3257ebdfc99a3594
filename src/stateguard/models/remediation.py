# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Remediation artifact, outcome and privilege models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePath
from typing import Any


class ArtifactKind(str, Enum):
    REGISTRY_VALUE = "REGISTRY_VALUE"
    EXECUTABLE = "EXECUTABLE"
    MSI_PACKAGE = "MSI_PACKAGE"
    UPDATE_PACKAGE = "UPDATE_PACKAGE"
    ARCHIVE = "ARCHIVE"
    UNKNOWN = "UNKNOWN"


_EXTENSION_KINDS = {
    ".exe": ArtifactKind.EXECUTABLE,
    ".msi": ArtifactKind.MSI_PACKAGE,
    ".msu": ArtifactKind.UPDATE_PACKAGE,
    ".zip": ArtifactKind.ARCHIVE,
}

INSTALLER_EXTENSIONS = (".msi", ".msu", ".exe")


def classify_artifact(location: str) -> ArtifactKind:
    """Classify a file artifact by its extension."""
    return _EXTENSION_KINDS.get(PurePath(location).suffix.lower(), ArtifactKind.UNKNOWN)


@dataclass(frozen=True)
class RemediationArtifact:
    kind: ArtifactKind
    location: str
    size_bytes: int | None = None

    @classmethod
    def from_file(cls, location: str, size_bytes: int | None = None) -> RemediationArtifact:
        return cls(kind=classify_artifact(location), location=location, size_bytes=size_bytes)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "location": self.location, "size_bytes": self.size_bytes}


@dataclass(frozen=True)
class RemediationOutcome:
    attempted: bool
    succeeded: bool = False
    applied_artifact: RemediationArtifact | None = None
    failure_reason: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def not_attempted(cls, reason: str) -> RemediationOutcome:
        return cls(attempted=False, failure_reason=reason)

    @classmethod
    def success(cls, artifact: RemediationArtifact, **details: Any) -> RemediationOutcome:
        return cls(attempted=True, succeeded=True, applied_artifact=artifact, details=details)

    @classmethod
    def failure(cls, reason: str, artifact: RemediationArtifact | None = None, **details: Any) -> RemediationOutcome:
        return cls(attempted=True, succeeded=False, applied_artifact=artifact, failure_reason=reason, details=details)

    def to_dict(self) -> dict[str, Any]:
        return {
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "applied_artifact": self.applied_artifact.to_dict() if self.applied_artifact else None,
            "failure_reason": self.failure_reason,
            "details": dict(self.details),
        }


@dataclass(frozen=True)
class PrivilegeContext:
    is_elevated: bool
