# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Run report assembled by the runtime driver."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .probe import DetectionResult
from .remediation import RemediationOutcome
from .verdict import Verdict, VerdictKind

EXIT_OK = 0
EXIT_ACTION_REQUIRED = 1


def compute_exit_code(verdict: Verdict | None, remediation: RemediationOutcome | None) -> int:
    """0 when the item is up to date or a remediation succeeded, 1 otherwise."""
    if remediation is not None and remediation.attempted:
        return EXIT_OK if remediation.succeeded else EXIT_ACTION_REQUIRED
    if verdict is not None and verdict.kind == VerdictKind.UP_TO_DATE:
        return EXIT_OK
    return EXIT_ACTION_REQUIRED


@dataclass(frozen=True)
class RunReport:
    item: str
    detection: DetectionResult
    verdict: Verdict
    remediation: RemediationOutcome | None = None
    post_detection: DetectionResult | None = None
    post_verdict: Verdict | None = None
    elevated: bool = False

    @property
    def exit_code(self) -> int:
        return compute_exit_code(self.verdict, self.remediation)

    @property
    def status(self) -> str:
        if self.remediation is not None and self.remediation.attempted:
            return "REMEDIATED" if self.remediation.succeeded else "REMEDIATION_FAILED"
        return self.verdict.kind.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "item": self.item,
            "status": self.status,
            "exit_code": self.exit_code,
            "elevated": self.elevated,
            "detection": self.detection.to_dict(),
            "verdict": self.verdict.to_dict(),
            "remediation": self.remediation.to_dict() if self.remediation else None,
            "post_detection": self.post_detection.to_dict() if self.post_detection else None,
            "post_verdict": self.post_verdict.to_dict() if self.post_verdict else None,
        }
