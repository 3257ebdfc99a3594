# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""High-level StateGuard driver: detect, classify, remediate, verify."""

from __future__ import annotations

import logging
from contextlib import suppress
from dataclasses import replace

from .config import RemediationSettings, load_http_settings, load_remediation_settings
from .detection import ProbeChain, build_probes
from .errors import PlatformError
from .http.client import HttpClient, create_default_http_client
from .models import (
    DetectionResult,
    PrivilegeContext,
    RemediationOutcome,
    RunReport,
    Verdict,
    VerdictKind,
)
from .platform import PlatformAdapter, create_default_platform
from .profiles import TrackedItem
from .remediation import RemediationPipeline
from .verdict import resolve

logger = logging.getLogger(__name__)


def _remediation_verified(before: Verdict, after: Verdict) -> bool:
    # A lifted restriction is enough for policy fixes; a package fix must reach the baseline.
    if before.kind == VerdictKind.RESTRICTED:
        return after.kind != VerdictKind.RESTRICTED
    return after.kind == VerdictKind.UP_TO_DATE


class StateGuard:
    """
    Wires one platform adapter and one HTTP client through a single reconciliation pass.

    Each stage returns an immutable value; `run` assembles them into a RunReport.
    """

    def __init__(
        self,
        platform: PlatformAdapter | None = None,
        http_client: HttpClient | None = None,
        remediation_settings: RemediationSettings | None = None,
    ):
        self.http_settings = load_http_settings()
        self.remediation_settings = remediation_settings or load_remediation_settings()
        self.platform = platform or create_default_platform()
        self.http_client = http_client or create_default_http_client(self.http_settings)

    def privilege(self) -> PrivilegeContext:
        try:
            return PrivilegeContext(is_elevated=bool(self.platform.is_current_user_elevated()))
        except PlatformError as exc:
            logger.warning("Could not determine elevation (%s); assuming not elevated", exc)
            return PrivilegeContext(is_elevated=False)

    def detect(self, item: TrackedItem) -> DetectionResult:
        return ProbeChain(build_probes(item.probes, self.platform)).run()

    def evaluate(self, item: TrackedItem) -> tuple[DetectionResult, Verdict]:
        detection = self.detect(item)
        return detection, resolve(detection, item.baseline)

    def run(self, item: TrackedItem, *, remediate: bool = True) -> RunReport:
        privilege = self.privilege()
        detection, verdict = self.evaluate(item)
        logger.info("%s: %s", item.name, verdict.describe())

        if not remediate:
            outcome = None if not verdict.is_fixable else RemediationOutcome.not_attempted("remediation disabled")
            return RunReport(item=item.name, detection=detection, verdict=verdict, remediation=outcome, elevated=privilege.is_elevated)

        pipeline = RemediationPipeline(self.platform, self.http_client, item.remediation, self.remediation_settings)
        outcome = pipeline.remediate(verdict, privilege)

        post_detection = None
        post_verdict = None
        if outcome.succeeded:
            post_detection, post_verdict = self.evaluate(item)
            if not _remediation_verified(verdict, post_verdict):
                outcome = replace(
                    outcome,
                    succeeded=False,
                    failure_reason=f"Remediation completed but re-detection reports {post_verdict.describe()}",
                )

        return RunReport(
            item=item.name,
            detection=detection,
            verdict=verdict,
            remediation=outcome if verdict.is_fixable else None,
            post_detection=post_detection,
            post_verdict=post_verdict,
            elevated=privilege.is_elevated,
        )

    def close(self) -> None:
        with suppress(Exception):
            if hasattr(self.http_client, "close"):
                self.http_client.close()

    def __enter__(self) -> StateGuard:
        return self

    def __exit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        self.close()
