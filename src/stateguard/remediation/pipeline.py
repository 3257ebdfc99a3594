# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Privilege-gated remediation pipeline."""

from __future__ import annotations

import logging
import shutil
import tempfile
from dataclasses import replace
from pathlib import Path

from ..config import RemediationSettings, load_remediation_settings
from ..errors import AcquisitionFailure
from ..http import HttpClient
from ..models import PrivilegeContext, RemediationOutcome, Verdict, VerdictKind
from ..platform import PlatformAdapter
from ..profiles import PackageSource, PolicyFix, RemediationSource
from .acquire import Acquirer
from .install import Installer
from .policy import PolicyRemediator

logger = logging.getLogger(__name__)

REASON_NOT_REQUIRED = "no remediation required"
REASON_REQUIRES_ELEVATION = "requires elevation: re-run as an administrator to remediate"


class RemediationPipeline:
    """
    Chooses and runs a remediation for one verdict.

    Only STALE and RESTRICTED verdicts are remediated, only with a matching
    source configured, and only when elevated. Package remediation owns a
    run-scoped work directory that is removed on every exit path unless
    `keep_artifacts` is set.
    """

    def __init__(
        self,
        platform: PlatformAdapter,
        http_client: HttpClient | None,
        source: RemediationSource | None,
        settings: RemediationSettings | None = None,
        *,
        acquirer: Acquirer | None = None,
        installer: Installer | None = None,
        policy_remediator: PolicyRemediator | None = None,
    ):
        self.platform = platform
        self.source = source
        self.settings = settings or load_remediation_settings()
        self.acquirer = acquirer or (Acquirer(http_client, self.settings) if http_client is not None else None)
        self.installer = installer or Installer(platform, self.settings)
        self.policy_remediator = policy_remediator or PolicyRemediator(platform)

    def remediate(self, verdict: Verdict, privilege: PrivilegeContext) -> RemediationOutcome:
        if not verdict.is_fixable:
            return RemediationOutcome.not_attempted(REASON_NOT_REQUIRED)

        expected = PolicyFix if verdict.kind == VerdictKind.RESTRICTED else PackageSource
        if not isinstance(self.source, expected):
            return RemediationOutcome.not_attempted(f"no remediation configured for a {verdict.kind.value.lower()} item")

        if not privilege.is_elevated:
            logger.warning("Remediation for %s skipped: not elevated", verdict.describe())
            return RemediationOutcome.not_attempted(REASON_REQUIRES_ELEVATION)

        if isinstance(self.source, PolicyFix):
            return self.policy_remediator.apply(self.source)
        return self._remediate_package(self.source)

    def _remediate_package(self, source: PackageSource) -> RemediationOutcome:
        acquirer = self.acquirer
        if acquirer is None:
            return RemediationOutcome.failure("No HTTP client available to download the update")
        try:
            work_dir = Path(tempfile.mkdtemp(prefix="stateguard-", dir=self.settings.temp_dir))
        except OSError as exc:
            return RemediationOutcome.failure(f"Cannot create a temporary download directory: {exc}")

        outcome = RemediationOutcome.failure("Package remediation did not complete")
        try:
            outcome = self._acquire_and_install(acquirer, source, work_dir)
        finally:
            remaining = self._release_work_dir(work_dir)
        if remaining:
            outcome = replace(outcome, details={**outcome.details, "artifact_dir": str(work_dir)})
        return outcome

    def _acquire_and_install(self, acquirer: Acquirer, source: PackageSource, work_dir: Path) -> RemediationOutcome:
        try:
            acquisition = acquirer.acquire(source, work_dir)
        except AcquisitionFailure as exc:
            return RemediationOutcome.failure(
                str(exc),
                status_code=exc.status_code,
                category=exc.category.value,
                attempts=exc.attempts,
            )
        outcome = self.installer.install(acquisition.artifact, installer_args=source.installer_args)
        return replace(outcome, details={**outcome.details, "attempts": acquisition.attempts})

    def _release_work_dir(self, work_dir: Path) -> bool:
        """Remove the work directory; return True when it is left on disk."""
        if self.settings.keep_artifacts:
            logger.warning("Keeping downloaded artifacts in %s", work_dir)
            return True
        try:
            shutil.rmtree(work_dir)
        except OSError as exc:
            logger.warning("Could not remove %s (%s); remove it manually", work_dir, exc)
            return True
        return False
