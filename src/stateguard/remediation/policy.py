# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Policy remediation: write the corrected value, fall back to removing it."""

from __future__ import annotations

import logging
from typing import Any

from ..errors import PlatformError
from ..models import ArtifactKind, RemediationArtifact, RemediationOutcome
from ..platform import PlatformAdapter
from ..profiles import PolicyFix

logger = logging.getLogger(__name__)


def _same_value(observed: Any, expected: Any) -> bool:
    if observed is None:
        return False
    try:
        return int(observed) == int(expected)
    except (TypeError, ValueError):
        return str(observed).strip().casefold() == str(expected).strip().casefold()


class PolicyRemediator:
    """Applies a PolicyFix and verifies it by re-reading the value."""

    def __init__(self, platform: PlatformAdapter):
        self.platform = platform

    def apply(self, fix: PolicyFix) -> RemediationOutcome:
        artifact = RemediationArtifact(kind=ArtifactKind.REGISTRY_VALUE, location=f"{fix.path}\\{fix.value_name}")
        errors: list[str] = []

        try:
            self.platform.write_registry_value(fix.path, fix.value_name, fix.value, fix.value_type)
            observed = self.platform.read_registry_value(fix.path, fix.value_name)
            if _same_value(observed, fix.value):
                logger.info("Set %s to %r", artifact.location, fix.value)
                return RemediationOutcome.success(artifact, strategy="write", value=fix.value)
            errors.append(f"write: re-read returned {observed!r}, expected {fix.value!r}")
        except PlatformError as exc:
            errors.append(f"write: {exc}")
        logger.warning("Writing %s did not stick (%s); removing the value instead", artifact.location, errors[-1])

        try:
            self.platform.delete_registry_value(fix.path, fix.value_name)
            observed = self.platform.read_registry_value(fix.path, fix.value_name)
            if observed is None:
                logger.info("Removed %s", artifact.location)
                return RemediationOutcome.success(artifact, strategy="delete", write_error=errors[0])
            errors.append(f"delete: value still present as {observed!r}")
        except PlatformError as exc:
            errors.append(f"delete: {exc}")

        return RemediationOutcome.failure(
            f"Policy remediation failed for {artifact.location}: " + "; ".join(errors),
            artifact,
            errors=errors,
        )
