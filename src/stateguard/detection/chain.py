# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Priority-ordered probe chain with first-success semantics."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..models import DetectionResult, ProbeAttempt, ProbeResult
from .base import Probe

logger = logging.getLogger(__name__)


class ProbeChain:
    """Runs probes in priority order and stops at the first success."""

    def __init__(self, probes: Iterable[Probe]):
        self.probes: list[Probe] = sorted(probes, key=lambda probe: probe.priority)

    def run(self) -> DetectionResult:
        attempts: list[ProbeAttempt] = []
        for probe in self.probes:
            result = self._run_probe(probe)
            attempts.append(ProbeAttempt(name=probe.name, succeeded=result.succeeded, diagnostic=result.diagnostic))
            if result.succeeded:
                logger.info("Probe %s succeeded: %r (%s)", probe.name, result.value, result.provenance)
                return DetectionResult(
                    found=True,
                    value=result.value,
                    provenance=result.provenance,
                    restriction=result.restriction,
                    tried_probes=tuple(attempts),
                )
            logger.debug("Probe %s failed: %s", probe.name, result.diagnostic)
        return DetectionResult(found=False, tried_probes=tuple(attempts))

    @staticmethod
    def _run_probe(probe: Probe) -> ProbeResult:
        try:
            result = probe.run()
        except Exception as exc:  # noqa: BLE001
            logger.debug("Probe %s raised %s: %s", probe.name, type(exc).__name__, exc)
            return ProbeResult.failure(f"{type(exc).__name__}: {exc}")
        if not isinstance(result, ProbeResult):
            return ProbeResult.failure(f"Probe returned {type(result).__name__}, expected ProbeResult")
        return result
