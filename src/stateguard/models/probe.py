# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Probe and detection result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ProbeResult:
    """
    Outcome of a single probe.

    A failed result never carries a value; `restriction` is set by probes that
    observe a policy-disabled or service-disabled state.
    """

    succeeded: bool
    value: Any = None
    provenance: str = ""
    diagnostic: str | None = None
    restriction: str | None = None

    def __post_init__(self) -> None:
        if not self.succeeded and self.value is not None:
            object.__setattr__(self, "value", None)

    @classmethod
    def success(cls, value: Any, provenance: str, *, restriction: str | None = None) -> ProbeResult:
        return cls(succeeded=True, value=value, provenance=provenance, restriction=restriction)

    @classmethod
    def failure(cls, diagnostic: str, provenance: str = "") -> ProbeResult:
        return cls(succeeded=False, provenance=provenance, diagnostic=diagnostic)


@dataclass(frozen=True)
class ProbeAttempt:
    name: str
    succeeded: bool
    diagnostic: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "succeeded": self.succeeded, "diagnostic": self.diagnostic}


@dataclass(frozen=True)
class DetectionResult:
    """Aggregated outcome of a probe chain run."""

    found: bool
    value: Any = None
    provenance: str | None = None
    restriction: str | None = None
    tried_probes: tuple[ProbeAttempt, ...] = field(default_factory=tuple)

    @property
    def winner(self) -> str | None:
        if not self.found or not self.tried_probes:
            return None
        return self.tried_probes[-1].name

    def to_dict(self) -> dict[str, Any]:
        return {
            "found": self.found,
            "value": self.value,
            "provenance": self.provenance,
            "restriction": self.restriction,
            "tried_probes": [attempt.to_dict() for attempt in self.tried_probes],
        }
