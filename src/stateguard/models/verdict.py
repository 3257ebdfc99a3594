# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Baseline and verdict models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class VerdictKind(str, Enum):
    UP_TO_DATE = "UP_TO_DATE"
    STALE = "STALE"
    RESTRICTED = "RESTRICTED"
    ABSENT = "ABSENT"
    INDETERMINATE = "INDETERMINATE"


@dataclass(frozen=True)
class Baseline:
    target_value: str | None = None


@dataclass(frozen=True)
class Verdict:
    kind: VerdictKind
    current: Any = None
    target: str | None = None
    reason: str | None = None

    @classmethod
    def up_to_date(cls, current: Any = None, target: str | None = None) -> Verdict:
        return cls(VerdictKind.UP_TO_DATE, current=current, target=target)

    @classmethod
    def stale(cls, current: Any, target: str) -> Verdict:
        return cls(VerdictKind.STALE, current=current, target=target)

    @classmethod
    def restricted(cls, reason: str) -> Verdict:
        return cls(VerdictKind.RESTRICTED, reason=reason)

    @classmethod
    def absent(cls) -> Verdict:
        return cls(VerdictKind.ABSENT)

    @classmethod
    def indeterminate(cls, raw_value: Any, reason: str) -> Verdict:
        return cls(VerdictKind.INDETERMINATE, current=raw_value, reason=reason)

    @property
    def is_fixable(self) -> bool:
        return self.kind in {VerdictKind.STALE, VerdictKind.RESTRICTED}

    def describe(self) -> str:
        if self.kind == VerdictKind.STALE:
            return f"stale ({self.current} < {self.target})"
        if self.kind == VerdictKind.RESTRICTED:
            return f"restricted: {self.reason}"
        if self.kind == VerdictKind.INDETERMINATE:
            return f"indeterminate ({self.current!r}): {self.reason}"
        if self.kind == VerdictKind.UP_TO_DATE:
            return "up to date" if self.current is None else f"up to date ({self.current})"
        return "absent"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "current": self.current,
            "target": self.target,
            "reason": self.reason,
        }
