# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Verdict resolution: classify a detection against its baseline."""

from __future__ import annotations

from typing import Any

from .models import Baseline, DetectionResult, Verdict
from .utils import compare_versions


def _normalize_state(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip().casefold()


def resolve(detection: DetectionResult, baseline: Baseline) -> Verdict:
    """
    Pure and total classification.

    Order: restriction, absence, numeric version comparison, plain state
    equality, otherwise indeterminate. A version newer than the target is
    up to date.
    """
    try:
        if detection.restriction:
            return Verdict.restricted(str(detection.restriction))
        if not detection.found:
            return Verdict.absent()

        current = detection.value
        target = baseline.target_value
        if target is None or str(target).strip() == "":
            return Verdict.indeterminate(current, "no baseline target configured")

        ordering = compare_versions(current, target)
        if ordering is not None:
            if ordering < 0:
                return Verdict.stale(current, str(target))
            return Verdict.up_to_date(current, str(target))

        if _normalize_state(current) and _normalize_state(current) == _normalize_state(target):
            return Verdict.up_to_date(current, str(target))

        return Verdict.indeterminate(current, f"cannot compare {current!r} with baseline {target!r}")
    except Exception as exc:  # noqa: BLE001
        return Verdict.indeterminate(None, f"classification error: {exc}")


__all__ = ["resolve"]
