# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import pytest

from stateguard.models import Baseline, DetectionResult, VerdictKind
from stateguard.verdict import resolve


def _found(value, restriction=None):
    return DetectionResult(found=True, value=value, provenance="test", restriction=restriction)


def test_restriction_takes_precedence():
    verdict = resolve(_found("9472", restriction="disabled by policy"), Baseline("9472"))
    assert verdict.kind == VerdictKind.RESTRICTED
    assert verdict.reason == "disabled by policy"
    assert verdict.is_fixable


def test_not_found_is_absent():
    verdict = resolve(DetectionResult(found=False), Baseline("1.0"))
    assert verdict.kind == VerdictKind.ABSENT
    assert not verdict.is_fixable


def test_older_version_is_stale():
    verdict = resolve(_found("9000"), Baseline("9472"))
    assert verdict.kind == VerdictKind.STALE
    assert (verdict.current, verdict.target) == ("9000", "9472")
    assert verdict.describe() == "stale (9000 < 9472)"


@pytest.mark.parametrize("current", ["9472", "9472.0", "9500", "10000"])
def test_equal_or_newer_version_is_up_to_date(current):
    assert resolve(_found(current), Baseline("9472")).kind == VerdictKind.UP_TO_DATE


def test_staleness_is_monotonic_in_current_version():
    ordered = ["1", "1.5", "2.0", "2.0.1", "3"]
    target = "2.0"
    kinds = [resolve(_found(value), Baseline(target)).kind for value in ordered]
    stale_flags = [kind == VerdictKind.STALE for kind in kinds]
    # once not stale, higher versions stay not stale
    first_ok = stale_flags.index(False)
    assert all(stale_flags[:first_ok])
    assert not any(stale_flags[first_ok:])


def test_state_values_compare_case_insensitively():
    assert resolve(_found("enabled"), Baseline("Enabled")).kind == VerdictKind.UP_TO_DATE
    verdict = resolve(_found("Disabled"), Baseline("Enabled"))
    assert verdict.kind == VerdictKind.INDETERMINATE
    assert verdict.current == "Disabled"


def test_missing_target_is_indeterminate():
    verdict = resolve(_found("22631"), Baseline())
    assert verdict.kind == VerdictKind.INDETERMINATE
    assert verdict.reason == "no baseline target configured"


@pytest.mark.parametrize(
    "value,target",
    [
        ("", "1.0"),
        (None, "1.0"),
        ("1.2.x", "1.2"),
        (["9000"], "9472"),
        (object(), "9472"),
        ("9000", "   "),
    ],
)
def test_resolve_is_total(value, target):
    verdict = resolve(_found(value), Baseline(target))
    assert verdict.kind in set(VerdictKind)


def test_resolve_never_raises_on_broken_detection():
    class Broken:
        restriction = None
        found = True

        @property
        def value(self):
            raise RuntimeError("boom")

    verdict = resolve(Broken(), Baseline("1.0"))
    assert verdict.kind == VerdictKind.INDETERMINATE
    assert "boom" in verdict.reason


def test_verdict_to_dict():
    assert resolve(_found("1.0"), Baseline("2.0")).to_dict() == {
        "kind": "STALE",
        "current": "1.0",
        "target": "2.0",
        "reason": None,
    }
