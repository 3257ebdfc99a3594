# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

from stateguard.models import ArtifactKind
from stateguard.platform import REG_DWORD, StubPlatform
from stateguard.profiles import PolicyFix
from stateguard.remediation import PolicyRemediator

AU_KEY = r"HKLM\SOFTWARE\Policies\Microsoft\Windows\WindowsUpdate\AU"
KEY = (AU_KEY, "NoAutoUpdate")


def test_write_then_verify():
    platform = StubPlatform(registry={KEY: 1}, elevated=True)
    outcome = PolicyRemediator(platform).apply(PolicyFix(AU_KEY, "NoAutoUpdate", 0))

    assert outcome.attempted and outcome.succeeded
    assert outcome.details["strategy"] == "write"
    assert outcome.applied_artifact.kind == ArtifactKind.REGISTRY_VALUE
    assert platform.writes == [(AU_KEY, "NoAutoUpdate", 0, REG_DWORD)]
    assert platform.read_registry_value(*KEY) == 0
    assert platform.deletes == []


def test_ignored_write_falls_back_to_delete():
    platform = StubPlatform(registry={KEY: 1}, elevated=True)
    platform.ignored_writes.add(KEY)

    outcome = PolicyRemediator(platform).apply(PolicyFix(AU_KEY, "NoAutoUpdate", 0))

    assert outcome.succeeded
    assert outcome.details["strategy"] == "delete"
    assert "re-read returned 1" in outcome.details["write_error"]
    assert platform.read_registry_value(*KEY) is None


def test_failing_write_falls_back_to_delete():
    platform = StubPlatform(registry={KEY: 1}, elevated=True)
    platform.failing_writes.add(KEY)

    outcome = PolicyRemediator(platform).apply(PolicyFix(AU_KEY, "NoAutoUpdate", 0))

    assert outcome.succeeded
    assert outcome.details["strategy"] == "delete"
    assert platform.deletes == [KEY]


def test_both_strategies_failing_reports_every_error():
    platform = StubPlatform(registry={KEY: 1}, elevated=True)
    platform.failing_reads.add(KEY)

    outcome = PolicyRemediator(platform).apply(PolicyFix(AU_KEY, "NoAutoUpdate", 0))

    assert outcome.attempted is True
    assert outcome.succeeded is False
    assert len(outcome.details["errors"]) == 2
    assert outcome.failure_reason.startswith("Policy remediation failed")


def test_string_values_compare_loosely():
    path = r"HKLM\SOFTWARE\Policies\Contoso"
    platform = StubPlatform(registry={(path, "Channel"): "Beta"}, elevated=True)
    outcome = PolicyRemediator(platform).apply(PolicyFix(path, "Channel", "Stable", "REG_SZ"))
    assert outcome.succeeded
    assert platform.read_registry_value(path, "Channel") == "Stable"
