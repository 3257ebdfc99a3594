# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

from pathlib import Path

from stateguard.config import RemediationSettings
from stateguard.http import HttpResponse, RetryConfig, StubHttpClient
from stateguard.models import Baseline, DetectionResult, PrivilegeContext, Verdict
from stateguard.platform import StubPlatform
from stateguard.profiles import PackageSource, PolicyFix
from stateguard.remediation import REASON_NOT_REQUIRED, REASON_REQUIRES_ELEVATION, Acquirer, RemediationPipeline
from stateguard.verdict import resolve

ELEVATED = PrivilegeContext(is_elevated=True)
STANDARD_USER = PrivilegeContext(is_elevated=False)
SETUP_URL = "https://downloads.example.com/AgentSetup.exe"


def _pipeline(platform, client, source, tmp_path, **settings):
    cfg = RemediationSettings(temp_dir=str(tmp_path), **settings)
    acquirer = Acquirer(client, cfg, retry_config=RetryConfig(max_attempts=1, initial_delay=0))
    return RemediationPipeline(platform, client, source, cfg, acquirer=acquirer)


def _stale():
    return resolve(DetectionResult(found=True, value="9000", provenance="registry"), Baseline("9472"))


def _setup_client():
    return StubHttpClient(
        {SETUP_URL: HttpResponse(ok=True, status_code=200, headers={"Content-Type": "application/octet-stream"}, content=b"MZ" * 64)}
    )


def test_up_to_date_is_not_remediated(tmp_path):
    platform = StubPlatform(elevated=True)
    outcome = _pipeline(platform, StubHttpClient(), PackageSource(SETUP_URL), tmp_path).remediate(Verdict.up_to_date("9472", "9472"), ELEVATED)
    assert outcome.attempted is False
    assert outcome.failure_reason == REASON_NOT_REQUIRED


def test_absent_and_indeterminate_are_not_remediated(tmp_path):
    pipeline = _pipeline(StubPlatform(elevated=True), StubHttpClient(), PackageSource(SETUP_URL), tmp_path)
    assert pipeline.remediate(Verdict.absent(), ELEVATED).attempted is False
    assert pipeline.remediate(Verdict.indeterminate("x", "cannot compare"), ELEVATED).attempted is False


def test_missing_elevation_blocks_remediation(tmp_path):
    platform = StubPlatform(elevated=False)
    client = _setup_client()

    outcome = _pipeline(platform, client, PackageSource(SETUP_URL), tmp_path).remediate(_stale(), STANDARD_USER)

    assert outcome.attempted is False
    assert outcome.failure_reason == REASON_REQUIRES_ELEVATION
    assert client.requests == []
    assert platform.processes == []


def test_missing_source_is_reported(tmp_path):
    pipeline = _pipeline(StubPlatform(elevated=True), StubHttpClient(), None, tmp_path)
    outcome = pipeline.remediate(_stale(), ELEVATED)
    assert outcome.attempted is False
    assert outcome.failure_reason == "no remediation configured for a stale item"

    mismatched = _pipeline(StubPlatform(elevated=True), StubHttpClient(), PackageSource(SETUP_URL), tmp_path)
    assert mismatched.remediate(Verdict.restricted("disabled"), ELEVATED).attempted is False


def test_missing_source_is_reported_before_elevation(tmp_path):
    outcome = _pipeline(StubPlatform(elevated=False), StubHttpClient(), None, tmp_path).remediate(_stale(), STANDARD_USER)
    assert outcome.failure_reason == "no remediation configured for a stale item"


def test_restricted_verdict_applies_policy_fix(tmp_path):
    path = r"HKLM\SOFTWARE\Policies\Contoso"
    platform = StubPlatform(registry={(path, "Disable"): 1}, elevated=True)
    pipeline = _pipeline(platform, StubHttpClient(), PolicyFix(path, "Disable", 0), tmp_path)

    outcome = pipeline.remediate(Verdict.restricted("disabled by policy"), ELEVATED)

    assert outcome.succeeded
    assert platform.read_registry_value(path, "Disable") == 0


def test_stale_with_all_downloads_failing(tmp_path):
    platform = StubPlatform(elevated=True)
    client = StubHttpClient()
    source = PackageSource("https://www.dropbox.com/s/k3y/AgentSetup.exe?dl=0")

    outcome = _pipeline(platform, client, source, tmp_path).remediate(_stale(), ELEVATED)

    assert outcome.attempted is True
    assert outcome.succeeded is False
    assert len(outcome.details["attempts"]) == 4
    assert platform.processes == []
    assert list(tmp_path.iterdir()) == []


def test_stale_download_and_install_cleans_up(tmp_path):
    platform = StubPlatform(elevated=True)

    outcome = _pipeline(platform, _setup_client(), PackageSource(SETUP_URL), tmp_path).remediate(_stale(), ELEVATED)

    assert outcome.succeeded
    assert outcome.details["attempts"][0]["ok"] is True
    installed = Path(platform.processes[0][0])
    assert installed.name == "AgentSetup.exe"
    assert not installed.exists()
    assert list(tmp_path.iterdir()) == []
    assert "artifact_dir" not in outcome.details


def test_install_failure_still_cleans_up(tmp_path):
    platform = StubPlatform(elevated=True, process_exit_codes={"AgentSetup.exe": 1603})

    outcome = _pipeline(platform, _setup_client(), PackageSource(SETUP_URL), tmp_path).remediate(_stale(), ELEVATED)

    assert outcome.attempted is True
    assert outcome.succeeded is False
    assert outcome.details["exit_code"] == 1603
    assert list(tmp_path.iterdir()) == []


def test_keep_artifacts_reports_directory(tmp_path):
    platform = StubPlatform(elevated=True)

    outcome = _pipeline(platform, _setup_client(), PackageSource(SETUP_URL), tmp_path, keep_artifacts=True).remediate(_stale(), ELEVATED)

    artifact_dir = Path(outcome.details["artifact_dir"])
    assert artifact_dir.parent == tmp_path
    assert (artifact_dir / "AgentSetup.exe").is_file()


def test_package_source_without_http_client(tmp_path):
    pipeline = RemediationPipeline(StubPlatform(elevated=True), None, PackageSource(SETUP_URL), RemediationSettings(temp_dir=str(tmp_path)))
    outcome = pipeline.remediate(_stale(), ELEVATED)
    assert outcome.attempted is True
    assert outcome.succeeded is False
