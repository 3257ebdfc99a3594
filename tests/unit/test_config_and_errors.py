# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import socket
import ssl

import httpx

from stateguard import config
from stateguard.config import DEFAULT_USER_AGENT
from stateguard.errors import (
    AcquisitionFailure,
    ErrorCategory,
    InstallFailure,
    categorize_error_type,
    categorize_exception,
    error_category_to_reason,
)


def test_http_settings_env_overrides(monkeypatch):
    monkeypatch.setenv("STATEGUARD_HTTP_TIMEOUT", "5.5")
    monkeypatch.setenv("STATEGUARD_HTTP_RETRIES", "0")
    monkeypatch.setenv("STATEGUARD_HTTP_BACKOFF", "1.5")
    monkeypatch.setenv("STATEGUARD_HTTP_INITIAL_DELAY", "0.1")
    monkeypatch.setenv("STATEGUARD_USER_AGENT", "CustomAgent/1.0")
    monkeypatch.setenv("STATEGUARD_HTTP_REDIRECTS", "false")
    monkeypatch.setenv("STATEGUARD_HTTP_VERIFY_SSL", "0")

    settings = config.load_http_settings()

    assert settings.timeout == 5.5
    assert settings.max_retries == 0  # retry config clamps later
    assert settings.backoff_factor == 1.5
    assert settings.initial_delay == 0.1
    assert settings.user_agent == "CustomAgent/1.0"
    assert settings.allow_redirects is False
    assert settings.verify_ssl is False


def test_http_settings_invalid_env_fall_back(monkeypatch):
    monkeypatch.setenv("STATEGUARD_HTTP_TIMEOUT", "not-a-number")
    monkeypatch.setenv("STATEGUARD_HTTP_RETRIES", "ten")
    monkeypatch.setenv("STATEGUARD_HTTP_BACKOFF", "")
    monkeypatch.setenv("STATEGUARD_HTTP_MAX_BODY_BYTES", "-4")

    settings = config.load_http_settings()

    assert settings.timeout == config.HttpSettings.timeout
    assert settings.max_retries == config.HttpSettings.max_retries
    assert settings.backoff_factor == config.HttpSettings.backoff_factor
    assert settings.max_body_bytes == config.HttpSettings.max_body_bytes
    assert DEFAULT_USER_AGENT in settings.user_agent


def test_remediation_settings_env(monkeypatch):
    monkeypatch.setenv("STATEGUARD_KEEP_ARTIFACTS", "yes")
    monkeypatch.setenv("STATEGUARD_INSTALL_SUCCESS_CODES", "0, 3010")
    monkeypatch.setenv("STATEGUARD_DOWNLOAD_MAX_BYTES", "1024")
    monkeypatch.setenv("STATEGUARD_INSTALL_TIMEOUT", "0")
    monkeypatch.setenv("STATEGUARD_TEMP_DIR", "/tmp/sg")

    settings = config.load_remediation_settings()

    assert settings.keep_artifacts is True
    assert settings.success_exit_codes == (0, 3010)
    assert settings.max_download_bytes == 1024
    assert settings.install_timeout == config.RemediationSettings.install_timeout
    assert settings.temp_dir == "/tmp/sg"
    assert settings.exe_args == ("/quiet", "/norestart")


def test_remediation_settings_bad_exit_codes_fall_back(monkeypatch):
    monkeypatch.setenv("STATEGUARD_INSTALL_SUCCESS_CODES", "zero")
    assert config.load_remediation_settings().success_exit_codes == (0,)


def test_categorize_exception_variants():
    request = httpx.Request("GET", "http://example")
    assert categorize_exception(httpx.ReadTimeout("slow", request=request)) == ErrorCategory.TIMEOUT
    assert categorize_exception(httpx.ConnectError("refused", request=request)) == ErrorCategory.CONNECTION_ERROR
    assert categorize_exception(ssl.SSLError("bad cert")) == ErrorCategory.SSL_ERROR
    assert categorize_exception(socket.gaierror("no host")) == ErrorCategory.DNS_ERROR
    assert categorize_exception(ConnectionResetError()) == ErrorCategory.CONNECTION_ERROR
    assert categorize_exception(ValueError("x")) == ErrorCategory.UNKNOWN_ERROR


def test_categorize_error_type_names():
    assert categorize_error_type("ReadTimeout") == ErrorCategory.TIMEOUT
    assert categorize_error_type("ConnectError") == ErrorCategory.CONNECTION_ERROR
    assert categorize_error_type("SSLError") == ErrorCategory.SSL_ERROR
    assert categorize_error_type(None) == ErrorCategory.UNKNOWN_ERROR


def test_error_reasons_and_payloads():
    assert error_category_to_reason(ErrorCategory.INTERSTITIAL).startswith("Download returned an HTML page")
    assert error_category_to_reason(None) == ""

    failure = AcquisitionFailure("nope", url="http://x", status_code=404, category=ErrorCategory.HTTP_STATUS)
    assert str(failure) == "nope"
    assert failure.status_code == 404
    assert failure.attempts == []

    install = InstallFailure("exited 1603", path="C:/x.msi", exit_code=1603)
    assert install.exit_code == 1603
