# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy and exception helpers."""

from __future__ import annotations

import socket
import ssl as ssl_module
from enum import Enum

import httpx


class ErrorCategory(str, Enum):
    TIMEOUT = "TIMEOUT"
    HTTP_STATUS = "HTTP_STATUS"
    SSL_ERROR = "SSL_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    DNS_ERROR = "DNS_ERROR"
    EMPTY_CONTENT = "EMPTY_CONTENT"
    INTERSTITIAL = "INTERSTITIAL"
    TOO_LARGE = "TOO_LARGE"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    NONE = "NONE"


class StateGuardError(Exception):
    """Base class for StateGuard errors. The message is always a triage string."""


class ProbeFailure(StateGuardError):
    """A single probe could not establish its fact."""


class AcquisitionFailure(StateGuardError):
    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        status_code: int | None = None,
        category: ErrorCategory = ErrorCategory.UNKNOWN_ERROR,
        attempts: list[dict] | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.category = category
        self.attempts = list(attempts or [])


class InstallFailure(StateGuardError):
    def __init__(self, message: str, *, path: str | None = None, exit_code: int | None = None):
        super().__init__(message)
        self.path = path
        self.exit_code = exit_code


class PlatformError(StateGuardError):
    """An OS query primitive failed."""


class PlatformUnavailable(PlatformError):
    """The host platform does not provide the required primitives."""


class ProfileError(StateGuardError):
    """A tracked-item definition is invalid."""


def categorize_exception(exc: Exception) -> ErrorCategory:
    """
    Map Python/httpx exceptions to ErrorCategory.
    """
    if isinstance(exc, httpx.TimeoutException):
        return ErrorCategory.TIMEOUT

    if isinstance(exc, httpx.HTTPStatusError):
        return ErrorCategory.HTTP_STATUS

    if isinstance(exc, (ssl_module.SSLError, ssl_module.CertificateError)):
        return ErrorCategory.SSL_ERROR

    if isinstance(exc, (socket.gaierror, socket.herror)):
        return ErrorCategory.DNS_ERROR

    if isinstance(exc, (httpx.ConnectError, httpx.RemoteProtocolError, httpx.NetworkError, httpx.ProxyError)):
        return ErrorCategory.CONNECTION_ERROR

    if isinstance(exc, (ConnectionError, ConnectionRefusedError, ConnectionResetError)):
        return ErrorCategory.CONNECTION_ERROR

    return ErrorCategory.UNKNOWN_ERROR


def categorize_error_type(error_type: str | None) -> ErrorCategory:
    """Categorize a transport failure reported by name (HttpResponse.error_type)."""
    if not error_type:
        return ErrorCategory.UNKNOWN_ERROR
    if "Timeout" in error_type:
        return ErrorCategory.TIMEOUT
    if "SSL" in error_type or "Certificate" in error_type:
        return ErrorCategory.SSL_ERROR
    if error_type in {"gaierror", "herror"}:
        return ErrorCategory.DNS_ERROR
    if "Connect" in error_type or "Network" in error_type or "Protocol" in error_type or "Proxy" in error_type:
        return ErrorCategory.CONNECTION_ERROR
    return ErrorCategory.UNKNOWN_ERROR


def error_category_to_reason(category: ErrorCategory | None) -> str:
    """User-facing reason string."""
    mapping = {
        ErrorCategory.TIMEOUT: "Network timeout during download",
        ErrorCategory.HTTP_STATUS: "Server rejected the download request",
        ErrorCategory.SSL_ERROR: "TLS/certificate issue",
        ErrorCategory.CONNECTION_ERROR: "Network connectivity issue",
        ErrorCategory.DNS_ERROR: "DNS resolution failure",
        ErrorCategory.EMPTY_CONTENT: "Download returned no content",
        ErrorCategory.INTERSTITIAL: "Download returned an HTML page instead of a file",
        ErrorCategory.TOO_LARGE: "Download exceeded the configured size limit",
        ErrorCategory.UNKNOWN_ERROR: "Network error during download",
        ErrorCategory.NONE: "",
        None: "",
    }
    return mapping.get(category, "Download failed")
