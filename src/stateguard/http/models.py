# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP request/response data models used by the acquisition stage."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..config import HttpSettings
from ..errors import ErrorCategory, categorize_error_type

Headers = dict[str, str]


@dataclass
class HttpRequest:
    """Normalized request representation consumed by HttpClient implementations."""

    url: str
    method: str = "GET"
    headers: Headers | None = None
    timeout: float | None = None
    allow_redirects: bool = True
    max_body_bytes: int | None = None
    # Write the body to this file instead of holding it in `HttpResponse.content`.
    sink: Path | None = None


@dataclass
class HttpResponse:
    """Normalized HTTP response with the metadata the acquirer needs."""

    ok: bool
    status_code: int | None = None
    headers: Headers = field(default_factory=dict)
    content: bytes = b""
    url: str | None = None
    error_message: str | None = None
    error_type: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if str(key).lower() == wanted:
                return value
        return None

    @property
    def truncated(self) -> bool:
        return bool(self.meta.get("body_truncated"))

    @property
    def error_category(self) -> ErrorCategory:
        """Category recorded by the client, else inferred from the error type name."""
        recorded = self.meta.get("error_category")
        if recorded:
            return ErrorCategory(recorded)
        return categorize_error_type(self.error_type)


@dataclass
class RetryConfig:
    """Retry policy for HTTP requests derived from HttpSettings."""

    max_attempts: int = 2
    backoff_factor: float = 2.0
    initial_delay: float = 1.0

    @classmethod
    def from_settings(cls, settings: HttpSettings) -> RetryConfig:
        """Build a retry config from the shared HttpSettings."""
        return cls(
            max_attempts=max(1, settings.max_retries),
            backoff_factor=settings.backoff_factor,
            initial_delay=settings.initial_delay,
        )
