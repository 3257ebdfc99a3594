# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Configuration helpers for StateGuard."""

import os
from dataclasses import dataclass, field

from .version import __version__

DEFAULT_USER_AGENT = f"StateGuard/{__version__} (probe-and-remediate agent)"
DEFAULT_BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
DEFAULT_EXE_ARGS = ("/quiet", "/norestart")


def _float_env(name: str, default: float) -> float:
    try:
        value = os.getenv(name)
        return float(value) if value is not None else default
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    try:
        value = os.getenv(name)
        return int(value) if value is not None else default
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _int_tuple_env(name: str, default: tuple[int, ...]) -> tuple[int, ...]:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = tuple(int(part) for part in value.replace(";", ",").split(",") if part.strip())
    except ValueError:
        return default
    return parsed or default


@dataclass
class HttpSettings:
    """HTTP client defaults."""

    timeout: float = 30.0
    max_retries: int = 2
    backoff_factor: float = 2.0
    initial_delay: float = 1.0
    user_agent: str = DEFAULT_USER_AGENT
    allow_redirects: bool = True
    verify_ssl: bool = True
    max_body_bytes: int = 16 * 1024 * 1024

    @classmethod
    def from_env(cls) -> "HttpSettings":
        """Create settings from environment variables (evaluated at call time)."""
        max_body_bytes = _int_env("STATEGUARD_HTTP_MAX_BODY_BYTES", cls.max_body_bytes)
        if max_body_bytes <= 0:
            max_body_bytes = cls.max_body_bytes
        return cls(
            timeout=_float_env("STATEGUARD_HTTP_TIMEOUT", cls.timeout),
            max_retries=_int_env("STATEGUARD_HTTP_RETRIES", cls.max_retries),
            backoff_factor=_float_env("STATEGUARD_HTTP_BACKOFF", cls.backoff_factor),
            initial_delay=_float_env("STATEGUARD_HTTP_INITIAL_DELAY", cls.initial_delay),
            user_agent=os.getenv("STATEGUARD_USER_AGENT", cls.user_agent),
            allow_redirects=_bool_env("STATEGUARD_HTTP_REDIRECTS", cls.allow_redirects),
            verify_ssl=_bool_env("STATEGUARD_HTTP_VERIFY_SSL", cls.verify_ssl),
            max_body_bytes=max_body_bytes,
        )


@dataclass
class RemediationSettings:
    """Download and installer defaults for the remediation pipeline."""

    max_download_bytes: int = 2 * 1024 * 1024 * 1024
    browser_user_agent: str = DEFAULT_BROWSER_USER_AGENT
    install_timeout: float = 1800.0
    keep_artifacts: bool = False
    temp_dir: str | None = None
    success_exit_codes: tuple[int, ...] = (0,)
    exe_args: tuple[str, ...] = field(default=DEFAULT_EXE_ARGS)

    @classmethod
    def from_env(cls) -> "RemediationSettings":
        """Create settings from environment variables (evaluated at call time)."""
        max_download_bytes = _int_env("STATEGUARD_DOWNLOAD_MAX_BYTES", cls.max_download_bytes)
        if max_download_bytes <= 0:
            max_download_bytes = cls.max_download_bytes
        install_timeout = _float_env("STATEGUARD_INSTALL_TIMEOUT", cls.install_timeout)
        if install_timeout <= 0:
            install_timeout = cls.install_timeout
        return cls(
            max_download_bytes=max_download_bytes,
            browser_user_agent=os.getenv("STATEGUARD_BROWSER_USER_AGENT", cls.browser_user_agent),
            install_timeout=install_timeout,
            keep_artifacts=_bool_env("STATEGUARD_KEEP_ARTIFACTS", cls.keep_artifacts),
            temp_dir=os.getenv("STATEGUARD_TEMP_DIR") or None,
            success_exit_codes=_int_tuple_env("STATEGUARD_INSTALL_SUCCESS_CODES", cls.success_exit_codes),
        )


def load_http_settings() -> HttpSettings:
    """Load HTTP settings from environment with sensible defaults."""
    return HttpSettings.from_env()


def load_remediation_settings() -> RemediationSettings:
    """Load remediation settings from environment with sensible defaults."""
    return RemediationSettings.from_env()
