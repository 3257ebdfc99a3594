# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Artifact acquisition.

Shared links (Google Drive, Dropbox, OneDrive) are resolved into direct-fetch
URLs by two construction strategies. Every candidate URL is tried with the
default request profile, then again with a browser request profile. The first
attempt yielding a non-empty, non-HTML body wins and is written into the
run-scoped work directory.
"""

from __future__ import annotations

import logging
import re
from contextlib import suppress
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any
from urllib.parse import parse_qs, unquote, urlencode, urlsplit, urlunsplit

from ..config import RemediationSettings, load_remediation_settings
from ..errors import AcquisitionFailure, ErrorCategory, error_category_to_reason
from ..http import HttpClient, HttpRequest, HttpResponse, RetryConfig, send_with_retries
from ..models import RemediationArtifact
from ..profiles import PackageSource

logger = logging.getLogger(__name__)

_DRIVE_FILE_RE = re.compile(r"/file/d/([A-Za-z0-9_-]+)")
_FILENAME_STAR_RE = re.compile(r"filename\*\s*=\s*(?:[\w-]+)?'[^']*'([^;]+)", re.IGNORECASE)
_FILENAME_RE = re.compile(r'filename\s*=\s*"?([^";]+)"?', re.IGNORECASE)
DEFAULT_ARTIFACT_NAME = "download.bin"
PART_FILE_NAME = ".stateguard-download.part"
_UNSAFE_NAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


@dataclass(frozen=True)
class RequestProfile:
    name: str
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Acquisition:
    artifact: RemediationArtifact
    attempts: list[dict[str, Any]]


def _google_drive_id(parts) -> str | None:
    match = _DRIVE_FILE_RE.search(parts.path)
    if match:
        return match.group(1)
    ids = parse_qs(parts.query).get("id")
    return ids[0] if ids else None


def _with_query(parts, **params: str) -> str:
    query = parse_qs(parts.query, keep_blank_values=True)
    for key, value in params.items():
        query[key] = [value]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query, doseq=True), ""))


def resolve_download_urls(reference: str) -> list[str]:
    """
    Return direct-fetch candidates for a shared download reference, primary first.

    Unrecognised hosts pass through unchanged.
    """
    reference = reference.strip()
    parts = urlsplit(reference)
    host = parts.netloc.lower()
    candidates: list[str] = []

    if host in {"drive.google.com", "docs.google.com"}:
        file_id = _google_drive_id(parts)
        if file_id:
            candidates = [
                f"https://drive.google.com/uc?export=download&id={file_id}",
                f"https://drive.usercontent.google.com/download?id={file_id}&export=download&confirm=t",
            ]
    elif host.endswith("dropbox.com"):
        candidates = [
            _with_query(parts, dl="1"),
            urlunsplit(("https", "dl.dropboxusercontent.com", parts.path, parts.query, "")),
        ]
    elif host == "1drv.ms" or host.endswith("onedrive.live.com") or host.endswith("sharepoint.com"):
        candidates = [_with_query(parts, download="1"), reference]

    if not candidates:
        candidates = [reference]
    unique: list[str] = []
    for url in candidates:
        if url not in unique:
            unique.append(url)
    return unique


def _safe_name(candidate: str | None) -> str | None:
    """Reduce a server or profile supplied name to a plain file name, or None if nothing usable is left."""
    if not candidate:
        return None
    name = PurePosixPath(str(candidate).replace("\\", "/")).name
    name = _UNSAFE_NAME_CHARS.sub("_", name).strip().rstrip(".")
    if not name or name in {".", ".."} or name == PART_FILE_NAME:
        return None
    return name


def filename_from_response(response: HttpResponse) -> str | None:
    disposition = response.header("content-disposition") or ""
    match = _FILENAME_STAR_RE.search(disposition) or _FILENAME_RE.search(disposition)
    if not match:
        return None
    return _safe_name(unquote(match.group(1).strip()))


def filename_from_url(url: str) -> str | None:
    name = _safe_name(unquote(urlsplit(url).path))
    return name if name and "." in name else None


def choose_filename(response: HttpResponse, source: PackageSource, url: str) -> str:
    """Content-Disposition, then the configured artifact name, then the URL path, then `download.bin`."""
    return (
        filename_from_response(response)
        or _safe_name(source.artifact_name)
        or filename_from_url(url)
        or DEFAULT_ARTIFACT_NAME
    )


class Acquirer:
    """Fetches a remediation artifact with layered URL and request-profile fallback."""

    def __init__(
        self,
        http_client: HttpClient,
        settings: RemediationSettings | None = None,
        *,
        retry_config: RetryConfig | None = None,
    ):
        self.http_client = http_client
        self.settings = settings or load_remediation_settings()
        self.retry_config = retry_config

    def request_profiles(self) -> list[RequestProfile]:
        return [
            RequestProfile("default"),
            RequestProfile(
                "browser",
                {
                    "User-Agent": self.settings.browser_user_agent,
                    "Accept": "application/octet-stream,*/*;q=0.8",
                },
            ),
        ]

    def acquire(self, source: PackageSource, work_dir: Path) -> Acquisition:
        urls = resolve_download_urls(source.url)
        attempts: list[dict[str, Any]] = []
        last_failure: AcquisitionFailure | None = None

        for profile in self.request_profiles():
            for url in urls:
                try:
                    artifact = self._attempt(url, profile, source, work_dir)
                except AcquisitionFailure as exc:
                    last_failure = exc
                    attempts.append(
                        {
                            "url": url,
                            "profile": profile.name,
                            "ok": False,
                            "status_code": exc.status_code,
                            "category": exc.category.value,
                            "error": str(exc),
                        }
                    )
                    logger.warning("Download attempt %s [%s] failed: %s", url, profile.name, exc)
                    continue
                attempts.append({"url": url, "profile": profile.name, "ok": True, "size_bytes": artifact.size_bytes})
                logger.info("Downloaded %s (%s bytes) from %s", artifact.location, artifact.size_bytes, url)
                return Acquisition(artifact=artifact, attempts=attempts)

        if last_failure is None:
            raise AcquisitionFailure(f"No download attempt could be made for {source.url!r}", url=source.url)
        raise AcquisitionFailure(
            f"All {len(attempts)} download attempts failed for {source.url}; last error: {last_failure}",
            url=last_failure.url,
            status_code=last_failure.status_code,
            category=last_failure.category,
            attempts=attempts,
        )

    def _attempt(self, url: str, profile: RequestProfile, source: PackageSource, work_dir: Path) -> RemediationArtifact:
        part = work_dir / PART_FILE_NAME
        request = HttpRequest(
            url=url,
            headers=dict(profile.headers) or None,
            max_body_bytes=self.settings.max_download_bytes,
            sink=part,
        )
        try:
            response = send_with_retries(self.http_client, request, retry_config=self.retry_config)
            self._check_response(url, response)
            destination = work_dir / choose_filename(response, source, url)
            try:
                # Clients that ignore `sink` hand the body back in memory.
                if not part.exists():
                    part.write_bytes(response.content)
                part.replace(destination)
                size = destination.stat().st_size
            except OSError as exc:
                raise AcquisitionFailure(
                    f"Cannot store the download from {url} as {destination.name}: {exc}",
                    url=url,
                    status_code=response.status_code,
                ) from exc
        finally:
            with suppress(OSError):
                part.unlink(missing_ok=True)

        if size == 0:
            with suppress(OSError):
                destination.unlink()
            raise AcquisitionFailure(
                f"{url} returned zero bytes",
                url=url,
                status_code=response.status_code,
                category=ErrorCategory.EMPTY_CONTENT,
            )
        return RemediationArtifact.from_file(str(destination), size_bytes=size)

    @staticmethod
    def _check_response(url: str, response: HttpResponse) -> None:
        if not response.ok:
            category = response.error_category
            raise AcquisitionFailure(
                f"{error_category_to_reason(category)}: {response.error_message or response.error_type or 'unknown error'}",
                url=url,
                status_code=response.status_code,
                category=category,
            )
        status = response.status_code or 0
        if not 200 <= status < 300:
            raise AcquisitionFailure(
                f"{url} returned HTTP {status}",
                url=url,
                status_code=status,
                category=ErrorCategory.HTTP_STATUS,
            )
        if response.truncated:
            raise AcquisitionFailure(
                f"{url} exceeded the download limit of {response.meta.get('body_bytes_limit')} bytes",
                url=url,
                status_code=status,
                category=ErrorCategory.TOO_LARGE,
            )
        content_type = (response.header("content-type") or "").lower()
        if content_type.startswith("text/html"):
            raise AcquisitionFailure(
                f"{url} returned an HTML page instead of a file",
                url=url,
                status_code=status,
                category=ErrorCategory.INTERSTITIAL,
            )
