# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""httpx-backed HttpClient implementation."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import httpx

from ..config import HttpSettings, load_http_settings
from ..errors import categorize_exception
from .client import HttpClient
from .models import HttpRequest, HttpResponse

FALLBACK_BODY_LIMIT = 16 * 1024 * 1024


def _capped(chunks: Iterator[bytes], limit: int) -> Iterator[tuple[bytes, bool]]:
    """Yield (chunk, truncated) pairs, cutting the stream once `limit` bytes were yielded."""
    seen = 0
    for chunk in chunks:
        if not chunk:
            continue
        if seen + len(chunk) > limit:
            yield chunk[: limit - seen], True
            return
        seen += len(chunk)
        yield chunk, False


class HttpxClient(HttpClient):
    """
    Synchronous httpx client.

    Bodies are always streamed. With `HttpRequest.sink` set they go straight to
    that file, so an installer never has to fit in memory; otherwise they are
    buffered. Either way the byte cap applies and failures come back as
    `HttpResponse(ok=False)` rather than exceptions.
    """

    def __init__(self, settings: HttpSettings | None = None, client: httpx.Client | None = None):
        self.settings = settings or load_http_settings()
        self._client = client or httpx.Client(
            follow_redirects=self.settings.allow_redirects,
            timeout=self.settings.timeout,
            verify=self.settings.verify_ssl,
        )

    def _body_limit(self, request: HttpRequest) -> int:
        limit = request.max_body_bytes or self.settings.max_body_bytes
        return limit if limit > 0 else FALLBACK_BODY_LIMIT

    def request(self, request: HttpRequest) -> HttpResponse:
        headers = dict(request.headers or {})
        headers.setdefault("User-Agent", self.settings.user_agent)
        limit = self._body_limit(request)
        timeout = request.timeout if request.timeout is not None else self.settings.timeout

        try:
            with self._client.stream(
                request.method,
                request.url,
                headers=headers,
                timeout=timeout,
                follow_redirects=request.allow_redirects,
            ) as resp:
                chunks = _capped(resp.iter_bytes(), limit)
                if request.sink is not None:
                    content = b""
                    read, truncated = self._drain_to_file(chunks, request.sink)
                else:
                    content, truncated = self._drain_to_memory(chunks)
                    read = len(content)
        except Exception as exc:  # noqa: BLE001
            return HttpResponse(
                ok=False,
                error_message=str(exc),
                error_type=type(exc).__name__,
                meta={"error_category": categorize_exception(exc).value},
            )

        meta = {"body_truncated": truncated, "body_bytes_read": read, "body_bytes_limit": limit}
        if request.sink is not None:
            meta["body_path"] = str(request.sink)
        return HttpResponse(
            ok=True,
            status_code=resp.status_code,
            headers=dict(resp.headers),
            content=content,
            url=str(resp.url),
            meta=meta,
        )

    @staticmethod
    def _drain_to_memory(chunks: Iterator[tuple[bytes, bool]]) -> tuple[bytes, bool]:
        buffer = bytearray()
        truncated = False
        for chunk, truncated in chunks:
            buffer.extend(chunk)
        return bytes(buffer), truncated

    @staticmethod
    def _drain_to_file(chunks: Iterator[tuple[bytes, bool]], sink: Path) -> tuple[int, bool]:
        written = 0
        truncated = False
        with open(sink, "wb") as handle:
            for chunk, truncated in chunks:
                handle.write(chunk)
                written += len(chunk)
        return written, truncated

    def close(self) -> None:
        self._client.close()
