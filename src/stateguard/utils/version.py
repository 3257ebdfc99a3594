# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Dotted numeric version parsing and comparison."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

_VERSION_RE = re.compile(r"[vV]?(\d+(?:\.\d+)*)(?:[-+]([0-9A-Za-z.+-]+))?")
_EMBEDDED_VERSION_RE = re.compile(r"\d+(?:\.\d+)+|\d+")


@dataclass(frozen=True)
class ParsedVersion:
    parts: tuple[int, ...]
    suffix: str = ""

    def _padded(self, other: ParsedVersion) -> tuple[tuple[int, ...], tuple[int, ...]]:
        width = max(len(self.parts), len(other.parts))
        return (
            self.parts + (0,) * (width - len(self.parts)),
            other.parts + (0,) * (width - len(other.parts)),
        )

    def __lt__(self, other: ParsedVersion) -> bool:
        if not isinstance(other, ParsedVersion):
            return NotImplemented
        mine, theirs = self._padded(other)
        return mine < theirs

    def __gt__(self, other: ParsedVersion) -> bool:
        if not isinstance(other, ParsedVersion):
            return NotImplemented
        mine, theirs = self._padded(other)
        return mine > theirs

    def __le__(self, other: ParsedVersion) -> bool:
        return not self > other

    def __ge__(self, other: ParsedVersion) -> bool:
        return not self < other

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParsedVersion):
            return NotImplemented
        mine, theirs = self._padded(other)
        return mine == theirs

    def __hash__(self) -> int:
        parts = list(self.parts)
        while parts and parts[-1] == 0:
            parts.pop()
        return hash(tuple(parts))

    def __str__(self) -> str:
        base = ".".join(str(part) for part in self.parts)
        return f"{base}-{self.suffix}" if self.suffix else base


def parse_version(value: Any) -> ParsedVersion | None:
    """Parse `1.2.3`, `v9472`, `10.0.19045-beta`; anything else is None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return ParsedVersion(parts=(value,)) if value >= 0 else None
    match = _VERSION_RE.fullmatch(str(value).strip())
    if not match:
        return None
    return ParsedVersion(
        parts=tuple(int(part) for part in match.group(1).split(".")),
        suffix=match.group(2) or "",
    )


def compare_versions(a: Any, b: Any) -> int | None:
    """Return -1/0/1, or None when either side is not a version."""
    left = parse_version(a)
    right = parse_version(b)
    if left is None or right is None:
        return None
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def extract_version(text: str | None) -> str | None:
    """Pick the first version-looking token out of free text (file content, captions)."""
    if not text:
        return None
    match = _EMBEDDED_VERSION_RE.search(text)
    return match.group(0) if match else None


def highest_version(values: Iterable[Any]) -> str | None:
    best: tuple[ParsedVersion, str] | None = None
    for value in values:
        parsed = parse_version(value)
        if parsed is None:
            continue
        if best is None or parsed > best[0]:
            best = (parsed, str(value).strip())
    return best[1] if best else None
