# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Probe base class."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from ..errors import ProfileError
from ..models import ProbeResult
from ..platform import PlatformAdapter


class Probe(ABC):
    """One independent detection strategy. Lower priority runs first."""

    type_name: str = "base"
    name: str = "base"
    priority: int = 50

    def __init__(self, platform: PlatformAdapter, *, name: str | None = None, priority: int | None = None):
        self.platform = platform
        if name:
            self.name = name
        if priority is not None:
            self.priority = priority

    @abstractmethod
    def run(self) -> ProbeResult: ...

    @classmethod
    @abstractmethod
    def from_spec(cls, spec: Mapping[str, Any], platform: PlatformAdapter) -> Probe: ...

    @staticmethod
    def _require(spec: Mapping[str, Any], key: str) -> Any:
        value = spec.get(key)
        if value is None or value == "":
            raise ProfileError(f"Probe {spec.get('type')!r} requires {key!r}")
        return value

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"{self.__class__.__name__}(name={self.name!r}, priority={self.priority})"
