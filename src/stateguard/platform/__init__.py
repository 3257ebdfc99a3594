# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Platform adapter exports and factory."""

import sys

from ..errors import PlatformUnavailable
from .base import (
    REG_DWORD,
    REG_EXPAND_SZ,
    REG_QWORD,
    REG_SZ,
    REGISTRY_VALUE_TYPES,
    InstalledPackage,
    PlatformAdapter,
    ServiceStatus,
    SystemInfo,
    join_registry_path,
    normalize_registry_path,
    split_registry_path,
)
from .stub import StubPlatform


def create_default_platform() -> PlatformAdapter:
    """Factory for the native adapter of the running host."""
    if sys.platform != "win32":
        raise PlatformUnavailable(f"No native platform adapter for {sys.platform!r}; StateGuard targets Windows hosts")
    from .windows import WindowsPlatform

    return WindowsPlatform()


__all__ = [
    "REG_DWORD",
    "REG_EXPAND_SZ",
    "REG_QWORD",
    "REG_SZ",
    "REGISTRY_VALUE_TYPES",
    "InstalledPackage",
    "PlatformAdapter",
    "ServiceStatus",
    "StubPlatform",
    "SystemInfo",
    "create_default_platform",
    "join_registry_path",
    "normalize_registry_path",
    "split_registry_path",
]
