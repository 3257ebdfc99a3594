# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Utility exports."""

from .version import (
    ParsedVersion,
    compare_versions,
    extract_version,
    highest_version,
    parse_version,
)

__all__ = [
    "ParsedVersion",
    "compare_versions",
    "extract_version",
    "highest_version",
    "parse_version",
]
