# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Remediation exports."""

from .acquire import Acquirer, Acquisition, RequestProfile, resolve_download_urls
from .install import Installer, extract_archive, find_embedded_installer
from .pipeline import REASON_NOT_REQUIRED, REASON_REQUIRES_ELEVATION, RemediationPipeline
from .policy import PolicyRemediator

__all__ = [
    "Acquirer",
    "Acquisition",
    "Installer",
    "PolicyRemediator",
    "REASON_NOT_REQUIRED",
    "REASON_REQUIRES_ELEVATION",
    "RemediationPipeline",
    "RequestProfile",
    "extract_archive",
    "find_embedded_installer",
    "resolve_download_urls",
]
