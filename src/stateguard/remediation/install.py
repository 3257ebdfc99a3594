# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Installer dispatch by artifact kind."""

from __future__ import annotations

import logging
import zipfile
from collections.abc import Sequence
from pathlib import Path

from ..config import RemediationSettings, load_remediation_settings
from ..errors import InstallFailure, PlatformError
from ..models import INSTALLER_EXTENSIONS, ArtifactKind, RemediationArtifact, RemediationOutcome
from ..platform import PlatformAdapter

logger = logging.getLogger(__name__)

MSIEXEC = "msiexec.exe"
WUSA = "wusa.exe"
MAX_ARCHIVE_DEPTH = 1

_HANDLERS: dict[ArtifactKind, str] = {
    ArtifactKind.EXECUTABLE: "_install_executable",
    ArtifactKind.MSI_PACKAGE: "_install_msi",
    ArtifactKind.UPDATE_PACKAGE: "_install_update",
    ArtifactKind.ARCHIVE: "_install_archive",
    ArtifactKind.REGISTRY_VALUE: "_reject_registry_value",
    ArtifactKind.UNKNOWN: "_reject_unknown",
}

_unhandled = set(ArtifactKind) - set(_HANDLERS)
if _unhandled:
    raise RuntimeError(f"Installer has no handler for: {', '.join(sorted(kind.value for kind in _unhandled))}")


def find_embedded_installer(root: Path) -> Path | None:
    """Shallowest installer below `root`, ties broken by path order."""
    candidates = [
        path
        for path in root.rglob("*")
        if path.is_file() and path.suffix.lower() in INSTALLER_EXTENSIONS
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda path: (len(path.relative_to(root).parts), str(path).lower()))


def extract_archive(archive: Path, destination: Path) -> None:
    """Extract a zip archive, refusing members that would land outside `destination`."""
    destination.mkdir(parents=True, exist_ok=True)
    root = destination.resolve()
    with zipfile.ZipFile(archive) as bundle:
        for member in bundle.namelist():
            target = (root / member).resolve()
            if target != root and root not in target.parents:
                raise InstallFailure(f"Archive member escapes extraction directory: {member}", path=str(archive))
        try:
            bundle.extractall(root)
        except (zipfile.LargeZipFile, RuntimeError, NotImplementedError, ValueError, EOFError) as exc:
            # unsupported compression, encrypted members, truncated data
            raise InstallFailure(f"Cannot extract {archive}: {exc}", path=str(archive)) from exc


class Installer:
    """Applies a downloaded artifact, dispatching strictly on its kind."""

    def __init__(self, platform: PlatformAdapter, settings: RemediationSettings | None = None):
        self.platform = platform
        self.settings = settings or load_remediation_settings()

    def install(
        self,
        artifact: RemediationArtifact,
        *,
        installer_args: Sequence[str] | None = None,
        depth: int = 0,
    ) -> RemediationOutcome:
        handler = getattr(self, _HANDLERS[artifact.kind])
        try:
            return handler(artifact, installer_args=installer_args, depth=depth)
        except InstallFailure as exc:
            logger.error("Install failed: %s", exc)
            return RemediationOutcome.failure(str(exc), artifact, exit_code=exc.exit_code, path=exc.path)

    def _run(self, command: str, args: list[str], artifact: RemediationArtifact) -> RemediationOutcome:
        try:
            exit_code = self.platform.run_process(command, args, timeout=self.settings.install_timeout)
        except PlatformError as exc:
            raise InstallFailure(str(exc), path=artifact.location) from exc
        if exit_code not in self.settings.success_exit_codes:
            raise InstallFailure(
                f"{Path(command).name} exited with code {exit_code} installing {artifact.location}",
                path=artifact.location,
                exit_code=exit_code,
            )
        logger.info("Installed %s (exit code %d)", artifact.location, exit_code)
        return RemediationOutcome.success(artifact, exit_code=exit_code, command=[command, *args])

    def _install_executable(self, artifact, *, installer_args=None, depth=0) -> RemediationOutcome:
        args = list(installer_args) if installer_args is not None else list(self.settings.exe_args)
        return self._run(artifact.location, args, artifact)

    def _install_msi(self, artifact, *, installer_args=None, depth=0) -> RemediationOutcome:
        return self._run(MSIEXEC, ["/i", artifact.location, "/qn", "/norestart"], artifact)

    def _install_update(self, artifact, *, installer_args=None, depth=0) -> RemediationOutcome:
        return self._run(WUSA, [artifact.location, "/quiet", "/norestart"], artifact)

    def _install_archive(self, artifact, *, installer_args=None, depth=0) -> RemediationOutcome:
        if depth >= MAX_ARCHIVE_DEPTH:
            raise InstallFailure(f"Nested archive not supported: {artifact.location}", path=artifact.location)

        archive = Path(artifact.location)
        destination = archive.with_name(archive.stem + "_extracted")
        try:
            extract_archive(archive, destination)
        except (zipfile.BadZipFile, OSError) as exc:
            raise InstallFailure(f"Cannot extract {archive}: {exc}", path=str(archive)) from exc

        embedded = find_embedded_installer(destination)
        if embedded is None:
            raise InstallFailure(f"No installer (.msi, .msu, .exe) found inside {archive}", path=str(archive))

        logger.info("Found embedded installer %s in %s", embedded, archive)
        inner = RemediationArtifact.from_file(str(embedded), size_bytes=embedded.stat().st_size)
        outcome = self.install(inner, installer_args=installer_args, depth=depth + 1)
        return RemediationOutcome(
            attempted=outcome.attempted,
            succeeded=outcome.succeeded,
            applied_artifact=outcome.applied_artifact,
            failure_reason=outcome.failure_reason,
            details={**outcome.details, "archive": artifact.location},
        )

    def _reject_registry_value(self, artifact, *, installer_args=None, depth=0) -> RemediationOutcome:
        return RemediationOutcome.failure(
            f"Registry artifacts are applied by policy remediation, not the installer: {artifact.location}",
            artifact,
        )

    def _reject_unknown(self, artifact, *, installer_args=None, depth=0) -> RemediationOutcome:
        suffix = Path(artifact.location).suffix or "(none)"
        return RemediationOutcome.failure(
            f"Unsupported installer format {suffix}; install {artifact.location} manually",
            artifact,
            manual_install=True,
        )
