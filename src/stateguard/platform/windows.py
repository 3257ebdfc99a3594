# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Windows platform adapter backed by winreg, PowerShell and ctypes."""

from __future__ import annotations

import json
import logging
import subprocess
from typing import Any

from ..errors import PlatformError
from .base import (
    REG_DWORD,
    REG_EXPAND_SZ,
    REG_QWORD,
    REG_SZ,
    InstalledPackage,
    PlatformAdapter,
    ServiceStatus,
    SystemInfo,
    split_registry_path,
)

logger = logging.getLogger(__name__)

POWERSHELL = "powershell.exe"
POWERSHELL_TIMEOUT = 120.0


def _winreg():
    import winreg

    return winreg


def _ps_quote(value: str) -> str:
    return "'" + str(value).replace("'", "''") + "'"


def _as_list(payload: Any) -> list[dict[str, Any]]:
    if payload is None:
        return []
    if isinstance(payload, dict):
        return [payload]
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]
    return []


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _output_tail(raw: bytes | None, limit: int = 500) -> str:
    if not raw:
        return ""
    return raw[-limit:].decode("utf-8", errors="replace").strip()


class WindowsPlatform(PlatformAdapter):
    """Synchronous adapter over the native Windows query primitives."""

    def __init__(self, *, powershell: str = POWERSHELL, powershell_timeout: float = POWERSHELL_TIMEOUT):
        self.powershell = powershell
        self.powershell_timeout = powershell_timeout

    # Registry

    def _open(self, path: str, access: int, *, create: bool = False):
        winreg = _winreg()
        hive_name, subkey = split_registry_path(path)
        hive = {
            "HKLM": winreg.HKEY_LOCAL_MACHINE,
            "HKCU": winreg.HKEY_CURRENT_USER,
            "HKCR": winreg.HKEY_CLASSES_ROOT,
            "HKU": winreg.HKEY_USERS,
        }[hive_name]
        access |= winreg.KEY_WOW64_64KEY
        if create:
            return winreg.CreateKeyEx(hive, subkey, 0, access)
        return winreg.OpenKey(hive, subkey, 0, access)

    def read_registry_value(self, path: str, name: str) -> Any | None:
        winreg = _winreg()
        try:
            with self._open(path, winreg.KEY_READ) as key:
                value, _value_type = winreg.QueryValueEx(key, name)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise PlatformError(f"Failed to read {path}\\{name}: {exc}") from exc
        return value

    def write_registry_value(self, path: str, name: str, value: Any, value_type: str) -> None:
        winreg = _winreg()
        types = {
            REG_SZ: winreg.REG_SZ,
            REG_EXPAND_SZ: winreg.REG_EXPAND_SZ,
            REG_DWORD: winreg.REG_DWORD,
            REG_QWORD: winreg.REG_QWORD,
        }
        if value_type not in types:
            raise PlatformError(f"Unsupported registry value type: {value_type}")
        data = int(value) if value_type in {REG_DWORD, REG_QWORD} else str(value)
        try:
            with self._open(path, winreg.KEY_SET_VALUE, create=True) as key:
                winreg.SetValueEx(key, name, 0, types[value_type], data)
        except OSError as exc:
            raise PlatformError(f"Failed to write {path}\\{name}: {exc}") from exc

    def delete_registry_value(self, path: str, name: str) -> None:
        winreg = _winreg()
        try:
            with self._open(path, winreg.KEY_SET_VALUE) as key:
                winreg.DeleteValue(key, name)
        except FileNotFoundError:
            logger.debug("Registry value %s\\%s already absent", path, name)
        except OSError as exc:
            raise PlatformError(f"Failed to delete {path}\\{name}: {exc}") from exc

    def enumerate_registry_subkeys(self, path: str) -> list[str]:
        winreg = _winreg()
        try:
            with self._open(path, winreg.KEY_READ) as key:
                count = winreg.QueryInfoKey(key)[0]
                return [winreg.EnumKey(key, index) for index in range(count)]
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise PlatformError(f"Failed to enumerate {path}: {exc}") from exc

    # PowerShell-backed queries

    def _powershell_json(self, script: str) -> Any:
        command = [self.powershell, "-NoProfile", "-NonInteractive", "-ExecutionPolicy", "Bypass", "-Command", script]
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.powershell_timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise PlatformError(f"PowerShell query failed: {exc}") from exc
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()[-500:]
            raise PlatformError(f"PowerShell query exited {result.returncode}: {stderr}")
        output = (result.stdout or "").strip()
        if not output:
            return None
        try:
            return json.loads(output)
        except ValueError as exc:
            raise PlatformError(f"PowerShell returned non-JSON output: {output[:200]!r}") from exc

    def query_installed_packages(self, name_pattern: str) -> list[InstalledPackage]:
        script = (
            f"Get-Package -Name {_ps_quote(name_pattern)} -ErrorAction SilentlyContinue | "
            "Select-Object Name,Version,ProviderName,"
            "@{Name='Publisher';Expression={$_.Metadata['Publisher']}} | ConvertTo-Json -Compress"
        )
        return [
            InstalledPackage(
                name=str(item.get("Name") or ""),
                version=_optional_str(item.get("Version")),
                publisher=_optional_str(item.get("Publisher")),
                provider_name=_optional_str(item.get("ProviderName")),
            )
            for item in _as_list(self._powershell_json(script))
        ]

    def query_service_status(self, service_name: str) -> ServiceStatus | None:
        script = (
            f"Get-Service -Name {_ps_quote(service_name)} -ErrorAction SilentlyContinue | "
            "Select-Object @{Name='Status';Expression={$_.Status.ToString()}},"
            "@{Name='StartType';Expression={$_.StartType.ToString()}} | ConvertTo-Json -Compress"
        )
        items = _as_list(self._powershell_json(script))
        if not items:
            return None
        return ServiceStatus(status=str(items[0].get("Status") or ""), start_type=_optional_str(items[0].get("StartType")))

    def query_system_info(self) -> SystemInfo:
        script = "Get-CimInstance -ClassName Win32_OperatingSystem | Select-Object Caption,Version,BuildNumber | ConvertTo-Json -Compress"
        items = _as_list(self._powershell_json(script))
        if not items:
            raise PlatformError("Win32_OperatingSystem returned no instances")
        return SystemInfo(
            caption=_optional_str(items[0].get("Caption")),
            version_string=_optional_str(items[0].get("Version")),
            build_number=_optional_str(items[0].get("BuildNumber")),
        )

    # Privilege and processes

    def is_current_user_elevated(self) -> bool:
        import ctypes

        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            logger.debug("IsUserAnAdmin unavailable; assuming not elevated")
            return False

    def run_process(self, path: str, args: list[str], *, timeout: float | None = None) -> int:
        logger.info("Running %s %s", path, " ".join(args))
        try:
            result = subprocess.run([path, *args], capture_output=True, timeout=timeout)
        except subprocess.TimeoutExpired as exc:
            raise PlatformError(f"{path} timed out after {timeout}s") from exc
        except OSError as exc:
            raise PlatformError(f"Failed to start {path}: {exc}") from exc
        # Installer output uses an arbitrary code page and is only logged.
        tail = _output_tail(result.stderr or result.stdout)
        if tail:
            logger.debug("%s exited %d: %s", path, result.returncode, tail)
        return result.returncode
