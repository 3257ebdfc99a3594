# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""StateGuard CLI."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from ..config import HttpSettings, RemediationSettings, load_http_settings, load_remediation_settings
from ..errors import StateGuardError
from ..http import create_default_http_client
from ..log import setup_logging
from ..models import EXIT_ACTION_REQUIRED, RunReport
from ..profiles import BUILTIN_PROFILES, load_profile
from ..runtime import StateGuard

logger = logging.getLogger(__name__)

CLI_TEXT_TRUNCATION_BYTES = 4096


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="StateGuard: detect whether a tracked item is present, current and enabled, and remediate it"
    )
    parser.add_argument("profile", nargs="?", help="Built-in profile name or path to a JSON profile")
    parser.add_argument("--target", help="Override the baseline target value (e.g. latest version)")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output JSON instead of human-friendly summary",
    )
    parser.add_argument("--no-remediate", action="store_true", help="Detect and classify only")
    parser.add_argument(
        "--keep-artifacts",
        action="store_true",
        help="Leave downloaded installers in the temporary directory for manual recovery",
    )
    parser.add_argument(
        "--ignore-ssl-errors",
        action="store_true",
        help="Skip TLS verification when downloading updates",
    )
    parser.add_argument("--list-profiles", action="store_true", help="List built-in profiles and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _truncate_text_bytes(text: str, max_bytes: int) -> str:
    raw = text.encode("utf-8")
    if len(raw) <= max_bytes:
        return text
    suffix = "...[truncated]"
    keep = max_bytes - len(suffix.encode("utf-8"))
    if keep <= 0:
        return suffix.encode("utf-8")[:max_bytes].decode("utf-8", errors="ignore")
    return raw[:keep].decode("utf-8", errors="ignore") + suffix


def _truncate_for_cli(value: Any, *, max_bytes: int) -> Any:
    if isinstance(value, str):
        return _truncate_text_bytes(value, max_bytes)
    if isinstance(value, dict):
        return {k: _truncate_for_cli(v, max_bytes=max_bytes) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_truncate_for_cli(v, max_bytes=max_bytes) for v in value]
    return value


def _print_json(data: dict[str, Any] | Any) -> None:
    payload = data.to_dict() if hasattr(data, "to_dict") else data
    json.dump(_truncate_for_cli(payload, max_bytes=CLI_TEXT_TRUNCATION_BYTES), sys.stdout, indent=2, sort_keys=True, default=str)
    sys.stdout.write("\n")


def _pretty_print(report: RunReport | dict[str, Any] | Any) -> None:
    payload = report.to_dict() if hasattr(report, "to_dict") else report
    if not isinstance(payload, dict):
        print(payload)
        return

    detection = payload.get("detection") or {}
    verdict = payload.get("verdict") or {}
    remediation = payload.get("remediation")

    print(f"[StateGuard] {payload.get('item')}: {payload.get('status')}")
    if detection.get("found"):
        print(f"Detected: {detection.get('value')} ({detection.get('provenance')})")
    else:
        print("Detected: not found")
    tried = detection.get("tried_probes") or []
    if tried:
        marks = ", ".join(f"{p.get('name')}={'ok' if p.get('succeeded') else 'fail'}" for p in tried)
        print(f"Probes: {marks}")

    kind = verdict.get("kind")
    line = f"Verdict: {kind}"
    if kind == "STALE":
        line += f" (current {verdict.get('current')}, target {verdict.get('target')})"
    elif verdict.get("reason"):
        line += f" ({verdict.get('reason')})"
    print(line)

    if isinstance(remediation, dict):
        if not remediation.get("attempted"):
            print(f"Remediation: not attempted ({remediation.get('failure_reason')})")
        elif remediation.get("succeeded"):
            artifact = remediation.get("applied_artifact") or {}
            print(f"Remediation: succeeded ({artifact.get('location', '-')})")
        else:
            print(f"Remediation: failed: {remediation.get('failure_reason')}")
        artifact_dir = (remediation.get("details") or {}).get("artifact_dir")
        if artifact_dir:
            print(f"Artifacts kept in: {artifact_dir}")

    post = payload.get("post_verdict")
    if isinstance(post, dict):
        print(f"Re-detected: {post.get('kind')} ({post.get('current')})")
    print(f"Exit code: {payload.get('exit_code')}")


def _report_error(message: str, *, as_json: bool) -> int:
    if as_json:
        _print_json({"status": "ERROR", "error": message, "exit_code": EXIT_ACTION_REQUIRED})
    else:
        print(f"[StateGuard] Error: {message}", file=sys.stderr)
    return EXIT_ACTION_REQUIRED


def _print_profiles() -> None:
    for name in sorted(BUILTIN_PROFILES):
        print(f"{name}: {BUILTIN_PROFILES[name].description}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging("DEBUG" if args.verbose else None)

    if args.list_profiles:
        _print_profiles()
        return 0
    if not args.profile:
        parser.error("a profile is required (use --list-profiles to see built-ins)")

    http_settings: HttpSettings = load_http_settings()
    if args.ignore_ssl_errors:
        http_settings.verify_ssl = False
    remediation_settings: RemediationSettings = load_remediation_settings()
    if args.keep_artifacts:
        remediation_settings.keep_artifacts = True

    try:
        item = load_profile(args.profile).with_target(args.target)
        with StateGuard(
            http_client=create_default_http_client(http_settings),
            remediation_settings=remediation_settings,
        ) as guard:
            report = guard.run(item, remediate=not args.no_remediate)
    except StateGuardError as exc:
        return _report_error(str(exc), as_json=args.json)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unexpected failure while checking %s", args.profile)
        return _report_error(f"unexpected {type(exc).__name__}: {exc}", as_json=args.json)

    if args.json:
        _print_json(report)
    else:
        _pretty_print(report)

    return report.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
