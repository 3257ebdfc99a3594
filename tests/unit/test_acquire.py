# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import httpx
import pytest

from stateguard.config import HttpSettings, RemediationSettings
from stateguard.errors import AcquisitionFailure, ErrorCategory
from stateguard.http import HttpResponse, HttpxClient, RetryConfig, StubHttpClient
from stateguard.models import ArtifactKind
from stateguard.profiles import PackageSource
from stateguard.remediation import Acquirer, resolve_download_urls
from stateguard.remediation.acquire import DEFAULT_ARTIFACT_NAME, filename_from_response

NO_RETRY = RetryConfig(max_attempts=1, initial_delay=0)


def _acquirer(client, **settings):
    return Acquirer(client, RemediationSettings(**settings), retry_config=NO_RETRY)


def _file(content=b"MZ\x90\x00payload", **headers):
    return HttpResponse(ok=True, status_code=200, headers={"Content-Type": "application/octet-stream", **headers}, content=content)


def test_google_drive_links_resolve_to_two_direct_urls():
    urls = resolve_download_urls("https://drive.google.com/file/d/1AbC_d-9/view?usp=sharing")
    assert urls == [
        "https://drive.google.com/uc?export=download&id=1AbC_d-9",
        "https://drive.usercontent.google.com/download?id=1AbC_d-9&export=download&confirm=t",
    ]
    assert resolve_download_urls("https://drive.google.com/open?id=XYZ")[0].endswith("id=XYZ")


def test_dropbox_links_force_download():
    urls = resolve_download_urls("https://www.dropbox.com/s/k3y/AgentSetup.exe?dl=0")
    assert urls == [
        "https://www.dropbox.com/s/k3y/AgentSetup.exe?dl=1",
        "https://dl.dropboxusercontent.com/s/k3y/AgentSetup.exe?dl=0",
    ]


def test_onedrive_links_request_download_then_original():
    urls = resolve_download_urls("https://1drv.ms/u/s!Ab12")
    assert urls == ["https://1drv.ms/u/s!Ab12?download=1", "https://1drv.ms/u/s!Ab12"]


def test_plain_urls_pass_through():
    assert resolve_download_urls(" https://downloads.example.com/agent.msi ") == ["https://downloads.example.com/agent.msi"]


def test_attempt_order_is_every_url_per_profile(tmp_path):
    client = StubHttpClient()
    source = PackageSource(url="https://www.dropbox.com/s/k3y/AgentSetup.exe?dl=0")

    with pytest.raises(AcquisitionFailure) as excinfo:
        _acquirer(client, browser_user_agent="TestBrowser/1.0").acquire(source, tmp_path)

    requested = [(r.url, (r.headers or {}).get("User-Agent")) for r in client.requests]
    assert requested == [
        ("https://www.dropbox.com/s/k3y/AgentSetup.exe?dl=1", None),
        ("https://dl.dropboxusercontent.com/s/k3y/AgentSetup.exe?dl=0", None),
        ("https://www.dropbox.com/s/k3y/AgentSetup.exe?dl=1", "TestBrowser/1.0"),
        ("https://dl.dropboxusercontent.com/s/k3y/AgentSetup.exe?dl=0", "TestBrowser/1.0"),
    ]
    attempts = excinfo.value.attempts
    assert [a["profile"] for a in attempts] == ["default", "default", "browser", "browser"]
    assert not any(a["ok"] for a in attempts)
    assert list(tmp_path.iterdir()) == []


def test_browser_profile_rescues_a_rejected_default_request(tmp_path):
    url = "https://downloads.example.com/AgentSetup.exe"

    class PickyClient(StubHttpClient):
        def request(self, request):
            self.requests.append(request)
            if (request.headers or {}).get("User-Agent"):
                return _file()
            return HttpResponse(ok=False, status_code=403)

    client = PickyClient()
    acquisition = _acquirer(client).acquire(PackageSource(url=url), tmp_path)

    assert [a["profile"] for a in acquisition.attempts] == ["default", "browser"]
    assert acquisition.attempts[0]["status_code"] == 403
    assert acquisition.artifact.kind == ArtifactKind.EXECUTABLE


def test_html_interstitial_is_not_a_download(tmp_path):
    source = PackageSource(url="https://drive.google.com/file/d/FILE/view")
    client = StubHttpClient(
        {
            "https://drive.google.com/uc?export=download&id=FILE": HttpResponse(
                ok=True,
                status_code=200,
                headers={"content-type": "text/html; charset=utf-8"},
                content=b"<html>Google Drive can't scan this file for viruses</html>",
            ),
            "https://drive.usercontent.google.com/download?id=FILE&export=download&confirm=t": _file(
                **{"Content-Disposition": 'attachment; filename="AgentSetup-9472.msi"'}
            ),
        }
    )

    acquisition = _acquirer(client).acquire(source, tmp_path)

    assert acquisition.attempts[0]["category"] == ErrorCategory.INTERSTITIAL.value
    assert acquisition.artifact.location == str(tmp_path / "AgentSetup-9472.msi")
    assert acquisition.artifact.kind == ArtifactKind.MSI_PACKAGE
    assert [p.name for p in tmp_path.iterdir()] == ["AgentSetup-9472.msi"]


def test_zero_length_download_is_deleted_and_fails(tmp_path):
    url = "https://downloads.example.com/agent.exe"
    client = StubHttpClient({url: _file(content=b"")})

    with pytest.raises(AcquisitionFailure) as excinfo:
        _acquirer(client).acquire(PackageSource(url=url), tmp_path)

    assert excinfo.value.category == ErrorCategory.EMPTY_CONTENT
    assert list(tmp_path.iterdir()) == []


def test_truncated_body_is_too_large(tmp_path):
    url = "https://downloads.example.com/agent.exe"
    response = _file()
    response.meta.update({"body_truncated": True, "body_bytes_limit": 4})
    client = StubHttpClient({url: response})

    with pytest.raises(AcquisitionFailure) as excinfo:
        _acquirer(client, max_download_bytes=4).acquire(PackageSource(url=url), tmp_path)

    assert excinfo.value.category == ErrorCategory.TOO_LARGE
    assert client.requests[0].max_body_bytes == 4


def test_http_error_status_fails_attempt(tmp_path):
    url = "https://downloads.example.com/agent.exe"
    client = StubHttpClient({url: HttpResponse(ok=True, status_code=404)})
    with pytest.raises(AcquisitionFailure) as excinfo:
        _acquirer(client).acquire(PackageSource(url=url), tmp_path)
    assert excinfo.value.status_code == 404
    assert excinfo.value.category == ErrorCategory.HTTP_STATUS


def test_filename_fallbacks(tmp_path):
    url = "https://example.com/download"
    client = StubHttpClient({url: _file()})
    (tmp_path / "a").mkdir()
    named = _acquirer(client).acquire(PackageSource(url=url, artifact_name="Agent.zip"), tmp_path / "a")
    assert named.artifact.location.endswith("Agent.zip")
    assert named.artifact.kind == ArtifactKind.ARCHIVE

    (tmp_path / "b").mkdir()
    unnamed = _acquirer(client).acquire(PackageSource(url=url), tmp_path / "b")
    assert unnamed.artifact.location.endswith(DEFAULT_ARTIFACT_NAME)
    assert unnamed.artifact.kind == ArtifactKind.UNKNOWN


def test_content_disposition_parsing_strips_directories():
    response = HttpResponse(ok=True, headers={"Content-Disposition": "attachment; filename*=UTF-8''..%2F..%2Fsetup%20v2.exe"})
    assert filename_from_response(response) == "setup v2.exe"
    assert filename_from_response(HttpResponse(ok=True)) is None


def test_dot_dot_disposition_falls_back_to_url_name(tmp_path):
    url = "https://downloads.example.com/AgentSetup.exe"
    client = StubHttpClient({url: _file(**{"content-disposition": 'attachment; filename=".."'})})

    acquisition = _acquirer(client).acquire(PackageSource(url=url), tmp_path)

    assert acquisition.artifact.location == str(tmp_path / "AgentSetup.exe")
    assert (tmp_path / "AgentSetup.exe").is_file()


def test_unwritable_destination_is_an_attempt_failure(tmp_path):
    url = "https://downloads.example.com/AgentSetup.exe"
    (tmp_path / "AgentSetup.exe").mkdir()
    client = StubHttpClient({url: _file()})

    with pytest.raises(AcquisitionFailure) as excinfo:
        _acquirer(client).acquire(PackageSource(url=url), tmp_path)

    assert [a["profile"] for a in excinfo.value.attempts] == ["default", "browser"]
    assert "Cannot store the download" in excinfo.value.attempts[0]["error"]
    assert sorted(p.name for p in tmp_path.iterdir()) == ["AgentSetup.exe"]


def test_download_streams_to_work_dir(tmp_path):
    payload = b"MZ" + b"\x00" * 4096

    def handler(request):
        return httpx.Response(
            200,
            headers={"Content-Type": "application/x-msdownload", "Content-Disposition": 'attachment; filename="AgentSetup.exe"'},
            content=payload,
        )

    client = HttpxClient(HttpSettings(), client=httpx.Client(transport=httpx.MockTransport(handler)))
    acquisition = _acquirer(client).acquire(PackageSource(url="https://downloads.example.com/latest"), tmp_path)

    assert acquisition.artifact.size_bytes == len(payload)
    assert (tmp_path / "AgentSetup.exe").read_bytes() == payload
    assert [p.name for p in tmp_path.iterdir()] == ["AgentSetup.exe"]


def test_no_request_profiles_is_a_failure(tmp_path):
    class NoProfiles(Acquirer):
        def request_profiles(self):
            return []

    with pytest.raises(AcquisitionFailure, match="No download attempt"):
        NoProfiles(StubHttpClient(), RemediationSettings(), retry_config=NO_RETRY).acquire(
            PackageSource(url="https://downloads.example.com/a.exe"), tmp_path
        )
