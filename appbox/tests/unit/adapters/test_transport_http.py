from __future__ import annotations

import pytest

requests = pytest.importorskip("requests")

from appbox.adapters.http_client import HttpConfig
from appbox.adapters.transport_http import HttpTransport
from appbox.domain.errors import TransportError
from appbox.domain.progress import UNKNOWN_PERCENT

URL = "http://updates.test/app/demo.pyz"


class _FakeResponse:
    def __init__(self, status_code=200, body=b"", headers=None, error=None):
        self.status_code = status_code
        self.headers = dict(headers or {})
        self._body = body
        self._error = error
        self.closed = False

    def iter_content(self, chunk_size=1):
        for offset in range(0, len(self._body), chunk_size):
            yield self._body[offset : offset + chunk_size]
        if self._error is not None:
            raise self._error

    def close(self):
        self.closed = True


class _FakeSession:
    def __init__(self, *, head=None, get=None, head_error=None):
        self.head_response = head or _FakeResponse()
        self.get_response = get or _FakeResponse()
        self.head_error = head_error
        self.calls = []
        self.closed = False

    def head(self, url, **kwargs):
        self.calls.append(("HEAD", url, kwargs))
        if self.head_error is not None:
            raise self.head_error
        return self.head_response

    def get(self, url, **kwargs):
        self.calls.append(("GET", url, kwargs))
        return self.get_response

    def close(self):
        self.closed = True


def _transport(session: _FakeSession, chunk_size: int = 4) -> HttpTransport:
    return HttpTransport(
        "http://updates.test/app/MANIFEST.MF",
        HttpConfig(connect_timeout_s=1.5, read_timeout_s=5.0, chunk_size=chunk_size),
        session_factory=lambda: session,
    )


def test_fetch_streams_with_percent_progress(tmp_path) -> None:
    body = b"0123456789" * 4
    session = _FakeSession(
        head=_FakeResponse(headers={"Content-Length": str(len(body))}),
        get=_FakeResponse(body=body),
    )
    seen = []

    path = _transport(session).fetch(URL, tmp_path / "demo.pyz", seen.append)

    assert path.read_bytes() == body
    assert seen == sorted(seen) and seen[-1] == 100
    assert len(seen) == len(set(seen))
    assert session.closed
    method, _, kwargs = session.calls[1]
    assert method == "GET" and kwargs["stream"] is True
    assert kwargs["timeout"] == (1.5, 5.0)
    assert not (tmp_path / "demo.pyz.part").exists()


def test_fetch_without_length_announces_unknown_size(tmp_path) -> None:
    session = _FakeSession(head=_FakeResponse(headers={}), get=_FakeResponse(body=b"abcdefgh"))
    seen = []

    _transport(session).fetch(URL, tmp_path / "demo.pyz", seen.append)

    assert seen == [UNKNOWN_PERCENT, 100]


def test_missing_remote_file_maps_to_not_found(tmp_path) -> None:
    session = _FakeSession(head=_FakeResponse(status_code=404), get=_FakeResponse(status_code=404))

    with pytest.raises(TransportError) as excinfo:
        _transport(session).fetch(URL, tmp_path / "demo.pyz")

    assert excinfo.value.reason == "not_found"
    assert not (tmp_path / "demo.pyz").exists()


def test_interrupted_stream_maps_to_io_error(tmp_path) -> None:
    broken = _FakeResponse(body=b"abcd", error=requests.exceptions.ChunkedEncodingError("reset"))
    session = _FakeSession(get=broken)

    with pytest.raises(TransportError) as excinfo:
        _transport(session).fetch(URL, tmp_path / "demo.pyz")

    assert excinfo.value.reason == "io"
    assert broken.closed
    assert not (tmp_path / "demo.pyz.part").exists()


def test_ping_accepts_redirect_status() -> None:
    session = _FakeSession(head=_FakeResponse(status_code=302))

    _transport(session).ping()

    assert session.calls[0][0] == "HEAD"


def test_ping_rejects_error_status_and_connection_failures() -> None:
    with pytest.raises(TransportError) as excinfo:
        _transport(_FakeSession(head=_FakeResponse(status_code=500))).ping()
    assert excinfo.value.reason == "unreachable"

    offline = _FakeSession(head_error=requests.exceptions.ConnectionError("refused"))
    with pytest.raises(TransportError) as excinfo:
        _transport(offline).ping()
    assert excinfo.value.code == "transport.unreachable"
    assert offline.closed


def test_transport_requires_manifest_location() -> None:
    with pytest.raises(ValueError):
        HttpTransport("")


def test_build_transport_selects_backend() -> None:
    pytest.importorskip("paramiko")
    from appbox.adapters.transport_sftp import SftpTransport
    from appbox.adapters.transports import build_transport
    from appbox.domain.settings import HostingMode, LauncherSettings

    web = build_transport(LauncherSettings(manifest_location="http://h/MANIFEST.MF", connection_timeout_ms=2000))
    sftp = build_transport(
        LauncherSettings(hosting_mode=HostingMode.SFTP, sftp_hostname="h", connection_timeout_ms=2000)
    )

    assert isinstance(web, HttpTransport)
    assert web.cfg.connect_timeout_s == 2.0
    assert isinstance(sftp, SftpTransport)
    assert sftp.cfg.timeout_s == 2.0
