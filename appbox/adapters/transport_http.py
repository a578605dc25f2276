"""Web hosting transport: HEAD for reachability and length, streamed GET for data."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional

import requests

from appbox.domain.errors import TransportError
from appbox.domain.progress import PercentProgress, ProgressSink

from appbox.adapters.http_client import HttpConfig, HttpSession

_log = logging.getLogger(__name__)

SessionFactory = Callable[[], requests.Session]


def _status_reason(status: int) -> str:
    if status == 404:
        return "not_found"
    if status in (401, 403):
        return "auth_failed"
    return "io"


class HttpFetchSession:
    """Scoped HTTP session used by a single stage."""

    def __init__(self, http: HttpSession) -> None:
        self.http = http

    def content_length(self, url: str) -> int:
        """Return the advertised length, or ``-1`` when unavailable."""
        resp = self.http.head(url)
        try:
            if not 200 <= resp.status_code < 400:
                return -1
            return _parse_length(resp.headers.get("Content-Length"))
        finally:
            resp.close()

    def fetch(
        self, remote_location: str, destination: Path, progress: Optional[ProgressSink] = None
    ) -> Path:
        """Download ``remote_location`` into ``destination``.

        Progress degrades to indeterminate when the length is unknown.
        """
        destination = Path(destination)
        total = self.content_length(remote_location)
        resp = self.http.get_stream(remote_location)
        part = destination.with_name(destination.name + ".part")
        try:
            status = resp.status_code
            if not 200 <= status < 300:
                raise TransportError(
                    f"Download failed for {remote_location} (HTTP {status})",
                    reason=_status_reason(status),
                    context=f"GET {remote_location}",
                )
            if total <= 0:
                total = _parse_length(resp.headers.get("Content-Length"))
            tracker = PercentProgress(total, progress)
            tracker.begin()
            destination.parent.mkdir(parents=True, exist_ok=True)
            with part.open("wb") as handle:
                for chunk in resp.iter_content(chunk_size=self.http.cfg.chunk_size):
                    if not chunk:
                        continue
                    handle.write(chunk)
                    tracker.advance(len(chunk))
            part.replace(destination)
            tracker.finish()
            _log.debug("Downloaded %s -> %s (%d bytes)", remote_location, destination, tracker.count)
            return destination
        except TransportError:
            raise
        except requests.RequestException as exc:
            raise TransportError(
                f"Download interrupted for {remote_location}",
                reason="io",
                hint=str(exc),
                context=f"GET {remote_location}",
            ) from exc
        except OSError as exc:
            raise TransportError(
                f"Could not write {destination}",
                reason="io",
                hint=str(exc),
                context=f"GET {remote_location}",
            ) from exc
        finally:
            resp.close()
            if part.exists():
                part.unlink()

    def close(self) -> None:
        self.http.close()


class HttpTransport:
    """Transport adapter for the "Web Hosting" mode."""

    def __init__(
        self,
        manifest_location: str,
        cfg: Optional[HttpConfig] = None,
        *,
        session_factory: Optional[SessionFactory] = None,
    ) -> None:
        if not manifest_location:
            raise ValueError("HttpTransport requires a manifest location URL")
        self.manifest_location = manifest_location
        self.cfg = cfg or HttpConfig()
        self._session_factory = session_factory or requests.Session

    def ping(self) -> None:
        """Issue a HEAD against the manifest location; 2xx and 3xx count as reachable."""
        with self.open_session() as session:
            resp = session.http.head(self.manifest_location)
            try:
                status = resp.status_code
            finally:
                resp.close()
        if not 200 <= status < 400:
            raise TransportError(
                f"Server responded with HTTP {status}",
                reason="unreachable",
                context=f"HEAD {self.manifest_location}",
            )

    @contextmanager
    def open_session(self) -> Iterator[HttpFetchSession]:
        session = HttpFetchSession(HttpSession(self.cfg, self._session_factory()))
        try:
            yield session
        finally:
            session.close()

    def fetch(
        self, remote_location: str, destination: Path, progress: Optional[ProgressSink] = None
    ) -> Path:
        with self.open_session() as session:
            return session.fetch(remote_location, destination, progress)


def _parse_length(value: Optional[str]) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return -1


__all__ = ["HttpFetchSession", "HttpTransport"]
