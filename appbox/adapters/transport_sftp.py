"""SFTP hosting transport built on ``paramiko``.

One SSH connection is opened per stage via ``open_session()`` and closed on
every exit path. Remote paths are POSIX style and verified with ``stat``
before any bytes are transferred.
"""

from __future__ import annotations

import logging
import socket
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

import paramiko

from appbox.domain.errors import TransportError
from appbox.domain.progress import PercentProgress, ProgressSink

_log = logging.getLogger(__name__)


@dataclass
class SftpConfig:
    """Connection parameters for the "SFTP Hosting" mode."""

    hostname: str
    port: int = 22
    username: str = ""
    password: str = ""
    timeout_s: float = 3.0


class SftpSession:
    """Connected SSH client plus its SFTP channel."""

    def __init__(self, client: Any, sftp: Any, cfg: SftpConfig) -> None:
        self.client = client
        self.sftp = sftp
        self.cfg = cfg

    def fetch(
        self, remote_location: str, destination: Path, progress: Optional[ProgressSink] = None
    ) -> Path:
        destination = Path(destination)
        context = f"sftp://{self.cfg.hostname}{remote_location}"
        try:
            attrs = self.sftp.stat(remote_location)
        except FileNotFoundError as exc:
            raise TransportError(
                f"Remote file not found: {remote_location}",
                reason="not_found",
                context=context,
            ) from exc
        except (OSError, paramiko.SSHException) as exc:
            raise TransportError(
                f"Could not inspect {remote_location}",
                reason="io",
                hint=str(exc),
                context=context,
            ) from exc

        tracker = PercentProgress(int(getattr(attrs, "st_size", 0) or 0), progress)
        tracker.begin()
        part = destination.with_name(destination.name + ".part")
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            self.sftp.get(
                remote_location,
                str(part),
                callback=lambda transferred, _total: tracker.update(transferred),
            )
            part.replace(destination)
        except (OSError, paramiko.SSHException) as exc:
            raise TransportError(
                f"Transfer failed for {remote_location}",
                reason="io",
                hint=str(exc),
                context=context,
            ) from exc
        finally:
            if part.exists():
                part.unlink()
        tracker.finish()
        _log.debug("Downloaded %s -> %s", context, destination)
        return destination

    def close(self) -> None:
        for closable in (self.sftp, self.client):
            try:
                closable.close()
            except Exception:
                _log.debug("Error while closing SFTP resource", exc_info=True)


class SftpTransport:
    """Transport adapter for the "SFTP Hosting" mode."""

    def __init__(
        self,
        cfg: SftpConfig,
        *,
        client_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        if not cfg.hostname:
            raise ValueError("SftpTransport requires a hostname")
        self.cfg = cfg
        self._client_factory = client_factory or paramiko.SSHClient

    def _connect(self) -> SftpSession:
        cfg = self.cfg
        context = f"sftp://{cfg.username}@{cfg.hostname}:{cfg.port}"
        client = self._client_factory()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            client.connect(
                hostname=cfg.hostname,
                port=cfg.port,
                username=cfg.username,
                password=cfg.password,
                timeout=cfg.timeout_s,
                banner_timeout=cfg.timeout_s,
                auth_timeout=cfg.timeout_s,
                allow_agent=False,
                look_for_keys=False,
            )
            sftp = client.open_sftp()
        except paramiko.AuthenticationException as exc:
            client.close()
            raise TransportError(
                "SFTP authentication failed",
                reason="auth_failed",
                hint="Check the configured username and password.",
                context=context,
            ) from exc
        except (paramiko.SSHException, socket.timeout, OSError) as exc:
            client.close()
            raise TransportError(
                f"Cannot reach SFTP host {cfg.hostname}:{cfg.port}",
                reason="unreachable",
                hint=str(exc),
                context=context,
            ) from exc
        return SftpSession(client, sftp, cfg)

    def ping(self) -> None:
        """Open and close an authenticated session."""
        with self.open_session():
            pass

    @contextmanager
    def open_session(self) -> Iterator[SftpSession]:
        session = self._connect()
        try:
            yield session
        finally:
            session.close()

    def fetch(
        self, remote_location: str, destination: Path, progress: Optional[ProgressSink] = None
    ) -> Path:
        with self.open_session() as session:
            return session.fetch(remote_location, destination, progress)


__all__ = ["SftpConfig", "SftpSession", "SftpTransport"]
