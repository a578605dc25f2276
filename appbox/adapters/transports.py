"""Select the transport backend configured by the hosting mode."""

from __future__ import annotations

from appbox.domain.ports import TransportPort
from appbox.domain.settings import HostingMode, LauncherSettings

from appbox.adapters.http_client import HttpConfig
from appbox.adapters.transport_http import HttpTransport
from appbox.adapters.transport_sftp import SftpConfig, SftpTransport


def build_transport(settings: LauncherSettings) -> TransportPort:
    """Return the transport for ``settings.hosting_mode``."""
    timeout_s = settings.connection_timeout_s
    if settings.hosting_mode is HostingMode.SFTP:
        return SftpTransport(
            SftpConfig(
                hostname=settings.sftp_hostname,
                port=settings.sftp_port,
                username=settings.sftp_username,
                password=settings.sftp_password,
                timeout_s=timeout_s,
            )
        )
    return HttpTransport(
        settings.manifest_location,
        HttpConfig(connect_timeout_s=timeout_s, read_timeout_s=max(timeout_s, 30.0)),
    )


__all__ = ["build_transport"]
