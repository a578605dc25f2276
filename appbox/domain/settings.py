"""Typed launcher settings consumed by the update pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, Mapping

from .resources import ResourceRegistry


class HostingMode(str, Enum):
    """Transport backend used to reach the update server."""

    WEB = "Web Hosting"
    SFTP = "SFTP Hosting"

    @classmethod
    def parse(cls, value: Any) -> "HostingMode":
        if isinstance(value, HostingMode):
            return value
        text = str(value or "").strip().lower()
        for mode in cls:
            if text in {mode.value.lower(), mode.name.lower()}:
                return mode
        if text in {"http", "https"}:
            return cls.WEB
        raise ValueError(f"Unsupported hosting mode: {value!r}")


@dataclass(frozen=True)
class LauncherSettings:
    """Settings snapshot read once at process start."""

    hosting_mode: HostingMode = HostingMode.WEB
    app_name: str = "Application"
    version_description_url: str = ""
    manifest_location: str = ""
    connection_timeout_ms: int = 3000
    sftp_hostname: str = ""
    sftp_port: int = 22
    sftp_username: str = ""
    sftp_password: str = ""
    notify_attribute: str = "Notify-Update"
    skip_attribute: str = "Allow-Ignore-Update"
    resources: ResourceRegistry = field(default_factory=ResourceRegistry)

    @property
    def connection_timeout_s(self) -> float:
        return max(self.connection_timeout_ms, 1) / 1000.0

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(item.name for item in fields(cls))

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "LauncherSettings":
        """Coerce a flat persisted mapping into typed settings."""
        if not isinstance(payload, Mapping):
            raise ValueError("Settings payload must be a mapping of flat keys.")

        unknown = set(payload.keys()) - set(cls.field_names())
        if unknown:
            raise ValueError(f"Unsupported settings keys: {', '.join(sorted(str(key) for key in unknown))}")

        updates: Dict[str, Any] = {}
        for key in cls.field_names():
            if key in payload:
                updates[key] = _coerce_value(key, payload[key])
        return replace(cls(), **updates)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hosting_mode": self.hosting_mode.value,
            "app_name": self.app_name,
            "version_description_url": self.version_description_url,
            "manifest_location": self.manifest_location,
            "connection_timeout_ms": self.connection_timeout_ms,
            "sftp_hostname": self.sftp_hostname,
            "sftp_port": self.sftp_port,
            "sftp_username": self.sftp_username,
            "sftp_password": self.sftp_password,
            "notify_attribute": self.notify_attribute,
            "skip_attribute": self.skip_attribute,
            "resources": self.resources.to_list(),
        }


def _coerce_value(key: str, raw: Any) -> Any:
    if key == "hosting_mode":
        return HostingMode.parse(raw)
    if key in {"connection_timeout_ms", "sftp_port"}:
        return _coerce_int(key, raw)
    if key == "resources":
        if raw is None:
            return ResourceRegistry()
        if isinstance(raw, ResourceRegistry):
            return raw
        if not isinstance(raw, (list, tuple)):
            raise ValueError("resources must be a list of resource entries.")
        return ResourceRegistry.from_entries(raw)
    return "" if raw is None else str(raw).strip()


def _coerce_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer.")
    if isinstance(value, (int, float)):
        coerced = int(value)
    elif isinstance(value, str):
        try:
            coerced = int(value.strip())
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{name} must be an integer.") from exc
    else:
        raise ValueError(f"{name} must be an integer.")
    if coerced < 0:
        raise ValueError(f"{name} must be non-negative.")
    return coerced


__all__ = ["HostingMode", "LauncherSettings"]
