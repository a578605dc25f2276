"""Domain-level error types for use-case and adapter mapping.

These errors cross layer boundaries without leaking transport-specific
exception details (``requests``/``paramiko``) into the orchestrator.
"""

from __future__ import annotations

from typing import Literal, Optional

TransportReason = Literal["unreachable", "auth_failed", "not_found", "io"]
SyncStage = Literal["purge", "download", "extract"]


class LauncherError(RuntimeError):
    """Base exception containing a typed error payload for the launcher."""

    def __init__(
        self,
        message: str,
        *,
        code: str,
        hint: Optional[str] = None,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.hint = hint
        self.context = context


class TransportError(LauncherError):
    """Unreachable host, authentication failure, missing path, or I/O error."""

    def __init__(
        self,
        message: str,
        *,
        reason: TransportReason = "io",
        hint: Optional[str] = None,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code=f"transport.{reason}",
            hint=hint,
            context=context,
        )
        self.reason = reason


class MetadataError(LauncherError):
    """Unreadable or malformed metadata document."""

    def __init__(self, message: str, *, hint: Optional[str] = None, context: Optional[str] = None) -> None:
        super().__init__(message, code="metadata.unreadable", hint=hint, context=context)


class SyncError(LauncherError):
    """Purge, download, or extract failure inside the file sync engine."""

    def __init__(
        self,
        message: str,
        *,
        stage: SyncStage,
        hint: Optional[str] = None,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(message, code=f"sync.{stage}_failed", hint=hint, context=context)
        self.stage = stage


class LoadError(LauncherError):
    """Entry point missing or ambiguous, instantiation or lifecycle failure."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "load.failed",
        hint: Optional[str] = None,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(message, code=code, hint=hint, context=context)


__all__ = [
    "LauncherError",
    "LoadError",
    "MetadataError",
    "SyncError",
    "SyncStage",
    "TransportError",
    "TransportReason",
]
