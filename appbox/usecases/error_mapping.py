"""Translate stage exceptions into user-facing pipeline failures."""

from __future__ import annotations

from typing import Optional

from appbox.domain.errors import LauncherError, LoadError, MetadataError, SyncError, TransportError
from appbox.domain.pipeline import RecoveryAction, Stage, StageFailure
from appbox.domain.ports import UseCaseError

_TRANSPORT_MESSAGES = {
    "unreachable": "Server not reachable. Check your connection.",
    "auth_failed": "Authentication with the update server failed.",
    "not_found": "Update resource not found on the server.",
    "io": "Transfer from the update server failed.",
}

_SYNC_MESSAGES = {
    "purge": "Could not delete old application resources.",
    "download": "Could not download application resources.",
    "extract": "Could not install application resources.",
}


def map_stage_error(
    exc: BaseException,
    *,
    stage: Stage,
    default_code: str = "stage.unexpected_error",
    recovery: RecoveryAction = RecoveryAction.CLOSE,
) -> StageFailure:
    """Map any exception raised inside ``stage`` to a StageFailure.

    Args:
        exc: Exception caught at the stage boundary.
        stage: Stage that was running.
        default_code: Code used for exceptions outside the launcher taxonomy.
        recovery: Recovery action offered to the user.

    Returns:
        StageFailure carrying the short message and the original cause.
    """
    detail = _detail_for(exc)
    if isinstance(exc, TransportError):
        message = _TRANSPORT_MESSAGES.get(exc.reason, exc.message)
        return StageFailure(stage, exc.code, message, recovery, detail, exc)
    if isinstance(exc, SyncError):
        message = _SYNC_MESSAGES.get(exc.stage, exc.message)
        return StageFailure(stage, exc.code, message, recovery, detail, exc)
    if isinstance(exc, LoadError):
        message = _compose_error_message("Could not start the application", exc.message)
        return StageFailure(stage, exc.code, message, recovery, detail, exc)
    if isinstance(exc, (MetadataError, LauncherError)):
        return StageFailure(stage, exc.code, exc.message, recovery, detail, exc)
    if isinstance(exc, UseCaseError):
        return StageFailure(stage, exc.code, exc.message, recovery, detail, exc)

    message = str(exc) or "Unexpected error."
    return StageFailure(stage, default_code, message, recovery, detail, exc)


def _detail_for(exc: BaseException) -> str:
    hint = getattr(exc, "hint", None)
    context = getattr(exc, "context", None)
    parts = [str(exc)]
    if hint:
        parts.append(f"hint: {hint}")
    if context:
        parts.append(f"context: {context}")
    cause = exc.__cause__
    if cause is not None:
        parts.append(f"cause: {type(cause).__name__}: {cause}")
    return "; ".join(parts)


def _compose_error_message(base: str, hint: Optional[str]) -> str:
    hint_text = (hint or "").strip()
    if hint_text:
        return f"{base}: {hint_text}"
    if base.endswith("."):
        return base
    return f"{base}."


__all__ = ["map_stage_error"]
