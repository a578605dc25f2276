from __future__ import annotations

from appbox.domain.pipeline import PipelineState, RecoveryAction, Stage, StageFailure


def test_advance_sets_title_and_resets_progress() -> None:
    state = PipelineState().with_progress(0.5).advance(Stage.DOWNLOADING, message="Downloading a.zip")

    assert state.current_stage is Stage.DOWNLOADING
    assert state.title == "Downloading Application Resources"
    assert state.progress == 0.0
    assert state.message == "Downloading a.zip"


def test_fail_records_error_until_next_stage() -> None:
    failure = StageFailure(Stage.PINGING, "transport.unreachable", "offline", RecoveryAction.SKIP_UPDATE)

    failed = PipelineState().advance(Stage.PINGING).fail(failure)
    resumed = failed.advance(Stage.LAUNCHING)

    assert failed.current_stage is Stage.FAILED
    assert failed.last_error is failure
    assert failed.message == "offline"
    assert resumed.last_error is None


def test_stage_classification() -> None:
    assert Stage.SUCCEEDED.is_terminal and Stage.FAILED.is_terminal and Stage.CLOSED.is_terminal
    assert Stage.AWAITING_USER_DECISION.is_blocking
    assert not Stage.PURGING.is_blocking
    assert RecoveryAction.SKIP_UPDATE.label == "Skip Update"
    assert RecoveryAction.CLOSE.label == "Close"
