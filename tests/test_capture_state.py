import pytest

from app.capture.state import (
    AnalysisFailed,
    AnalysisStarted,
    AnalysisSucceeded,
    CaptureState,
    ImageChosen,
    ImageRejected,
    InvalidTransition,
    Phase,
    Reset,
    transition,
)
from app.schemas.detection import DetectionResult

IMAGE = "data:image/jpeg;base64,AAAA"
RESULT = DetectionResult(name="Aspirin 81 mg", confidence=0.8)


def _analyzing():
    state = transition(CaptureState(), ImageChosen(IMAGE, "a.jpg"))
    return transition(state, AnalysisStarted())


def test_initial_state():
    state = CaptureState()
    assert state.phase is Phase.IDLE
    assert state.image is None and state.result is None and state.error is None
    assert not state.can_submit


def test_full_success_path():
    state = transition(_analyzing(), AnalysisSucceeded(RESULT))
    assert state.phase is Phase.SUCCEEDED
    assert state.result == RESULT
    assert state.image == IMAGE


def test_failure_keeps_image_for_retry():
    state = transition(_analyzing(), AnalysisFailed("AI analysis failed: 502"))
    assert state.phase is Phase.FAILED
    assert state.error == "AI analysis failed: 502"
    assert state.image == IMAGE
    assert state.can_submit

    retry = transition(state, AnalysisStarted())
    assert retry.phase is Phase.ANALYZING
    assert retry.error is None


def test_new_image_clears_previous_outcome():
    done = transition(_analyzing(), AnalysisSucceeded(RESULT))
    state = transition(done, ImageChosen("data:image/png;base64,BBBB", "b.png"))
    assert state.phase is Phase.IMAGE_SELECTED
    assert state.result is None
    assert state.error is None
    assert state.filename == "b.png"


def test_rejected_image_only_sets_notice():
    done = transition(_analyzing(), AnalysisSucceeded(RESULT))
    state = transition(done, ImageRejected("File too large"))
    assert state.phase is Phase.SUCCEEDED
    assert state.result == RESULT
    assert state.notice == "File too large"


def test_duplicate_submission_is_rejected():
    with pytest.raises(InvalidTransition):
        transition(_analyzing(), AnalysisStarted())


def test_cannot_submit_without_image():
    with pytest.raises(InvalidTransition):
        transition(CaptureState(), AnalysisStarted())


def test_no_new_image_or_reset_while_analyzing():
    with pytest.raises(InvalidTransition):
        transition(_analyzing(), ImageChosen(IMAGE))
    with pytest.raises(InvalidTransition):
        transition(_analyzing(), Reset())


def test_outcome_requires_analysis_in_flight():
    with pytest.raises(InvalidTransition):
        transition(CaptureState(), AnalysisSucceeded(RESULT))


@pytest.mark.parametrize("event", [AnalysisSucceeded(RESULT), AnalysisFailed("boom")])
def test_reset_returns_to_idle(event):
    state = transition(transition(_analyzing(), event), Reset())
    assert state == CaptureState()


def test_unknown_event():
    with pytest.raises(InvalidTransition):
        transition(CaptureState(), object())
