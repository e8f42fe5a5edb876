"""Capture screen state as one immutable record and one transition function."""
from dataclasses import dataclass, replace
from enum import Enum

from app.schemas.detection import DetectionResult


class Phase(str, Enum):
    IDLE = "idle"
    IMAGE_SELECTED = "image_selected"
    ANALYZING = "analyzing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class CaptureState:
    phase: Phase = Phase.IDLE
    image: str | None = None  # data URL
    filename: str | None = None
    result: DetectionResult | None = None
    error: str | None = None
    notice: str | None = None  # non-blocking, e.g. a rejected file

    @property
    def can_submit(self) -> bool:
        return self.phase in (Phase.IMAGE_SELECTED, Phase.FAILED)


@dataclass(frozen=True)
class ImageChosen:
    image: str
    filename: str | None = None


@dataclass(frozen=True)
class ImageRejected:
    notice: str


@dataclass(frozen=True)
class AnalysisStarted:
    pass


@dataclass(frozen=True)
class AnalysisSucceeded:
    result: DetectionResult


@dataclass(frozen=True)
class AnalysisFailed:
    message: str


@dataclass(frozen=True)
class Reset:
    pass


class InvalidTransition(Exception):
    def __init__(self, phase: Phase, event: object):
        super().__init__(f"{type(event).__name__} is not allowed while {phase.value}")
        self.phase = phase
        self.event = event


def transition(state: CaptureState, event: object) -> CaptureState:
    if isinstance(event, ImageRejected):
        return replace(state, notice=event.notice)

    if state.phase is Phase.ANALYZING and isinstance(event, (ImageChosen, AnalysisStarted, Reset)):
        raise InvalidTransition(state.phase, event)

    if isinstance(event, Reset):
        return CaptureState()

    if isinstance(event, ImageChosen):
        # a new image drops any previous result, error and notice
        return CaptureState(phase=Phase.IMAGE_SELECTED, image=event.image, filename=event.filename)

    if isinstance(event, AnalysisStarted):
        if not state.can_submit:
            raise InvalidTransition(state.phase, event)
        return replace(state, phase=Phase.ANALYZING, result=None, error=None, notice=None)

    if isinstance(event, (AnalysisSucceeded, AnalysisFailed)):
        if state.phase is not Phase.ANALYZING:
            raise InvalidTransition(state.phase, event)
        if isinstance(event, AnalysisSucceeded):
            return replace(state, phase=Phase.SUCCEEDED, result=event.result)
        return replace(state, phase=Phase.FAILED, error=event.message)

    raise InvalidTransition(state.phase, event)
