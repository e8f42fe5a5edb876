from app.capture.client import PillCaptureFlow, result_slots
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

__all__ = [
    "AnalysisFailed", "AnalysisStarted", "AnalysisSucceeded", "CaptureState",
    "ImageChosen", "ImageRejected", "InvalidTransition", "Phase", "PillCaptureFlow",
    "Reset", "result_slots", "transition",
]
