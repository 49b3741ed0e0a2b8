"""Extraction service and per-family routines."""

from pitchflow.extraction.routines import (
    BARC_ROUTINE,
    EUREKA_ROUTINE,
    PITCH_DECK_ROUTINE,
    ROUTINES,
    AnalysisRoutine,
    get_routine,
)
from pitchflow.extraction.service import (
    ExtractionError,
    ExtractionRequest,
    ExtractionResult,
    ExtractionService,
    SectionScore,
)

__all__ = [
    "BARC_ROUTINE",
    "EUREKA_ROUTINE",
    "PITCH_DECK_ROUTINE",
    "ROUTINES",
    "AnalysisRoutine",
    "ExtractionError",
    "ExtractionRequest",
    "ExtractionResult",
    "ExtractionService",
    "SectionScore",
    "get_routine",
]
