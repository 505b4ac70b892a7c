"""Backend capability interface, in-process stubs and analysis insights."""

from tandem.backends.analysis import AnalysisBackend
from tandem.backends.base import BACKEND_LABELS, Backend, BackendKind
from tandem.backends.insights import (
    AnalysisInsights,
    HeuristicInsightExtractor,
    InsightExtractor,
    extract_insights,
)
from tandem.backends.structuring import StructuringBackend

__all__ = [
    "Backend",
    "BackendKind",
    "BACKEND_LABELS",
    "StructuringBackend",
    "AnalysisBackend",
    "AnalysisInsights",
    "InsightExtractor",
    "HeuristicInsightExtractor",
    "extract_insights",
]
