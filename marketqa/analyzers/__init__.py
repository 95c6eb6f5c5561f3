"""Deterministic analyzers over the market data mart."""

__all__ = [
    "ANALYZER_HANDLERS",
    "AnalyzerContext",
    "AnalyzerOutput",
    "Citation",
    "EvidenceItem",
    "TopContributor",
    "run_analyzer",
]

from .base import AnalyzerContext, AnalyzerOutput, Citation, EvidenceItem, TopContributor
from .registry import ANALYZER_HANDLERS, run_analyzer
