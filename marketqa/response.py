"""Chat response contract and assembly from analyzer output."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from marketqa.analyzers.base import (
    AnalyzerOutput,
    Citation,
    EvidenceItem,
    TopContributor,
    base_evidence,
    citation,
)
from marketqa.mart.builder import DataMart
from marketqa.query.entities import EntityResolution, EntitySourceHit
from marketqa.query.router import AnalyzerId
from marketqa.synthesis import ProactiveSuggestion, SynthesisSummary
from marketqa.utils.text import unique

TRACE_OK = "ok"
TRACE_PARTIAL = "partial"

CLARIFICATION_CONFIDENCE = 0.42

CLARIFICATION_BULLETS = ("I need one more detail to run a precise product-level analysis.",)
CLARIFICATION_QUESTIONS = (
    "Which ASIN should we analyze?",
    "Compare Innova 5610 against closest competitors.",
    "Show product trend for Innova 5610.",
)
CLARIFICATION_ASSUMPTIONS = ("Question referenced product-level analysis without a unique product match.",)


@dataclass(frozen=True, slots=True)
class TraceStep:
    step: str
    status: str

    def to_dict(self) -> dict[str, str]:
        return {"step": self.step, "status": self.status}


def trace_status(ok: bool) -> str:
    return TRACE_OK if ok else TRACE_PARTIAL


@dataclass(frozen=True, slots=True)
class ResolvedEntities:
    brands: tuple[str, ...] = ()
    asins: tuple[str, ...] = ()
    products: tuple[str, ...] = ()
    entity_sources: tuple[EntitySourceHit, ...] = ()

    @classmethod
    def from_resolution(cls, resolution: EntityResolution) -> "ResolvedEntities":
        return cls(
            brands=tuple(resolution.brands),
            asins=tuple(resolution.asins),
            products=tuple(resolution.products),
            entity_sources=tuple(resolution.entity_sources),
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "brands": list(self.brands),
            "asins": list(self.asins),
            "products": list(self.products),
        }
        if self.entity_sources:
            payload["entitySources"] = [
                {"entity": hit.entity, "value": hit.value, "source": hit.source} for hit in self.entity_sources
            ]
        return payload


@dataclass(slots=True)
class ChatResponse:
    """Wire-level answer returned to the caller; ``to_dict`` yields the camelCase payload."""

    intent: str
    answer: str
    bullets: list[str]
    evidence: list[EvidenceItem]
    proactive: list[ProactiveSuggestion]
    suggested_questions: list[str]
    warnings: list[str]
    confidence: float | None = None
    assumptions: list[str] | None = None
    citations: list[Citation] | None = None
    analysis_trace: list[TraceStep] | None = None
    entities: ResolvedEntities | None = None
    historical_window: str | None = None
    sales_archetype: str | None = None
    top_contributors: list[TopContributor] | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "intent": self.intent,
            "answer": self.answer,
            "bullets": list(self.bullets),
            "evidence": [{"label": item.label, "value": item.value} for item in self.evidence],
            "proactive": [item.to_dict() for item in self.proactive],
            "suggestedQuestions": list(self.suggested_questions),
            "warnings": list(self.warnings),
        }
        optional: dict[str, Any] = {
            "confidence": self.confidence,
            "assumptions": list(self.assumptions) if self.assumptions is not None else None,
            "citations": (
                [{"metric": item.metric, "source": item.source, "snapshot": item.snapshot} for item in self.citations]
                if self.citations is not None
                else None
            ),
            "analysisTrace": (
                [step.to_dict() for step in self.analysis_trace] if self.analysis_trace is not None else None
            ),
            "entities": self.entities.to_dict() if self.entities is not None else None,
            "historicalWindow": self.historical_window,
            "salesArchetype": self.sales_archetype,
            "topContributors": (
                [
                    {
                        "asin": item.asin,
                        "title": item.title,
                        "revenue": item.revenue,
                        "units": item.units,
                        "trend": item.trend,
                    }
                    for item in self.top_contributors
                ]
                if self.top_contributors is not None
                else None
            ),
        }
        payload.update({key: value for key, value in optional.items() if value is not None})
        return payload


def merge_warnings(analyzer_warnings: Sequence[str], mart_warnings: Sequence[str], cap: int) -> list[str]:
    """Analyzer warnings first, then mart quality warnings; de-duplicated and capped."""

    return unique([*analyzer_warnings, *mart_warnings])[:cap]


def build_clarification_response(
    mart: DataMart,
    question: str,
    resolution: EntityResolution,
    synthesis: SynthesisSummary,
    trace: Sequence[TraceStep],
    *,
    warning_cap: int = 6,
) -> ChatResponse:
    return ChatResponse(
        intent=AnalyzerId.UNKNOWN.value,
        answer=question,
        bullets=list(CLARIFICATION_BULLETS),
        evidence=base_evidence(mart.snapshot),
        proactive=list(synthesis.proactive),
        suggested_questions=list(CLARIFICATION_QUESTIONS),
        warnings=merge_warnings((), mart.quality_warnings, warning_cap),
        confidence=CLARIFICATION_CONFIDENCE,
        assumptions=list(CLARIFICATION_ASSUMPTIONS),
        citations=[citation("Entity resolver", "code_reader_snapshot", mart.snapshot_date)],
        analysis_trace=list(trace),
        entities=ResolvedEntities.from_resolution(resolution),
    )


def assemble_response(
    analyzer_id: AnalyzerId,
    output: AnalyzerOutput,
    mart: DataMart,
    resolution: EntityResolution,
    synthesis: SynthesisSummary,
    trace: Sequence[TraceStep],
    *,
    warning_cap: int = 6,
) -> ChatResponse:
    """Pass analyzer findings through unchanged and attach proactive items, warnings and trace."""

    return ChatResponse(
        intent=analyzer_id.value,
        answer=output.answer,
        bullets=list(output.bullets),
        evidence=list(output.evidence),
        proactive=list(synthesis.proactive),
        suggested_questions=list(output.suggested_questions),
        warnings=merge_warnings(output.warnings, mart.quality_warnings, warning_cap),
        confidence=output.confidence,
        assumptions=list(output.assumptions),
        citations=list(output.citations),
        analysis_trace=list(trace),
        entities=ResolvedEntities.from_resolution(resolution),
        historical_window=output.historical_window,
        sales_archetype=output.sales_archetype.value if output.sales_archetype is not None else None,
        top_contributors=list(output.top_contributors) if output.top_contributors is not None else None,
    )


__all__ = [
    "CLARIFICATION_CONFIDENCE",
    "ChatResponse",
    "ResolvedEntities",
    "TRACE_OK",
    "TRACE_PARTIAL",
    "TraceStep",
    "assemble_response",
    "build_clarification_response",
    "merge_warnings",
    "trace_status",
]
