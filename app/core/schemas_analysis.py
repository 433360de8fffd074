"""Pydantic models for analyzer outputs and derived inferences.

Analyzer outputs form a tagged union keyed by ``type``; the aggregator and the
renderer dispatch on that tag:

- painPoint → PainPoint
- persona → Persona
- marketSizing → MarketSizing
- viabilityAssessment → ViabilityAssessment
"""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, Field

Level = Literal["low", "medium", "high"]
ProvenanceSource = Literal["userInput", "template", "inference"]


class Provenance(BaseModel):
    """Which answers and assumptions produced a derived inference."""

    source: ProvenanceSource = "userInput"
    references: list[str] = Field(default_factory=list)  # question ids
    assumptions: list[str] = Field(default_factory=list)


# =============================================================================
# Inference records
# =============================================================================


class PainPoint(BaseModel):
    id: str
    description: str
    severity: Level = "medium"
    segments: list[str] = Field(default_factory=list)
    notes: str | None = None
    provenance: Provenance | None = None


class Persona(BaseModel):
    id: str
    label: str
    description: str
    role: str | None = None
    industry: str | None = None
    segment: str | None = None
    notes: str | None = None
    confidence: Level = "medium"
    provenance: Provenance | None = None


class MarketSizing(BaseModel):
    id: str
    segment: str
    tam: float | None = None
    sam: float | None = None
    som: float | None = None
    currency: str | None = None
    pricing_model: str | None = None
    notes: str | None = None
    provenance: Provenance | None = None


class ViabilityAssessment(BaseModel):
    id: str
    feasibility: Level
    overall_risk: Level | None = None
    timeline_risk: Level | None = None
    team_fit: str | None = None
    key_constraints: list[str] = Field(default_factory=list)
    notes: str | None = None
    provenance: Provenance | None = None


class FollowUpQuestion(BaseModel):
    """A clarifying question suggested by the analysis service."""

    question_id: str
    text: str
    section: str = ""
    priority: Level = "medium"


# =============================================================================
# Analyzer outputs (tagged union)
# =============================================================================


class PainPointOutput(BaseModel):
    type: Literal["painPoint"] = "painPoint"
    data: PainPoint
    provenance: Provenance


class PersonaOutput(BaseModel):
    type: Literal["persona"] = "persona"
    data: Persona
    provenance: Provenance


class MarketSizingOutput(BaseModel):
    type: Literal["marketSizing"] = "marketSizing"
    data: MarketSizing
    provenance: Provenance


class ViabilityOutput(BaseModel):
    type: Literal["viabilityAssessment"] = "viabilityAssessment"
    data: ViabilityAssessment
    provenance: Provenance


AnalyzerOutput = Annotated[
    PainPointOutput | PersonaOutput | MarketSizingOutput | ViabilityOutput,
    Field(discriminator="type"),
]


class AnalyzerResult(BaseModel):
    analyzer_id: str
    confidence: Level = "low"
    outputs: list[AnalyzerOutput] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    follow_up_questions: list[FollowUpQuestion] = Field(default_factory=list)
    error: str | None = None


# =============================================================================
# Aggregated state
# =============================================================================


class DerivedInferences(BaseModel):
    """Aggregate analyzer output, replaced wholesale on every analysis run."""

    pain_points: list[PainPoint] = Field(default_factory=list)
    personas: list[Persona] = Field(default_factory=list)
    market_sizing: list[MarketSizing] = Field(default_factory=list)
    viability: list[ViabilityAssessment] = Field(default_factory=list)
    follow_up_questions: list[FollowUpQuestion] = Field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {
            "pain_points": len(self.pain_points),
            "personas": len(self.personas),
            "market_sizing": len(self.market_sizing),
            "viability": len(self.viability),
        }


class AnalysisRun(BaseModel):
    """Result of one fan-out, tagged with the generation it was started under."""

    session_id: str
    generation: int
    inferences: DerivedInferences
    results: list[AnalyzerResult] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    completed_at: datetime
