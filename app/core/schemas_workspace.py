"""Request and response models for the session API."""

from typing import Any, Literal

from pydantic import BaseModel, Field

from app.core.overrides import PreviewSection
from app.core.schemas_analysis import AnalyzerResult, Level
from app.core.schemas_catalog import Question, ResearchQuestion
from app.core.schemas_session import Session


class CreateSessionRequest(BaseModel):
    blueprint_id: str | None = Field(None, description="Blueprint to interview with; first one if unset")
    output_language: str | None = Field(None, description="Locale of generated documents")


class AnswerRequest(BaseModel):
    question_id: str
    value: Any = None
    confidence: Level = "high"


class NavigateRequest(BaseModel):
    direction: Literal["next", "previous", "skip", "goto"]
    question_id: str | None = Field(None, description="Target question for goto")


class LanguageRequest(BaseModel):
    output_language: str = Field(..., min_length=2)


class OverrideRequest(BaseModel):
    edited_text: str
    original_text: str = ""


class TemplateOverrideRequest(BaseModel):
    content: str
    locale: str | None = None


class VisibleQuestionsResponse(BaseModel):
    current_question_id: str | None = None
    questions: list[Question] = Field(default_factory=list)


class AnalysisResponse(BaseModel):
    session: Session
    generation: int
    applied: bool
    results: list[AnalyzerResult] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class PreviewResponse(BaseModel):
    session_id: str
    sections: list[PreviewSection] = Field(default_factory=list)


class ResearchOrderResponse(BaseModel):
    area: str
    ordered: list[ResearchQuestion] = Field(default_factory=list)
    unresolved: list[ResearchQuestion] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
