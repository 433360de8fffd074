"""Pydantic models for the interview session aggregate."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from app.core.schemas_analysis import DerivedInferences, Level


class RawAnswer(BaseModel):
    value: Any = None
    confidence: Level = "high"
    timestamp: datetime


class Gap(BaseModel):
    """A detected incompleteness or invalid state tied to one question."""

    question_id: str
    reason: str
    severity: Level


class UserOverride(BaseModel):
    """A hand edit that takes precedence over generated content for a section."""

    original_text: str
    edited_text: str
    timestamp: datetime


class SectionCompletion(BaseModel):
    completeness: int = 0  # % of visible questions answered
    clarity: int = 0  # mean answer confidence, 0-100


class ValidationError(BaseModel):
    question_id: str
    code: str  # required, min_length, max_length, pattern_mismatch, invalid_option, min_value, max_value
    message: str
    severity: Literal["error", "warning"] = "error"


class ValidationSummary(BaseModel):
    is_valid: bool
    errors: list[ValidationError] = Field(default_factory=list)
    gaps: list[Gap] = Field(default_factory=list)


class Session(BaseModel):
    """Aggregate root for one interview.

    Pipeline functions never mutate a Session; they return a new snapshot
    (``model_copy(update=...)``) that the caller commits.
    """

    session_id: str
    blueprint_id: str | None = None
    blueprint_version: str = "1.0.0"
    timestamp: datetime  # last activity

    # Guided interview
    current_question_id: str | None = None
    completed_question_ids: list[str] = Field(default_factory=list)

    # Answers & edits
    raw_answers: dict[str, RawAnswer] = Field(default_factory=dict)
    user_overrides: dict[str, UserOverride] = Field(default_factory=dict)

    # Derived state
    derived_inferences: DerivedInferences = Field(default_factory=DerivedInferences)
    gaps: list[Gap] = Field(default_factory=list)
    completion_by_section: dict[str, SectionCompletion] = Field(default_factory=dict)
    analysis_generation: int = 0

    output_language: str = "en"

    # Dirty tracking
    last_modified_at: datetime
    last_saved_at: datetime | None = None


# Fields written to the persistence store; dirty-tracking timestamps are transient
PERSISTED_FIELDS = {
    "session_id",
    "blueprint_id",
    "blueprint_version",
    "timestamp",
    "current_question_id",
    "completed_question_ids",
    "raw_answers",
    "user_overrides",
    "derived_inferences",
    "gaps",
    "completion_by_section",
    "analysis_generation",
    "output_language",
}
