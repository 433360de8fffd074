"""Pydantic models for configuration catalogs.

Catalog JSON (questions, blueprints, research questions, template index, output
formats) is authored in camelCase; every model here accepts both camelCase keys
and the snake_case field names.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

InputType = Literal["text", "textarea", "select", "multiselect", "number", "date"]
ExportFormat = Literal["md", "docx", "pdf"]


class CatalogModel(BaseModel):
    """Base for catalog entries loaded from camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Questions
# =============================================================================


class ValidationRules(CatalogModel):
    required: bool = False
    min_length: int | None = None
    max_length: int | None = None
    min: float | None = None
    max: float | None = None
    pattern: str | None = None
    allowed_values: list[Any] | None = None


class Condition(CatalogModel):
    """Compare the current answer of ``question_id`` against ``value``.

    A list ``value`` matches by membership, anything else by equality.
    """

    question_id: str
    value: Any = None


class ConditionalLogic(CatalogModel):
    show_if: Condition | None = None
    hide_if: Condition | None = None
    # Legacy single-condition form
    depends_on: str | None = None
    show_if_value: Any = None


class Question(CatalogModel):
    id: str
    text: str
    category: str = ""
    input_type: InputType = "text"
    help_text: str | None = None
    options: list[str] = Field(default_factory=list)
    validation_rules: ValidationRules | None = None
    conditional_logic: ConditionalLogic | None = None


# =============================================================================
# Blueprints
# =============================================================================


class Section(CatalogModel):
    id: str
    title: str = ""
    question_ids: list[str] = Field(default_factory=list)


class Blueprint(CatalogModel):
    """An ordered set of question sections defining one interview flow."""

    id: str
    version: str = "1.0.0"
    name: str = ""
    description: str = ""
    sections: list[Section] = Field(default_factory=list)

    def question_sequence(self) -> list[str]:
        """Canonical question order before visibility filtering."""
        return [qid for section in self.sections for qid in section.question_ids]


# =============================================================================
# Research questions
# =============================================================================


class ResearchQuestion(CatalogModel):
    id: str
    area: str
    label: str = ""
    depends_on: list[str] = Field(default_factory=list)


# =============================================================================
# Templates and outputs
# =============================================================================


class TemplateConfig(CatalogModel):
    """One entry of the template index. Several entries may share an id, one per locale."""

    id: str
    name: str = ""
    locale: str = "en"
    path: str | None = None
    body: str | None = None
    description: str = ""


class TemplateOverride(CatalogModel):
    """A user-supplied template body, optionally scoped to one locale."""

    content: str
    locale: str | None = None


class OutputFileConfig(CatalogModel):
    id: str
    name: str = ""
    template_id: str
    format: ExportFormat = "md"
    sections: list[str] = Field(default_factory=list)
