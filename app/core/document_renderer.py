"""Template rendering for generated documents.

Templates are Jinja2 markup rendered against a document context built from the
session. Missing context fields render as empty strings. A template that fails
to compile or render produces an in-document error block instead of raising,
so one broken template cannot take down the pipeline.
"""

import logging
from datetime import datetime
from typing import Any

from jinja2 import ChainableUndefined, Environment, TemplateError
from markupsafe import escape

from app.core.schemas_analysis import DerivedInferences
from app.core.schemas_session import Gap, SectionCompletion, Session

logger = logging.getLogger(__name__)


def _format_date(value: Any) -> str:
    if not value:
        return ""
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d")
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).strftime("%Y-%m-%d")
    except ValueError:
        return str(value)


def _refs(provenance: Any) -> str:
    """Comma-joined question ids of a provenance dict, for ``data-refs`` attributes."""
    if not provenance:
        return ""
    references = provenance.get("references") if isinstance(provenance, dict) else None
    return ",".join(references or [])


def _build_environment() -> Environment:
    env = Environment(
        autoescape=True,
        undefined=ChainableUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["format_date"] = _format_date
    env.filters["refs"] = _refs
    return env


_ENV = _build_environment()


def render_error_block(message: str) -> str:
    return (
        '<section data-section-id="render-error" data-title="Error">'
        f'<div class="render-error">Error generating content: {escape(message)}</div>'
        "</section>"
    )


def build_document_context(
    session: Session,
    inferences: DerivedInferences,
    gaps: list[Gap],
    completion_by_section: dict[str, SectionCompletion],
    output_language: str,
    generated_at: datetime,
    document_title: str,
) -> dict[str, Any]:
    """Bind session data into the plain-dict context templates render against."""
    return {
        "session": {
            "session_id": session.session_id,
            "blueprint_id": session.blueprint_id,
            "blueprint_version": session.blueprint_version,
            "timestamp": session.timestamp.isoformat(),
        },
        "raw_answers": {qid: answer.value for qid, answer in session.raw_answers.items()},
        "derived_inferences": inferences.model_dump(mode="json"),
        "gaps": [gap.model_dump(mode="json") for gap in gaps],
        "completion_by_section": {
            section_id: completion.model_dump() for section_id, completion in completion_by_section.items()
        },
        "document_title": document_title,
        "generated_at": generated_at.isoformat(),
        "output_language": output_language,
    }


def render_document(template_body: str, context: dict[str, Any]) -> str:
    try:
        template = _ENV.from_string(template_body)
    except TemplateError as e:
        logger.error(f"Template compilation failed: {e}")
        return render_error_block(str(e))

    try:
        return template.render(context)
    except Exception as e:
        logger.error(f"Template rendering failed: {type(e).__name__}: {e}")
        return render_error_block(str(e))
