"""Document generation: resolve, render, translate, reconcile.

Steps for one request:
1. resolve the output config to a template id
2. build the document context from the session snapshot
3. resolve the template for the session's output language (fatal if none)
4. render (render errors become an in-document error block)
5. machine-translate text runs when the template came from another locale
6. apply user overrides section by section
"""

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from app.core.catalog import Catalog, ConfigSource
from app.core.config import get_settings
from app.core.document_renderer import build_document_context, render_document, render_error_block
from app.core.metrics import timer, track_performance
from app.core.overrides import PreviewSection, reconcile_document
from app.core.schemas_analysis import DerivedInferences
from app.core.schemas_session import Session
from app.core.template_resolver import (
    TemplateLoadError,
    TemplateNotFoundError,
    load_template_body,
    resolve_template,
)
from app.core.translation import TranslationAdapter

logger = logging.getLogger(__name__)


class OutputNotFoundError(Exception):
    """Raised when an output id is not in the output catalog."""


class GeneratedOutput(BaseModel):
    html: str  # reconciled, overrides applied
    generated_html: str
    template_id: str
    output_id: str
    output_language: str
    template_locale: str
    translated: bool = False
    sections: list[PreviewSection] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


async def generate_output(
    session: Session,
    catalog: Catalog,
    source: ConfigSource,
    translation: TranslationAdapter,
    output_id: str | None = None,
    inferences: DerivedInferences | None = None,
    generated_at: datetime | None = None,
) -> GeneratedOutput:
    """
    Generate the document for a session.

    Args:
        session: Session snapshot
        catalog: Catalog snapshot for this request
        source: Where template bodies are loaded from
        translation: Session-scoped translation adapter
        output_id: Output to produce; defaults to DEFAULT_OUTPUT_ID
        inferences: Inferences to render; defaults to the session's
        generated_at: Timestamp stamped into the document; defaults to now

    Raises:
        OutputNotFoundError: Unknown output id
        TemplateNotFoundError: No template resolves for the output
        TemplateLoadError: Template resolved but its body could not be loaded
    """
    settings = get_settings()
    output_id = output_id or settings.DEFAULT_OUTPUT_ID
    output_config = catalog.get_output(output_id)
    if output_config is None:
        raise OutputNotFoundError(f"Output not found: {output_id}")

    generated_at = generated_at or datetime.now(timezone.utc)
    inferences = inferences if inferences is not None else session.derived_inferences
    locale = session.output_language

    with track_performance("document generation", session.session_id) as perf:
        context = build_document_context(
            session,
            inferences,
            session.gaps,
            session.completion_by_section,
            locale,
            generated_at,
            settings.DOCUMENT_TITLE,
        )

        resolution = resolve_template(catalog, output_config.template_id, locale)
        body = await load_template_body(resolution, source)

        with timer("generation - render", session.session_id, log_level="debug"):
            html = render_document(body, context)

        if resolution.needs_translation:
            html = await translation.translate_markup(html, locale, perf)

        reconciled = reconcile_document(html, session.user_overrides, settings.DOCUMENT_TITLE)

    return GeneratedOutput(
        html=reconciled.html,
        generated_html=reconciled.generated_html,
        template_id=output_config.template_id,
        output_id=output_config.id,
        output_language=locale,
        template_locale=resolution.resolved_locale,
        translated=resolution.needs_translation,
        sections=reconciled.sections,
        metadata={
            "session_id": session.session_id,
            "blueprint_version": session.blueprint_version,
            "exported_at": generated_at.isoformat(),
            "sections": output_config.sections,
            "analysis_results": inferences.counts(),
            "output_language": locale,
        },
    )


async def render_preview(
    session: Session,
    catalog: Catalog,
    source: ConfigSource,
    translation: TranslationAdapter,
    output_id: str | None = None,
    generated_at: datetime | None = None,
) -> list[PreviewSection]:
    """Preview sections; a failed generation becomes a single error section."""
    try:
        output = await generate_output(
            session, catalog, source, translation, output_id=output_id, generated_at=generated_at
        )
    except (OutputNotFoundError, TemplateNotFoundError, TemplateLoadError) as e:
        logger.error(f"Preview generation failed for session {session.session_id}: {e}")
        error_html = render_error_block(f"Failed to generate preview: {e}")
        return [
            PreviewSection(
                id="error",
                title="Error",
                html=error_html,
                generated_html=error_html,
                status="incomplete",
            )
        ]
    return output.sections
