"""In-process workspace: catalog snapshot, live sessions, and pipeline entry points.

Each session lives in a registry keyed by id and is only ever replaced by a new
snapshot (``commit``). Every commit goes through the persistence gate, so an
unchanged session is never rewritten. Translation adapters are held per
session, which keeps their caches from leaking between sessions.
"""

import asyncio
import logging
from collections import OrderedDict
from typing import Any

from app.core.analysis_engine import run_analysis
from app.core.analysis_service import ViabilityClient
from app.core.catalog import Catalog, ConfigSource
from app.core.config import get_settings
from app.core.document_generation import GeneratedOutput, generate_output, render_preview
from app.core.export_renderer import ExportFormat, ExportPayload, render_export
from app.core.logging import log_with_context
from app.core.metrics import timer
from app.core.overrides import PreviewSection
from app.core.research_scheduler import ResearchSchedule, get_ordered_research_questions
from app.core.schemas_analysis import AnalysisRun, Level
from app.core.schemas_catalog import Question
from app.core.schemas_session import Session, ValidationSummary
from app.core.session_state import (
    apply_analysis,
    begin_analysis,
    go_to_next_question,
    go_to_previous_question,
    refresh_derived_state,
    reset_session,
    reset_user_override,
    set_current_question,
    set_output_language,
    set_user_override,
    skip_current_question,
    start_new_session,
    submit_answer,
)
from app.core.session_store import SessionPersistence
from app.core.translation import TranslationAdapter, Translator
from app.core.validation import validate_session
from app.core.visibility import resolve_visible_questions

logger = logging.getLogger(__name__)


class SessionNotFoundError(Exception):
    """Raised when a session id is not in the registry."""


class QuestionNotFoundError(Exception):
    """Raised when an answer targets a question the catalog does not know."""


class ClarityWorkspace:
    def __init__(
        self,
        source: ConfigSource | None = None,
        persistence: SessionPersistence | None = None,
        viability_client: ViabilityClient | None = None,
        translator: Translator | None = None,
        max_sessions: int | None = None,
    ):
        self.source = source or ConfigSource()
        self.persistence = persistence or SessionPersistence()
        self.viability_client = viability_client or ViabilityClient()
        self.translator = translator
        self._catalog: Catalog | None = None
        self._catalog_lock = asyncio.Lock()
        self.max_sessions = max_sessions or get_settings().MAX_ACTIVE_SESSIONS
        self._sessions: OrderedDict[str, Session] = OrderedDict()
        self._adapters: dict[str, TranslationAdapter] = {}

    # =========================================================================
    # Catalog
    # =========================================================================

    async def get_catalog(self) -> Catalog:
        if self._catalog is None:
            async with self._catalog_lock:
                if self._catalog is None:
                    self._catalog = await self.source.load_catalog()
        return self._catalog

    async def reload_catalog(self) -> Catalog:
        """Reload from the source; drops template overrides and custom question uploads."""
        catalog = await self.source.load_catalog()
        self._catalog = catalog
        logger.info(
            f"Catalog reloaded: {len(catalog.questions)} questions, "
            f"{len(catalog.blueprints)} blueprints, {len(catalog.templates)} templates"
        )
        return catalog

    async def upload_questions(self, questions: list[Question]) -> Catalog:
        self._catalog = (await self.get_catalog()).with_questions(questions)
        return self._catalog

    async def set_template_override(
        self, template_id: str, content: str, locale: str | None = None
    ) -> Catalog:
        self._catalog = (await self.get_catalog()).with_template_override(template_id, content, locale)
        return self._catalog

    async def clear_template_overrides(self) -> Catalog:
        self._catalog = (await self.get_catalog()).without_template_overrides()
        return self._catalog

    # =========================================================================
    # Session registry
    # =========================================================================

    def get_session(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session not found: {session_id}")
        self._sessions.move_to_end(session_id)
        return session

    def commit(self, session: Session) -> Session:
        """Register the snapshot as current and pass it through the persistence gate."""
        saved = self.persistence.save(session)
        self._register(saved)
        return saved

    def _register(self, session: Session) -> None:
        """Track the session as most recently used, evicting the oldest past the cap."""
        self._sessions[session.session_id] = session
        self._sessions.move_to_end(session.session_id)
        while len(self._sessions) > self.max_sessions:
            evicted_id, _ = self._sessions.popitem(last=False)
            self._adapters.pop(evicted_id, None)
            logger.info(f"Evicted idle session {evicted_id} from the registry")

    def translation_for(self, session_id: str) -> TranslationAdapter:
        adapter = self._adapters.get(session_id)
        if adapter is None:
            adapter = TranslationAdapter(self.translator, source_locale=get_settings().DEFAULT_LOCALE)
            self._adapters[session_id] = adapter
        return adapter

    async def create_session(
        self, blueprint_id: str | None = None, output_language: str | None = None
    ) -> Session:
        catalog = await self.get_catalog()
        blueprint = catalog.get_blueprint(blueprint_id)
        session = start_new_session(
            blueprint.id if blueprint else blueprint_id,
            blueprint.version if blueprint else "1.0.0",
            output_language or get_settings().DEFAULT_LOCALE,
        )
        session = refresh_derived_state(session, catalog)
        logger.info(f"Started session {session.session_id} on blueprint {session.blueprint_id}")
        return self.commit(session)

    async def restore_session(self) -> Session | None:
        """Bring the persisted session back into the registry, if there is one."""
        session = self.persistence.load()
        if session is None:
            return None
        self._register(session)
        logger.info(f"Restored session {session.session_id}")
        return session

    async def reset(self, session_id: str) -> Session:
        fresh = reset_session(self.get_session(session_id))
        fresh = refresh_derived_state(fresh, await self.get_catalog())
        self._sessions.pop(session_id, None)
        self._adapters.pop(session_id, None)
        return self.commit(fresh)

    def save(self, session_id: str) -> Session:
        return self.commit(self.get_session(session_id))

    def set_language(self, session_id: str, locale: str) -> Session:
        return self.commit(set_output_language(self.get_session(session_id), locale))

    # =========================================================================
    # Interview
    # =========================================================================

    async def answer(
        self, session_id: str, question_id: str, value: Any, confidence: Level = "high"
    ) -> Session:
        catalog = await self.get_catalog()
        if catalog.get_question(question_id) is None:
            raise QuestionNotFoundError(f"Question not found: {question_id}")
        session = submit_answer(self.get_session(session_id), catalog, question_id, value, confidence)
        return self.commit(session)

    async def visible_questions(self, session_id: str) -> list[Question]:
        catalog = await self.get_catalog()
        session = self.get_session(session_id)
        return resolve_visible_questions(
            catalog.get_blueprint(session.blueprint_id), catalog.question_map, session.raw_answers
        )

    async def validate(self, session_id: str) -> ValidationSummary:
        return validate_session(self.get_session(session_id), await self.get_catalog())

    async def navigate(self, session_id: str, direction: str, question_id: str | None = None) -> Session:
        catalog = await self.get_catalog()
        session = self.get_session(session_id)
        if direction == "next":
            session = go_to_next_question(session, catalog)
        elif direction == "previous":
            session = go_to_previous_question(session, catalog)
        elif direction == "skip":
            session = skip_current_question(session, catalog)
        elif direction == "goto":
            visible = {q.id for q in await self.visible_questions(session_id)}
            if question_id not in visible:
                raise QuestionNotFoundError(f"Question not visible: {question_id}")
            session = set_current_question(session, question_id)
        else:
            raise ValueError(f"Unknown navigation direction: {direction}")
        return self.commit(session)

    # =========================================================================
    # Analysis
    # =========================================================================

    async def analyze(self, session_id: str) -> tuple[AnalysisRun, Session]:
        """Run the analyzers and apply the result unless a newer run started meanwhile."""
        catalog = await self.get_catalog()
        session, generation = begin_analysis(self.get_session(session_id))
        session = self.commit(session)

        run = await run_analysis(
            session, catalog, generation=generation, viability_client=self.viability_client
        )

        current = self.get_session(session_id)
        applied = apply_analysis(current, run)
        log_with_context(
            logger,
            logging.INFO,
            "Analysis run settled",
            session_id=session_id,
            generation=run.generation,
            applied=applied is not current,
            warnings=len(run.warnings),
        )
        return run, self.commit(applied)

    # =========================================================================
    # Documents
    # =========================================================================

    async def preview(self, session_id: str, output_id: str | None = None) -> list[PreviewSection]:
        session = self.get_session(session_id)
        return await render_preview(
            session,
            await self.get_catalog(),
            self.source,
            self.translation_for(session_id),
            output_id=output_id,
        )

    async def generate(self, session_id: str, output_id: str | None = None) -> GeneratedOutput:
        session = self.get_session(session_id)
        return await generate_output(
            session,
            await self.get_catalog(),
            self.source,
            self.translation_for(session_id),
            output_id=output_id,
        )

    async def export(
        self, session_id: str, fmt: ExportFormat, output_id: str | None = None
    ) -> ExportPayload:
        with timer(f"export - {fmt}", session_id):
            output = await self.generate(session_id, output_id)
            return render_export(output, fmt)

    def set_override(
        self, session_id: str, section_id: str, edited_text: str, original_text: str = ""
    ) -> Session:
        session = set_user_override(self.get_session(session_id), section_id, edited_text, original_text)
        return self.commit(session)

    def revert_override(self, session_id: str, section_id: str) -> Session:
        return self.commit(reset_user_override(self.get_session(session_id), section_id))

    # =========================================================================
    # Research
    # =========================================================================

    async def research_order(self, area: str) -> ResearchSchedule:
        return get_ordered_research_questions(await self.get_catalog(), area)
