"""Session mutations as pure functions.

Each function takes a Session snapshot and returns a new one; the caller owns
committing it. Every mutation bumps ``last_modified_at`` to a value strictly
greater than the previous one so the persistence gate can always tell that
something changed.

Analysis runs are tagged with a generation. ``begin_analysis`` bumps the
session's generation; ``apply_analysis`` drops any run whose generation is
older than the session's, so a superseded run can never overwrite newer state.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from app.core.catalog import Catalog
from app.core.schemas_analysis import AnalysisRun, Level
from app.core.schemas_session import RawAnswer, SectionCompletion, Session, UserOverride
from app.core.validation import is_empty, validate_session
from app.core.visibility import next_question_id, previous_question_id, resolve_visible_questions

logger = logging.getLogger(__name__)

CLARITY_SCORES: dict[str, int] = {"high": 100, "medium": 60, "low": 30}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _touch(session: Session, now: datetime | None = None, **updates: Any) -> Session:
    now = now or _utcnow()
    modified = max(now, session.last_modified_at + timedelta(microseconds=1))
    return session.model_copy(update={**updates, "timestamp": now, "last_modified_at": modified})


def is_dirty(session: Session) -> bool:
    return session.last_saved_at is None or session.last_modified_at > session.last_saved_at


# =============================================================================
# Lifecycle
# =============================================================================


def start_new_session(
    blueprint_id: str | None = None,
    blueprint_version: str = "1.0.0",
    output_language: str = "en",
    now: datetime | None = None,
) -> Session:
    now = now or _utcnow()
    return Session(
        session_id=str(uuid.uuid4()),
        blueprint_id=blueprint_id,
        blueprint_version=blueprint_version,
        output_language=output_language,
        timestamp=now,
        last_modified_at=now,
    )


def reset_session(session: Session, now: datetime | None = None) -> Session:
    """Fresh session on the same blueprint; answers, edits and derived state are dropped."""
    fresh = start_new_session(
        session.blueprint_id, session.blueprint_version, session.output_language, now
    )
    modified = max(fresh.last_modified_at, session.last_modified_at + timedelta(microseconds=1))
    return fresh.model_copy(update={"last_modified_at": modified})


def set_output_language(session: Session, locale: str, now: datetime | None = None) -> Session:
    return _touch(session, now, output_language=locale)


# =============================================================================
# Answers and derived interview state
# =============================================================================


def record_answer(
    session: Session,
    question_id: str,
    value: Any,
    confidence: Level = "high",
    now: datetime | None = None,
) -> Session:
    """Store (overwrite) the answer for one question."""
    now = now or _utcnow()
    answers = dict(session.raw_answers)
    answers[question_id] = RawAnswer(value=value, confidence=confidence, timestamp=now)

    completed = [qid for qid in session.completed_question_ids if qid != question_id]
    if not is_empty(value):
        completed.append(question_id)

    return _touch(session, now, raw_answers=answers, completed_question_ids=completed)


def compute_completion(session: Session, catalog: Catalog) -> dict[str, SectionCompletion]:
    """Per blueprint section: % of visible questions answered and mean answer confidence."""
    blueprint = catalog.get_blueprint(session.blueprint_id)
    if blueprint is None:
        return {}

    visible_ids = {
        q.id for q in resolve_visible_questions(blueprint, catalog.question_map, session.raw_answers)
    }
    completion: dict[str, SectionCompletion] = {}
    for section in blueprint.sections:
        section_ids = [qid for qid in section.question_ids if qid in visible_ids]
        answered = [
            session.raw_answers[qid]
            for qid in section_ids
            if qid in session.raw_answers and not is_empty(session.raw_answers[qid].value)
        ]
        completeness = round(len(answered) / len(section_ids) * 100) if section_ids else 100
        clarity = (
            round(sum(CLARITY_SCORES[a.confidence] for a in answered) / len(answered))
            if answered
            else 0
        )
        completion[section.id] = SectionCompletion(completeness=completeness, clarity=clarity)
    return completion


def refresh_derived_state(session: Session, catalog: Catalog, now: datetime | None = None) -> Session:
    """Recompute gaps, completion stats, and the current question from the answers."""
    summary = validate_session(session, catalog)
    sequence = visible_sequence(session, catalog)

    current = session.current_question_id
    if current not in sequence:
        current = sequence[0] if sequence else None

    return _touch(
        session,
        now,
        gaps=summary.gaps,
        completion_by_section=compute_completion(session, catalog),
        current_question_id=current,
    )


def submit_answer(
    session: Session,
    catalog: Catalog,
    question_id: str,
    value: Any,
    confidence: Level = "high",
    now: datetime | None = None,
) -> Session:
    """Record an answer, then recompute visibility-dependent state."""
    return refresh_derived_state(record_answer(session, question_id, value, confidence, now), catalog, now)


# =============================================================================
# Navigation
# =============================================================================


def visible_sequence(session: Session, catalog: Catalog) -> list[str]:
    blueprint = catalog.get_blueprint(session.blueprint_id)
    return [q.id for q in resolve_visible_questions(blueprint, catalog.question_map, session.raw_answers)]


def set_current_question(session: Session, question_id: str | None, now: datetime | None = None) -> Session:
    return _touch(session, now, current_question_id=question_id)


def go_to_next_question(session: Session, catalog: Catalog, now: datetime | None = None) -> Session:
    target = next_question_id(visible_sequence(session, catalog), session.current_question_id)
    return set_current_question(session, target, now)


def go_to_previous_question(session: Session, catalog: Catalog, now: datetime | None = None) -> Session:
    target = previous_question_id(visible_sequence(session, catalog), session.current_question_id)
    return set_current_question(session, target, now)


def skip_current_question(session: Session, catalog: Catalog, now: datetime | None = None) -> Session:
    """Move on without answering; the skipped question stays out of completed ids."""
    skipped = session.current_question_id
    completed = [qid for qid in session.completed_question_ids if qid != skipped]
    moved = go_to_next_question(session, catalog, now)
    return moved.model_copy(update={"completed_question_ids": completed})


# =============================================================================
# Overrides
# =============================================================================


def set_user_override(
    session: Session,
    section_id: str,
    edited_text: str,
    original_text: str = "",
    now: datetime | None = None,
) -> Session:
    now = now or _utcnow()
    overrides = dict(session.user_overrides)
    overrides[section_id] = UserOverride(
        original_text=original_text, edited_text=edited_text, timestamp=now
    )
    return _touch(session, now, user_overrides=overrides)


def reset_user_override(session: Session, section_id: str, now: datetime | None = None) -> Session:
    """Revert a section to generator output. No-op when there is no override."""
    if section_id not in session.user_overrides:
        return session
    overrides = {k: v for k, v in session.user_overrides.items() if k != section_id}
    return _touch(session, now, user_overrides=overrides)


# =============================================================================
# Analysis runs
# =============================================================================


def begin_analysis(session: Session, now: datetime | None = None) -> tuple[Session, int]:
    """Start a new analysis generation; returns the new snapshot and its generation."""
    generation = session.analysis_generation + 1
    return _touch(session, now, analysis_generation=generation), generation


def apply_analysis(session: Session, run: AnalysisRun, now: datetime | None = None) -> Session:
    """Replace derived inferences with a run's output unless the run is stale."""
    if run.session_id != session.session_id:
        logger.info(f"Discarding analysis run for session {run.session_id}; active is {session.session_id}")
        return session
    if run.generation < session.analysis_generation:
        logger.info(
            f"Discarding stale analysis run (generation {run.generation} < {session.analysis_generation})"
        )
        return session
    return _touch(session, now, derived_inferences=run.inferences)


def mark_saved(session: Session) -> Session:
    """Record a successful save of exactly this snapshot."""
    return session.model_copy(update={"last_saved_at": session.last_modified_at})
