"""Shared input for the answer analyzers.

Every analyzer receives the same read-only ``AnalyzerContext``: the session
snapshot, the question lookup built for this run, and the analysis service
client. Analyzers never see each other's output.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass

from app.core.analysis_service import ViabilityClient
from app.core.schemas_catalog import Question
from app.core.schemas_session import RawAnswer, Session
from app.core.validation import is_empty


@dataclass(frozen=True)
class AnalyzerContext:
    session: Session
    questions: Mapping[str, Question]
    viability_client: ViabilityClient | None = None


def iter_answered(ctx: AnalyzerContext) -> Iterator[tuple[str, Question, RawAnswer]]:
    """Answered questions known to the catalog, in answer order."""
    for question_id, answer in ctx.session.raw_answers.items():
        question = ctx.questions.get(question_id)
        if question is None or is_empty(answer.value):
            continue
        yield question_id, question, answer


def answer_text(answer: RawAnswer) -> str:
    if isinstance(answer.value, list):
        return ", ".join(str(v) for v in answer.value)
    return str(answer.value)
