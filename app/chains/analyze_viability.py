"""Viability analyzer.

Delegates to the external analysis service. Any failure, including a timeout,
degrades to an empty result carrying a warning; it never aborts the fan-out.
"""

from app.chains._analyzer_context import AnalyzerContext
from app.core.analysis_service import AnalysisServiceError
from app.core.logging import get_logger
from app.core.schemas_analysis import (
    AnalyzerResult,
    FollowUpQuestion,
    Provenance,
    ViabilityAssessment,
    ViabilityOutput,
)

logger = get_logger(__name__)

ANALYZER_ID = "viabilityAnalyzer"
DEFAULT_BLUEPRINT_ID = "default"


def _failed(message: str) -> AnalyzerResult:
    return AnalyzerResult(
        analyzer_id=ANALYZER_ID,
        confidence="low",
        warnings=[message],
        error=message,
    )


async def run_viability_analyzer(ctx: AnalyzerContext) -> AnalyzerResult:
    session = ctx.session
    answers = {qid: answer.model_dump(mode="json") for qid, answer in session.raw_answers.items()}

    if not answers:
        return AnalyzerResult(
            analyzer_id=ANALYZER_ID,
            confidence="low",
            warnings=["No answers to analyze"],
        )

    client = ctx.viability_client
    if client is None or not client.configured:
        return _failed("Analysis service not configured; viability skipped")

    try:
        result = await client.analyze_viability(
            session_id=session.session_id,
            blueprint_id=session.blueprint_id or DEFAULT_BLUEPRINT_ID,
            answers=answers,
        )
    except AnalysisServiceError as e:
        logger.warning(f"Viability analyzer degraded for session {session.session_id}: {e}")
        return _failed(str(e))

    assessment = ViabilityAssessment(
        id=f"va_{session.session_id}",
        feasibility=result.feasibility,
        overall_risk=result.overall_risk,
        key_constraints=result.key_constraints,
        notes="; ".join(result.assumptions) or None,
    )
    output = ViabilityOutput(
        data=assessment,
        provenance=Provenance(
            source="inference",
            references=list(answers),
            assumptions=result.assumptions,
        ),
    )
    follow_ups = [
        FollowUpQuestion(
            question_id=item.question_id,
            text=item.text,
            section=item.section,
            priority=item.priority,
        )
        for item in result.suggested_follow_up_questions
    ]

    return AnalyzerResult(
        analyzer_id=ANALYZER_ID,
        confidence="high",
        outputs=[output],
        follow_up_questions=follow_ups,
    )
