"""Analyzer fan-out and aggregation.

All analyzers start together via asyncio.gather and the engine waits for every
one of them to settle before merging. Merge order is the declaration order of
``DEFAULT_ANALYZERS``, never completion order, so the merged inferences are the
same however the analyzers interleave. A failing analyzer contributes an empty
result plus a warning.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from app.chains._analyzer_context import AnalyzerContext
from app.chains.analyze_market_sizing import run_market_sizing_analyzer
from app.chains.analyze_pain_points import run_pain_point_analyzer
from app.chains.analyze_personas import run_persona_analyzer
from app.chains.analyze_viability import run_viability_analyzer
from app.core.analysis_service import ViabilityClient
from app.core.catalog import Catalog
from app.core.metrics import track_performance
from app.core.schemas_analysis import (
    AnalysisRun,
    AnalyzerOutput,
    AnalyzerResult,
    DerivedInferences,
)
from app.core.schemas_session import Session

logger = logging.getLogger(__name__)

Analyzer = Callable[[AnalyzerContext], Awaitable[AnalyzerResult]]

DEFAULT_ANALYZERS: list[tuple[str, Analyzer]] = [
    ("painPointAnalyzer", run_pain_point_analyzer),
    ("personaAnalyzer", run_persona_analyzer),
    ("marketSizingAnalyzer", run_market_sizing_analyzer),
    ("viabilityAnalyzer", run_viability_analyzer),
]

# Output tag → DerivedInferences bucket
_BUCKETS: dict[str, str] = {
    "painPoint": "pain_points",
    "persona": "personas",
    "marketSizing": "market_sizing",
    "viabilityAssessment": "viability",
}


def _record(output: AnalyzerOutput):
    """The output's record with its provenance attached, for rendering."""
    return output.data.model_copy(update={"provenance": output.provenance})


def merge_results(results: list[AnalyzerResult]) -> DerivedInferences:
    """Merge analyzer results, in the order given, into fresh inference buckets."""
    buckets: dict[str, list] = {bucket: [] for bucket in _BUCKETS.values()}
    follow_ups = []
    for result in results:
        for output in result.outputs:
            buckets[_BUCKETS[output.type]].append(_record(output))
        follow_ups.extend(result.follow_up_questions)
    return DerivedInferences(**buckets, follow_up_questions=follow_ups)


async def run_analysis(
    session: Session,
    catalog: Catalog,
    generation: int | None = None,
    analyzers: list[tuple[str, Analyzer]] | None = None,
    viability_client: ViabilityClient | None = None,
) -> AnalysisRun:
    """
    Run every analyzer over the session snapshot and merge their outputs.

    Args:
        session: Read-only session snapshot
        catalog: Catalog snapshot for this run
        generation: Run generation; defaults to the session's current generation
        analyzers: (analyzer_id, analyzer) pairs; defaults to DEFAULT_ANALYZERS
        viability_client: Client for the external analysis service

    Returns:
        AnalysisRun carrying replacement inferences for the session
    """
    analyzers = analyzers if analyzers is not None else DEFAULT_ANALYZERS
    if generation is None:
        generation = session.analysis_generation
    ctx = AnalyzerContext(
        session=session,
        questions=catalog.question_map,
        viability_client=viability_client if viability_client is not None else ViabilityClient(),
    )

    with track_performance("analysis fan-out", session.session_id) as perf:
        settled = await asyncio.gather(
            *(analyzer(ctx) for _, analyzer in analyzers),
            return_exceptions=True,
        )
        perf.record_analyzer_run(len(analyzers))

    results: list[AnalyzerResult] = []
    warnings: list[str] = []
    for (analyzer_id, _), outcome in zip(analyzers, settled):
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            logger.warning(f"Analyzer {analyzer_id} failed: {outcome}")
            outcome = AnalyzerResult(
                analyzer_id=analyzer_id,
                confidence="low",
                warnings=[f"{analyzer_id} failed: {outcome}"],
                error=str(outcome),
            )
        results.append(outcome)
        warnings.extend(outcome.warnings)

    inferences = merge_results(results)
    logger.info(
        f"Analysis for session {session.session_id} (generation {generation}): {inferences.counts()}"
    )

    return AnalysisRun(
        session_id=session.session_id,
        generation=generation,
        inferences=inferences,
        results=results,
        warnings=warnings,
        completed_at=datetime.now(timezone.utc),
    )
