"""Dependency ordering for research questions.

Questions are ordered in batches: each pass takes every remaining question whose
dependencies are already ordered, keeping declared order within the batch. A pass
that makes no progress means a cycle or a missing dependency; scheduling stops
there and returns the prefix ordered so far.
"""

import logging

from pydantic import BaseModel, Field

from app.core.catalog import Catalog
from app.core.schemas_catalog import ResearchQuestion

logger = logging.getLogger(__name__)


class ResearchSchedule(BaseModel):
    ordered: list[ResearchQuestion] = Field(default_factory=list)
    unresolved: list[ResearchQuestion] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.unresolved


def schedule_research_questions(questions: list[ResearchQuestion]) -> ResearchSchedule:
    ordered: list[ResearchQuestion] = []
    ordered_ids: set[str] = set()
    remaining = list(questions)

    while remaining:
        batch = [q for q in remaining if all(dep in ordered_ids for dep in q.depends_on)]
        if not batch:
            blocked = ", ".join(q.id for q in remaining)
            warning = f"Circular or missing research dependencies: {blocked}"
            logger.warning(warning)
            return ResearchSchedule(ordered=ordered, unresolved=remaining, warnings=[warning])

        ordered.extend(batch)
        ordered_ids.update(q.id for q in batch)
        batch_ids = {id(q) for q in batch}
        remaining = [q for q in remaining if id(q) not in batch_ids]

    return ResearchSchedule(ordered=ordered)


def order_research_questions(questions: list[ResearchQuestion]) -> list[ResearchQuestion]:
    """Topologically ordered questions; only the resolvable prefix on a cycle."""
    return schedule_research_questions(questions).ordered


def get_ordered_research_questions(catalog: Catalog, area: str) -> ResearchSchedule:
    return schedule_research_questions([q for q in catalog.research_questions if q.area == area])
