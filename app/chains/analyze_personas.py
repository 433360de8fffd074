"""Persona analyzer.

Answers to ``Persona`` / ``Target Audience`` questions each become a persona.
The label is the first clause of the answer, truncated to 30 characters, with
``...`` appended whenever the whole answer is longer than that.
"""

import re

from app.chains._analyzer_context import AnalyzerContext, answer_text, iter_answered
from app.core.schemas_analysis import AnalyzerResult, Level, Persona, PersonaOutput, Provenance
from app.core.schemas_session import RawAnswer

ANALYZER_ID = "personaAnalyzer"
PERSONA_CATEGORIES = {"persona", "target audience"}
LABEL_MAX_CHARS = 30

_CLAUSE_SPLIT_RE = re.compile(r"[.,\n]")


def _label(text: str) -> str:
    first = _CLAUSE_SPLIT_RE.split(text, maxsplit=1)[0].strip() or text.strip()
    # The ellipsis marks a long answer, even when its first clause fits
    suffix = "..." if len(text) > LABEL_MAX_CHARS else ""
    return first[:LABEL_MAX_CHARS] + suffix


def _extraction_confidence(answer: RawAnswer, text: str) -> Level:
    if answer.confidence == "low":
        return "low"
    # Very short answers say little about who the user is
    if len(text) < 5:
        return "low"
    return answer.confidence


async def run_persona_analyzer(ctx: AnalyzerContext) -> AnalyzerResult:
    outputs = []
    for question_id, question, answer in iter_answered(ctx):
        if question.category.strip().lower() not in PERSONA_CATEGORIES:
            continue

        text = answer_text(answer)
        outputs.append(
            PersonaOutput(
                data=Persona(
                    id=f"persona_{question_id}",
                    label=_label(text),
                    description=text,
                    confidence=_extraction_confidence(answer, text),
                ),
                provenance=Provenance(source="userInput", references=[question_id]),
            )
        )

    return AnalyzerResult(analyzer_id=ANALYZER_ID, confidence="high", outputs=outputs)
