"""Pain point analyzer.

Every answered question in the ``Problem`` category is treated as one pain
point, described verbatim by the answer text.
"""

from app.chains._analyzer_context import AnalyzerContext, answer_text, iter_answered
from app.core.schemas_analysis import AnalyzerResult, PainPoint, PainPointOutput, Provenance

ANALYZER_ID = "painPointAnalyzer"
PROBLEM_CATEGORY = "problem"


async def run_pain_point_analyzer(ctx: AnalyzerContext) -> AnalyzerResult:
    outputs = []
    for question_id, question, answer in iter_answered(ctx):
        if question.category.strip().lower() != PROBLEM_CATEGORY:
            continue

        outputs.append(
            PainPointOutput(
                data=PainPoint(
                    id=f"pp_{question_id}",
                    description=answer_text(answer),
                    notes="Extracted from user answer",
                ),
                provenance=Provenance(source="userInput", references=[question_id]),
            )
        )

    # Rule-based: high confidence that the user said this
    return AnalyzerResult(analyzer_id=ANALYZER_ID, confidence="high", outputs=outputs)
