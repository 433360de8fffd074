"""Market sizing analyzer.

Scans ``market`` / ``customer`` questions: the first short free-text answer names
the segment, numeric answers are read as price (< 1000) or customer count
(> 1000). TAM is price × count when both are present.
"""

from app.chains._analyzer_context import AnalyzerContext, answer_text, iter_answered
from app.core.schemas_analysis import AnalyzerResult, MarketSizing, MarketSizingOutput, Provenance

ANALYZER_ID = "marketSizingAnalyzer"
MARKET_KEYWORDS = ("market", "customer")
SEGMENT_MAX_CHARS = 50
PRICE_COUNT_BOUNDARY = 1000


def _to_number(value) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


async def run_market_sizing_analyzer(ctx: AnalyzerContext) -> AnalyzerResult:
    segment: str | None = None
    price: float | None = None
    count: float | None = None
    references: list[str] = []

    for question_id, question, answer in iter_answered(ctx):
        category = question.category.lower()
        if not any(keyword in category for keyword in MARKET_KEYWORDS):
            continue

        if question.input_type == "number":
            number = _to_number(answer.value)
            if number is None:
                continue
            if number > PRICE_COUNT_BOUNDARY and count is None:
                count = number
            elif number < PRICE_COUNT_BOUNDARY and price is None:
                price = number
            references.append(question_id)
            continue

        text = answer_text(answer).strip()
        if segment is None and text and len(text) < SEGMENT_MAX_CHARS:
            segment = text
            references.append(question_id)

    if segment is None:
        return AnalyzerResult(
            analyzer_id=ANALYZER_ID,
            confidence="low",
            warnings=["No market segment identified"],
        )

    sizing = MarketSizing(
        id=f"ms_{references[0]}",
        segment=segment,
        notes="Estimated from market inputs",
    )
    if price is not None and count is not None:
        sizing.tam = price * count
        sizing.notes += f" (TAM calculated as {price:g} * {count:g})"

    output = MarketSizingOutput(
        data=sizing,
        provenance=Provenance(
            source="userInput",
            references=references,
            assumptions=["Assuming provided numbers represent generic market volume and price"],
        ),
    )
    return AnalyzerResult(analyzer_id=ANALYZER_ID, confidence="medium", outputs=[output])
