"""Conditional visibility and the visible question sequence.

Visibility is recomputed from the current answers on every call; nothing is
cached between answers, so the result is always consistent with the snapshot.
"""

import logging
from typing import Any, Mapping

from app.core.schemas_catalog import Blueprint, Condition, ConditionalLogic, Question
from app.core.schemas_session import RawAnswer

logger = logging.getLogger(__name__)


def _answer_value(raw_answers: Mapping[str, RawAnswer], question_id: str) -> Any:
    answer = raw_answers.get(question_id)
    return answer.value if answer is not None else None


def _same(actual: Any, expected: Any) -> bool:
    # Booleans only equal booleans, so True does not match 1
    if isinstance(actual, bool) or isinstance(expected, bool):
        return type(actual) is type(expected) and actual == expected
    return actual == expected


def _matches(actual: Any, expected: Any) -> bool:
    if isinstance(expected, list):
        return any(_same(actual, candidate) for candidate in expected)
    return _same(actual, expected)


def _condition_holds(condition: Condition, raw_answers: Mapping[str, RawAnswer]) -> bool:
    return _matches(_answer_value(raw_answers, condition.question_id), condition.value)


def evaluate_visibility(
    logic: ConditionalLogic | None, raw_answers: Mapping[str, RawAnswer]
) -> bool:
    """Decide visibility for one rule set. ``hide_if`` wins over ``show_if``."""
    if logic is None:
        return True

    if logic.hide_if is not None and _condition_holds(logic.hide_if, raw_answers):
        return False

    if logic.show_if is not None:
        return _condition_holds(logic.show_if, raw_answers)

    if logic.depends_on:
        return _matches(_answer_value(raw_answers, logic.depends_on), logic.show_if_value)

    return True


def is_question_visible(question: Question, raw_answers: Mapping[str, RawAnswer]) -> bool:
    return evaluate_visibility(question.conditional_logic, raw_answers)


def resolve_visible_questions(
    blueprint: Blueprint | None,
    question_map: Mapping[str, Question],
    raw_answers: Mapping[str, RawAnswer],
) -> list[Question]:
    """Flatten the blueprint and keep the currently visible questions, in order.

    Question ids the catalog does not know are skipped.
    """
    if blueprint is None:
        return []

    visible: list[Question] = []
    for question_id in blueprint.question_sequence():
        question = question_map.get(question_id)
        if question is None:
            logger.debug(f"Blueprint {blueprint.id} references unknown question {question_id}")
            continue
        if is_question_visible(question, raw_answers):
            visible.append(question)
    return visible


# =============================================================================
# Navigation over the visible sequence
# =============================================================================


def next_question_id(sequence: list[str], current_id: str | None) -> str | None:
    """Id after ``current_id``; the first id when current is unset or no longer visible."""
    if not sequence:
        return None
    if current_id not in sequence:
        return sequence[0]
    index = sequence.index(current_id)
    return sequence[index + 1] if index + 1 < len(sequence) else current_id


def previous_question_id(sequence: list[str], current_id: str | None) -> str | None:
    if not sequence:
        return None
    if current_id not in sequence:
        return sequence[0]
    index = sequence.index(current_id)
    return sequence[index - 1] if index > 0 else current_id
