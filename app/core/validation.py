"""Answer validation and session-level gap detection.

Check order for a single answer:
1. required and empty → exactly one ``required`` error, nothing else runs
2. empty and optional → no errors
3. otherwise every applicable constraint runs and all violations are reported

Only currently visible questions are validated at session level, so a hidden
question can never produce a gap.
"""

import logging
import re
from typing import Any

from app.core.catalog import Catalog
from app.core.schemas_catalog import Question
from app.core.schemas_session import (
    Gap,
    RawAnswer,
    Session,
    ValidationError,
    ValidationSummary,
)
from app.core.visibility import resolve_visible_questions

logger = logging.getLogger(__name__)

_GAP_SEVERITY = {"error": "high", "warning": "medium"}


def is_empty(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, list) and len(value) == 0)


def _as_number(question: Question, value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if question.input_type == "number" and isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _error(question: Question, code: str, message: str) -> ValidationError:
    return ValidationError(question_id=question.id, code=code, message=message, severity="error")


def validate_answer(question: Question, answer: RawAnswer | None) -> list[ValidationError]:
    """Apply the question's validation rules to one answer."""
    rules = question.validation_rules
    value = answer.value if answer is not None else None

    if rules is None:
        return []

    if rules.required and is_empty(value):
        return [_error(question, "required", "This question is required")]

    if is_empty(value):
        return []

    errors: list[ValidationError] = []

    if isinstance(value, str):
        if rules.min_length is not None and len(value) < rules.min_length:
            errors.append(
                _error(question, "min_length", f"Must be at least {rules.min_length} characters")
            )
        if rules.max_length is not None and len(value) > rules.max_length:
            errors.append(
                _error(question, "max_length", f"Must be no more than {rules.max_length} characters")
            )
        if rules.pattern:
            try:
                if not re.search(rules.pattern, value):
                    errors.append(_error(question, "pattern_mismatch", "Invalid format"))
            except re.error as e:
                logger.warning(f"Invalid regex pattern on question {question.id}: {rules.pattern!r} ({e})")

    if rules.allowed_values is not None:
        selected = value if isinstance(value, list) else [value]
        if any(item not in rules.allowed_values for item in selected):
            errors.append(_error(question, "invalid_option", "Selected option is not allowed"))

    number = _as_number(question, value)
    if number is not None:
        if rules.min is not None and number < rules.min:
            errors.append(_error(question, "min_value", f"Value must be at least {rules.min:g}"))
        if rules.max is not None and number > rules.max:
            errors.append(_error(question, "max_value", f"Value must be no more than {rules.max:g}"))

    return errors


def validate_session(session: Session, catalog: Catalog) -> ValidationSummary:
    """Validate every visible question of the session's blueprint and derive gaps."""
    blueprint = catalog.get_blueprint(session.blueprint_id)
    visible = resolve_visible_questions(blueprint, catalog.question_map, session.raw_answers)

    errors: list[ValidationError] = []
    gaps: list[Gap] = []
    for question in visible:
        question_errors = validate_answer(question, session.raw_answers.get(question.id))
        errors.extend(question_errors)
        gaps.extend(
            Gap(
                question_id=question.id,
                reason=f"{question.text} ({err.message})",
                severity=_GAP_SEVERITY[err.severity],
            )
            for err in question_errors
        )

    return ValidationSummary(is_valid=not errors, errors=errors, gaps=gaps)
