"""Tests for answer validation and session gap detection."""

from datetime import datetime, timezone

import pytest

from app.core.schemas_catalog import Question, ValidationRules
from app.core.schemas_session import RawAnswer
from app.core.validation import is_empty, validate_answer, validate_session

from tests.fixtures_sessions import make_session

NOW = datetime(2026, 3, 2, tzinfo=timezone.utc)


def _question(input_type="text", **rules) -> Question:
    return Question(id="q", text="Question", input_type=input_type, validation_rules=ValidationRules(**rules))


def _answer(value) -> RawAnswer:
    return RawAnswer(value=value, timestamp=NOW)


def _codes(errors):
    return [e.code for e in errors]


class TestIsEmpty:
    @pytest.mark.parametrize("value", [None, "", []])
    def test_empty_values(self, value):
        assert is_empty(value) is True

    @pytest.mark.parametrize("value", [0, False, " ", ["a"]])
    def test_non_empty_values(self, value):
        assert is_empty(value) is False


class TestValidateAnswer:
    def test_required_and_empty_yields_exactly_one_error(self):
        question = _question(required=True, min_length=10, pattern="^x", allowed_values=["a"])
        for value in (None, "", []):
            errors = validate_answer(question, _answer(value))
            assert _codes(errors) == ["required"]

    def test_missing_answer_counts_as_empty(self):
        assert _codes(validate_answer(_question(required=True), None)) == ["required"]

    def test_optional_and_empty_yields_nothing(self):
        assert validate_answer(_question(min_length=10), _answer("")) == []

    def test_no_rules(self):
        assert validate_answer(Question(id="q", text="Q"), _answer("")) == []

    def test_all_violations_reported(self):
        question = _question(min_length=10, pattern=r"^\d+$")
        assert _codes(validate_answer(question, _answer("abc"))) == ["min_length", "pattern_mismatch"]

    def test_max_length(self):
        assert _codes(validate_answer(_question(max_length=3), _answer("abcd"))) == ["max_length"]

    def test_malformed_pattern_is_ignored(self):
        question = _question(pattern="([unclosed")
        assert validate_answer(question, _answer("anything")) == []

    def test_invalid_option_single_and_multi(self):
        question = _question(input_type="multiselect", allowed_values=["Budget", "Timeline"])
        assert validate_answer(question, _answer(["Budget"])) == []
        assert _codes(validate_answer(question, _answer(["Budget", "Luck"]))) == ["invalid_option"]

        select = _question(input_type="select", allowed_values=["Yes", "No"])
        assert _codes(validate_answer(select, _answer("Maybe"))) == ["invalid_option"]

    def test_numeric_bounds(self):
        question = _question(input_type="number", min=1, max=100)
        assert _codes(validate_answer(question, _answer(0))) == ["min_value"]
        assert _codes(validate_answer(question, _answer(101))) == ["max_value"]
        assert _codes(validate_answer(question, _answer("250"))) == ["max_value"]
        assert validate_answer(question, _answer(50)) == []

    def test_numeric_string_on_text_question_is_not_a_number(self):
        question = _question(input_type="text", max=10)
        assert validate_answer(question, _answer("500")) == []


class TestValidateSession:
    def test_required_gaps_only_for_visible_questions(self, catalog):
        session = make_session({"q4": "Engineer"})
        summary = validate_session(session, catalog)

        gap_ids = {gap.question_id for gap in summary.gaps}
        assert summary.is_valid is False
        assert {"q1", "q3", "q6"} <= gap_ids
        # q5 is required but hidden unless q4 == "Other"
        assert "q5" not in gap_ids
        assert all(gap.severity == "high" for gap in summary.gaps)

    def test_revealed_question_becomes_a_gap(self, catalog):
        session = make_session({"q4": "Other"})
        gap_ids = {gap.question_id for gap in validate_session(session, catalog).gaps}
        assert "q5" in gap_ids

    def test_complete_session_is_valid(self, catalog):
        session = make_session(
            {
                "q1": "Teams lose track of customer feedback",
                "q3": "Product managers",
                "q6": "B2B SaaS",
            }
        )
        summary = validate_session(session, catalog)
        assert summary.is_valid is True
        assert summary.gaps == []
