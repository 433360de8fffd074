"""Tests for conditional visibility and navigation over visible questions."""

from datetime import datetime, timezone

from app.core.schemas_catalog import Blueprint, Condition, ConditionalLogic, Question, Section
from app.core.schemas_session import RawAnswer
from app.core.visibility import (
    evaluate_visibility,
    next_question_id,
    previous_question_id,
    resolve_visible_questions,
)

NOW = datetime(2026, 3, 2, tzinfo=timezone.utc)


def _answers(**values):
    return {qid: RawAnswer(value=value, timestamp=NOW) for qid, value in values.items()}


class TestEvaluateVisibility:
    def test_no_logic_is_visible(self):
        assert evaluate_visibility(None, {}) is True

    def test_show_if_equality(self):
        logic = ConditionalLogic(show_if=Condition(question_id="q4", value="Other"))
        assert evaluate_visibility(logic, _answers(q4="Other")) is True
        assert evaluate_visibility(logic, _answers(q4="Engineer")) is False
        assert evaluate_visibility(logic, {}) is False

    def test_show_if_list_matches_membership(self):
        logic = ConditionalLogic(show_if=Condition(question_id="q4", value=["Founder", "Other"]))
        assert evaluate_visibility(logic, _answers(q4="Founder")) is True
        assert evaluate_visibility(logic, _answers(q4="Engineer")) is False

    def test_hide_if_wins_over_show_if(self):
        logic = ConditionalLogic(
            show_if=Condition(question_id="q9", value="No"),
            hide_if=Condition(question_id="q9", value="No"),
        )
        assert evaluate_visibility(logic, _answers(q9="No")) is False

    def test_hide_if_alone(self):
        logic = ConditionalLogic(hide_if=Condition(question_id="q9", value="No"))
        assert evaluate_visibility(logic, _answers(q9="Yes")) is True
        assert evaluate_visibility(logic, {}) is True
        assert evaluate_visibility(logic, _answers(q9="No")) is False

    def test_legacy_depends_on(self):
        logic = ConditionalLogic(depends_on="q9", show_if_value="Yes")
        assert evaluate_visibility(logic, _answers(q9="Yes")) is True
        assert evaluate_visibility(logic, _answers(q9="No")) is False

    def test_booleans_do_not_match_numbers(self):
        logic = ConditionalLogic(show_if=Condition(question_id="q9", value=True))
        assert evaluate_visibility(logic, _answers(q9=1)) is False
        assert evaluate_visibility(logic, _answers(q9=True)) is True

        listed = ConditionalLogic(hide_if=Condition(question_id="q7", value=[0, 5]))
        assert evaluate_visibility(listed, _answers(q7=False)) is True
        assert evaluate_visibility(listed, _answers(q7=0)) is False

    def test_camel_case_catalog_json(self):
        question = Question.model_validate(
            {
                "id": "q5",
                "text": "Other role?",
                "conditionalLogic": {"showIf": {"questionId": "q4", "value": "Other"}},
            }
        )
        assert question.conditional_logic.show_if.question_id == "q4"


class TestResolveVisibleQuestions:
    def test_follows_blueprint_order_and_skips_unknown(self):
        blueprint = Blueprint(
            id="bp",
            sections=[
                Section(id="a", question_ids=["q2", "missing", "q1"]),
                Section(id="b", question_ids=["q3"]),
            ],
        )
        question_map = {
            "q1": Question(id="q1", text="One"),
            "q2": Question(id="q2", text="Two"),
            "q3": Question(
                id="q3",
                text="Three",
                conditional_logic=ConditionalLogic(hide_if=Condition(question_id="q1", value="x")),
            ),
        }

        visible = resolve_visible_questions(blueprint, question_map, _answers(q1="y"))
        assert [q.id for q in visible] == ["q2", "q1", "q3"]

        hidden = resolve_visible_questions(blueprint, question_map, _answers(q1="x"))
        assert [q.id for q in hidden] == ["q2", "q1"]

    def test_no_blueprint(self):
        assert resolve_visible_questions(None, {}, {}) == []

    def test_bundled_catalog_other_role(self, catalog):
        blueprint = catalog.get_blueprint("bp_standard_v1")
        ids = [q.id for q in resolve_visible_questions(blueprint, catalog.question_map, {})]
        assert "q5" not in ids
        assert "q10" in ids

        ids = [
            q.id
            for q in resolve_visible_questions(
                blueprint, catalog.question_map, _answers(q4="Other", q9="No")
            )
        ]
        assert "q5" in ids
        assert "q10" not in ids


class TestNavigation:
    def test_next_and_previous(self):
        sequence = ["q1", "q2", "q3"]
        assert next_question_id(sequence, "q1") == "q2"
        assert next_question_id(sequence, "q3") == "q3"
        assert previous_question_id(sequence, "q2") == "q1"
        assert previous_question_id(sequence, "q1") == "q1"

    def test_current_no_longer_visible_goes_to_first(self):
        assert next_question_id(["q1", "q2"], "q9") == "q1"
        assert previous_question_id(["q1", "q2"], None) == "q1"

    def test_empty_sequence(self):
        assert next_question_id([], "q1") is None
