"""
Test: result coercion, defaults and form submission rows.
"""
from core.models import (BatchOutcome, CriterionResult, FormSubmission, GradableItem, NO_ANSWER_FEEDBACK,
                         QuestionResult, UNEVALUATED_FEEDBACK)


class TestQuestionResult:
    def test_from_dict_full(self):
        result = QuestionResult.from_dict({
            "question_id": "Q1",
            "total_score": 12,
            "feedback": "Good",
            "improvement": "Add examples",
            "criteria_results": [{"id": "c1", "awarded": 4, "reason": "Clear"}],
        })
        assert result.question_id == "Q1"
        assert result.total_score == 12
        assert result.criteria_as_dicts() == [{"id": "c1", "awarded": 4, "reason": "Clear"}]

    def test_from_dict_tolerates_gaps(self):
        result = QuestionResult.from_dict({"question_id": 7})
        assert result.question_id == "7"
        assert result.total_score == 0
        assert result.feedback == ""
        assert result.improvement == ""
        assert result.criteria_results == []

    def test_score_coercion(self):
        assert QuestionResult.from_dict({"total_score": "7.5"}).total_score == 7.5
        assert QuestionResult.from_dict({"total_score": "8"}).total_score == 8
        assert QuestionResult.from_dict({"total_score": "eight"}).total_score == 0
        assert QuestionResult.from_dict({"total_score": True}).total_score == 0
        assert QuestionResult.from_dict({"total_score": None}).total_score == 0

    def test_non_finite_scores_become_zero(self):
        for value in (float("nan"), float("inf"), "NaN", "-Infinity"):
            assert QuestionResult.from_dict({"total_score": value}).total_score == 0
        assert CriterionResult.from_dict({"awarded": float("nan")}).awarded == 0

    def test_non_object_criteria_are_dropped(self):
        result = QuestionResult.from_dict({
            "question_id": "Q1",
            "criteria_results": ["c1", {"id": "c2", "awarded": "2"}, None],
        })
        assert [c.id for c in result.criteria_results] == ["c2"]
        assert result.criteria_results[0].awarded == 2

    def test_criteria_that_is_not_a_list(self):
        assert QuestionResult.from_dict({"criteria_results": "none"}).criteria_results == []

    def test_default_for_answered_and_unanswered(self):
        answered = GradableItem("Q1", "Header", "Some answer", "{}")
        unanswered = GradableItem("Q2", "Header", "", "{}")
        assert QuestionResult.default_for(answered).feedback == UNEVALUATED_FEEDBACK
        assert QuestionResult.default_for(unanswered).feedback == NO_ANSWER_FEEDBACK
        assert QuestionResult.default_for(unanswered).total_score == 0


class TestBatchOutcome:
    def test_total_score(self):
        outcome = BatchOutcome(results={
            "Q1": QuestionResult("Q1", 4, "", ""),
            "Q2": QuestionResult("Q2", 2.5, "", ""),
        })
        assert outcome.total_score() == 6.5
        assert len(outcome) == 2


class TestFormSubmission:
    def test_short_rows_are_padded(self):
        submission = FormSubmission.from_row("sheet", ["A", "B", "C"], ["1"], row_number=4)
        assert submission.values == ["1", "", ""]
        assert submission.named_values == {"A": ["1"], "B": [""], "C": [""]}
        assert submission.row_number == 4

    def test_repeated_headers_collect_values(self):
        submission = FormSubmission.from_row("sheet", ["Q", "Q"], ["x", "y"])
        assert submission.named_values["Q"] == ["x", "y"]

    def test_non_string_cells(self):
        submission = FormSubmission.from_row("sheet", ["Score", "Blank"], [10, None])
        assert submission.values == ["10", ""]
