"""Data types shared by the grading pipeline."""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

NO_ANSWER_FEEDBACK = "No answer was provided."
NO_ANSWER_IMPROVEMENT = "Please answer the question."
UNEVALUATED_FEEDBACK = "AI could not evaluate this response."
UNEVALUATED_IMPROVEMENT = "Answer all required criteria clearly."


def _as_number(value: Any) -> float | int:
    """Coerces a model-supplied score to a number, 0 when unusable."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else 0
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0
        if not math.isfinite(number):
            return 0
        return int(number) if number.is_integer() else number
    return 0


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


@dataclass(frozen=True)
class GradableItem:
    """One question of one submission, ready to be graded."""
    id: str
    header: str
    answer_text: str
    criteria_spec: str

    @property
    def has_answer(self) -> bool:
        return bool(self.answer_text)


@dataclass(frozen=True)
class CriterionResult:
    id: str
    awarded: float | int
    reason: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CriterionResult":
        return cls(
            id=_as_text(data.get("id")),
            awarded=_as_number(data.get("awarded")),
            reason=_as_text(data.get("reason")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "awarded": self.awarded, "reason": self.reason}


@dataclass(frozen=True)
class QuestionResult:
    """The grade of a single question."""
    question_id: str
    total_score: float | int
    feedback: str
    improvement: str
    criteria_results: List[CriterionResult] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuestionResult":
        """Builds a result from a recovered model object, tolerating gaps.

        Missing fields become empty strings, an unusable score becomes 0 and
        criteria entries that are not objects are dropped.
        """
        raw_criteria = data.get("criteria_results")
        criteria = [
            CriterionResult.from_dict(entry)
            for entry in (raw_criteria if isinstance(raw_criteria, list) else [])
            if isinstance(entry, dict)
        ]
        return cls(
            question_id=_as_text(data.get("question_id")),
            total_score=_as_number(data.get("total_score")),
            feedback=_as_text(data.get("feedback")),
            improvement=_as_text(data.get("improvement")),
            criteria_results=criteria,
        )

    @classmethod
    def default_for(cls, item: GradableItem) -> "QuestionResult":
        """The placeholder result for a question the model did not grade."""
        if item.has_answer:
            feedback, improvement = UNEVALUATED_FEEDBACK, UNEVALUATED_IMPROVEMENT
        else:
            feedback, improvement = NO_ANSWER_FEEDBACK, NO_ANSWER_IMPROVEMENT
        return cls(
            question_id=item.id,
            total_score=0,
            feedback=feedback,
            improvement=improvement,
            criteria_results=[],
        )

    def criteria_as_dicts(self) -> List[Dict[str, Any]]:
        return [c.to_dict() for c in self.criteria_results]


@dataclass
class BatchOutcome:
    """Exactly one QuestionResult per graded item, keyed by item id."""
    results: Dict[str, QuestionResult]
    raw_output: str = ""
    # Ids that received a synthesized default instead of a model result
    defaulted_ids: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.results)

    def __getitem__(self, item_id: str) -> QuestionResult:
        return self.results[item_id]

    def total_score(self) -> float | int:
        return sum(r.total_score for r in self.results.values())


@dataclass(frozen=True)
class ExamConfig:
    """One row of the master CONFIG sheet."""
    response_spreadsheet_id: str
    response_sheet_name: str = ""
    email_column_header: str = ""
    exam_name: str = ""
    hf_model: str = ""
    name_column_header: str = ""


@dataclass(frozen=True)
class AnswerKeyRow:
    question_header: str
    question_id: str
    criteria_json: str


@dataclass
class FormSubmission:
    """A single form response as read from the response sheet."""
    spreadsheet_id: str
    headers: List[str]
    values: List[str]
    named_values: Dict[str, List[str]] = field(default_factory=dict)
    row_number: Optional[int] = None

    @classmethod
    def from_row(cls, spreadsheet_id: str, headers: List[str], values: List[Any],
                 row_number: Optional[int] = None) -> "FormSubmission":
        """Builds a submission from a header row and one aligned value row."""
        padded = [_as_text(v) for v in values] + [""] * max(0, len(headers) - len(values))
        named: Dict[str, List[str]] = {}
        for header, value in zip(headers, padded):
            if header:
                named.setdefault(_as_text(header), []).append(value)
        return cls(
            spreadsheet_id=spreadsheet_id,
            headers=[_as_text(h) for h in headers],
            values=padded,
            named_values=named,
            row_number=row_number,
        )
