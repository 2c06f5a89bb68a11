"""Grade sheet rows and the HTML result e-mail for one graded submission."""

import json
from datetime import datetime
from html import escape
from typing import Any, List, Optional, Sequence

import config
from core.models import BatchOutcome, GradableItem, QuestionResult

GRADE_SHEET_HEADER: List[str] = [
    "timestamp",
    "student_email",
    "exam_name",
    "question_id",
    "question_header",
    "score",
    "feedback",
    "criteria_results",
    "improvement",
    "raw_model_output",
    "status",
]

RAW_OUTPUT_PLACEHOLDER = "See first row for full batch output"

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def build_grade_rows(
    items: Sequence[GradableItem],
    outcome: BatchOutcome,
    student_email: str,
    exam_name: str,
    timestamp: Optional[datetime] = None,
) -> List[List[Any]]:
    """One AI_GRADES row per item, in item order.

    The full raw model output is stored on the first row only.
    """
    stamp = (timestamp or datetime.now()).strftime(TIMESTAMP_FORMAT)
    rows = []
    for index, item in enumerate(items):
        result = outcome[item.id]
        rows.append([
            stamp,
            student_email,
            exam_name,
            item.id,
            item.header,
            result.total_score,
            result.feedback,
            json.dumps(result.criteria_as_dicts(), ensure_ascii=False),
            result.improvement,
            outcome.raw_output if index == 0 else RAW_OUTPUT_PLACEHOLDER,
            config.GRADED_STATUS,
        ])
    return rows


def report_subject(exam_name: str) -> str:
    return f"Exam Result: {exam_name}"


def _format_score(score: float | int) -> str:
    if isinstance(score, float) and score.is_integer():
        return str(int(score))
    return str(score)


def _criteria_html(result: QuestionResult) -> str:
    return "".join(
        f'<li style="margin-bottom: 3px;"><strong>{escape(c.id)}:</strong> {_format_score(c.awarded)} marks - '
        f'<span style="font-style: italic;">{escape(c.reason)}</span></li>'
        for c in result.criteria_results
    )


def _question_html(item: GradableItem, result: QuestionResult) -> str:
    return f"""
    <div style="margin-bottom: 25px; padding: 15px; border-left: 4px solid #4a90e2; background-color: #f9f9f9; border-radius: 4px;">
      <h3 style="margin-top: 0; color: #333; font-size: 16px;">Question: {escape(item.header)}</h3>
      <div style="margin-bottom: 10px;">
        <span style="background-color: #4a90e2; color: white; padding: 4px 10px; border-radius: 20px; font-weight: bold; font-size: 14px;">Score: {_format_score(result.total_score)}</span>
      </div>
      <p style="margin: 5px 0;"><strong>Feedback:</strong> {escape(result.feedback)}</p>
      <div style="margin: 10px 0; padding-left: 15px; border-left: 2px solid #ddd;">
        <p style="margin: 0 0 5px 0; font-size: 13px; color: #666; font-weight: bold;">Criteria Breakdown:</p>
        <ul style="margin: 0; padding-left: 20px; font-size: 13px; color: #555;">{_criteria_html(result)}</ul>
      </div>
      <p style="margin: 10px 0 0 0; color: #2c3e50; font-size: 14px;"><strong>Improvement Idea:</strong> {escape(result.improvement)}</p>
    </div>"""


def render_report_html(exam_name: str, student_name: str, items: Sequence[GradableItem],
                       outcome: BatchOutcome, year: Optional[int] = None) -> str:
    """Renders the student's result e-mail.

    Questions appear in item order with their score, feedback, criteria
    breakdown and improvement idea, under an overall total score. All
    interpolated text is HTML-escaped.
    """
    questions = "".join(_question_html(item, outcome[item.id]) for item in items)
    year = year or datetime.now().year
    return f"""
<div style="font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; max-width: 600px; margin: 0 auto; color: #444; line-height: 1.6;">
  <div style="background-color: #2c3e50; color: white; padding: 30px 20px; text-align: center; border-radius: 8px 8px 0 0;">
    <h1 style="margin: 0; font-size: 24px;">Exam Results</h1>
    <p style="margin: 10px 0 0 0; opacity: 0.9;">{escape(exam_name)}</p>
  </div>
  <div style="padding: 20px; border: 1px solid #eee; border-top: none; border-radius: 0 0 8px 8px;">
    <p style="font-size: 18px; margin-top: 0;">Dear <strong>{escape(student_name)}</strong>,</p>
    <p>Congratulations on completing the examination! Here is the detailed breakdown of your performance as evaluated by our AI grading system.</p>
    <div style="background-color: #ebf5fb; padding: 15px; border-radius: 6px; text-align: center; margin: 20px 0;">
      <span style="font-size: 14px; color: #5dade2; text-transform: uppercase; font-weight: bold; letter-spacing: 1px;">Overall Performance</span>
      <div style="font-size: 32px; font-weight: bold; color: #2e86c1; margin-top: 5px;">Total Score: {_format_score(outcome.total_score())}</div>
    </div>
    {questions}
    <div style="margin-top: 30px; padding-top: 20px; border-top: 1px solid #eee; text-align: center; font-size: 12px; color: #999;">
      <p>This is an automated grade report based on predefined criteria. If you have any questions, please contact your instructor.</p>
      <p>&copy; {year}</p>
    </div>
  </div>
</div>
"""
