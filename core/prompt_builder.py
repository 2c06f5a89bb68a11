"""Renders a chunk of gradable items into a single grading prompt."""

from typing import Sequence

from core.models import GradableItem

NO_ANSWER_MARKER = "[No answer provided]"

GRADING_RULES = """Rules:
1. Grade EACH question strictly according to its unique criteria.
2. Award full marks for a criterion ONLY if clearly mentioned.
3. If partially mentioned, award half marks. If not mentioned, award 0.
4. Use Ethiopian context where relevant.
5. Be concise."""

OUTPUT_SCHEMA = """Return ONLY a valid JSON object with a "results" array containing one entry for each question:
{
  "results": [
    {
      "question_id": "Q1",
      "total_score": 16,
      "feedback": "...",
      "improvement": "...",
      "criteria_results": [{"id": "website_type", "awarded": 4, "reason": "..."}]
    },
    ...
  ]
}"""


def format_question_block(item: GradableItem) -> str:
    return (
        f"--- QUESTION {item.id} ---\n"
        f"Header: {item.header}\n"
        f"Student Answer: {item.answer_text or NO_ANSWER_MARKER}\n"
        f"Criteria (JSON): {item.criteria_spec}"
    )


def build_batch_prompt(exam_name: str, items: Sequence[GradableItem]) -> str:
    """Builds the prompt asking the model to grade every item of a chunk.

    Items appear in the given order, untruncated. The criteria spec is
    passed through as-is.
    """
    questions_block = "\n\n".join(format_question_block(item) for item in items)
    return (
        f'You are an expert exam grader for the exam: "{exam_name}".\n'
        f"Grade the following {len(items)} questions.\n\n"
        f"{questions_block}\n\n"
        f"{GRADING_RULES}\n\n"
        f"{OUTPUT_SCHEMA}\n"
    )
