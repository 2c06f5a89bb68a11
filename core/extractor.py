"""Maps a form submission onto the answer key to produce gradable items."""

import re
from typing import Dict, List, Optional, Sequence

import config
from core.models import AnswerKeyRow, ExamConfig, FormSubmission, GradableItem
from utils.logger import get_logger

logger = get_logger()

_WHITESPACE = re.compile(r"\s+")
_NAME_HEADER = re.compile(r"name", re.IGNORECASE)


def normalize_header(header: Optional[object]) -> str:
    """Collapses whitespace runs, trims and lowercases a column header."""
    if header is None:
        return ""
    return _WHITESPACE.sub(" ", str(header)).strip().lower()


def build_header_index(headers: Sequence[object]) -> Dict[str, int]:
    """Maps normalized header -> column index. Later duplicates win."""
    return {normalize_header(h): i for i, h in enumerate(headers)}


def lookup_named_value(submission: FormSubmission, header: str) -> str:
    """First submitted value under `header`, matched case/whitespace-insensitively."""
    values = submission.named_values.get(header)
    if values is None:
        wanted = normalize_header(header)
        values = next(
            (v for k, v in submission.named_values.items() if normalize_header(k) == wanted),
            None,
        )
    if not values:
        return ""
    return values[0] or ""


def find_student_email(submission: FormSubmission, email_header: Optional[str]) -> str:
    return lookup_named_value(submission, email_header or config.DEFAULT_EMAIL_HEADER).strip()


def find_student_name(submission: FormSubmission, name_header: Optional[str]) -> str:
    """Student name from the configured header, else the first header mentioning 'name'."""
    if name_header:
        name = lookup_named_value(submission, name_header).strip()
        if name:
            return name
    for header, values in submission.named_values.items():
        if _NAME_HEADER.search(header) and values and values[0].strip():
            return values[0].strip()
    return config.DEFAULT_STUDENT_NAME


CONFIG_COLUMNS = (
    "response_spreadsheet_id",
    "response_sheet_name",
    "email_column_header",
    "exam_name",
    "hf_model",
    "name_column_header",
)


def _cell(row: List[object], index: Optional[int]) -> str:
    if index is None or index >= len(row) or row[index] is None:
        return ""
    return str(row[index])


def parse_config_rows(rows: List[List[object]]) -> List[ExamConfig]:
    """Reads CONFIG values (header row first) into exam configurations.

    Rows without a response spreadsheet id are dropped.
    """
    if len(rows) < 2:
        return []
    header = [normalize_header(h) for h in rows[0]]
    positions = {column: (header.index(column) if column in header else None) for column in CONFIG_COLUMNS}
    records = []
    for row in rows[1:]:
        values = {column: _cell(row, index).strip() for column, index in positions.items()}
        if values["response_spreadsheet_id"]:
            records.append(ExamConfig(**values))
    return records


def select_config(records: Sequence[ExamConfig], spreadsheet_id: str) -> Optional[ExamConfig]:
    return next((r for r in records if r.response_spreadsheet_id == spreadsheet_id), None)


def parse_answer_key(rows: List[List[object]]) -> List[AnswerKeyRow]:
    """Reads ANSWER_KEY values (header row first) into answer key rows.

    Rows without a question header or criteria are skipped. A missing
    question id becomes Q<n>, n being the 1-based data row number. Rows
    repeating an earlier question id are skipped, keeping ids unique.
    """
    if len(rows) < 2:
        return []
    header = [normalize_header(h) for h in rows[0]]

    def column(name: str) -> Optional[int]:
        return header.index(name) if name in header else None

    q_index = column("question_header")
    id_index = column("question_id")
    criteria_index = column("criteria_json")
    if q_index is None or criteria_index is None:
        logger.warning("ANSWER_KEY is missing the question_header or criteria_json column.")
        return []

    key_rows = []
    seen_ids = set()
    for r, row in enumerate(rows[1:]):
        question_header = _cell(row, q_index)
        criteria = _cell(row, criteria_index)
        if not question_header or not criteria:
            continue
        question_id = _cell(row, id_index) or f"Q{r + 1}"
        # Results are keyed by question id; a repeated id would shadow an earlier row
        if question_id in seen_ids:
            logger.warning(f"ANSWER_KEY row {r + 2} repeats question id {question_id!r}; row skipped.")
            continue
        seen_ids.add(question_id)
        key_rows.append(AnswerKeyRow(
            question_header=question_header,
            question_id=question_id,
            criteria_json=criteria,
        ))
    return key_rows


def extract_items(answer_key: List[AnswerKeyRow], submission: FormSubmission,
                  response_headers: Optional[Sequence[object]] = None) -> List[GradableItem]:
    """Builds one GradableItem per answer key row.

    The answer is looked up positionally through the normalized response
    header row first, then by exact header in the named values.
    """
    header_index = build_header_index(response_headers if response_headers is not None else submission.headers)
    items = []
    for key in answer_key:
        answer = ""
        position = header_index.get(normalize_header(key.question_header))
        if position is not None:
            if position < len(submission.values):
                answer = submission.values[position] or ""
        elif submission.named_values.get(key.question_header):
            answer = submission.named_values[key.question_header][0] or ""

        items.append(GradableItem(
            id=key.question_id,
            header=key.question_header,
            answer_text=answer.strip(),
            criteria_spec=key.criteria_json,
        ))
    logger.debug(f"Extracted {len(items)} gradable items ({sum(1 for i in items if i.has_answer)} answered).")
    return items
