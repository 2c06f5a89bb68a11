"""
Shared test fixtures: fake model gateway, in-memory sheets and mailer.
Zero network calls.
"""
import os
import tempfile

# Keep test logs out of the working tree; must run before config is imported
os.environ.setdefault("GRADER_LOG_DIR", tempfile.mkdtemp(prefix="grader-logs-"))

import pytest

from config import GraderSettings
from core.models import GradableItem
from services.gateway import ModelGateway
from services.sheets_api import SheetsService
from utils.error_handler import GatewayError


class FakeGateway(ModelGateway):
    """Returns scripted outputs in call order; Exception entries are raised."""

    model_name = "fake-model"

    def __init__(self, outputs):
        self.outputs = list(outputs)
        self.prompts = []

    def invoke(self, prompt):
        self.prompts.append(prompt)
        output = self.outputs.pop(0)
        if isinstance(output, Exception):
            raise output
        return output


class InMemorySheets(SheetsService):
    """SheetsService whose spreadsheets live in a dict: {id: {title: rows}}."""

    def __init__(self, spreadsheets=None):
        super().__init__(service=object())
        self.spreadsheets = spreadsheets or {}
        self.appended = []

    def get_sheet_titles(self, spreadsheet_id):
        return list(self.spreadsheets.get(spreadsheet_id, {}).keys())

    def get_values(self, spreadsheet_id, sheet_title):
        return [list(r) for r in self.spreadsheets[spreadsheet_id][sheet_title]]

    def add_sheet(self, spreadsheet_id, title):
        self.spreadsheets[spreadsheet_id][title] = []

    def append_rows(self, spreadsheet_id, sheet_title, rows):
        self.spreadsheets[spreadsheet_id][sheet_title].extend(rows)
        self.appended.append((spreadsheet_id, sheet_title, rows))


class FakeMailer:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    def send_email(self, to_email, subject, body, is_html=False):
        if self.fail:
            raise ValueError("mail server unavailable")
        self.sent.append({"to": to_email, "subject": subject, "body": body, "is_html": is_html})
        return {"id": f"msg-{len(self.sent)}"}


def make_items(count, unanswered=()):
    """Items Q1..Qn; ids listed in `unanswered` get an empty answer."""
    return [
        GradableItem(
            id=f"Q{n}",
            header=f"Question {n}",
            answer_text="" if f"Q{n}" in unanswered else f"Answer {n}",
            criteria_spec='{"criteria": [{"id": "c1", "max": 4}]}',
        )
        for n in range(1, count + 1)
    ]


def results_json(*ids, score=4):
    import json
    return json.dumps({"results": [
        {
            "question_id": qid,
            "total_score": score,
            "feedback": f"Feedback for {qid}",
            "improvement": f"Improve {qid}",
            "criteria_results": [{"id": "c1", "awarded": score, "reason": "Covered"}],
        }
        for qid in ids
    ]})


MASTER_ID = "master-sheet"
RESPONSE_ID = "response-sheet"


@pytest.fixture
def settings(tmp_path):
    return GraderSettings(
        master_spreadsheet_id=MASTER_ID,
        groq_api_key="test-key",
        chunk_size=5,
        chunk_delay_seconds=0,
        state_file=str(tmp_path / "state.json"),
    )


@pytest.fixture
def spreadsheets():
    """A master CONFIG sheet and one response spreadsheet with two questions."""
    return {
        MASTER_ID: {
            "CONFIG": [
                ["response_spreadsheet_id", "response_sheet_name", "email_column_header",
                 "exam_name", "hf_model", "name_column_header"],
                [RESPONSE_ID, "Form Responses 1", "Email Address", "Web Basics", "", "Full Name"],
                ["", "ignored", "", "No id row", "", ""],
            ],
        },
        RESPONSE_ID: {
            "Form Responses 1": [
                ["Timestamp", "Email Address", "Full Name", "What is HTML?", "  What   is CSS? "],
                ["2026-01-01 10:00", "abebe@example.com", "Abebe Kebede", "A markup language", ""],
            ],
            "ANSWER_KEY": [
                ["question_header", "question_id", "criteria_json"],
                ["What is HTML?", "Q1", '{"criteria": [{"id": "markup", "max": 4}]}'],
                ["What is CSS?", "Q2", '{"criteria": [{"id": "style", "max": 4}]}'],
                ["", "Q3", '{"criteria": []}'],
            ],
        },
    }


@pytest.fixture
def sheets(spreadsheets):
    return InMemorySheets(spreadsheets)


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def gateway_error():
    return GatewayError("Groq API error 503: overloaded", status_code=503, body="overloaded")
