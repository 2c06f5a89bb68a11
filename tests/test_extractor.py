"""
Test: header matching, CONFIG/ANSWER_KEY parsing and item extraction.
"""
from conftest import RESPONSE_ID
from core.extractor import (build_header_index, extract_items, find_student_email,
                            find_student_name, normalize_header, parse_answer_key,
                            parse_config_rows, select_config)
from core.models import AnswerKeyRow, FormSubmission


def submission(headers, values):
    return FormSubmission.from_row("sheet-1", headers, values, row_number=2)


class TestHeaders:
    def test_normalize_header(self):
        assert normalize_header("  Email   Address ") == "email address"
        assert normalize_header("Email\tAddress\n") == "email address"
        assert normalize_header(None) == ""

    def test_header_index_later_duplicate_wins(self):
        assert build_header_index(["A", " a ", "B"]) == {"a": 1, "b": 2}


class TestStudentLookup:
    def test_email_matches_messy_header(self):
        sub = submission(["Timestamp", "  Email   Address "], ["t", " abebe@example.com "])
        assert find_student_email(sub, "Email Address") == "abebe@example.com"

    def test_email_default_header(self):
        sub = submission(["Email Address"], ["x@example.com"])
        assert find_student_email(sub, "") == "x@example.com"

    def test_missing_email(self):
        assert find_student_email(submission(["Other"], ["v"]), "Email Address") == ""

    def test_configured_name_header(self):
        sub = submission(["Full Name", "Nickname"], ["Abebe Kebede", "Abe"])
        assert find_student_name(sub, "full name") == "Abebe Kebede"

    def test_name_falls_back_to_first_name_column(self):
        sub = submission(["Email", "Your NAME", "Nickname"], ["e", "Sara", "S"])
        assert find_student_name(sub, "Student Name") == "Sara"

    def test_name_skips_blank_name_columns(self):
        sub = submission(["First name", "Last name"], ["", "Bekele"])
        assert find_student_name(sub, None) == "Bekele"

    def test_name_default(self):
        assert find_student_name(submission(["Email"], ["e"]), None) == "Student"


class TestConfigRows:
    def test_parse_and_select(self):
        rows = [
            ["Response_Spreadsheet_ID", "exam_name", "hf_model"],
            ["sheet-1", "Biology", " llama-3.1-8b-instant "],
            ["", "Dropped", ""],
            ["sheet-2"],
        ]
        records = parse_config_rows(rows)
        assert [r.response_spreadsheet_id for r in records] == ["sheet-1", "sheet-2"]
        assert records[0].hf_model == "llama-3.1-8b-instant"
        assert records[1].exam_name == ""
        assert records[0].email_column_header == ""
        assert select_config(records, "sheet-2") is records[1]
        assert select_config(records, "missing") is None

    def test_header_only(self):
        assert parse_config_rows([["response_spreadsheet_id"]]) == []


class TestAnswerKey:
    def test_rows_and_default_ids(self):
        rows = [
            ["Question_Header", "question_id", "criteria_json"],
            ["What is HTML?", "Q1", '{"c": 1}'],
            ["Skipped, no criteria", "Q2", ""],
            ["What is CSS?", "", '{"c": 2}'],
            ["", "Q4", '{"c": 3}'],
        ]
        assert parse_answer_key(rows) == [
            AnswerKeyRow("What is HTML?", "Q1", '{"c": 1}'),
            AnswerKeyRow("What is CSS?", "Q3", '{"c": 2}'),
        ]

    def test_missing_required_column(self):
        assert parse_answer_key([["question_header", "question_id"], ["H", "Q1"]]) == []

    def test_repeated_ids_keep_first_row(self):
        rows = [
            ["question_header", "question_id", "criteria_json"],
            ["First", "Q2", "{}"],
            ["Second", "", "{}"],
            ["Third", "Q1", "{}"],
        ]
        assert [(k.question_header, k.question_id) for k in parse_answer_key(rows)] == [
            ("First", "Q2"), ("Third", "Q1"),
        ]

    def test_id_column_is_optional(self):
        rows = [["question_header", "criteria_json"], ["H", "{}"]]
        assert parse_answer_key(rows)[0].question_id == "Q1"


class TestExtractItems:
    def test_positional_lookup_with_normalized_headers(self):
        key = [
            AnswerKeyRow("What is HTML?", "Q1", "{}"),
            AnswerKeyRow("What is CSS?", "Q2", "{}"),
        ]
        sub = submission(["Email", " what IS  html? ", "What is CSS?"], ["e", "  Markup  ", ""])
        items = extract_items(key, sub)

        assert [(i.id, i.answer_text) for i in items] == [("Q1", "Markup"), ("Q2", "")]
        assert items[0].has_answer
        assert not items[1].has_answer

    def test_response_headers_override_submission_headers(self):
        key = [AnswerKeyRow("Q header", "Q1", "{}")]
        sub = FormSubmission(spreadsheet_id="s", headers=[], values=["first", "second"])
        items = extract_items(key, sub, response_headers=["Other", "Q header"])
        assert items[0].answer_text == "second"

    def test_named_value_fallback(self):
        key = [AnswerKeyRow("Essay", "Q1", "{}")]
        sub = FormSubmission(spreadsheet_id="s", headers=["Unrelated"], values=["x"],
                             named_values={"Essay": [" My essay "]})
        assert extract_items(key, sub)[0].answer_text == "My essay"

    def test_unmatched_question_is_unanswered(self):
        key = [AnswerKeyRow("Not on the form", "Q9", '{"c": 1}')]
        items = extract_items(key, submission(["A"], ["a"]))
        assert items[0].answer_text == ""
        assert items[0].criteria_spec == '{"c": 1}'

    def test_fixture_submission(self, spreadsheets):
        rows = spreadsheets[RESPONSE_ID]["Form Responses 1"]
        sub = FormSubmission.from_row(RESPONSE_ID, rows[0], rows[1], row_number=2)
        items = extract_items(parse_answer_key(spreadsheets[RESPONSE_ID]["ANSWER_KEY"]), sub)

        assert [(i.id, i.answer_text) for i in items] == [("Q1", "A markup language"), ("Q2", "")]
