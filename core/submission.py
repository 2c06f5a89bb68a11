"""Handles one form submission end to end: lookup, grading, recording, e-mail."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Sequence

import config
from config import GraderSettings
from core.extractor import (extract_items, find_student_email, find_student_name,
                            parse_answer_key, select_config)
from core.grader import Grader
from core.models import BatchOutcome, ExamConfig, FormSubmission, GradableItem
from core.report import (GRADE_SHEET_HEADER, build_grade_rows, render_report_html,
                         report_subject)
from services.gateway import ModelGateway, build_gateway
from utils.error_handler import BaseGraderException, SheetLookupError
from utils.logger import get_logger

logger = get_logger()

GatewayFactory = Callable[[GraderSettings, Optional[str]], ModelGateway]


@dataclass
class SubmissionReport:
    """What happened to one graded submission."""
    exam_name: str
    student_email: str
    student_name: str
    items: List[GradableItem]
    outcome: BatchOutcome
    recorded: bool = False
    emailed: bool = False
    errors: List[str] = field(default_factory=list)

    @property
    def total_score(self) -> float | int:
        return self.outcome.total_score()


class SubmissionProcessor:
    """Grades form submissions using the CONFIG and ANSWER_KEY sheets.

    Configuration and lookup failures abandon the submission before anything
    is written. Once grading has run, a failure to record grades does not
    stop the student's e-mail, and a failed e-mail is only logged.
    """

    def __init__(
        self,
        sheets,
        mailer,
        settings: GraderSettings,
        gateway_factory: GatewayFactory = build_gateway,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initializes the processor.

        Args:
            sheets: A SheetsService (or compatible object).
            mailer: A GmailService (or compatible object); None disables e-mail.
            settings: Runtime settings.
            gateway_factory: Builds the model gateway for an exam's model.
            clock: Source of the grade row timestamp.
        """
        self.sheets = sheets
        self.mailer = mailer
        self.settings = settings
        self.gateway_factory = gateway_factory
        self.clock = clock

    def load_configs(self) -> List[ExamConfig]:
        return self.sheets.read_config_records(self.settings.master_spreadsheet_id)

    def process(self, submission: FormSubmission,
                configs: Optional[Sequence[ExamConfig]] = None) -> Optional[SubmissionReport]:
        """Grades one submission.

        Args:
            submission: The submitted row.
            configs: Preloaded CONFIG records; read from the master
                spreadsheet when omitted.

        Returns:
            The report, or None when the submission was abandoned or had
            nothing to grade.
        """
        try:
            return self._process(submission, configs)
        except BaseGraderException as e:
            logger.error(f"Submission from {submission.spreadsheet_id} (row {submission.row_number}) abandoned: {e}",
                         exc_info=config.DEBUG)
            return None

    def _process(self, submission: FormSubmission,
                 configs: Optional[Sequence[ExamConfig]]) -> Optional[SubmissionReport]:
        spreadsheet_id = submission.spreadsheet_id
        records = configs if configs is not None else self.load_configs()
        exam = select_config(records, spreadsheet_id)
        if exam is None:
            raise SheetLookupError(f"No config for spreadsheet id: {spreadsheet_id}")

        student_email = find_student_email(submission, exam.email_column_header)
        student_name = find_student_name(submission, exam.name_column_header)
        logger.info(f"Processing submission for '{exam.exam_name}' from {student_email or 'unknown email'}.")

        answer_key = parse_answer_key(self.sheets.read_answer_key(spreadsheet_id))
        if not answer_key:
            logger.warning(f"ANSWER_KEY of {spreadsheet_id} has no gradable rows; nothing to grade.")
            return None

        headers = submission.headers
        if not headers:
            response_sheet = self.sheets.resolve_response_sheet(spreadsheet_id, exam.response_sheet_name)
            values = self.sheets.get_values(spreadsheet_id, response_sheet)
            headers = values[0] if values else []

        items = extract_items(answer_key, submission, headers)
        if not items:
            logger.warning("No gradable items extracted from submission.")
            return None

        gateway = self.gateway_factory(self.settings, exam.hf_model)
        grader = Grader(gateway, chunk_size=self.settings.chunk_size,
                        chunk_delay=self.settings.chunk_delay_seconds)
        outcome = grader.grade(exam.exam_name, items)

        report = SubmissionReport(
            exam_name=exam.exam_name,
            student_email=student_email,
            student_name=student_name,
            items=items,
            outcome=outcome,
        )
        self._record(report, spreadsheet_id)
        self._notify(report)
        return report

    def _record(self, report: SubmissionReport, spreadsheet_id: str) -> None:
        rows = build_grade_rows(report.items, report.outcome, report.student_email,
                                report.exam_name, timestamp=self.clock())
        try:
            self.sheets.ensure_grade_sheet(spreadsheet_id, GRADE_SHEET_HEADER)
            self.sheets.append_rows(spreadsheet_id, config.GRADE_SHEET_NAME, rows)
            report.recorded = True
        except Exception as e:
            logger.error(f"Failed to record grades in {spreadsheet_id}: {e}", exc_info=config.DEBUG)
            report.errors.append(f"Grade recording failed: {e}")

    def _notify(self, report: SubmissionReport) -> None:
        if not report.student_email:
            logger.info("No student email on submission; skipping report email.")
            return
        if self.mailer is None:
            logger.warning("No mail service configured; skipping report email.")
            return
        html_body = render_report_html(report.exam_name, report.student_name, report.items, report.outcome)
        try:
            self.mailer.send_email(report.student_email, report_subject(report.exam_name), html_body, is_html=True)
            report.emailed = True
        except Exception as e:
            logger.error(f"Failed to send report email to {report.student_email}: {e}", exc_info=config.DEBUG)
            report.errors.append(f"Email failed: {e}")
