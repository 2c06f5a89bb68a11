"""Polls configured response spreadsheets and grades newly submitted rows."""

import json
import os
import time
from typing import Callable, Dict, List, Optional

import config
from core.models import ExamConfig, FormSubmission
from core.submission import SubmissionProcessor, SubmissionReport
from utils.error_handler import BaseGraderException
from utils.logger import get_logger

logger = get_logger()


class SubmissionWatcher:
    """Watches response sheets for new form submissions.

    The state file maps each response spreadsheet id to the number of rows
    (header included) already handled. A spreadsheet seen for the first time
    is seeded with its current row count, so only rows submitted after the
    watcher started are graded.
    """

    def __init__(self, sheets, processor: SubmissionProcessor, state_file: str = config.DEFAULT_STATE_FILE,
                 sleep: Callable[[float], None] = time.sleep):
        self.sheets = sheets
        self.processor = processor
        self.state_file = state_file
        self._sleep = sleep
        self.state: Dict[str, int] = self._load_state()

    def _load_state(self) -> Dict[str, int]:
        if not os.path.exists(self.state_file):
            return {}
        try:
            with open(self.state_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read watcher state {self.state_file}: {e}. Starting fresh.")
            return {}
        return {str(k): int(v) for k, v in data.get('processed_rows', {}).items()}

    def _save_state(self) -> None:
        with open(self.state_file, 'w', encoding='utf-8') as f:
            json.dump({'processed_rows': self.state}, f, indent=2)

    def _poll_spreadsheet(self, exam: ExamConfig, configs: List[ExamConfig]) -> List[SubmissionReport]:
        spreadsheet_id = exam.response_spreadsheet_id
        sheet = self.sheets.resolve_response_sheet(spreadsheet_id, exam.response_sheet_name)
        values = self.sheets.get_values(spreadsheet_id, sheet)
        row_count = len(values)

        handled = self.state.get(spreadsheet_id)
        if handled is None or row_count < handled:
            logger.info(f"Tracking '{exam.exam_name}' ({spreadsheet_id}) from row {row_count + 1}.")
            self.state[spreadsheet_id] = row_count
            self._save_state()
            return []

        reports = []
        headers = values[0] if values else []
        for index in range(max(handled, 1), row_count):
            row_number = index + 1
            logger.info(f"New submission in '{exam.exam_name}' at row {row_number}.")
            submission = FormSubmission.from_row(spreadsheet_id, headers, values[index], row_number=row_number)
            try:
                report = self.processor.process(submission, configs)
            except Exception as e:
                logger.error(f"Unexpected error grading row {row_number} of {spreadsheet_id}: {e}", exc_info=True)
                report = None
            if report is not None:
                reports.append(report)
            # Each row is handled once, graded or not
            self.state[spreadsheet_id] = row_number
            self._save_state()
        return reports

    def poll(self) -> List[SubmissionReport]:
        """Checks every configured spreadsheet once and grades new rows."""
        configs = self.processor.load_configs()
        reports: List[SubmissionReport] = []
        seen = set()
        for exam in configs:
            if exam.response_spreadsheet_id in seen:
                continue
            seen.add(exam.response_spreadsheet_id)
            try:
                reports.extend(self._poll_spreadsheet(exam, configs))
            except BaseGraderException as e:
                logger.error(f"Failed to poll {exam.response_spreadsheet_id}: {e}", exc_info=config.DEBUG)
        return reports

    def watch(self, interval: float, max_polls: Optional[int] = None,
              on_reports: Optional[Callable[[List[SubmissionReport]], None]] = None) -> None:
        """Polls until interrupted, or `max_polls` times."""
        polls = 0
        logger.info(f"Watching for submissions every {interval}s...")
        while max_polls is None or polls < max_polls:
            if polls:
                self._sleep(interval)
            polls += 1
            try:
                reports = self.poll()
            except BaseGraderException as e:
                logger.error(f"Poll {polls} failed: {e}", exc_info=config.DEBUG)
                continue
            if reports and on_reports:
                on_reports(reports)
