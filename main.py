"""Main execution script for the Form Exam AI Grader."""

import argparse
import sys
from typing import List, Optional

from dotenv import load_dotenv

# Load .env before config reads the environment
load_dotenv()

import config
import auth
from core.models import FormSubmission
from core.submission import SubmissionProcessor
from core.watcher import SubmissionWatcher
from services.gmail_api import GmailService
from services.sheets_api import SheetsService
import ui.cli as cli
from utils.error_handler import (APIError, AuthenticationError, BaseGraderException,
                                 ConfigError, SheetLookupError)
from utils.logger import setup_logger

logger = setup_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Grade Google Form exam responses with a language model.")
    parser.add_argument("--master", help="Master spreadsheet id (overrides MASTER_SPREADSHEET_ID).")
    parser.add_argument("--no-email", action="store_true", help="Record grades without e-mailing students.")
    sub = parser.add_subparsers(dest="command", required=True)

    grade = sub.add_parser("grade", help="Grade one response row.")
    grade.add_argument("--spreadsheet-id", required=True, help="Response spreadsheet id.")
    grade.add_argument("--row", type=int, required=True, help="1-based row number of the response (row 1 is the header).")

    watch = sub.add_parser("watch", help="Poll configured response sheets and grade new rows.")
    watch.add_argument("--interval", type=float, help="Seconds between polls (default GRADER_POLL_INTERVAL).")
    watch.add_argument("--once", action="store_true", help="Poll a single time and exit.")

    sub.add_parser("configs", help="List the exams configured in the CONFIG sheet.")
    return parser


def grade_row(sheets: SheetsService, processor: SubmissionProcessor, spreadsheet_id: str, row: int) -> int:
    configs = processor.load_configs()
    exam = next((c for c in configs if c.response_spreadsheet_id == spreadsheet_id), None)
    if exam is None:
        raise SheetLookupError(f"No config for spreadsheet id: {spreadsheet_id}")
    sheet = sheets.resolve_response_sheet(spreadsheet_id, exam.response_sheet_name)
    values = sheets.get_values(spreadsheet_id, sheet)
    if row < 2 or row > len(values):
        cli.display_error(f"Row {row} is not a response row of '{sheet}' (rows 2-{len(values)}).")
        return 1
    submission = FormSubmission.from_row(spreadsheet_id, values[0], values[row - 1], row_number=row)
    report = processor.process(submission, configs)
    if report is None:
        cli.display_warning("Submission was not graded. Check the log for details.")
        return 1
    cli.display_report(report)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Runs the CLI and returns the process exit code."""
    args = build_parser().parse_args(argv)
    cli.display_welcome()

    try:
        settings = config.load_settings(master_spreadsheet_id=args.master)

        cli.display_step(1, "Authenticating with Google...")
        credentials = auth.get_credentials(settings.client_secrets_file, settings.token_file)
        sheets = SheetsService(credentials)
        mailer = None if args.no_email else GmailService(credentials)
        processor = SubmissionProcessor(sheets, mailer, settings)
        cli.display_success("Google services initialized.")

        if args.command == "configs":
            cli.display_step(2, "Reading CONFIG sheet...")
            cli.display_configs(processor.load_configs())
            return 0

        if args.command == "grade":
            cli.display_step(2, f"Grading row {args.row} of {args.spreadsheet_id}...")
            return grade_row(sheets, processor, args.spreadsheet_id, args.row)

        watcher = SubmissionWatcher(sheets, processor, settings.state_file)
        interval = args.interval or settings.poll_interval
        cli.display_step(2, "Watching for new submissions (Ctrl+C to stop)...")
        watcher.watch(interval, max_polls=1 if args.once else None, on_reports=cli.display_reports)
        return 0

    except FileNotFoundError as e:
        logger.critical(f"Required file not found: {e}")
        cli.display_error(f"Missing required file: {e}")
    except (AuthenticationError, ConfigError) as e:
        logger.critical(f"Setup or Authentication Error: {e}", exc_info=config.DEBUG)
        cli.display_error(f"Setup Error: {e}")
    except APIError as e:
        logger.error(f"Google API Error: {e}", exc_info=config.DEBUG)
        cli.display_error(f"API Error ({e.service or 'Unknown'}): {e}")
    except BaseGraderException as e:
        logger.error(f"Grading aborted: {e}", exc_info=config.DEBUG)
        cli.display_error(str(e))
    except KeyboardInterrupt:
        logger.info("Operation interrupted by user (Ctrl+C).")
        cli.display_warning("Operation interrupted.")
        return 130
    except Exception as e:
        logger.critical(f"An unexpected error occurred: {e}", exc_info=True)
        cli.display_error(f"An unexpected error occurred: {e}. Check logs for details.")
    finally:
        cli.display_farewell()
    return 1


if __name__ == "__main__":
    sys.exit(main())
