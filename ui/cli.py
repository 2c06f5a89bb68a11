"""Command Line Interface (CLI) output helpers."""

import textwrap
from typing import List, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.models import ExamConfig
from core.submission import SubmissionReport

console = Console()

def display_welcome():
    """Displays a welcome message."""
    console.print(Panel(
        "[bold green]Form Exam AI Grader[/bold green]",
        title="Welcome",
        border_style="blue"
    ))
    console.print("Grades Google Form exam responses with a language model and e-mails the results.")
    console.rule()

def display_farewell():
    console.rule()
    console.print("[bold cyan]Grading run complete. Exiting.[/bold cyan]")

def display_error(message: str):
    """Displays an error message in a standard format."""
    console.print(Panel(f"[bold red]Error:[/bold red] {message}", title="Error", border_style="red"))

def display_warning(message: str):
    console.print(f"[yellow]Warning:[/yellow] {message}")

def display_success(message: str):
    console.print(f"[green]Success:[/green] {message}")

def display_step(step_number: int, description: str):
    """Displays the current step in the process."""
    console.print(f"\n[bold blue]Step {step_number}:[/bold blue] {description}")
    console.rule()

def display_configs(configs: Sequence[ExamConfig]):
    """Displays the CONFIG records as a table."""
    if not configs:
        console.print("[yellow]No exam configurations found in the CONFIG sheet.[/yellow]")
        return
    table = Table(title="Configured Exams", show_header=True, header_style="bold magenta")
    table.add_column("Exam", style="cyan")
    table.add_column("Response Spreadsheet", style="dim")
    table.add_column("Response Sheet")
    table.add_column("Email Header")
    table.add_column("Model")
    for cfg in configs:
        table.add_row(
            cfg.exam_name or "-",
            cfg.response_spreadsheet_id,
            cfg.response_sheet_name or "(default)",
            cfg.email_column_header or "(default)",
            cfg.hf_model or "(default)",
        )
    console.print(table)

def display_report(report: SubmissionReport):
    """Displays the per-question results of one graded submission."""
    table = Table(
        title=f"{report.exam_name}: {report.student_name} <{report.student_email or 'no email'}>",
        show_header=True, header_style="bold magenta"
    )
    table.add_column("Question", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Feedback")

    for item in report.items:
        result = report.outcome[item.id]
        feedback = Text(textwrap.shorten(result.feedback, width=80, placeholder="..."))
        if item.id in report.outcome.defaulted_ids:
            feedback.stylize("yellow")
        table.add_row(f"{item.id}: {textwrap.shorten(item.header, width=40, placeholder='...')}",
                      str(result.total_score), feedback)

    console.print(table)
    console.print(f"Total score: [bold]{report.total_score}[/bold]  |  "
                  f"Recorded: {'yes' if report.recorded else 'no'}  |  "
                  f"Emailed: {'yes' if report.emailed else 'no'}")
    for error in report.errors:
        display_warning(error)

def display_reports(reports: List[SubmissionReport]):
    for report in reports:
        display_report(report)
