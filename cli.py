import typer
from rich.console import Console
from rich.table import Table
from typing import Optional
from datetime import datetime
from pydantic import ValidationError

from planner.config import settings
from planner.constants import SESSION_LENGTH_OPTIONS, WHEN_TO_START_OPTIONS
from planner.database import SessionLocal, init_db
from planner.log_config import setup_logging
from planner.crud import (
    create_user, get_user, update_rest_days,
    create_exam, get_exam_for_owner, get_exams_by_user, get_upcoming_exams,
    update_exam as update_exam_record, reset_schedule, delete_exam as delete_exam_record,
    get_sessions_for_exam, get_sessions_by_date, update_session_status
)
from planner.constraints import day_name, week_start
from planner.errors import PlannerError
from planner.generation import GenerationOutcome, generate_schedule, utc_today
from planner.models import SessionStatus
from planner.schemas import UserCreate, RestDaySettings, ExamCreate, ExamUpdate
from planner.scheduler import get_scheduler

app = typer.Typer(help="Exam Study Planner CLI - schedule study sessions up to your exams")
console = Console()


@app.callback()
def main():
    setup_logging(settings.log_level)


def _split(value: str):
    return [v.strip() for v in value.split(",") if v.strip()]


def _parse_date(value: str):
    return datetime.strptime(value, "%Y-%m-%d").date()


def _print_validation_error(e: ValidationError):
    for err in e.errors():
        field = ".".join(str(p) for p in err["loc"])
        console.print(f"[red]✗[/red] {field}: {err['msg']}")


def _load_placer():
    try:
        return get_scheduler()
    except Exception as e:
        console.print(f"[yellow]AI placer unavailable ({e}); using deterministic schedule[/yellow]")
        return None


@app.command()
def init():
    """Initialize database tables"""
    init_db()
    console.print("[green]✓[/green] Database initialized successfully!")

@app.command()
def reset_db():
    """Delete all data and reinitialize database (WARNING: irreversible!)"""
    confirm = typer.confirm("⚠️  This will DELETE ALL DATA. Are you sure?")
    if not confirm:
        console.print("[yellow]Cancelled.[/yellow]")
        return

    from planner.database import engine, Base
    import planner.models  # noqa: F401
    console.print("[yellow]Dropping all tables...[/yellow]")
    Base.metadata.drop_all(bind=engine)
    console.print("[yellow]Recreating tables...[/yellow]")
    Base.metadata.create_all(bind=engine)
    console.print("[green]✓[/green] Database reset complete! All data deleted.")

@app.command()
def create_profile(
    name: str = typer.Option(..., prompt="Your name"),
    rest_days: str = typer.Option("", prompt="Rest days (comma-separated, e.g., SATURDAY,SUNDAY; blank for none)")
):
    """Create a new student profile"""
    db = SessionLocal()
    try:
        try:
            user_data = UserCreate(name=name, rest_days=_split(rest_days))
        except ValidationError as e:
            _print_validation_error(e)
            raise typer.Exit(code=1)

        user = create_user(db, user_data)
        console.print(f"[green]✓[/green] Profile created successfully! User ID: {user.id}")
        console.print(f"  Name: {user.name}")
        console.print(f"  Rest days: {', '.join(user.rest_days) or 'none'}")
    finally:
        db.close()

@app.command()
def view_profile(user_id: int):
    """View student profile"""
    db = SessionLocal()
    try:
        user = get_user(db, user_id)
        if not user:
            console.print(f"[red]✗[/red] User ID {user_id} not found")
            return

        console.print("\n[bold]Student Profile[/bold]")
        console.print(f"  ID: {user.id}")
        console.print(f"  Name: {user.name}")
        console.print(f"  Rest days: {', '.join(user.rest_days) or 'none'}")
        console.print(f"  Exams: {len(user.exams)}")
    finally:
        db.close()

@app.command()
def set_rest_days(
    user_id: int = typer.Option(..., prompt="User ID"),
    days: str = typer.Option("", prompt="Rest days (comma-separated; blank for none)")
):
    """Change rest days (resets every exam schedule of the user)"""
    db = SessionLocal()
    try:
        try:
            rest = RestDaySettings(rest_days=_split(days))
        except ValidationError as e:
            _print_validation_error(e)
            raise typer.Exit(code=1)

        user = update_rest_days(db, user_id, rest)
        if not user:
            console.print(f"[red]✗[/red] User ID {user_id} not found")
            return
        console.print(f"[green]✓[/green] Rest days set to: {', '.join(user.rest_days) or 'none'}")
        console.print("  Existing schedules were cleared; run `generate` again for each exam.")
    finally:
        db.close()

@app.command()
def add_exam(
    user_id: int = typer.Option(..., prompt="User ID"),
    title: str = typer.Option(..., prompt="Exam title"),
    exam_date: str = typer.Option(..., prompt="Exam date (YYYY-MM-DD)"),
    methods: str = typer.Option(..., prompt="Study methods (comma-separated, e.g., Flashcards,Past papers)"),
    sessions_per_week: int = typer.Option(3, prompt="Target sessions per week"),
    session_length: int = typer.Option(60, prompt=f"Session length in minutes {SESSION_LENGTH_OPTIONS}"),
    when_to_start: str = typer.Option("tomorrow", prompt=f"When to start ({', '.join(WHEN_TO_START_OPTIONS)})"),
    subject: Optional[str] = typer.Option(None, help="Subject"),
    preferences: Optional[str] = typer.Option(None, help="Free-text hint for the AI placer")
):
    """Add an exam"""
    db = SessionLocal()
    try:
        if not get_user(db, user_id):
            console.print(f"[red]✗[/red] User ID {user_id} not found")
            return
        try:
            exam_data = ExamCreate(
                title=title,
                subject=subject,
                exam_date=_parse_date(exam_date),
                target_sessions_per_week=sessions_per_week,
                session_length_minutes=session_length,
                when_to_start_studying=when_to_start,
                study_methods=_split(methods),
                preferences=preferences
            )
        except ValueError as e:
            if isinstance(e, ValidationError):
                _print_validation_error(e)
            else:
                console.print(f"[red]✗[/red] {e}")
            raise typer.Exit(code=1)

        exam = create_exam(db, user_id, exam_data)
        console.print(f"[green]✓[/green] Exam created! ID: {exam.id}")
        console.print(f"  {exam.title} on {exam.exam_date}")
        console.print(f"  {exam.target_sessions_per_week} x {exam.session_length_minutes} min per week, starting {exam.when_to_start_studying}")
    finally:
        db.close()

@app.command()
def update_exam(
    user_id: int = typer.Option(..., prompt="User ID"),
    exam_id: int = typer.Option(..., prompt="Exam ID"),
    title: Optional[str] = typer.Option(None, help="New title"),
    exam_date: Optional[str] = typer.Option(None, help="New exam date (YYYY-MM-DD)"),
    methods: Optional[str] = typer.Option(None, help="New study methods (comma-separated)"),
    sessions_per_week: Optional[int] = typer.Option(None, help="New target sessions per week"),
    session_length: Optional[int] = typer.Option(None, help="New session length in minutes"),
    when_to_start: Optional[str] = typer.Option(None, help="New start option"),
    subject: Optional[str] = typer.Option(None, help="New subject"),
    preferences: Optional[str] = typer.Option(None, help="New preferences")
):
    """Edit an exam (clears its schedule)"""
    updates = {}
    if title is not None:
        updates["title"] = title
    if exam_date is not None:
        updates["exam_date"] = _parse_date(exam_date)
    if methods is not None:
        updates["study_methods"] = _split(methods)
    if sessions_per_week is not None:
        updates["target_sessions_per_week"] = sessions_per_week
    if session_length is not None:
        updates["session_length_minutes"] = session_length
    if when_to_start is not None:
        updates["when_to_start_studying"] = when_to_start
    if subject is not None:
        updates["subject"] = subject
    if preferences is not None:
        updates["preferences"] = preferences

    db = SessionLocal()
    try:
        try:
            changes = ExamUpdate(**updates)
        except ValidationError as e:
            _print_validation_error(e)
            raise typer.Exit(code=1)

        exam = update_exam_record(db, exam_id, user_id, changes)
        console.print(f"[green]✓[/green] Exam {exam.id} updated; schedule cleared")
    except PlannerError as e:
        console.print(f"[red]✗[/red] {e}")
    finally:
        db.close()

@app.command()
def delete_exam(user_id: int, exam_id: int):
    """Delete an exam and its sessions"""
    db = SessionLocal()
    try:
        delete_exam_record(db, exam_id, user_id)
        console.print(f"[green]✓[/green] Exam {exam_id} deleted")
    except PlannerError as e:
        console.print(f"[red]✗[/red] {e}")
    finally:
        db.close()

@app.command()
def list_exams(user_id: int):
    """List a user's exams with their schedule status"""
    db = SessionLocal()
    try:
        exams = get_exams_by_user(db, user_id)
        if not exams:
            console.print(f"[yellow]No exams found for user {user_id}[/yellow]")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("ID", style="cyan", justify="right")
        table.add_column("Title", style="green")
        table.add_column("Date", style="cyan")
        table.add_column("Per week", justify="right")
        table.add_column("Length", justify="right")
        table.add_column("Start")
        table.add_column("Schedule", style="yellow")

        for exam in exams:
            status = exam.generation_status
            if exam.failure_reason:
                status = f"{status}: {exam.failure_reason}"
            table.add_row(
                str(exam.id),
                exam.title,
                str(exam.exam_date),
                str(exam.target_sessions_per_week),
                f"{exam.session_length_minutes} min",
                exam.when_to_start_studying,
                status
            )

        console.print(table)
    finally:
        db.close()

@app.command()
def generate(
    user_id: int = typer.Option(..., prompt="User ID"),
    exam_id: int = typer.Option(..., prompt="Exam ID"),
    no_ai: bool = typer.Option(False, "--no-ai", help="Skip the AI placer and use the deterministic schedule")
):
    """Generate the study schedule for an exam"""
    db = SessionLocal()
    try:
        placer = None if no_ai else _load_placer()
        if placer is not None:
            console.print(f"[yellow]Asking {settings.ai_provider} to place sessions (this may take a moment)...[/yellow]")

        result = generate_schedule(db, exam_id, user_id, placer=placer)

        if result.outcome == GenerationOutcome.CONFLICT:
            console.print(f"[yellow]{result.error}. Use `regenerate` to build a fresh schedule.[/yellow]")
        elif result.success:
            source = "deterministic placement" if result.used_fallback else "AI placement"
            console.print(f"[green]✓[/green] Scheduled {result.session_count} sessions ({source})")
        else:
            console.print(f"[red]✗[/red] {result.error}")
            raise typer.Exit(code=1)
    except PlannerError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)
    finally:
        db.close()

@app.command()
def regenerate(
    user_id: int = typer.Option(..., prompt="User ID"),
    exam_id: int = typer.Option(..., prompt="Exam ID"),
    no_ai: bool = typer.Option(False, "--no-ai", help="Skip the AI placer and use the deterministic schedule")
):
    """Clear the current schedule and generate a new one"""
    db = SessionLocal()
    try:
        reset_schedule(db, exam_id, user_id)
    except PlannerError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)
    finally:
        db.close()
    generate(user_id=user_id, exam_id=exam_id, no_ai=no_ai)

@app.command()
def view_schedule(user_id: int, exam_id: int):
    """Show an exam's sessions grouped by week"""
    db = SessionLocal()
    try:
        exam = get_exam_for_owner(db, exam_id, user_id)
        sessions = get_sessions_for_exam(db, exam_id)

        console.print(f"\n[bold]{exam.title}[/bold] on {exam.exam_date} ({exam.generation_status})")
        if not sessions:
            console.print("[yellow]No sessions scheduled.[/yellow]")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Week of", style="cyan")
        table.add_column("Date", style="cyan")
        table.add_column("Day")
        table.add_column("Method", style="green")
        table.add_column("Duration", style="blue", justify="right")
        table.add_column("Status", style="yellow")

        current_week = None
        for s in sessions:
            day = s.date.date()
            monday = week_start(day)
            table.add_row(
                str(monday) if monday != current_week else "",
                str(day),
                day_name(day).title(),
                s.method,
                f"{s.duration} min",
                s.status
            )
            current_week = monday

        console.print(table)
        total = sum(s.duration for s in sessions)
        console.print(f"\n{len(sessions)} sessions, {total / 60:.1f} hours total")
    except PlannerError as e:
        console.print(f"[red]✗[/red] {e}")
    finally:
        db.close()

@app.command()
def today(user_id: int):
    """Today's sessions, upcoming exams and rest-day status"""
    db = SessionLocal()
    try:
        user = get_user(db, user_id)
        if not user:
            console.print(f"[red]✗[/red] User ID {user_id} not found")
            return

        current = utc_today()
        console.print(f"\n[bold]Today - {day_name(current).title()} {current}[/bold]")
        if day_name(current) in (user.rest_days or []):
            console.print("[cyan]Rest day - no studying planned.[/cyan]")

        sessions = get_sessions_by_date(db, user_id, current)
        if sessions:
            for s in sessions:
                console.print(f"  [{s.status}] {s.topic} ({s.duration} min) - session #{s.id}")
        else:
            console.print("  No sessions today.")

        upcoming = get_upcoming_exams(db, user_id, current, limit=3)
        if upcoming:
            console.print("\n[cyan]Upcoming exams:[/cyan]")
            for exam in upcoming:
                days_left = (exam.exam_date - current).days
                when = "today" if days_left == 0 else "tomorrow" if days_left == 1 else f"in {days_left} days"
                console.print(f"  {exam.title} - {exam.exam_date} ({when})")
    finally:
        db.close()

@app.command()
def mark_session(
    user_id: int = typer.Option(..., prompt="User ID"),
    session_id: int = typer.Option(..., prompt="Session ID"),
    status: str = typer.Option(..., prompt="Status (completed/skipped/planned)")
):
    """Mark a study session as completed, skipped or planned"""
    try:
        new_status = SessionStatus(status.strip().upper())
    except ValueError:
        console.print("[red]✗[/red] Status must be completed, skipped or planned")
        raise typer.Exit(code=1)

    db = SessionLocal()
    try:
        session = update_session_status(db, session_id, user_id, new_status)
        if not session:
            console.print(f"[red]✗[/red] Session {session_id} not found")
            return
        console.print(f"[green]✓[/green] Session {session.id} marked {session.status.lower()}")
    finally:
        db.close()

if __name__ == "__main__":
    app()
