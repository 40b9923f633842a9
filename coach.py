#!/usr/bin/env python3
"""
Habit Coach - Command Line Interface
Behaviour profile, daily insights, briefings and coaching from tracked habits
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent))

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import typer
from rich.console import Console

from src.core import Config, RecordStore, StoreError, EngineResponse, EVENT_TYPES
from src.core.temporal import as_date
from src.analytics import build_behavior_profile
from src.coaching import (
    BRIEFING_PERSONAS,
    PERSONAS_BY_ID,
    analyze_task_text,
    briefing_input_for,
    coach_response,
    generate_daily_briefing,
    generate_enhanced_agenda,
    generate_insights,
    generate_smart_notifications,
    predict_completion,
    resolve_persona,
)
from src.dashboard import CoachFormatter

# Initialize CLI app and console
app = typer.Typer(help="Habit Coach - Insights and coaching from your habit tracker")

console = Console()
config = Config()

# Set once by the global callback
state: Dict[str, Any] = {"user": None, "db": None}


def get_store() -> RecordStore:
    """Open the record store at --db, or the configured database path."""
    db_path = state["db"] or config.get_database_path()
    return RecordStore(db_path)


def get_user() -> str:
    return state["user"] or config.get("default_user", default="local")


def format_engine_response(response: EngineResponse) -> None:
    """
    Display an EngineResponse using Rich console.

    Args:
        response: The EngineResponse to display
    """
    if response.success:
        console.print(f"[green]✓[/green] {response.message}")
    else:
        console.print(f"[red]✗[/red] {response.message}")

    if response.data:
        for key, value in response.data.items():
            console.print(f"  [dim]{key}:[/dim] {value}")

    if response.suggestions:
        console.print()
        console.print("[dim]Suggestions:[/dim]")
        for suggestion in response.suggestions:
            console.print(f"  • {suggestion}")


def _load(now: datetime):
    """Load the user's snapshot and derive the behaviour profile."""
    thresholds = config.get_thresholds()
    months = int(config.get("history_months", default=3))
    snapshot = get_store().load_snapshot(
        get_user(), as_date(now), months=months, event_capacity=thresholds.event_log_capacity
    )
    profile = build_behavior_profile(snapshot, now=now, thresholds=thresholds, months=months)
    return snapshot, profile, thresholds


@app.callback()
def main(
    user: Optional[str] = typer.Option(None, "--user", "-u", help="User key (default from settings)"),
    db: Optional[Path] = typer.Option(None, "--db", help="Path to the SQLite record store"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Habit Coach"""
    level = "DEBUG" if verbose else config.get("log_level", default="INFO")
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    state["user"] = user
    state["db"] = db


@app.command()
def profile(
    detail: bool = typer.Option(False, "--detail", "-d", help="Include focus and procrastination panels"),
    as_json: bool = typer.Option(False, "--json", help="Print the profile as JSON"),
):
    """
    Show your behaviour profile

    Displays habit statistics, burnout stage, routines,
    patterns and recommendations.
    """
    try:
        _, behaviour, _ = _load(datetime.now(timezone.utc))
        if as_json:
            console.print_json(json.dumps(behaviour.to_dict()))
            return
        CoachFormatter(console).render_profile(behaviour, verbose=detail)

    except StoreError as e:
        console.print(f"[red]Error loading records: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def insights():
    """
    Show today's insights and plan

    Example:
      coach insights
    """
    try:
        now = datetime.now(timezone.utc)
        snapshot, behaviour, thresholds = _load(now)
        report = generate_insights(behaviour, snapshot, now=now, thresholds=thresholds)
        CoachFormatter(console).render_insights(report)

    except StoreError as e:
        console.print(f"[red]Error loading records: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def briefing():
    """
    Show the daily briefing

    Uses the persona configured with `coach persona`.
    """
    try:
        now = datetime.now(timezone.utc)
        snapshot, behaviour, thresholds = _load(now)
        persona = resolve_persona(config, as_date(now))
        data = briefing_input_for(behaviour, snapshot, now)
        result = generate_daily_briefing(data, persona=persona, now=now, thresholds=thresholds)
        CoachFormatter(console).render_briefing(result)

    except StoreError as e:
        console.print(f"[red]Error loading records: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def parse(text: str = typer.Argument(..., help="Task text, e.g. 'gym workout tomorrow at 7am'")):
    """
    Parse a task description

    Example:
      coach parse "call the bank friday 3pm #money"
    """
    schedule, task = analyze_task_text(text, datetime.now(timezone.utc))
    CoachFormatter(console).render_parse(schedule, task)


@app.command()
def predict(text: str = typer.Argument(..., help="Task text, e.g. 'write project proposal 2 hours'")):
    """
    Predict whether a task gets done now, later or tomorrow

    Example:
      coach predict "file expense report"
    """
    try:
        now = datetime.now(timezone.utc)
        snapshot, _, _ = _load(now)
        schedule, task = analyze_task_text(text, now)
        prediction = predict_completion(task, snapshot, now)
        CoachFormatter(console).render_prediction(schedule.cleaned_text or text, prediction)

    except StoreError as e:
        console.print(f"[red]Error loading records: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def agenda():
    """
    Show today's agenda in the recommended order

    Open habits, today's weekly tasks and overdue tasks, each with a
    completion prediction and a reminder slot.
    """
    try:
        now = datetime.now(timezone.utc)
        snapshot, _, _ = _load(now)
        CoachFormatter(console).render_agenda(generate_enhanced_agenda(snapshot, now))

    except StoreError as e:
        console.print(f"[red]Error loading records: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def notify(
    dismiss: Optional[str] = typer.Option(None, "--dismiss", help="Notification id to dismiss"),
):
    """
    Show smart notifications for this hour

    Examples:
      coach notify
      coach notify --dismiss mood-reminder-14
    """
    dismissed = list(config.get("dismissed_notifications", "briefing", []) or [])
    if dismiss:
        if dismiss not in dismissed:
            dismissed.append(dismiss)
            config.set("dismissed_notifications", dismissed, "briefing")
        console.print(f"[dim]Dismissed {dismiss}[/dim]")

    try:
        now = datetime.now(timezone.utc)
        snapshot, behaviour, _ = _load(now)
        notifications = generate_smart_notifications(behaviour, snapshot, now, dismissed=dismissed)
        CoachFormatter(console).render_notifications(notifications)

    except StoreError as e:
        console.print(f"[red]Error loading records: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def ask(question: str = typer.Argument(..., help="Question for the coach")):
    """
    Ask the coach a question

    Example:
      coach ask "Am I burning out?"
    """
    try:
        now = datetime.now(timezone.utc)
        _, behaviour, _ = _load(now)
        CoachFormatter(console).render_answer(coach_response(question, behaviour, now))

    except StoreError as e:
        console.print(f"[red]Error loading records: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def persona(
    name: Optional[str] = typer.Argument(None, help="Persona id to use every day"),
    random_daily: bool = typer.Option(False, "--random-daily", help="Pick a different persona each day"),
):
    """
    Show or set the briefing persona

    Examples:
      coach persona
      coach persona zen
      coach persona --random-daily
    """
    if name and random_daily:
        console.print("[red]Choose either a persona or --random-daily[/red]")
        raise typer.Exit(1)

    if name:
        if name not in PERSONAS_BY_ID:
            console.print(f"[red]Unknown persona: {name}[/red]")
            console.print(f"[dim]Available: {', '.join(PERSONAS_BY_ID)}[/dim]")
            raise typer.Exit(1)
        config.set("persona_mode", "fixed", "briefing")
        config.set("fixed_persona", name, "briefing")
    elif random_daily:
        config.set("persona_mode", "random_daily", "briefing")

    current = resolve_persona(config, as_date(datetime.now(timezone.utc)))
    mode = config.get("persona_mode", "briefing", "fixed")
    for p in BRIEFING_PERSONAS:
        marker = "[green]●[/green]" if p.id == current.id else "[dim]○[/dim]"
        console.print(f"{marker} {p.emoji} {p.name} [dim]({p.id})[/dim]")
    console.print(f"\n[dim]Mode: {mode}[/dim]")


@app.command("log-event")
def log_event(
    event_type: str = typer.Argument(..., help=f"Event type ({', '.join(EVENT_TYPES)})"),
    task_id: Optional[str] = typer.Option(None, "--task-id", "-t", help="Related weekly task id"),
):
    """
    Record an attention event

    Example:
      coach log-event task_deferred --task-id 3f2a
    """
    try:
        store = get_store()
        user = get_user()
        log = store.load_events(user, config.get_thresholds().event_log_capacity)
        event = log.record(event_type, task_id=task_id)
        store.save_events(user, log)
        format_engine_response(EngineResponse.ok(
            f"Logged {event.type}",
            data={"id": event.id, "task_id": event.task_id or "-", "events": len(log)},
        ))

    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except StoreError as e:
        console.print(f"[red]Error saving event: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def act(
    action_type: str = typer.Argument(..., help="Insight action type (reschedule, lower_difficulty, ...)"),
    payload: str = typer.Option("{}", "--payload", "-p", help="Action payload as JSON"),
):
    """
    Apply an action suggested by an insight

    Example:
      coach act reschedule --payload '{"habit_id": "h1", "habit_name": "Read"}'
    """
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid payload: {e}[/red]")
        raise typer.Exit(1)

    try:
        response = get_store().apply_action(get_user(), action_type, data)
    except StoreError as e:
        console.print(f"[red]Error applying action: {e}[/red]")
        raise typer.Exit(1)

    format_engine_response(response)
    if not response.success:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
