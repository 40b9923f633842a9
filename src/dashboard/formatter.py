"""
Rich formatter for the habit coach.

Handles all Rich-based CLI formatting: the behaviour profile, today's
insights, the daily briefing, parsed task text and coach answers.
"""

from typing import List, Optional

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich import box

from src.core.temporal import WEEKDAY_NAMES, WEEKDAY_SHORT
from src.analytics.habit_stats import HabitProfile
from src.analytics.profile import UserBehaviorProfile
from src.coaching.briefing import DailyBriefing
from src.coaching.insights import InsightReport
from src.coaching.interpreter import ParsedSchedule, TaskInterpretation
from src.coaching.notifications import SmartNotification
from src.coaching.predictions import CompletionPrediction, EnhancedAgenda


# Border colors by insight type
INSIGHT_COLORS = {
    "observation": "blue",
    "warning": "red",
    "suggestion": "yellow",
    "tip": "green",
}

STAGE_COLORS = {
    "thriving": "green",
    "strained": "yellow",
    "warning": "dark_orange",
    "burnout": "red bold",
}

TONE_COLORS = {
    "good": "green",
    "neutral": "white",
    "warning": "red",
}

PRIORITY_COLORS = {
    "urgent": "red bold",
    "high": "red bold",
    "medium": "yellow",
    "low": "dim",
}

URGENCY_COLORS = {
    "now": "red bold",
    "soon": "yellow",
    "later": "cyan",
    "tomorrow": "dim",
}

# Border colors by notification type
NOTIFICATION_COLORS = {
    "nudge": "blue",
    "celebration": "green",
    "warning": "red",
    "insight": "cyan",
    "challenge": "magenta",
}


class CoachFormatter:
    """
    Rich-based formatter for coach output.

    Every ``format_*`` method returns a renderable; ``render_*`` methods
    print to the console.
    """

    def __init__(self, console: Optional[Console] = None):
        """
        Initialize formatter.

        Args:
            console: Rich Console instance (creates default if not provided)
        """
        self.console = console or Console()

    def _format_percent(self, value: int, good: int = 70, fair: int = 40) -> str:
        """Color a percentage by how healthy it is."""
        if value >= good:
            return f"[green]{value}%[/green]"
        if value >= fair:
            return f"[yellow]{value}%[/yellow]"
        return f"[red]{value}%[/red]"

    def _format_trend(self, trend: int) -> str:
        if trend > 0:
            return f"[green]▲ {trend}[/green]"
        if trend < 0:
            return f"[red]▼ {abs(trend)}[/red]"
        return "[dim]→ 0[/dim]"

    def _format_risk(self, risk: int) -> str:
        if risk >= 60:
            return f"[red bold]{risk}[/red bold]"
        if risk >= 40:
            return f"[yellow]{risk}[/yellow]"
        return f"[dim]{risk}[/dim]"

    def format_summary(self, profile: UserBehaviorProfile) -> Panel:
        """
        Create header panel with the user-level numbers.

        Args:
            profile: Behaviour profile

        Returns:
            Rich Panel with summary content
        """
        content = Text()
        content.append(f"{profile.as_of.strftime('%A, %B %d, %Y')}\n", style="dim")
        content.append(f"Productivity {profile.productivity_score}%", style="bold")
        content.append(f"  │  Streak {profile.current_streak}d")
        content.append(f"  │  Mood {profile.avg_mood}/10")
        content.append(f"  │  Motivation {profile.avg_motivation}/10")
        content.append(f"  │  Weekly tasks {profile.weekly_task_rate}%")
        content.append(f"\nPerfect days this month: {profile.perfect_days_this_month}", style="dim")
        if profile.peak_days:
            peaks = ", ".join(WEEKDAY_NAMES[d] for d in profile.peak_days)
            content.append(f"  │  Peak days: {peaks}", style="dim")

        return Panel(
            content,
            title="[bold]Behaviour Profile[/bold]",
            title_align="center",
            border_style="blue",
            padding=(0, 2),
        )

    def format_habit_table(self, habits: List[HabitProfile]) -> Panel:
        """
        Create table of per-habit statistics, riskiest first.

        Args:
            habits: Habit profiles

        Returns:
            Rich Panel with the habit table
        """
        if not habits:
            return Panel(
                Text("No habits tracked yet", style="dim", justify="center"),
                title="[bold]Habits[/bold]",
                border_style="white",
                padding=(0, 1),
            )

        table = Table(box=box.SIMPLE, padding=(0, 1), expand=True)
        table.add_column("Habit", ratio=1)
        table.add_column("Done", width=6, justify="right")
        table.add_column("Streak", width=7, justify="right")
        table.add_column("Best", width=5, justify="right")
        table.add_column("Trend", width=6, justify="right")
        table.add_column("Best day", width=9)
        table.add_column("Consist.", width=8, justify="right")
        table.add_column("Risk", width=5, justify="right")

        for habit in sorted(habits):
            name = habit.habit_name[:30] + "..." if len(habit.habit_name) > 30 else habit.habit_name
            if habit.is_automatic:
                name += " [green]🤖[/green]"
            table.add_row(
                name,
                self._format_percent(habit.completion_rate),
                f"{habit.current_streak}d",
                f"{habit.longest_streak}d",
                self._format_trend(habit.trend),
                WEEKDAY_SHORT[habit.best_day_of_week],
                f"{habit.consistency_score}",
                self._format_risk(habit.abandonment_risk),
            )

        return Panel(
            table,
            title=f"[bold]Habits ({len(habits)})[/bold]",
            border_style="white",
            padding=(0, 1),
        )

    def format_burnout(self, profile: UserBehaviorProfile) -> Panel:
        """Create panel for the burnout assessment."""
        analysis = profile.burnout_analysis
        color = STAGE_COLORS.get(analysis.stage, "white")
        content = Text()
        content.append(f"{analysis.stage.capitalize()}", style=color)
        content.append(f"  risk {analysis.risk_level}/100  trend {analysis.trend}")
        if analysis.days_until_critical:
            content.append(f"  (~{analysis.days_until_critical}d to critical)", style="red")
        for factor in analysis.factors:
            content.append(f"\n{factor.emoji} {factor.label} ", style="bold")
            content.append(f"+{factor.impact}  {factor.detail}", style="dim")
        for action in analysis.recovery_actions:
            content.append(f"\n  → {action}")

        return Panel(content, title="[bold]Burnout[/bold]", border_style=color.split()[0], padding=(0, 1))

    def format_focus(self, profile: UserBehaviorProfile) -> Panel:
        """Create panel with time-of-day split, peak windows and heatmap."""
        focus = profile.focus_analysis
        split = focus.time_of_day_split

        table = Table(show_header=False, box=None, padding=(0, 1), expand=True)
        table.add_column("Label", width=12)
        table.add_column("Value", ratio=1)

        table.add_row(
            "Split",
            f"🌅 {split['morning']}%  ☀️ {split['afternoon']}%  🌙 {split['evening']}%",
        )
        for window in focus.peak_focus_windows:
            table.add_row("Window", f"{window.label} {window.start}:00-{window.end}:00 ({window.score}%)")
        slot = focus.optimal_slot
        when = f" {slot.time}" if slot.time else ""
        table.add_row("Optimal", f"{slot.day}{when} ({slot.score}%)")
        table.add_row("Hours", f"{focus.avg_productive_hours}h/day")
        for name, score in zip(WEEKDAY_SHORT, focus.weekly_focus_heatmap):
            filled = round(score / 10)
            table.add_row(f"[dim]{name}[/dim]", f"[cyan]{'█' * filled}[/cyan][dim]{'░' * (10 - filled)}[/dim] {score}%")

        return Panel(table, title="[bold]Focus[/bold]", border_style="cyan", padding=(0, 1))

    def format_procrastination(self, profile: UserBehaviorProfile) -> Panel:
        """Create panel for procrastination score, triggers and delayed habits."""
        analysis = profile.procrastination_analysis
        content = Text()
        content.append(f"Score {analysis.score}/100", style="bold")
        content.append(f"  recovery {analysis.recovery_speed}")
        if analysis.median_recovery_days is not None:
            content.append(f" (median {analysis.median_recovery_days}d)", style="dim")
        for trigger in analysis.triggers:
            content.append(f"\n{trigger.emoji} {trigger.trigger} ×{trigger.count}", style="yellow")
            content.append(f"\n   {trigger.suggestion}", style="dim")
        for item in analysis.delayed_items:
            content.append(f"\n⏳ {item.name} [{item.category}] ~{item.avg_delay_days}d delay")
        if analysis.worst_days:
            content.append(
                f"\nWorst days: {', '.join(WEEKDAY_NAMES[d] for d in analysis.worst_days)}",
                style="dim",
            )

        return Panel(content, title="[bold]Procrastination[/bold]", border_style="yellow", padding=(0, 1))

    def format_routines(self, profile: UserBehaviorProfile) -> Optional[Panel]:
        """Create panel of suggested routines, or None when there are none."""
        routines = profile.suggested_routines
        if not routines:
            return None

        table = Table(show_header=False, box=None, padding=(0, 1), expand=True)
        table.add_column("Routine", ratio=1)
        table.add_column("When", width=24)
        table.add_column("Conf", width=5, justify="right")

        for routine in routines:
            when = routine.frequency
            if routine.suggested_day:
                when += f" {routine.suggested_day}"
            if routine.suggested_time:
                when += f" {routine.suggested_time}"
            table.add_row(
                f"{routine.emoji} [bold]{routine.name}[/bold]\n[dim]{routine.rationale}[/dim]",
                when,
                f"{routine.confidence}",
            )

        return Panel(table, title="[bold]Suggested Routines[/bold]", border_style="magenta", padding=(0, 1))

    def format_patterns(self, profile: UserBehaviorProfile) -> Optional[Panel]:
        """Create panel of detected patterns and recommendations."""
        if not profile.patterns and not profile.recommendations:
            return None

        content = Text()
        for pattern in profile.patterns:
            style = {"positive": "green", "negative": "red"}.get(pattern.type, "white")
            content.append(f"{pattern.emoji} {pattern.title}", style=style)
            content.append(f"  {pattern.description}\n", style="dim")
        for rec in profile.recommendations:
            color = PRIORITY_COLORS.get(rec.priority, "white")
            content.append(f"[{rec.priority.upper()}] ", style=color)
            content.append(f"{rec.emoji} {rec.title}")
            content.append(f"  {rec.description}\n", style="dim")
        content.rstrip()

        return Panel(content, title="[bold]Patterns & Recommendations[/bold]", border_style="blue", padding=(0, 1))

    def render_profile(self, profile: UserBehaviorProfile, verbose: bool = False) -> None:
        """
        Render the behaviour profile to console.

        Args:
            profile: Behaviour profile
            verbose: Show focus heatmap and procrastination details if True
        """
        if not profile.has_data:
            self.console.print(Panel(
                Text("No records yet. Track a few days of habits to see your profile.",
                     style="dim", justify="center"),
                title="[bold]Behaviour Profile[/bold]",
                border_style="blue",
            ))
            return

        self.console.print(self.format_summary(profile))
        self.console.print(self.format_habit_table(profile.habit_profiles))
        self.console.print(self.format_burnout(profile))
        if verbose:
            self.console.print(self.format_focus(profile))
            self.console.print(self.format_procrastination(profile))
        for panel in (self.format_routines(profile), self.format_patterns(profile)):
            if panel:
                self.console.print(panel)

    def render_insights(self, report: InsightReport) -> None:
        """Render greeting, insights and the daily plan."""
        header = Text()
        header.append(f"{report.greeting}\n", style="bold")
        header.append(f"Today {report.today_score}%  │  Streak {report.streak}d", style="dim")
        self.console.print(Panel(header, title="[bold]Today[/bold]", title_align="center",
                                 border_style="blue", padding=(0, 2)))

        for insight in report.insights:
            body = Text(insight.message)
            if insight.actions:
                labels = "   ".join(f"{a.emoji} {a.label}" for a in insight.actions)
                body.append(f"\n{labels}", style="dim")
            self.console.print(Panel(
                body,
                title=f"{insight.emoji} [bold]{insight.title}[/bold]",
                title_align="left",
                border_style=INSIGHT_COLORS.get(insight.type, "white"),
                padding=(0, 1),
            ))

        if report.daily_plan:
            plan = Text()
            for i, step in enumerate(report.daily_plan, 1):
                plan.append(f"{i}. {step}\n")
            plan.rstrip()
            self.console.print(Panel(plan, title="[bold]Plan[/bold]", border_style="green", padding=(0, 1)))

    def render_briefing(self, briefing: DailyBriefing) -> None:
        """Render the daily briefing cards, moved-up task and narration."""
        cards = Table(show_header=False, box=box.ROUNDED, padding=(0, 2))
        for card in briefing.cards:
            cards.add_column(card.label, justify="center")
        cards.add_row(*[
            f"[dim]{card.label}[/dim]\n[{TONE_COLORS[card.tone]}]{card.value}[/{TONE_COLORS[card.tone]}]"
            for card in briefing.cards
        ])

        header = Text()
        header.append(f"{briefing.title}\n", style="bold")
        header.append(f"{briefing.one_liner}\n")
        header.append(briefing.vibe_tag, style="dim")
        self.console.print(Panel(header, title=f"[bold]{briefing.headline}[/bold]",
                                 border_style="magenta", padding=(0, 2)))
        self.console.print(cards)

        if briefing.moved_up:
            item = briefing.moved_up
            self.console.print(Panel(
                f"[bold]{item.title}[/bold]\n[dim]{item.reason}[/dim]",
                title="[yellow bold]⬆ Moved up[/yellow bold]",
                border_style="yellow",
                padding=(0, 1),
            ))

        self.console.print(Text(briefing.narration_text))
        self.console.print(f"[italic dim]{briefing.signature_line}[/italic dim]")

    def render_parse(self, schedule: ParsedSchedule, task: TaskInterpretation) -> None:
        """Render a parsed schedule and its task interpretation."""
        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("Field", style="dim", width=12)
        table.add_column("Value")

        table.add_row("Task", f"{task.emoji} [bold]{schedule.cleaned_text}[/bold]")
        table.add_row("Category", task.category)
        table.add_row("Priority", f"[{PRIORITY_COLORS[task.priority]}]{task.priority}[/{PRIORITY_COLORS[task.priority]}]")
        table.add_row("Estimate", f"{task.estimated_minutes}m")
        if schedule.formatted_date:
            date_str = schedule.formatted_date
            if schedule.is_past:
                date_str = f"[red]{date_str}[/red]"
            table.add_row("Date", date_str)
        if schedule.formatted_time:
            table.add_row("Time", schedule.formatted_time)
        if schedule.week_key:
            table.add_row("Week", f"{schedule.week_key} day {schedule.day_index}")
        if task.tags:
            table.add_row("Tags", " ".join(f"#{t}" for t in task.tags))
        table.add_row("Confidence", f"{task.confidence}%")
        if task.suggestion:
            table.add_row("Tip", f"[cyan]{task.suggestion}[/cyan]")

        self.console.print(Panel(table, title="[bold]Parsed[/bold]", border_style="green", padding=(0, 1)))

    def render_answer(self, answer: str) -> None:
        """Render a coach answer as markdown."""
        self.console.print(Panel(Markdown(answer), title="[bold]Coach[/bold]", border_style="cyan", padding=(0, 1)))

    def render_prediction(self, text: str, prediction: CompletionPrediction) -> None:
        """Render now/later/tomorrow scores and the factors behind them."""
        scores = Table(show_header=True, box=box.SIMPLE, padding=(0, 2))
        scores.add_column("Now", justify="center")
        scores.add_column("Later today", justify="center")
        scores.add_column("Tomorrow", justify="center")
        scores.add_row(
            self._format_percent(prediction.complete_now_score, good=75, fair=55),
            self._format_percent(prediction.complete_later_score, good=75, fair=55),
            self._format_percent(prediction.complete_tomorrow_score, good=75, fair=55),
        )

        factors = Table(show_header=False, box=None, padding=(0, 1))
        factors.add_column("Impact", justify="right", width=5)
        factors.add_column("Factor")
        for factor in prediction.factors:
            color = "green" if factor.impact > 0 else "red" if factor.impact < 0 else "dim"
            factors.add_row(f"[{color}]{factor.impact:+d}[/{color}]", f"{factor.emoji} {factor.label}")

        self.console.print(Panel(scores, title=f"[bold]{text}[/bold]", border_style="blue", padding=(0, 1)))
        self.console.print(factors)
        self.console.print(f"\n[cyan]{prediction.recommendation}[/cyan] "
                           f"[dim](best slot: {prediction.optimal_time_slot})[/dim]")

    def render_agenda(self, agenda: EnhancedAgenda) -> None:
        """Render the agenda table and its summary."""
        summary = agenda.summary
        if not agenda.items:
            self.console.print("[dim]Nothing on the agenda today.[/dim]")
            return

        table = Table(show_header=True, header_style="bold cyan", box=box.ROUNDED)
        table.add_column("#", justify="right", width=3)
        table.add_column("Item", style="bold")
        table.add_column("Priority", justify="center")
        table.add_column("Est", justify="right")
        table.add_column("Now", justify="right")
        table.add_column("When")
        table.add_column("Source", style="dim")
        for i, item in enumerate(agenda.items, 1):
            priority = item.interpretation.priority
            when = ""
            if item.reminder:
                urgency = item.reminder.urgency
                when = f"[{URGENCY_COLORS[urgency]}]{item.reminder.suggested_time_label}[/{URGENCY_COLORS[urgency]}]"
            table.add_row(
                str(i),
                f"{item.interpretation.emoji} {item.text}",
                f"[{PRIORITY_COLORS[priority]}]{priority}[/{PRIORITY_COLORS[priority]}]",
                f"{item.interpretation.estimated_minutes}m",
                self._format_percent(item.prediction.complete_now_score, good=75, fair=55),
                when,
                item.source_detail,
            )

        footer = Text()
        footer.append(f"{summary.total_items} items  │  {summary.total_minutes}m  │  "
                      f"{summary.high_priority_count} high priority  │  "
                      f"predicted {summary.predicted_completion_rate}%\n", style="dim")
        footer.append(f"Peak window: {summary.peak_productivity_window}\n")
        footer.append(summary.motivational_message, style="italic")

        self.console.print(Panel(table, title="[bold]Today's Agenda[/bold]", border_style="blue", padding=(0, 1)))
        self.console.print(footer)

    def render_notifications(self, notifications: List[SmartNotification]) -> None:
        """Render notifications as panels, most urgent first."""
        if not notifications:
            self.console.print("[dim]No notifications right now.[/dim]")
            return
        for notification in notifications:
            body = Text(notification.message)
            if notification.action:
                body.append(f"\n→ {notification.action['label']}", style="bold")
            body.append(f"\n{notification.source}  [{notification.id}]", style="dim")
            self.console.print(Panel(
                body,
                title=f"{notification.emoji} [bold]{notification.title}[/bold]",
                title_align="left",
                border_style=NOTIFICATION_COLORS.get(notification.type, "white"),
                subtitle=f"[{PRIORITY_COLORS[notification.priority]}]{notification.priority}[/{PRIORITY_COLORS[notification.priority]}]",
                subtitle_align="right",
                padding=(0, 1),
            ))
