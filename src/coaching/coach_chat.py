"""
Free-text coaching responder.

Routes a question by keyword to one handler that renders markdown from
the behaviour profile. The same question, profile and ``now`` always
produce the same text.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Tuple

from src.core.temporal import WEEKDAY_NAMES, WEEKDAY_SHORT, as_date
from src.analytics.profile import UserBehaviorProfile


logger = logging.getLogger(__name__)

Handler = Callable[[str, UserBehaviorProfile, datetime], str]

ADMIN_WORDS = ("admin", "email", "paperwork", "organize", "clean")
FITNESS_WORDS = ("gym", "exercise", "workout", "run")

STAGE_EMOJI = {"thriving": "🌟", "strained": "😤", "warning": "⚠️", "burnout": "🔥"}

QUICK_QUESTIONS = [
    ("Plan tomorrow", "How should I plan tomorrow?", "📋"),
    ("Why do I procrastinate?", "Why do I keep delaying tasks?", "⏳"),
    ("Am I burning out?", "Am I at risk of burnout?", "🔥"),
    ("Best focus time", "When am I most productive?", "⏰"),
    ("How am I doing?", "How am I doing overall?", "📊"),
    ("Suggest routines", "Suggest a routine for me", "🔄"),
]


def _avg_completion(profile: UserBehaviorProfile) -> int:
    profiles = profile.habit_profiles
    if not profiles:
        return 0
    return round(sum(h.completion_rate for h in profiles) / len(profiles))


def _handle_procrastination(question: str, profile: UserBehaviorProfile, now: datetime) -> str:
    pa = profile.procrastination_analysis
    parts = [f"Based on your data, your procrastination score is **{pa.score}/100**. Here's what I see:\n"]

    if pa.triggers:
        parts.append("**Your main procrastination triggers:**\n")
        for trigger in pa.triggers[:3]:
            parts.append(f"{trigger.emoji} **{trigger.trigger}**: {trigger.description}\n")
            parts.append(f"   💡 *{trigger.suggestion}*\n")

    if any(w in question for w in ADMIN_WORDS):
        parts.append(
            "\n**About admin tasks specifically:**\nAdmin tasks lack immediate reward, making them "
            "easy to defer. Try the \"2-minute rule\": if it takes less than 2 minutes, do it now. "
            "For longer admin, batch them into a 30-minute \"admin block\" on your best productivity day."
        )
    elif any(w in question for w in FITNESS_WORDS):
        habit = next(
            (h for h in profile.habit_profiles
             if any(w in h.habit_name.lower() for w in FITNESS_WORDS)),
            None,
        )
        if habit is not None:
            if habit.completion_rate < 50:
                advice = ("The key is lowering the bar. Commit to just showing up for 10 minutes; "
                          "once you start, you'll usually continue.")
            else:
                advice = "You're actually doing well! Focus on consistency over intensity."
            parts.append(f'\n**About "{habit.habit_name}":**\n'
                         f"Your completion rate is {habit.completion_rate}%. {advice}")

    if pa.recovery_speed == "slow":
        parts.append("\n⚠️ **Recovery pattern**: When you miss a day, it takes you a while to bounce "
                     "back. Try the \"never miss twice\" rule: one miss is fine, but get back on "
                     "track the very next day.")
    else:
        parts.append("\n✅ **Good news**: You bounce back quickly after misses. "
                     "That resilience is a huge strength!")
    return "".join(parts)


def _handle_planning(question: str, profile: UserBehaviorProfile, now: datetime) -> str:
    tomorrow = as_date(now) + timedelta(days=1)
    day_name = WEEKDAY_NAMES[tomorrow.weekday()]
    parts = [f"**Planning for {day_name}:**\n"]

    if tomorrow.weekday() in profile.peak_days:
        parts.append(f"🌟 {day_name} is one of your **peak productivity days**! "
                     "Schedule your hardest tasks here.\n")
    else:
        parts.append(f"{day_name} isn't your strongest day. "
                     "Keep expectations realistic and focus on essentials.\n")

    windows = profile.focus_analysis.peak_focus_windows
    if windows:
        peak = windows[0]
        parts.append(f"\n⏰ **Best focus window**: {peak.start}:00-{peak.end}:00 ({peak.label})\n")
        parts.append("Schedule your most important habit or task during this window.\n")

    at_risk = sorted(
        (h for h in profile.habit_profiles if h.abandonment_risk >= 40),
        key=lambda h: -h.abandonment_risk,
    )
    if at_risk:
        parts.append("\n🎯 **Priority habits** (at risk of being dropped):\n")
        for habit in at_risk[:3]:
            parts.append(f"   • {habit.habit_name} ({habit.completion_rate}% completion)\n")

    burnout = profile.burnout_analysis
    if burnout.stage in ("warning", "burnout"):
        parts.append(f"\n⚠️ **Burnout alert**: Your burnout risk is {burnout.risk_level}%. "
                     "Plan a lighter day and aim for 70% of your normal load. Rest is productive too.\n")

    parts.append("\n**Suggested structure:**\n")
    parts.append("1. 🌅 Start with your easiest habit to build momentum\n")
    if at_risk:
        parts.append(f'2. 🎯 Tackle "{at_risk[0].habit_name}" during your peak focus window\n')
    else:
        parts.append("2. 🎯 Do your most important task during peak focus\n")
    parts.append("3. 📋 Batch any quick tasks (< 15 min) in the afternoon\n")
    parts.append("4. 🧘 End with a wind-down habit or reflection\n")
    return "".join(parts)


def _handle_burnout(question: str, profile: UserBehaviorProfile, now: datetime) -> str:
    ba = profile.burnout_analysis
    parts = [
        f"**Burnout Assessment: {STAGE_EMOJI[ba.stage]} {ba.stage.capitalize()}**\n",
        f"Risk level: **{ba.risk_level}/100**\n",
    ]
    if ba.factors:
        parts.append("\n**Contributing factors:**\n")
        for f in ba.factors:
            parts.append(f"{f.emoji} {f.label} (impact: {f.impact}/30): {f.detail}\n")

    if ba.trend == "increasing":
        outlook = ""
        if ba.days_until_critical:
            outlook = f"At this rate, you could hit critical levels in ~{ba.days_until_critical} days."
        parts.append(f"\n📈 **Trend**: Burnout risk is **increasing**. {outlook}\n")
    elif ba.trend == "decreasing":
        parts.append("\n📉 **Trend**: Good news, burnout risk is **decreasing**. Keep up the recovery.\n")

    if ba.recovery_actions:
        parts.append("\n**Recommended actions:**\n")
        for i, action in enumerate(ba.recovery_actions, 1):
            parts.append(f"{i}. {action}\n")

    if ba.stage == "thriving":
        parts.append("\nYou're in great shape! Your energy and motivation are sustainable. "
                     "Keep doing what you're doing. 💪")
    return "".join(parts)


def _handle_focus(question: str, profile: UserBehaviorProfile, now: datetime) -> str:
    fa = profile.focus_analysis
    split = fa.time_of_day_split
    parts = [
        "**Your Focus Profile:**\n",
        f"Average productive hours: **{fa.avg_productive_hours}h/day**\n",
        "\n**Time-of-day split:**\n",
        f"🌅 Morning: {split['morning']}%\n",
        f"☀️ Afternoon: {split['afternoon']}%\n",
        f"🌙 Evening: {split['evening']}%\n",
    ]
    if fa.peak_focus_windows:
        parts.append("\n**Peak focus windows:**\n")
        for w in fa.peak_focus_windows:
            parts.append(f"⏰ {w.label}: {w.start}:00-{w.end}:00 ({w.score}%)\n")

    slot = fa.optimal_slot
    when = f" during {slot.time}" if slot.time else ""
    parts.append(f"\n🏆 **Optimal slot**: {slot.day}{when} ({slot.score}% effectiveness)\n")

    parts.append("\n**Weekly focus heatmap:**\n")
    for name, score in zip(WEEKDAY_SHORT, fa.weekly_focus_heatmap):
        filled = round(score / 10)
        parts.append(f"{name}: {'█' * filled}{'░' * (10 - filled)} {score}%\n")

    parts.append("\n💡 **Tip**: Protect your peak windows fiercely. No meetings, no distractions. "
                 "This is when you do your best work.")
    return "".join(parts)


def _trend_word(trend: float) -> str:
    if trend > 0:
        return "improving"
    if trend < -0.5:
        return "declining"
    return "stable"


def _handle_mood(question: str, profile: UserBehaviorProfile, now: datetime) -> str:
    if profile.avg_mood >= 7:
        emoji = "😊"
    elif profile.avg_mood >= 5:
        emoji = "😐"
    else:
        emoji = "😔"
    trend_label = {"improving": "📈 Improving", "declining": "📉 Declining", "stable": "→ Stable"}
    r = profile.mood_productivity_correlation
    strength = "Strong" if r > 0.3 else "Moderate" if r > 0 else "Weak"
    parts = [
        f"**Mood & Energy Report** {emoji}\n",
        f"Average mood: **{profile.avg_mood}/10**\n",
        f"Average motivation: **{profile.avg_motivation}/10**\n",
        f"Mood trend: {trend_label[_trend_word(profile.mood_trend)]} ({profile.mood_trend:+})\n",
        f"\nMood-productivity correlation: **{strength}** (r={r:.2f})\n",
    ]
    if r > 0.3:
        parts.append("Your mood strongly drives your habits. On low days, focus on mood-boosting "
                     "activities first (exercise, social connection, nature).\n")
    else:
        parts.append("Your habits are fairly independent of mood, a sign of strong discipline! Keep it up.\n")
    if profile.mood_trend < -1:
        parts.append("\n⚠️ Your mood has been declining. Consider:\n")
        parts.append("• Reducing your habit load temporarily\n")
        parts.append("• Adding a daily gratitude or joy practice\n")
        parts.append("• Talking to someone you trust\n")
    return "".join(parts)


def _handle_habit(question: str, profile: UserBehaviorProfile, now: datetime) -> str:
    profiles = profile.habit_profiles
    if not profiles:
        return ("You don't have any habits tracked yet! Head to the monthly tracker to add your "
                "first habits. Start with just 2-3; you can always add more later.")

    habit = next((h for h in profiles if h.habit_name.lower() in question), None)
    if habit is not None:
        parts = [
            f'**"{habit.habit_name}" Deep Dive:**\n',
            f"Completion: {habit.completion_rate}% | Streak: {habit.current_streak}d | "
            f"Best: {habit.longest_streak}d\n",
            f"Trend: {'📈 ' if habit.trend > 0 else '📉 ' if habit.trend < 0 else '→ '}{habit.trend:+d}%\n",
            f"Best day: {WEEKDAY_NAMES[habit.best_day_of_week]} | "
            f"Worst: {WEEKDAY_NAMES[habit.worst_day_of_week]}\n",
            f"Consistency: {habit.consistency_score}% | Risk: {habit.abandonment_risk}%\n",
        ]
        if habit.is_automatic:
            parts.append("\n✅ This habit is **automatic** and requires minimal willpower. "
                         "Consider leveling it up or adding a new challenge.\n")
        elif habit.abandonment_risk >= 60:
            parts.append("\n⚠️ This habit is **at risk**. Try:\n"
                         "• Reducing the difficulty (e.g., 5 min instead of 30)\n"
                         "• Pairing it with a strong habit\n"
                         "• Doing it at the same time every day\n")
        return "".join(parts)

    automatic = [h.habit_name for h in profiles if h.is_automatic]
    improving = [h.habit_name for h in profiles if h.trend > 10]
    at_risk = [h.habit_name for h in profiles if h.abandonment_risk >= 50]
    parts = ["**Habit Health Overview:**\n", f"Total habits: {len(profiles)}\n"]
    if automatic:
        parts.append(f"🤖 Automatic: {', '.join(automatic)}\n")
    if improving:
        parts.append(f"📈 Improving: {', '.join(improving)}\n")
    if at_risk:
        parts.append(f"⚠️ At risk: {', '.join(at_risk)}\n")
    parts.append(f"\nAverage completion: {_avg_completion(profile)}%\n")
    if len(profiles) > 6:
        parts.append("\n💡 You have quite a few habits; 3-5 is a sustainable number. Consider archiving "
                     "your automatic ones and focusing on the ones that need attention.")
    return "".join(parts)


def _handle_weekend(question: str, profile: UserBehaviorProfile, now: datetime) -> str:
    gap = profile.weekday_weekend_gap
    side = "(weekdays stronger)" if gap > 0 else "(weekends stronger)"
    parts = [
        "**Weekend Performance Analysis:**\n",
        f"Weekday vs weekend gap: **{abs(gap)} points** {side}\n",
    ]
    if gap > 20:
        parts.append("\nYour weekends are a significant weak spot. Here's why this happens:\n")
        parts.append("• **No external structure**: without work or school, routines dissolve\n")
        parts.append("• **\"I deserve a break\" mindset**: rest is good, but zero habits isn't rest\n")
        parts.append("• **Social plans**: weekend plans disrupt routines\n")
        parts.append("\n**Fix it:**\n")
        parts.append("1. Pick just 2 non-negotiable weekend habits\n")
        parts.append("2. Anchor them to something you already do (coffee, waking up)\n")
        parts.append("3. Allow yourself to do the minimum version (1 pushup counts)\n")
    elif gap > 10:
        parts.append("\nSlight weekend dip, which is normal. A minimal weekend routine would close the gap.")
    else:
        parts.append("\n✅ Great weekend consistency! You maintain your routines regardless of the day.")
    return "".join(parts)


def _handle_priority(question: str, profile: UserBehaviorProfile, now: datetime) -> str:
    lines = []
    burnout = profile.burnout_analysis
    if burnout.stage in ("warning", "burnout"):
        lines.append(f"🛑 **Recovery**: Your burnout risk is {burnout.risk_level}%. "
                     "Nothing else matters if you burn out. Reduce load and rest.")
    at_risk = [h for h in profile.habit_profiles if h.abandonment_risk >= 60]
    if at_risk:
        lines.append(f'🆘 **Rescue "{at_risk[0].habit_name}"**: At {at_risk[0].abandonment_risk}% '
                     "abandonment risk. Do the minimum version today.")
    triggers = profile.procrastination_analysis.triggers
    if triggers:
        lines.append(f"⏰ **Address {triggers[0].trigger}**: {triggers[0].suggestion}")
    improving = [h for h in profile.habit_profiles if h.trend > 15]
    if improving:
        names = ", ".join(f'"{h.habit_name}"' for h in improving)
        lines.append(f"📈 **Maintain momentum** on {names}, they're trending up!")

    parts = ["**Your Top Priorities Right Now:**\n"]
    parts.extend(f"{i}. {line}\n" for i, line in enumerate(lines, 1))
    if not lines:
        parts.append("You're in good shape! Focus on maintaining your current habits "
                     "and consider adding a new challenge.")
    return "".join(parts)


def _handle_progress(question: str, profile: UserBehaviorProfile, now: datetime) -> str:
    parts = [
        "**Your Progress Report:**\n",
        f"📊 Productivity score: **{profile.productivity_score}%**\n",
        f"😊 Average mood: **{profile.avg_mood}/10** ({_trend_word(profile.mood_trend)})\n",
        f"⚡ Motivation: **{profile.avg_motivation}/10**\n",
        f"📋 Weekly task rate: **{profile.weekly_task_rate}%**\n",
        f"🏆 Perfect days this month: **{profile.perfect_days_this_month}**\n",
    ]
    if profile.peak_days:
        parts.append(f"⭐ Peak days: {', '.join(WEEKDAY_NAMES[d] for d in profile.peak_days)}\n")

    average = _avg_completion(profile)
    if average >= 70:
        parts.append("\n🌟 You're doing great! Keep pushing toward making more habits automatic.")
    elif average >= 40:
        parts.append("\n👍 Solid progress. Focus on your weakest 1-2 habits to push your overall score higher.")
    else:
        parts.append("\n💪 Room to grow! Start by nailing just 2-3 habits consistently before adding more.")
    return "".join(parts)


def _handle_routine(question: str, profile: UserBehaviorProfile, now: datetime) -> str:
    routines = profile.suggested_routines
    if not routines:
        return ("I don't have enough information to suggest specific routines yet. "
                "Keep tracking for a few more days and I'll have personalized suggestions!")
    parts = ["**Suggested Routines:**\n",
             "Based on your behavior patterns, here are routines that could help:\n"]
    for i, routine in enumerate(routines[:3], 1):
        when = routine.frequency
        if routine.suggested_day:
            when += f", {routine.suggested_day}"
        if routine.suggested_time:
            when += f" at {routine.suggested_time}"
        parts.append(f"\n{i}. {routine.emoji} **{routine.name}** ({when})\n")
        parts.append(f"   {routine.description}\n")
        parts.append(f"   Tasks: {' → '.join(routine.tasks)}\n")
        parts.append(f"   *{routine.rationale}*\n")
    return "".join(parts)


def _handle_general(question: str, profile: UserBehaviorProfile, now: datetime) -> str:
    parts = [
        "I'm your productivity coach! I read your habit data to give personalized advice. "
        "Try asking me:\n\n",
        "💬 **\"Why do I keep delaying admin tasks?\"**: procrastination patterns\n",
        "📋 **\"How should I plan tomorrow?\"**: a personalized plan\n",
        "🔥 **\"Am I burning out?\"**: burnout risk\n",
        "⏰ **\"When am I most productive?\"**: your focus times\n",
        "😊 **\"How's my mood affecting me?\"**: mood and productivity\n",
        "📊 **\"How am I doing?\"**: a progress report\n",
        "🔄 **\"Suggest a routine\"**: routines based on your patterns\n",
        "📅 **\"Why are my weekends bad?\"**: weekend patterns\n",
        "🎯 **\"What should I focus on?\"**: your priorities\n",
    ]
    burnout = profile.burnout_analysis
    triggers = profile.procrastination_analysis.triggers
    if burnout.stage in ("warning", "burnout"):
        parts.append(f"\n⚠️ *I notice your burnout risk is elevated ({burnout.risk_level}%). "
                     "Ask me about burnout for specific advice.*")
    elif triggers:
        parts.append(f"\n💡 *I've detected {len(triggers)} procrastination trigger(s). "
                     "Ask me why you're delaying tasks for insights.*")
    return "".join(parts)


# Evaluated in order; the first route with a matching keyword answers
ROUTES: List[Tuple[Tuple[str, ...], Handler]] = [
    (("delay", "procrastinat", "putting off", "avoid", "skip"), _handle_procrastination),
    (("plan", "tomorrow", "schedule", "organize"), _handle_planning),
    (("burnout", "burning out", "overwhelm", "stress", "tired", "exhausted"), _handle_burnout),
    (("focus", "productive", "concentration", "distract", "best time"), _handle_focus),
    (("mood", "feel", "motivation", "energy", "happy", "sad"), _handle_mood),
    (("habit", "streak", "routine", "consistent"), _handle_habit),
    (("weekend", "saturday", "sunday"), _handle_weekend),
    (("focus on", "priority", "important", "what should"), _handle_priority),
    (("how am i", "progress", "doing", "performance", "stats"), _handle_progress),
    (("routine", "suggest", "recommend", "improve"), _handle_routine),
]


def route_question(question: str) -> str:
    """Name of the handler a question is routed to."""
    lower = question.lower().strip()
    for keywords, handler in ROUTES:
        if any(k in lower for k in keywords):
            return handler.__name__[len("_handle_"):]
    return "general"


def coach_response(question: str, profile: UserBehaviorProfile,
                   now: Optional[datetime] = None) -> str:
    """
    Answer a free-text coaching question from the profile.

    Args:
        question: User question
        profile: Finished behaviour profile
        now: Reference time for date-relative answers (defaults to utcnow)

    Returns:
        Markdown text
    """
    if now is None:
        now = datetime.now(timezone.utc)
    lower = question.lower().strip()
    for keywords, handler in ROUTES:
        if any(k in lower for k in keywords):
            logger.debug("Routing question to %s", handler.__name__)
            return handler(lower, profile, now)
    return _handle_general(lower, profile, now)
