"""
Coaching module for the habit coach.

Turns a behaviour profile into daily insights, briefings and coach
answers, and interprets free-text task descriptions.
"""

from .insights import Action, Insight, InsightReport, generate_insights
from .interpreter import ParsedSchedule, TaskInterpretation, analyze_task_text, interpret_task, parse_schedule
from .personas import BRIEFING_PERSONAS, PERSONAS_BY_ID, BriefingPersona, get_persona, resolve_persona
from .briefing import DailyBriefing, BriefingInput, briefing_input_for, generate_daily_briefing
from .coach_chat import coach_response
from .predictions import (
    AdaptiveReminder,
    CompletionPrediction,
    EnhancedAgenda,
    generate_adaptive_reminders,
    generate_enhanced_agenda,
    predict_completion,
)
from .notifications import SmartNotification, find_easiest_habit, generate_smart_notifications

__all__ = [
    # Insights
    'Action',
    'Insight',
    'InsightReport',
    'generate_insights',
    # Interpreter
    'ParsedSchedule',
    'TaskInterpretation',
    'analyze_task_text',
    'interpret_task',
    'parse_schedule',
    # Personas and briefing
    'BRIEFING_PERSONAS',
    'PERSONAS_BY_ID',
    'BriefingPersona',
    'get_persona',
    'resolve_persona',
    'DailyBriefing',
    'BriefingInput',
    'briefing_input_for',
    'generate_daily_briefing',
    # Coach
    'coach_response',
    # Predictions and agenda
    'AdaptiveReminder',
    'CompletionPrediction',
    'EnhancedAgenda',
    'generate_adaptive_reminders',
    'generate_enhanced_agenda',
    'predict_completion',
    # Notifications
    'SmartNotification',
    'find_easiest_habit',
    'generate_smart_notifications',
]
