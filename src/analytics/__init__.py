"""
Analytics module for the habit coach.

Derives per-habit statistics, burnout, procrastination and focus
analyses, routine suggestions and behaviour patterns from a snapshot.
"""

from .profile import UserBehaviorProfile, build_behavior_profile
from .habit_stats import HabitProfile, calculate_streak, collect_day_records
from .burnout import BurnoutAnalysis, analyze_burnout, classify_stage
from .procrastination import ProcrastinationAnalysis, analyze_procrastination
from .focus import FocusAnalysis, analyze_focus
from .routines import SuggestedRoutine, suggest_routines
from .patterns import BehaviorPattern, Recommendation, detect_patterns, generate_recommendations

__all__ = [
    # Profile
    'UserBehaviorProfile',
    'build_behavior_profile',
    # Habit statistics
    'HabitProfile',
    'calculate_streak',
    'collect_day_records',
    # Sub-analyses
    'BurnoutAnalysis',
    'analyze_burnout',
    'classify_stage',
    'ProcrastinationAnalysis',
    'analyze_procrastination',
    'FocusAnalysis',
    'analyze_focus',
    'SuggestedRoutine',
    'suggest_routines',
    'BehaviorPattern',
    'Recommendation',
    'detect_patterns',
    'generate_recommendations',
]
