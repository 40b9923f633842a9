"""
Dashboard module for the habit coach.

Provides Rich formatting for the command line.
"""

from .formatter import CoachFormatter

__all__ = ['CoachFormatter']
