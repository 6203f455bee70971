"""
CLI entry point using Typer.

Provides commands for coaching data and conversation:
- init: Create or update the user profile
- log-session: Log a completed workout session
- check-in: Record daily recovery metrics
- show-history: Display recent sessions
- recovery: Show the recovery analysis for a date
- progression: Analyze load progression per exercise
- habits: Show habit statistics and the next likely session
- workout: Show, replace or clear the active workout
- ask: Ask the coach a question
"""

from .app import app
from .commands import analysis, coach, profile, sessions  # noqa: F401  registers commands

__all__ = ["app"]


if __name__ == "__main__":
    app()
