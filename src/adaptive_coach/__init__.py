"""Adaptive coaching orchestrator: recovery, progression, habits and conversational coaching."""

__version__ = "0.1.0"
