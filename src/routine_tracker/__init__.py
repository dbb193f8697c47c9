"""Recurring routines with per-day completion and streak tracking."""

__version__ = "0.1.0"
