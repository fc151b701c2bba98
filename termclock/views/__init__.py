"""Textual widgets for the clock display."""
