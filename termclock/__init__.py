"""
termclock - terminal clock with ambient temperature and a todo list.

Architecture:
- providers.py: domain records, Model and the DataClient protocol
- api_provider.py: HTTP implementation of DataClient
- loop.py: refresh state machine (ticks, fetch bookkeeping, chime)
- render.py / glyphs.py: pure frame rendering and lookup tables
- views/: Textual widgets
- app.py: Textual application driving the loop
- cli.py: command line entry point
"""

__version__ = "0.1.0"
