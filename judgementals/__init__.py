"""
Judgementals - Multi-Judge Hackathon Evaluation System

Coordinates a panel of AI judges over submitted projects, ranks the results
with a master judge and keeps shared judging sessions in sync with the
document store.
"""

__version__ = "0.1.0"
__author__ = "Judgementals Team"
