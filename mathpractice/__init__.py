"""
MathPractice - adaptive arithmetic practice engine for children.

Generates problems per difficulty level, runs the attempt/timeout/reveal
cycle, adapts difficulty from answer streaks and grants rewards.
"""

__version__ = "0.1.0"
