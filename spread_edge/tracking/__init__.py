"""
Bet grading and performance tracking.

Provides:
- Win/loss/push grading against final scores
- Closing line value
- Idempotent grading of pending bet records
- Performance summaries
"""

from .grading import (
    GradeSummary,
    GradingEngine,
    compute_clv,
    grade_outcome,
)
from .performance import PerformanceSummary, summarize_bets

__all__ = [
    "GradeSummary",
    "GradingEngine",
    "compute_clv",
    "grade_outcome",
    "PerformanceSummary",
    "summarize_bets",
]
