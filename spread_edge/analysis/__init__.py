"""
Backtesting and calibration analysis.

Provides:
- Point-in-time backtest runner
- Edge calibration buckets with significance vs break-even
- Closing line value summaries
"""

from .backtest_runner import (
    BacktestConfig,
    BacktestPick,
    BacktestResult,
    BacktestRunner,
    run_backtest,
)
from .calibration import (
    CalibrationBucket,
    CalibrationCurve,
    RecordStats,
    build_calibration,
    confidence_tier,
    record_stats,
)
from .clv_analysis import (
    CLVSummary,
    summarize_clv,
)

__all__ = [
    # Backtesting
    "BacktestConfig",
    "BacktestPick",
    "BacktestResult",
    "BacktestRunner",
    "run_backtest",
    # Calibration
    "CalibrationBucket",
    "CalibrationCurve",
    "RecordStats",
    "build_calibration",
    "confidence_tier",
    "record_stats",
    # CLV
    "CLVSummary",
    "summarize_clv",
]
