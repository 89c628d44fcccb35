"""
Edge calibration analysis.

Maps edge size to realized win rate:
- Fixed-width edge buckets with binomial significance vs break-even
- Cumulative win rate at or above each edge threshold
- Win probability lookup and confidence tiers for new edges
"""
import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np
import polars as pl
from scipy import stats

from spread_edge.betting.odds_converter import break_even_win_rate, win_payout
from spread_edge.config.constants import CUMULATIVE_THRESHOLDS, STANDARD_ODDS, Outcome

# Buckets with fewer picks than this defer to the cumulative rate
MIN_BUCKET_SAMPLE = 30


@dataclass
class RecordStats:
    """Win/loss/push record with profit at a fixed price."""

    count: int
    wins: int
    losses: int
    pushes: int
    profit: float

    @property
    def decided(self) -> int:
        return self.wins + self.losses

    @property
    def win_rate(self) -> float:
        """Win rate excluding pushes."""
        return self.wins / self.decided if self.decided > 0 else 0.0

    @property
    def roi(self) -> float:
        """Profit per unit risked on decided bets."""
        return self.profit / self.decided if self.decided > 0 else 0.0


def record_stats(outcomes: Sequence[Outcome], american_odds: int = STANDARD_ODDS) -> RecordStats:
    """Tally outcomes into a record with unit-stake profit."""
    wins = sum(1 for o in outcomes if o == Outcome.WIN)
    losses = sum(1 for o in outcomes if o == Outcome.LOSS)
    return RecordStats(
        count=len(outcomes),
        wins=wins,
        losses=losses,
        pushes=len(outcomes) - wins - losses,
        profit=wins * win_payout(american_odds) - losses,
    )


@dataclass
class CalibrationBucket:
    """Results for one edge range [edge_min, edge_max)."""

    edge_min: float
    edge_max: float
    count: int
    wins: int
    losses: int
    pushes: int
    profit: float
    win_rate: float
    roi: float

    # Significance vs break-even; None without decided bets
    p_value: Optional[float] = None
    ci_lower: Optional[float] = None
    ci_upper: Optional[float] = None

    @property
    def label(self) -> str:
        return f"{self.edge_min:g}-{self.edge_max:g}"

    @property
    def is_significant(self) -> bool:
        return self.p_value is not None and self.p_value < 0.05

    def to_dict(self) -> dict:
        return {
            "edge_min": self.edge_min,
            "edge_max": self.edge_max,
            "count": self.count,
            "wins": self.wins,
            "losses": self.losses,
            "pushes": self.pushes,
            "profit": self.profit,
            "win_rate": self.win_rate,
            "roi": self.roi,
            "p_value": self.p_value,
            "ci_lower": self.ci_lower,
            "ci_upper": self.ci_upper,
        }


@dataclass
class CalibrationCurve:
    """Bucketed calibration plus cumulative win rates."""

    buckets: list[CalibrationBucket]
    overall: RecordStats
    break_even: float
    cumulative: dict[float, Optional[float]] = field(default_factory=dict)
    cumulative_counts: dict[float, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.overall.count

    def bucket_for(self, edge: float) -> Optional[CalibrationBucket]:
        magnitude = abs(edge)
        for bucket in self.buckets:
            if bucket.edge_min <= magnitude < bucket.edge_max:
                return bucket
        return None

    def win_probability(self, edge: float) -> float:
        """
        Estimated win probability for an edge.

        Uses the bucket's rate, or the cumulative rate from the bucket floor
        when the bucket is too small, or the overall rate outside any bucket.
        """
        bucket = self.bucket_for(edge)
        if bucket is None:
            return self.overall.win_rate
        if bucket.count < MIN_BUCKET_SAMPLE:
            cumulative = self.cumulative.get(bucket.edge_min)
            if cumulative is not None:
                return cumulative
        return bucket.win_rate

    def to_polars(self) -> pl.DataFrame:
        return pl.DataFrame(
            [b.to_dict() for b in self.buckets],
            schema={
                "edge_min": pl.Float64,
                "edge_max": pl.Float64,
                "count": pl.Int64,
                "wins": pl.Int64,
                "losses": pl.Int64,
                "pushes": pl.Int64,
                "profit": pl.Float64,
                "win_rate": pl.Float64,
                "roi": pl.Float64,
                "p_value": pl.Float64,
                "ci_lower": pl.Float64,
                "ci_upper": pl.Float64,
            },
        )

    def to_markdown_table(self) -> str:
        """Generate a markdown table of the buckets."""
        lines = [
            "| Edge | Bets | W-L-P | Win Rate | ROI | p-value |",
            "|------|------|-------|----------|-----|---------|",
        ]
        for b in self.buckets:
            if b.count == 0:
                continue
            p = f"{b.p_value:.3f}" if b.p_value is not None else "-"
            lines.append(
                f"| {b.label} | {b.count} | {b.wins}-{b.losses}-{b.pushes} | "
                f"{b.win_rate:.1%} | {b.roi:+.1%} | {p} |"
            )
        return "\n".join(lines)


def _significance(wins: int, decided: int, break_even: float) -> tuple[Optional[float], Optional[float], Optional[float]]:
    if decided == 0:
        return None, None, None
    result = stats.binomtest(wins, decided, break_even, alternative="greater")
    ci = result.proportion_ci(confidence_level=0.95)
    return float(result.pvalue), float(ci.low), float(ci.high)


def bucket_bounds(start: float, width: float, max_edge: float) -> list[tuple[float, float]]:
    """Bucket bounds [start, start+w), ... covering edges up to max_edge."""
    if width <= 0:
        raise ValueError("bucket width must be positive")
    if max_edge < start:
        return []
    # Rounded so non-dyadic widths such as 0.1 keep exact boundaries
    n = int(math.floor(round((max_edge - start) / width, 9))) + 1
    return [
        (round(start + i * width, 6), round(start + (i + 1) * width, 6))
        for i in range(n)
    ]


def build_calibration(
    edges: Sequence[float],
    outcomes: Sequence[Outcome],
    start: float = 0.0,
    width: float = 2.0,
    american_odds: int = STANDARD_ODDS,
    thresholds: Sequence[float] = CUMULATIVE_THRESHOLDS,
) -> CalibrationCurve:
    """
    Build a calibration curve from graded picks.

    Args:
        edges: Edge per pick (sign ignored)
        outcomes: Outcome per pick
        start: Lower bound of the first bucket
        width: Bucket width in points
        american_odds: Price used for profit and break-even
        thresholds: Cumulative win-rate thresholds

    Returns:
        CalibrationCurve
    """
    if len(edges) != len(outcomes):
        raise ValueError("edges and outcomes must have the same length")

    magnitudes = np.abs(np.asarray(edges, dtype=float))
    outcome_arr = np.asarray([o.value for o in outcomes], dtype=object)
    break_even = break_even_win_rate(american_odds)

    buckets = []
    max_edge = float(magnitudes.max()) if len(magnitudes) else start
    for low, high in bucket_bounds(start, width, max_edge):
        mask = (magnitudes >= low) & (magnitudes < high)
        record = record_stats([Outcome(v) for v in outcome_arr[mask]], american_odds)
        p_value, ci_lower, ci_upper = _significance(record.wins, record.decided, break_even)
        buckets.append(CalibrationBucket(
            edge_min=low,
            edge_max=high,
            count=record.count,
            wins=record.wins,
            losses=record.losses,
            pushes=record.pushes,
            profit=record.profit,
            win_rate=record.win_rate,
            roi=record.roi,
            p_value=p_value,
            ci_lower=ci_lower,
            ci_upper=ci_upper,
        ))

    cumulative = {}
    cumulative_counts = {}
    for threshold in sorted(set(thresholds) | {b.edge_min for b in buckets}):
        record = record_stats(
            [Outcome(v) for v in outcome_arr[magnitudes >= threshold]], american_odds
        )
        cumulative[threshold] = record.win_rate if record.decided else None
        cumulative_counts[threshold] = record.count

    return CalibrationCurve(
        buckets=buckets,
        overall=record_stats(list(outcomes), american_odds),
        break_even=break_even,
        cumulative=cumulative,
        cumulative_counts=cumulative_counts,
    )


def confidence_tier(edge: float, win_probability: float) -> str:
    """Confidence tier from edge size and calibrated win probability."""
    magnitude = abs(edge)
    if magnitude >= 3 and win_probability >= 0.58:
        return "very-high"
    if magnitude >= 2 and win_probability >= 0.55:
        return "high"
    if magnitude >= 1 and win_probability >= 0.53:
        return "medium"
    if magnitude >= 0.5 and win_probability >= 0.51:
        return "low"
    return "skip"
