"""
Closing line value analysis.

Summarizes CLV across picks. Picks without a closing snapshot are counted
as unavailable and never averaged in as zero.
"""
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

from spread_edge.config.constants import CLV_CENTS_PER_POINT


@dataclass
class CLVSummary:
    """Aggregate closing line value."""

    available: int
    unavailable: int
    avg_clv: Optional[float]
    median_clv: Optional[float]
    positive_rate: Optional[float]  # Share of available picks that beat the close
    by_group: dict[str, dict] = field(default_factory=dict)

    @property
    def avg_clv_cents(self) -> Optional[int]:
        if self.avg_clv is None:
            return None
        return int(round(self.avg_clv * CLV_CENTS_PER_POINT))

    def to_dict(self) -> dict:
        return {
            "available": self.available,
            "unavailable": self.unavailable,
            "avg_clv": self.avg_clv,
            "median_clv": self.median_clv,
            "avg_clv_cents": self.avg_clv_cents,
            "positive_rate": self.positive_rate,
            "by_group": self.by_group,
        }

    def summary(self) -> str:
        if self.avg_clv is None:
            return f"CLV unavailable for all {self.unavailable} picks"
        return (
            f"Avg CLV {self.avg_clv:+.2f} pts ({self.avg_clv_cents:+d}c), "
            f"beat close {self.positive_rate:.1%} "
            f"({self.available} available, {self.unavailable} unavailable)"
        )


def _summarize(values: Sequence[Optional[float]]) -> CLVSummary:
    known = np.array([v for v in values if v is not None], dtype=float)
    if len(known) == 0:
        return CLVSummary(
            available=0,
            unavailable=len(values),
            avg_clv=None,
            median_clv=None,
            positive_rate=None,
        )
    return CLVSummary(
        available=len(known),
        unavailable=len(values) - len(known),
        avg_clv=float(np.mean(known)),
        median_clv=float(np.median(known)),
        positive_rate=float(np.mean(known > 0)),
    )


def summarize_clv(
    values: Sequence[Optional[float]],
    groups: Optional[Sequence[str]] = None,
) -> CLVSummary:
    """
    Summarize CLV values, optionally split by a group label per value.

    Args:
        values: CLV in points per pick, None where unavailable
        groups: Optional group label (e.g. market) per pick

    Returns:
        CLVSummary with per-group breakdowns when groups are given
    """
    result = _summarize(values)
    if groups is not None:
        if len(groups) != len(values):
            raise ValueError("groups and values must have the same length")
        for name in sorted(set(groups)):
            subset = [v for v, g in zip(values, groups) if g == name]
            result.by_group[name] = _summarize(subset).to_dict()
    return result
