"""
Performance summary over recorded bets.

Summarizes graded bet records by outcome, profit and closing line value,
with per-market and per-provider splits.
"""
from dataclasses import dataclass, field
from typing import Iterable, Optional

import numpy as np

from spread_edge.betting.odds_converter import calculate_profit
from spread_edge.config.constants import Outcome
from spread_edge.database.schemas import BetRecord


@dataclass
class PerformanceSummary:
    """Summary of betting performance."""

    total_bets: int
    pending_bets: int
    settled_bets: int

    # Win/Loss
    wins: int
    losses: int
    pushes: int
    win_rate: float  # Pushes excluded

    # Financial (units)
    total_staked: float
    net_profit: float
    roi: float

    # Model
    avg_edge: float
    avg_clv: Optional[float]  # None when no settled bet has a close
    clv_unavailable: int

    by_market: dict[str, dict] = field(default_factory=dict)
    by_provider: dict[str, dict] = field(default_factory=dict)

    def summary(self) -> str:
        clv = f"{self.avg_clv:+.2f}" if self.avg_clv is not None else "n/a"
        return (
            f"{self.settled_bets} settled ({self.wins}W-{self.losses}L-{self.pushes}P), "
            f"win rate {self.win_rate:.1%}, ROI {self.roi:+.1%}, "
            f"profit {self.net_profit:+.2f}u, avg CLV {clv}, "
            f"{self.pending_bets} pending"
        )


def _group_stats(bets: list[BetRecord]) -> dict:
    wins = sum(1 for b in bets if b.outcome == Outcome.WIN)
    losses = sum(1 for b in bets if b.outcome == Outcome.LOSS)
    profit = sum(calculate_profit(b.outcome, b.price_american, b.stake) for b in bets)
    # Pushes refund the stake, so ROI is over decided bets only
    risked = sum(b.stake for b in bets if b.outcome != Outcome.PUSH)
    return {
        "count": len(bets),
        "wins": wins,
        "losses": losses,
        "win_rate": wins / (wins + losses) if wins + losses else 0.0,
        "profit": profit,
        "roi": profit / risked if risked > 0 else 0.0,
    }


def summarize_bets(records: Iterable[BetRecord]) -> PerformanceSummary:
    """
    Build a performance summary from bet records.

    Pending bets are counted but excluded from outcome and profit stats.
    """
    bets = list(records)
    settled = [b for b in bets if b.is_graded]
    pending = [b for b in bets if not b.is_graded]

    stats = _group_stats(settled)
    total_staked = sum(b.stake for b in settled)

    clv_values = [b.clv_points for b in settled if b.clv_points is not None]
    avg_clv = float(np.mean(clv_values)) if clv_values else None
    avg_edge = float(np.mean([abs(b.edge_points) for b in bets])) if bets else 0.0

    by_market = {}
    by_provider = {}
    for key, target in (("market", by_market), ("provider", by_provider)):
        groups: dict[str, list[BetRecord]] = {}
        for bet in settled:
            name = bet.market.value if key == "market" else bet.provider
            groups.setdefault(name, []).append(bet)
        for name in sorted(groups):
            target[name] = _group_stats(groups[name])

    return PerformanceSummary(
        total_bets=len(bets),
        pending_bets=len(pending),
        settled_bets=len(settled),
        wins=stats["wins"],
        losses=stats["losses"],
        pushes=len(settled) - stats["wins"] - stats["losses"],
        win_rate=stats["win_rate"],
        total_staked=total_staked,
        net_profit=stats["profit"],
        roi=stats["roi"],
        avg_edge=avg_edge,
        avg_clv=avg_clv,
        clv_unavailable=len(settled) - len(clv_values),
        by_market=by_market,
        by_provider=by_provider,
    )
