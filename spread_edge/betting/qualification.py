"""
Bet qualification rule table.

Rules are evaluated in order and the first match wins:

1. Absolute edge below the market's threshold -> "edge below threshold"
2. Spread outside the admissible band -> "spread outside band"
3. Missing market or model line -> "incomplete data"
4. Otherwise -> "edge X exceeds threshold Y"

A missing edge cannot match rule 1 and falls through to rule 3.
"""
from dataclasses import dataclass
from typing import Optional

from spread_edge.config.constants import MarketType
from spread_edge.config.settings import QualificationSettings

REASON_BELOW_THRESHOLD = "edge below threshold"
REASON_OUTSIDE_BAND = "spread outside band"
REASON_INCOMPLETE = "incomplete data"
REASON_NO_SIDE = "no edge"


@dataclass(frozen=True)
class QualificationDecision:
    """Outcome of running the rule table."""

    qualifies: bool
    reason: str
    threshold: float

    def __bool__(self) -> bool:
        return self.qualifies


class QualificationEngine:
    """
    Stateless qualification rules.

    Example:
        >>> engine = QualificationEngine()
        >>> engine.qualifies(2.5, 10.0, MarketType.SPREAD)
        QualificationDecision(qualifies=True, reason='edge 2.5 exceeds threshold 1.0', threshold=1.0)
    """

    def __init__(self, settings: Optional[QualificationSettings] = None):
        self.settings = settings or QualificationSettings()

    def threshold(self, market: MarketType) -> float:
        return self.settings.threshold_for(market.value)

    def in_band(self, spread_size: float) -> bool:
        return self.settings.min_spread <= spread_size < self.settings.max_spread

    def qualifies(
        self,
        edge_points: Optional[float],
        spread_size: Optional[float],
        market: MarketType,
    ) -> QualificationDecision:
        """
        Decide whether an edge is bettable.

        Args:
            edge_points: Capped edge, None when either line is missing
            spread_size: Absolute market spread (spreads only)
            market: Market type

        Returns:
            QualificationDecision with the first matching rule's reason
        """
        threshold = self.threshold(market)

        if edge_points is not None and abs(edge_points) < threshold:
            return QualificationDecision(False, REASON_BELOW_THRESHOLD, threshold)

        if (
            market == MarketType.SPREAD
            and spread_size is not None
            and not self.in_band(spread_size)
        ):
            return QualificationDecision(False, REASON_OUTSIDE_BAND, threshold)

        if edge_points is None or (market == MarketType.SPREAD and spread_size is None):
            return QualificationDecision(False, REASON_INCOMPLETE, threshold)

        return QualificationDecision(
            True,
            f"edge {abs(edge_points):.1f} exceeds threshold {threshold:.1f}",
            threshold,
        )
