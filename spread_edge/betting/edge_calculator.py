"""
Edge calculation between model projections and market lines.

Sign convention, used everywhere: ``edge = market_line - model_line``.

- Spreads (home perspective): positive means the market gives the home side
  more than the model thinks it needs, so bet HOME; negative bets AWAY.
- Totals: positive means the market total sits above the model, so bet
  UNDER; negative bets OVER.

The raw edge is retained. The capped edge (clamped to +/- max_edge_cap) is
what qualification and side selection use.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from spread_edge.config.constants import STANDARD_ODDS, MarketType, Side
from spread_edge.config.settings import EdgeSettings
from spread_edge.database.schemas import Edge, LineSnapshot
from spread_edge.models.projector import Projection

from .qualification import REASON_NO_SIDE, QualificationEngine

logger = logging.getLogger(__name__)


def recommended_side(market: MarketType, edge_points: Optional[float]) -> Optional[Side]:
    """Side implied by the sign of an edge; None for zero or missing edges."""
    if edge_points is None or edge_points == 0:
        return None
    if market == MarketType.SPREAD:
        return Side.HOME if edge_points > 0 else Side.AWAY
    return Side.UNDER if edge_points > 0 else Side.OVER


class EdgeCalculator:
    """
    Compares projections to market snapshots.

    Example:
        >>> calculator = EdgeCalculator()
        >>> edge = calculator.compute_edge(projection, snapshot)
        >>> print(edge.recommended_side, edge.edge_points, edge.qualification_reason)
    """

    def __init__(
        self,
        settings: Optional[EdgeSettings] = None,
        qualification: Optional[QualificationEngine] = None,
    ):
        self.settings = settings or EdgeSettings()
        self.qualification = qualification or QualificationEngine()

    def cap(self, raw_edge: float) -> float:
        limit = self.settings.max_edge_cap
        return max(-limit, min(limit, raw_edge))

    def compute_edge(
        self,
        projection: Optional[Projection],
        snapshot: Optional[LineSnapshot],
        *,
        game_id: Optional[str] = None,
        market: Optional[MarketType] = None,
        provider: Optional[str] = None,
        as_of: Optional[datetime] = None,
    ) -> Edge:
        """
        Compute the edge for one (game, market, provider).

        Either input may be missing; the edge is still produced with
        ``edge_points`` None so qualification reports incomplete data.

        Args:
            projection: Model projection for the game
            snapshot: Market snapshot at the decision label
            game_id, market, provider: Identify the edge when snapshot is None
            as_of: Computation timestamp (defaults to snapshot capture time)

        Returns:
            Edge with qualification decision applied
        """
        if snapshot is not None:
            game_id, market, provider = snapshot.game_id, snapshot.market, snapshot.provider
        if game_id is None or market is None or provider is None:
            raise ValueError("game_id, market and provider are required without a snapshot")
        if as_of is None:
            as_of = snapshot.captured_at if snapshot is not None else datetime.now(timezone.utc)

        model_line = projection.line_for(market) if projection is not None else None
        market_line = snapshot.line if snapshot is not None else None

        raw_edge = None
        edge_points = None
        if model_line is not None and market_line is not None:
            raw_edge = market_line - model_line
            edge_points = self.cap(raw_edge)

        spread_size = None
        if market == MarketType.SPREAD and market_line is not None:
            spread_size = abs(market_line)

        side = recommended_side(market, edge_points)
        decision = self.qualification.qualifies(edge_points, spread_size, market)
        qualifies, reason = decision.qualifies, decision.reason
        if qualifies and side is None:
            qualifies, reason = False, REASON_NO_SIDE

        if raw_edge is not None and raw_edge != edge_points:
            logger.debug(
                f"Capped {market.value} edge for {game_id}/{provider}: "
                f"{raw_edge:+.2f} -> {edge_points:+.2f}"
            )

        return Edge(
            game_id=game_id,
            market=market,
            provider=provider,
            label=snapshot.label if snapshot is not None else None,
            model_line=model_line,
            market_line=market_line,
            raw_edge=raw_edge,
            edge_points=edge_points,
            recommended_side=side,
            spread_size=spread_size,
            qualifies=qualifies,
            qualification_reason=reason,
            breakdown=projection.breakdown_for(market) if projection is not None else None,
            price_american=snapshot.price_american if snapshot is not None else STANDARD_ODDS,
            as_of=as_of,
        )
