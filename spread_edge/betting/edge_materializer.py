"""
Live edge materialization.

For upcoming games, projects each matchup, compares it with the latest
snapshot at the configured label for every provider and market, upserts
the resulting edge and records a pending bet for each qualifying edge.
Re-running is safe: edges are replaced wholesale and bet ids are
deterministic, so existing bets are left alone.
"""
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from loguru import logger

from spread_edge.config.constants import LABEL_ORDER, LineLabel, MarketType
from spread_edge.data.ratings import RatingLookup
from spread_edge.data.sources.base import DataSourceError, DateRange, EngineSink, LineDataSource
from spread_edge.database.schemas import BetRecord, Edge, Game, LineSnapshot, SituationalContext
from spread_edge.errors import MissingLineError, MissingRatingError
from spread_edge.models.projector import ModelProjector, Projection

from .edge_calculator import EdgeCalculator


def bet_id_for(edge: Edge) -> str:
    """Deterministic bet id so one edge yields at most one bet."""
    return f"{edge.game_id}:{edge.market.value}:{edge.provider}"


@dataclass
class MaterializeSummary:
    """Counts from one materialization run."""

    games: int = 0
    edges: int = 0
    qualifying: int = 0
    bets_created: int = 0
    bets_existing: int = 0
    skipped: Counter = field(default_factory=Counter)

    def to_dict(self) -> dict[str, Any]:
        return {
            "games": self.games,
            "edges": self.edges,
            "qualifying": self.qualifying,
            "bets_created": self.bets_created,
            "bets_existing": self.bets_existing,
            "skipped": dict(self.skipped),
        }

    def summary(self) -> str:
        return (
            f"{self.games} games, {self.edges} edges, {self.qualifying} qualifying, "
            f"{self.bets_created} new bets ({self.bets_existing} existing), "
            f"skipped {sum(self.skipped.values())}"
        )


class EdgeMaterializer:
    """
    Writes current edges and pending bets for upcoming games.

    Example:
        >>> materializer = EdgeMaterializer(store, store)
        >>> summary = await materializer.materialize(DateRange(today, today))
    """

    def __init__(
        self,
        source: LineDataSource,
        sink: EngineSink,
        projector: Optional[ModelProjector] = None,
        calculator: Optional[EdgeCalculator] = None,
        label: LineLabel = LineLabel.T60,
        markets: tuple[MarketType, ...] = (MarketType.SPREAD, MarketType.TOTAL),
    ):
        self.source = source
        self.sink = sink
        self.projector = projector or ModelProjector()
        self.calculator = calculator or EdgeCalculator()
        self.label = label
        self.markets = markets
        self.logger = logger.bind(component="materializer")

    async def latest_snapshot(
        self,
        game_id: str,
        provider: str,
        market: MarketType,
    ) -> LineSnapshot:
        """
        Snapshot at the configured label, else the latest earlier label.

        Raises:
            MissingLineError: If no label up to the configured one was captured
        """
        eligible = LABEL_ORDER[: LABEL_ORDER.index(self.label) + 1]
        for label in reversed(eligible):
            snapshot = await self.source.get_line_snapshot(game_id, provider, market, label)
            if snapshot is not None:
                return snapshot
        raise MissingLineError(game_id, provider, market.value, self.label.value)

    async def materialize(
        self,
        date_range: DateRange,
        now: Optional[datetime] = None,
        situational: Optional[dict[str, SituationalContext]] = None,
    ) -> MaterializeSummary:
        """
        Materialize edges for games starting in a date range.

        A data source failure skips only the affected game or line; the run
        continues with the rest.

        Args:
            date_range: Games whose kickoff falls in this range
            now: Computation time (ratings are read as of this moment)
            situational: Optional rest and travel context keyed by game id

        Returns:
            MaterializeSummary with counts and skips by reason
        """
        now = now or datetime.now(timezone.utc)
        situational = situational or {}
        lookup = RatingLookup(self.source, as_of=now)
        summary = MaterializeSummary()

        games = await self.source.list_upcoming_games(date_range)
        for game in games:
            summary.games += 1
            try:
                projection = await self.projector.project_game(
                    game, lookup, situational.get(game.id)
                )
            except MissingRatingError as e:
                self.logger.debug(f"{e}; writing incomplete edges")
                summary.skipped["missing rating"] += 1
                projection = None
            except DataSourceError as e:
                self.logger.warning(f"Data source error for {game.id}: {e}")
                summary.skipped["data source error"] += 1
                continue

            await self._materialize_game(game, projection, now, summary)

        self.logger.info(summary.summary())
        return summary

    async def _materialize_game(
        self,
        game: Game,
        projection: Optional[Projection],
        now: datetime,
        summary: MaterializeSummary,
    ) -> None:
        for market in self.markets:
            try:
                providers = await self.source.list_providers(game.id, market)
            except DataSourceError as e:
                self.logger.warning(f"Data source error for {game.id}/{market.value}: {e}")
                summary.skipped["data source error"] += 1
                continue

            for provider in providers:
                try:
                    await self._materialize_line(game, market, provider, projection, now, summary)
                except MissingLineError:
                    summary.skipped["missing line"] += 1
                except DataSourceError as e:
                    self.logger.warning(
                        f"Data source error for {game.id}/{market.value}/{provider}: {e}"
                    )
                    summary.skipped["data source error"] += 1

    async def _materialize_line(
        self,
        game: Game,
        market: MarketType,
        provider: str,
        projection: Optional[Projection],
        now: datetime,
        summary: MaterializeSummary,
    ) -> None:
        snapshot = await self.latest_snapshot(game.id, provider, market)

        edge = self.calculator.compute_edge(projection, snapshot, as_of=now)
        await self.sink.upsert_edge(edge)
        summary.edges += 1

        if not edge.qualifies:
            return
        summary.qualifying += 1

        record = BetRecord(
            id=bet_id_for(edge),
            game_id=edge.game_id,
            provider=edge.provider,
            market=edge.market,
            side=edge.recommended_side,
            line=edge.side_line,
            price_american=edge.price_american,
            edge_points=edge.edge_points,
            placed_at=now,
        )
        if await self.sink.create_bet_record(record):
            summary.bets_created += 1
            self.logger.info(
                f"New bet {record.id}: {game.matchup} {record.description} "
                f"(edge {edge.edge_points:+.1f})"
            )
        else:
            summary.bets_existing += 1
