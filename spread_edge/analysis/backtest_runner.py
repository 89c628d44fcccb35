"""
Point-in-time backtesting of the edge pipeline.

Replays projection, edge calculation and qualification over historical
games using only what was known at the decision label, then grades the
qualifying picks and aggregates calibration statistics.

Provides:
- Config validation that fails before any computation
- Bounded concurrent per-game evaluation
- Deterministic ordering of picks regardless of completion order
- Calibration buckets, per-market/per-provider splits and CLV summary
"""
import asyncio
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

import numpy as np
import polars as pl
from loguru import logger
from pydantic import ValidationError

from spread_edge.betting.edge_calculator import EdgeCalculator
from spread_edge.betting.edge_materializer import bet_id_for
from spread_edge.betting.odds_converter import calculate_profit
from spread_edge.betting.qualification import QualificationEngine
from spread_edge.config.constants import LineLabel, MarketType, Outcome, Side, STANDARD_ODDS
from spread_edge.config.settings import BacktestSettings, EdgeSettings, QualificationSettings
from spread_edge.data.ratings import RatingLookup
from spread_edge.data.sources.base import DataSourceError, DateRange, LineDataSource
from spread_edge.database.schemas import BetRecord, Edge, Game, LineSnapshot
from spread_edge.errors import EngineError, InvalidConfigError, MissingLineError, MissingRatingError
from spread_edge.models.projector import ModelProjector, Projection
from spread_edge.tracking.grading import compute_clv, grade_outcome

from .calibration import CalibrationCurve, RecordStats, build_calibration, record_stats
from .clv_analysis import CLVSummary, summarize_clv


# =============================================================================
# CONFIG
# =============================================================================
@dataclass
class BacktestConfig:
    """Parameters for one backtest run."""

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    seasons: Optional[list[int]] = None
    edge_threshold: float = 1.0
    total_edge_threshold: Optional[float] = None
    min_spread: float = 0.0
    max_spread: float = 21.0
    decision_label: LineLabel = LineLabel.T60
    providers: Optional[list[str]] = None
    markets: tuple[MarketType, ...] = (MarketType.SPREAD, MarketType.TOTAL)
    american_odds: int = STANDARD_ODDS
    bucket_width: float = 2.0
    max_concurrency: int = 8

    @classmethod
    def from_settings(
        cls,
        backtest: Optional[BacktestSettings] = None,
        qualification: Optional[QualificationSettings] = None,
        **overrides,
    ) -> "BacktestConfig":
        """Build a config from settings, with explicit overrides on top."""
        backtest = backtest or BacktestSettings()
        qualification = qualification or QualificationSettings()
        values = {
            "edge_threshold": qualification.min_edge_threshold,
            "total_edge_threshold": qualification.min_total_edge_threshold,
            "min_spread": qualification.min_spread,
            "max_spread": qualification.max_spread,
            "decision_label": backtest.decision_label,
            "american_odds": backtest.american_odds,
            "bucket_width": backtest.bucket_width,
            "max_concurrency": backtest.max_concurrency,
        }
        values.update(overrides)
        return cls(**values)

    @property
    def date_range(self) -> Optional[DateRange]:
        if self.start_date is None or self.end_date is None:
            return None
        return DateRange(self.start_date, self.end_date)

    def validate(self, known_seasons: Optional[list[int]] = None) -> None:
        """
        Check the config is runnable.

        Raises:
            InvalidConfigError: On any malformed or unknown value
        """
        if self.start_date is None and self.end_date is None and not self.seasons:
            raise InvalidConfigError("Backtest needs a date range or seasons")
        if (self.start_date is None) != (self.end_date is None):
            raise InvalidConfigError("start_date and end_date must be given together")
        if self.start_date is not None and self.end_date < self.start_date:
            raise InvalidConfigError(
                f"end_date {self.end_date} is before start_date {self.start_date}"
            )
        if self.seasons and known_seasons is not None:
            unknown = sorted(set(self.seasons) - set(known_seasons))
            if unknown:
                raise InvalidConfigError(f"Unknown seasons: {unknown}")
        if self.edge_threshold < 0:
            raise InvalidConfigError("edge_threshold must be non-negative")
        if self.decision_label == LineLabel.CLOSE:
            raise InvalidConfigError("decision_label cannot be the closing snapshot")
        if not self.markets:
            raise InvalidConfigError("At least one market is required")
        if len(set(self.markets)) != len(self.markets):
            raise InvalidConfigError(f"Duplicate markets: {[m.value for m in self.markets]}")
        if self.providers is not None and len(set(self.providers)) != len(self.providers):
            raise InvalidConfigError(f"Duplicate providers: {list(self.providers)}")
        if -100 < self.american_odds < 100:
            raise InvalidConfigError("american_odds must be <= -100 or >= 100")
        if self.bucket_width <= 0:
            raise InvalidConfigError("bucket_width must be positive")
        if self.max_concurrency < 1:
            raise InvalidConfigError("max_concurrency must be at least 1")

    def qualification_settings(self) -> QualificationSettings:
        try:
            return QualificationSettings(
                min_edge_threshold=self.edge_threshold,
                min_total_edge_threshold=self.total_edge_threshold,
                min_spread=self.min_spread,
                max_spread=self.max_spread,
            )
        except ValidationError as e:
            raise InvalidConfigError(f"Invalid qualification settings: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "seasons": self.seasons,
            "edge_threshold": self.edge_threshold,
            "total_edge_threshold": self.total_edge_threshold,
            "min_spread": self.min_spread,
            "max_spread": self.max_spread,
            "decision_label": self.decision_label.value,
            "providers": self.providers,
            "markets": [m.value for m in self.markets],
            "american_odds": self.american_odds,
            "bucket_width": self.bucket_width,
            "max_concurrency": self.max_concurrency,
        }


# =============================================================================
# RESULTS
# =============================================================================
@dataclass
class BacktestPick:
    """A qualifying pick and how it graded."""

    game_id: str
    season: int
    start_time: datetime
    matchup: str
    provider: str
    market: MarketType
    side: Side
    line: float  # Bettor's side perspective
    market_line: float
    model_line: float
    raw_edge: float
    edge_points: float
    decided_at: datetime
    outcome: Outcome
    profit: float
    close_line: Optional[float] = None
    clv_points: Optional[float] = None

    @property
    def sort_key(self) -> tuple:
        return (self.start_time, self.game_id, self.provider, self.market.value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "game_id": self.game_id,
            "season": self.season,
            "start_time": self.start_time.isoformat(),
            "matchup": self.matchup,
            "provider": self.provider,
            "market": self.market.value,
            "side": self.side.value,
            "line": self.line,
            "market_line": self.market_line,
            "model_line": self.model_line,
            "raw_edge": self.raw_edge,
            "edge_points": self.edge_points,
            "decided_at": self.decided_at.isoformat(),
            "outcome": self.outcome.value,
            "profit": self.profit,
            "close_line": self.close_line,
            "clv_points": self.clv_points,
        }


@dataclass
class GameEvaluation:
    """Per-game output before merging."""

    picks: list[BacktestPick] = field(default_factory=list)
    skipped: Counter = field(default_factory=Counter)
    edges_evaluated: int = 0


def _stats_dict(record: RecordStats) -> dict[str, Any]:
    return {
        "count": record.count,
        "wins": record.wins,
        "losses": record.losses,
        "pushes": record.pushes,
        "profit": record.profit,
        "win_rate": record.win_rate,
        "roi": record.roi,
    }


@dataclass
class BacktestResult:
    """Complete backtest report."""

    config: BacktestConfig
    picks: list[BacktestPick]
    calibration: CalibrationCurve
    clv: CLVSummary
    skipped: dict[str, int]
    games_evaluated: int
    edges_evaluated: int
    by_market: dict[str, dict] = field(default_factory=dict)
    by_provider: dict[str, dict] = field(default_factory=dict)

    @property
    def overall(self) -> RecordStats:
        return self.calibration.overall

    @property
    def total_bets(self) -> int:
        return len(self.picks)

    @property
    def win_rate(self) -> float:
        return self.overall.win_rate

    @property
    def roi(self) -> float:
        return self.overall.roi

    @property
    def avg_edge(self) -> float:
        if not self.picks:
            return 0.0
        return float(np.mean([abs(p.edge_points) for p in self.picks]))

    @property
    def total_skipped(self) -> int:
        return sum(self.skipped.values())

    def summary(self) -> str:
        """Generate a summary report."""
        o = self.overall
        lines = [
            "=" * 70,
            f"BACKTEST @ {self.config.decision_label.value} "
            f"(edge >= {self.config.edge_threshold:g})",
            "=" * 70,
            f"Games: {self.games_evaluated} | Edges: {self.edges_evaluated} | "
            f"Bets: {self.total_bets} | Skipped: {self.total_skipped}",
            f"Record: {o.wins}-{o.losses}-{o.pushes}",
            f"Win Rate: {o.win_rate:.1%} (break-even {self.calibration.break_even:.1%})",
            f"Profit: {o.profit:+.2f}u | ROI: {o.roi:+.1%}",
            f"Avg Edge: {self.avg_edge:.2f} pts",
            self.clv.summary(),
            "",
            "BY EDGE:",
            self.calibration.to_markdown_table(),
        ]
        if self.skipped:
            lines.append("")
            lines.append("SKIPPED:")
            for reason, count in sorted(self.skipped.items()):
                lines.append(f"  {reason}: {count}")
        lines.append("=" * 70)
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "config": self.config.to_dict(),
            "games_evaluated": self.games_evaluated,
            "edges_evaluated": self.edges_evaluated,
            "total_bets": self.total_bets,
            "overall": _stats_dict(self.overall),
            "break_even": self.calibration.break_even,
            "avg_edge": self.avg_edge,
            "buckets": [b.to_dict() for b in self.calibration.buckets],
            "cumulative": {str(k): v for k, v in self.calibration.cumulative.items()},
            "by_market": self.by_market,
            "by_provider": self.by_provider,
            "clv": self.clv.to_dict(),
            "skipped": dict(sorted(self.skipped.items())),
            "picks": [p.to_dict() for p in self.picks],
        }

    def to_polars(self) -> pl.DataFrame:
        """Per-pick detail frame."""
        if not self.picks:
            return pl.DataFrame()
        return pl.DataFrame([p.to_dict() for p in self.picks])


# =============================================================================
# RUNNER
# =============================================================================
class BacktestRunner:
    """
    Replays the edge pipeline over final games.

    Example:
        >>> runner = BacktestRunner(store)
        >>> config = BacktestConfig(seasons=[2023], edge_threshold=2.0)
        >>> result = await runner.run(config)
        >>> print(result.summary())
    """

    def __init__(
        self,
        source: LineDataSource,
        projector: Optional[ModelProjector] = None,
        edge_settings: Optional[EdgeSettings] = None,
    ):
        self.source = source
        self.projector = projector or ModelProjector()
        self.edge_settings = edge_settings or EdgeSettings()
        self.logger = logger.bind(component="backtest_runner")

    async def run(self, config: BacktestConfig) -> BacktestResult:
        """
        Run a backtest.

        Raises:
            InvalidConfigError: Before any computation if the config is invalid
        """
        config.validate(await self.source.list_seasons())
        calculator = EdgeCalculator(
            self.edge_settings,
            QualificationEngine(config.qualification_settings()),
        )

        games = await self.source.list_final_games(config.date_range, config.seasons)
        self.logger.info(
            f"Backtesting {len(games)} games at {config.decision_label.value}, "
            f"edge >= {config.edge_threshold:g}"
        )

        semaphore = asyncio.Semaphore(config.max_concurrency)

        async def _bounded(game: Game) -> GameEvaluation:
            async with semaphore:
                return await self._evaluate_game(game, config, calculator)

        evaluations = await asyncio.gather(*(_bounded(g) for g in games))

        picks: list[BacktestPick] = []
        skipped: Counter = Counter()
        edges_evaluated = 0
        for evaluation in evaluations:
            picks.extend(evaluation.picks)
            skipped.update(evaluation.skipped)
            edges_evaluated += evaluation.edges_evaluated
        picks.sort(key=lambda p: p.sort_key)

        result = self._aggregate(config, picks, dict(skipped), len(games), edges_evaluated)
        self.logger.info(
            f"Backtest complete: {result.total_bets} bets, "
            f"{result.win_rate:.1%} win rate, {result.roi:+.1%} ROI, "
            f"{result.total_skipped} skipped"
        )
        return result

    async def _evaluate_game(
        self,
        game: Game,
        config: BacktestConfig,
        calculator: EdgeCalculator,
    ) -> GameEvaluation:
        evaluation = GameEvaluation()
        # One projection per decision moment; providers may capture at different times
        projections: dict[datetime, Projection] = {}

        for market in config.markets:
            try:
                providers = await self.source.list_providers(game.id, market)
            except DataSourceError as e:
                self.logger.warning(f"Data source error for {game.id}/{market.value}: {e}")
                evaluation.skipped["data source error"] += 1
                continue
            if config.providers is not None:
                providers = [p for p in providers if p in config.providers]

            # Errors are tallied per (market, provider) line
            for provider in providers:
                try:
                    await self._evaluate_line(
                        game, market, provider, config, calculator, projections, evaluation
                    )
                except MissingLineError:
                    evaluation.skipped["missing line"] += 1
                except MissingRatingError as e:
                    self.logger.debug(f"Skipping {game.id}/{provider}: {e}")
                    evaluation.skipped["missing rating"] += 1
                except DataSourceError as e:
                    self.logger.warning(
                        f"Data source error for {game.id}/{market.value}/{provider}: {e}"
                    )
                    evaluation.skipped["data source error"] += 1
                except EngineError as e:
                    self.logger.debug(f"Skipping {game.id}/{provider}: {e}")
                    evaluation.skipped[type(e).__name__] += 1

        return evaluation

    async def _evaluate_line(
        self,
        game: Game,
        market: MarketType,
        provider: str,
        config: BacktestConfig,
        calculator: EdgeCalculator,
        projections: dict[datetime, Projection],
        evaluation: GameEvaluation,
    ) -> None:
        snapshot = await self.source.get_line_snapshot(
            game.id, provider, market, config.decision_label
        )
        if snapshot is None:
            raise MissingLineError(game.id, provider, market.value, config.decision_label.value)
        if snapshot.captured_at > game.start_time:
            evaluation.skipped["snapshot after kickoff"] += 1
            return

        decided_at = snapshot.captured_at
        if decided_at not in projections:
            projections[decided_at] = await self.projector.project_game(
                game, RatingLookup(self.source, as_of=decided_at)
            )

        edge = calculator.compute_edge(projections[decided_at], snapshot)
        evaluation.edges_evaluated += 1
        if edge.qualifies:
            evaluation.picks.append(await self._grade_pick(game, snapshot, edge, config))

    async def _grade_pick(
        self,
        game: Game,
        snapshot: LineSnapshot,
        edge: Edge,
        config: BacktestConfig,
    ) -> BacktestPick:
        # Outcome and close are only read after the decision is fixed
        outcome = grade_outcome(edge.market, edge.recommended_side, edge.side_line, game)
        bet = BetRecord(
            id=bet_id_for(edge),
            game_id=game.id,
            provider=edge.provider,
            market=edge.market,
            side=edge.recommended_side,
            line=edge.side_line,
            price_american=config.american_odds,
            edge_points=edge.edge_points,
            placed_at=snapshot.captured_at,
        )
        try:
            close = await self.source.get_line_snapshot(
                game.id, edge.provider, edge.market, LineLabel.CLOSE
            )
        except DataSourceError as e:
            # The pick stays graded; only CLV is lost
            self.logger.warning(f"Close unavailable for {bet.id}: {e}")
            close = None
        clv = compute_clv(bet, close)

        return BacktestPick(
            game_id=game.id,
            season=game.season,
            start_time=game.start_time,
            matchup=game.matchup,
            provider=edge.provider,
            market=edge.market,
            side=edge.recommended_side,
            line=edge.side_line,
            market_line=edge.market_line,
            model_line=edge.model_line,
            raw_edge=edge.raw_edge,
            edge_points=edge.edge_points,
            decided_at=snapshot.captured_at,
            outcome=outcome,
            profit=calculate_profit(outcome, config.american_odds),
            close_line=clv.close_line,
            clv_points=clv.clv_points,
        )

    def _aggregate(
        self,
        config: BacktestConfig,
        picks: list[BacktestPick],
        skipped: dict[str, int],
        games_evaluated: int,
        edges_evaluated: int,
    ) -> BacktestResult:
        floor = config.edge_threshold
        if config.total_edge_threshold is not None:
            floor = min(floor, config.total_edge_threshold)
        calibration = build_calibration(
            [p.edge_points for p in picks],
            [p.outcome for p in picks],
            start=floor,
            width=config.bucket_width,
            american_odds=config.american_odds,
        )
        clv = summarize_clv(
            [p.clv_points for p in picks],
            groups=[p.market.value for p in picks],
        )

        by_market = {}
        for market in sorted({p.market.value for p in picks}):
            outcomes = [p.outcome for p in picks if p.market.value == market]
            by_market[market] = _stats_dict(record_stats(outcomes, config.american_odds))

        by_provider = {}
        for provider in sorted({p.provider for p in picks}):
            outcomes = [p.outcome for p in picks if p.provider == provider]
            by_provider[provider] = _stats_dict(record_stats(outcomes, config.american_odds))

        return BacktestResult(
            config=config,
            picks=picks,
            calibration=calibration,
            clv=clv,
            skipped=skipped,
            games_evaluated=games_evaluated,
            edges_evaluated=edges_evaluated,
            by_market=by_market,
            by_provider=by_provider,
        )


async def run_backtest(
    source: LineDataSource,
    config: BacktestConfig,
    projector: Optional[ModelProjector] = None,
) -> BacktestResult:
    """Convenience wrapper around ``BacktestRunner.run``."""
    return await BacktestRunner(source, projector=projector).run(config)
