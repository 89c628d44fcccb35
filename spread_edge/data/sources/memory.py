"""
In-memory implementation of the engine's data-access interfaces.

Holds frozen inputs (games, line snapshots, rating history) and the engine's
own records (edges, bet records). Used for backtests over exported data and
in tests. Inputs can be loaded from polars DataFrames, CSV or Parquet files.
"""
from __future__ import annotations

import bisect
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

import polars as pl
from loguru import logger

from spread_edge.config.constants import LineLabel, MarketType, Outcome
from spread_edge.database.schemas import (
    BetRecord,
    Edge,
    Game,
    LineSnapshot,
    TeamRating,
    ensure_utc,
    validate_snapshot_order,
)
from spread_edge.errors import DuplicateSnapshotError

from .base import DateRange, EngineSink, LineDataSource

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _rating_sort_key(rating: TeamRating) -> datetime:
    # Ratings without as_of are treated as always known
    return rating.as_of.astimezone(timezone.utc) if rating.as_of else _EPOCH


class InMemoryStore(LineDataSource, EngineSink):
    """
    Dict-backed store implementing both the read and write interfaces.

    Example:
        >>> store = InMemoryStore.from_frames(games_df, lines_df, ratings_df)
        >>> game = await store.get_game("2023_01_UGA_TCU")
    """

    source_name = "memory"

    def __init__(self):
        self._games: dict[str, Game] = {}
        self._snapshots: dict[tuple[str, str, str, str], LineSnapshot] = {}
        # (team, season) -> versions sorted by as_of
        self._ratings: dict[tuple[str, int], list[TeamRating]] = {}
        self._edges: dict[tuple[str, str, str], Edge] = {}
        self._bets: dict[str, BetRecord] = {}
        self._lock = threading.Lock()
        self.logger = logger.bind(component="memory_store")

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------
    def add_game(self, game: Game) -> None:
        self._games[game.id] = game

    def add_games(self, games: Iterable[Game]) -> None:
        for game in games:
            self.add_game(game)

    def add_snapshot(self, snapshot: LineSnapshot) -> None:
        """
        Add a snapshot.

        Raises:
            DuplicateSnapshotError: If (game, provider, market, label) exists
            ValueError: If the snapshot breaks label chronology
        """
        key = snapshot.key
        if key in self._snapshots:
            raise DuplicateSnapshotError(*key)

        siblings = [
            s for s in self._snapshots.values()
            if s.game_id == snapshot.game_id
            and s.provider == snapshot.provider
            and s.market == snapshot.market
        ]
        validate_snapshot_order(siblings + [snapshot])
        self._snapshots[key] = snapshot

    def add_snapshots(self, snapshots: Iterable[LineSnapshot]) -> None:
        for snapshot in snapshots:
            self.add_snapshot(snapshot)

    def upsert_rating(self, rating: TeamRating) -> None:
        """
        Upsert a rating keyed on (team, season).

        A value with the same ``as_of`` overwrites; a new ``as_of`` is kept
        as a later version so point-in-time lookups stay possible.
        """
        versions = self._ratings.setdefault((rating.team, rating.season), [])
        keys = [_rating_sort_key(r) for r in versions]
        key = _rating_sort_key(rating)
        idx = bisect.bisect_left(keys, key)
        if idx < len(versions) and keys[idx] == key:
            versions[idx] = rating
        else:
            versions.insert(idx, rating)

    def upsert_ratings(self, ratings: Iterable[TeamRating]) -> None:
        for rating in ratings:
            self.upsert_rating(rating)

    @classmethod
    def from_frames(
        cls,
        games: pl.DataFrame,
        lines: pl.DataFrame,
        ratings: pl.DataFrame,
    ) -> "InMemoryStore":
        """Build a store from DataFrames whose columns match the schemas."""
        store = cls()
        store.add_games(Game.model_validate(row) for row in games.iter_rows(named=True))
        snapshots = [LineSnapshot.model_validate(row) for row in lines.iter_rows(named=True)]
        # Insert in label order so chronology checks see earlier labels first
        order = {label: i for i, label in enumerate(LineLabel)}
        snapshots.sort(key=lambda s: (s.game_id, s.provider, s.market.value, order[s.label]))
        store.add_snapshots(snapshots)
        store.upsert_ratings(
            TeamRating.model_validate(row) for row in ratings.iter_rows(named=True)
        )
        store.logger.info(
            f"Loaded {len(store._games)} games, {len(store._snapshots)} snapshots, "
            f"{sum(len(v) for v in store._ratings.values())} ratings"
        )
        return store

    @classmethod
    def from_files(
        cls,
        games_path: str | Path,
        lines_path: str | Path,
        ratings_path: str | Path,
    ) -> "InMemoryStore":
        """Build a store from CSV or Parquet files."""
        return cls.from_frames(
            _read_frame(games_path),
            _read_frame(lines_path),
            _read_frame(ratings_path),
        )

    # -------------------------------------------------------------------------
    # LineDataSource
    # -------------------------------------------------------------------------
    async def get_game(self, game_id: str) -> Optional[Game]:
        return self._games.get(game_id)

    async def list_final_games(
        self,
        date_range: Optional[DateRange] = None,
        seasons: Optional[list[int]] = None,
    ) -> list[Game]:
        games = [
            g for g in self._games.values()
            if g.is_final
            and (date_range is None or date_range.contains(g.start_time))
            and (seasons is None or g.season in seasons)
        ]
        return sorted(games, key=lambda g: (g.start_time, g.id))

    async def list_upcoming_games(self, date_range: DateRange) -> list[Game]:
        games = [
            g for g in self._games.values()
            if not g.is_final and date_range.contains(g.start_time)
        ]
        return sorted(games, key=lambda g: (g.start_time, g.id))

    async def list_seasons(self) -> list[int]:
        return sorted({g.season for g in self._games.values()})

    async def list_providers(self, game_id: str, market: MarketType) -> list[str]:
        return sorted({
            provider for (gid, provider, mkt, _label) in self._snapshots
            if gid == game_id and mkt == market.value
        })

    async def get_line_snapshot(
        self,
        game_id: str,
        provider: str,
        market: MarketType,
        label: LineLabel,
    ) -> Optional[LineSnapshot]:
        return self._snapshots.get((game_id, provider, market.value, label.value))

    async def get_team_rating(
        self,
        team: str,
        season: int,
        as_of: Optional[datetime] = None,
    ) -> Optional[TeamRating]:
        versions = self._ratings.get((team, season))
        if not versions:
            return None
        if as_of is None:
            return versions[-1]
        cutoff = ensure_utc(as_of)
        eligible = [
            r for r in versions
            if r.as_of is None or r.as_of <= cutoff
        ]
        return eligible[-1] if eligible else None

    # -------------------------------------------------------------------------
    # EngineSink
    # -------------------------------------------------------------------------
    async def upsert_edge(self, edge: Edge) -> None:
        with self._lock:
            self._edges[edge.key] = edge

    def get_edge(self, game_id: str, market: MarketType, provider: str) -> Optional[Edge]:
        return self._edges.get((game_id, market.value, provider))

    @property
    def edges(self) -> list[Edge]:
        return [self._edges[k] for k in sorted(self._edges)]

    async def create_bet_record(self, record: BetRecord) -> bool:
        with self._lock:
            if record.id in self._bets:
                return False
            self._bets[record.id] = record.model_copy()
            return True

    async def get_bet_record(self, bet_id: str) -> Optional[BetRecord]:
        record = self._bets.get(bet_id)
        return record.model_copy() if record is not None else None

    async def list_ungraded_bets(self) -> list[BetRecord]:
        with self._lock:
            pending = [b.model_copy() for b in self._bets.values() if b.outcome is None]
        return sorted(pending, key=lambda b: (b.placed_at, b.id))

    async def update_bet_outcome(
        self,
        bet_id: str,
        outcome: Outcome,
        clv_points: Optional[float],
        graded_at: datetime,
    ) -> bool:
        with self._lock:
            current = self._bets.get(bet_id)
            if current is None:
                raise KeyError(f"Unknown bet record {bet_id}")
            if current.outcome is not None:
                return False
            self._bets[bet_id] = current.model_copy(
                update={"outcome": outcome, "clv_points": clv_points, "graded_at": graded_at}
            )
            return True


def _read_frame(path: str | Path) -> pl.DataFrame:
    path = Path(path)
    if path.suffix == ".parquet":
        return pl.read_parquet(path)
    if path.suffix == ".csv":
        return pl.read_csv(path, try_parse_dates=True)
    raise ValueError(f"Unsupported file type: {path.suffix}")
