"""
Abstract data-access interfaces for the edge engine.

The engine pulls games, line snapshots and team ratings from a
``LineDataSource`` and pushes edges, bet records and graded outcomes to an
``EngineSink``. Implementations own persistence and transport; the engine
never retries, it surfaces failures typed so the caller can decide.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from spread_edge.config.constants import LineLabel, MarketType, Outcome
from spread_edge.database.schemas import BetRecord, Edge, Game, LineSnapshot, TeamRating


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar date range."""

    start: date
    end: date

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError(f"end {self.end} is before start {self.start}")

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment.date() <= self.end


class DataSourceError(Exception):
    """Base exception for data source errors."""

    def __init__(
        self,
        message: str,
        source_name: str,
        original_error: Optional[Exception] = None,
        retry_allowed: bool = True,
    ):
        super().__init__(message)
        self.source_name = source_name
        self.original_error = original_error
        self.retry_allowed = retry_allowed


class RateLimitError(DataSourceError):
    """Error when rate limit is exceeded."""

    def __init__(
        self,
        source_name: str,
        retry_after_seconds: Optional[int] = None,
    ):
        super().__init__(
            f"Rate limit exceeded for {source_name}",
            source_name,
            retry_allowed=True,
        )
        self.retry_after_seconds = retry_after_seconds


class DataNotAvailableError(DataSourceError):
    """Error when requested data is not available."""

    def __init__(self, source_name: str, message: str):
        super().__init__(message, source_name, retry_allowed=False)


class LineDataSource(ABC):
    """
    Read-only access to games, line snapshots and team ratings.

    Lookups that find nothing return None; transport failures raise
    ``DataSourceError``.
    """

    source_name: str = "unknown"

    @abstractmethod
    async def get_game(self, game_id: str) -> Optional[Game]:
        """Fetch a single game."""

    @abstractmethod
    async def list_final_games(
        self,
        date_range: Optional[DateRange] = None,
        seasons: Optional[list[int]] = None,
    ) -> list[Game]:
        """List final games, ordered by start time then id."""

    @abstractmethod
    async def list_upcoming_games(self, date_range: DateRange) -> list[Game]:
        """List games not yet final whose start falls in the range."""

    @abstractmethod
    async def list_seasons(self) -> list[int]:
        """Seasons with at least one game."""

    @abstractmethod
    async def list_providers(self, game_id: str, market: MarketType) -> list[str]:
        """Providers with any snapshot for a game and market, sorted."""

    @abstractmethod
    async def get_line_snapshot(
        self,
        game_id: str,
        provider: str,
        market: MarketType,
        label: LineLabel,
    ) -> Optional[LineSnapshot]:
        """Fetch the snapshot for (game, provider, market, label)."""

    @abstractmethod
    async def get_team_rating(
        self,
        team: str,
        season: int,
        as_of: Optional[datetime] = None,
    ) -> Optional[TeamRating]:
        """
        Fetch a team's rating for a season.

        With ``as_of`` set, only values known at or before that moment are
        eligible, so historical replays never see post-hoc ratings.
        """


class EngineSink(ABC):
    """Write path for engine-owned records."""

    @abstractmethod
    async def upsert_edge(self, edge: Edge) -> None:
        """Replace the edge for (game, market, provider) wholesale."""

    @abstractmethod
    async def create_bet_record(self, record: BetRecord) -> bool:
        """Create a bet record; returns False if the id already exists."""

    @abstractmethod
    async def get_bet_record(self, bet_id: str) -> Optional[BetRecord]:
        """Fetch a bet record."""

    @abstractmethod
    async def list_ungraded_bets(self) -> list[BetRecord]:
        """Bet records whose outcome is still null."""

    @abstractmethod
    async def update_bet_outcome(
        self,
        bet_id: str,
        outcome: Outcome,
        clv_points: Optional[float],
        graded_at: datetime,
    ) -> bool:
        """
        Write a graded outcome only if the stored outcome is still null.

        Returns:
            True if this call wrote the outcome, False if it was already set
        """
