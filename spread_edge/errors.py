"""
Error taxonomy for the edge engine.

Per-game errors (missing ratings, missing lines, unfinished games) are
recoverable: callers skip the game or retry later. Configuration errors are
fatal and raised before any computation starts.
"""
from typing import Optional


class EngineError(Exception):
    """Base exception for engine errors."""

    def __init__(
        self,
        message: str,
        game_id: Optional[str] = None,
        retry_allowed: bool = False,
    ):
        super().__init__(message)
        self.game_id = game_id
        self.retry_allowed = retry_allowed


class MissingRatingError(EngineError):
    """No team rating for the season or the prior season."""

    def __init__(self, team: str, season: int, game_id: Optional[str] = None):
        super().__init__(
            f"No rating for {team} in season {season} or {season - 1}",
            game_id=game_id,
        )
        self.team = team
        self.season = season


class MissingLineError(EngineError):
    """No line snapshot at the required label."""

    def __init__(
        self,
        game_id: str,
        provider: Optional[str],
        market: str,
        label: str,
    ):
        super().__init__(
            f"No {market} snapshot at '{label}' for game {game_id}"
            + (f" ({provider})" if provider else ""),
            game_id=game_id,
        )
        self.provider = provider
        self.market = market
        self.label = label


class GameNotFinalError(EngineError):
    """Grading attempted before the game concluded."""

    def __init__(self, game_id: str, status: str):
        super().__init__(
            f"Game {game_id} is not final (status={status})",
            game_id=game_id,
            retry_allowed=True,
        )
        self.status = status


class GameNotFoundError(EngineError):
    """Game referenced by a bet or edge does not exist."""

    def __init__(self, game_id: str):
        super().__init__(f"Game {game_id} not found", game_id=game_id)


class DuplicateSnapshotError(EngineError):
    """A snapshot already exists for (game, provider, market, label)."""

    def __init__(self, game_id: str, provider: str, market: str, label: str):
        super().__init__(
            f"Snapshot already exists for {game_id}/{provider}/{market}/{label}",
            game_id=game_id,
        )


class InvalidConfigError(EngineError):
    """Malformed backtest range, threshold or other configuration."""


class AlreadyGradedNoOp:
    """
    Sentinel returned when grading a bet that already has an outcome.

    Not an error: re-running grading is an idempotent skip.
    """

    __slots__ = ("bet_id", "outcome")

    def __init__(self, bet_id: str, outcome):
        self.bet_id = bet_id
        self.outcome = outcome

    def __repr__(self) -> str:
        return f"AlreadyGradedNoOp(bet_id={self.bet_id!r}, outcome={self.outcome!r})"
