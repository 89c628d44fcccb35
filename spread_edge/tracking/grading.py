"""
Bet grading and closing line value.

Grades recorded bets against final scores and measures how the bet line
compared with the closing line. Grading is idempotent: a bet with an
outcome is never re-graded, and writes go through the sink's
compare-and-set so concurrent runs cannot double count.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Union

from loguru import logger

from spread_edge.betting.odds_converter import clv_points_to_cents
from spread_edge.config.constants import LineLabel, MarketType, Outcome, Side
from spread_edge.data.sources.base import DataSourceError, EngineSink, LineDataSource
from spread_edge.database.schemas import BetRecord, CLVRecord, Game, LineSnapshot, side_line
from spread_edge.errors import AlreadyGradedNoOp, EngineError, GameNotFinalError, GameNotFoundError


def grade_outcome(market: MarketType, side: Side, line: float, game: Game) -> Outcome:
    """
    Grade a side at a line against a final game.

    Args:
        market: Market type
        side: Side bet
        line: Line from the side's perspective (spreads) or posted total
        game: Final game

    Raises:
        GameNotFinalError: If the game has not concluded
    """
    if not game.is_final:
        raise GameNotFinalError(game.id, game.status.value)

    if market == MarketType.SPREAD:
        margin = game.home_margin if side == Side.HOME else -game.home_margin
        result = margin + line
    else:
        total = game.final_total
        result = total - line if side == Side.OVER else line - total

    if result == 0:
        return Outcome.PUSH
    return Outcome.WIN if result > 0 else Outcome.LOSS


def compute_clv(bet: BetRecord, close: Optional[LineSnapshot]) -> CLVRecord:
    """
    Closing line value for a bet; positive means the bettor beat the close.

    Spreads compare lines from the bettor's side (bet minus close). Totals
    reward overs for a rising close and unders for a falling one. A missing
    close leaves CLV unavailable rather than zero.
    """
    if close is None:
        return CLVRecord(bet_id=bet.id, market=bet.market, side=bet.side, bet_line=bet.line)

    close_line = side_line(bet.market, bet.side, close.line)
    if bet.market == MarketType.SPREAD:
        clv = bet.line - close_line
    elif bet.side == Side.OVER:
        clv = close_line - bet.line
    else:
        clv = bet.line - close_line

    return CLVRecord(
        bet_id=bet.id,
        market=bet.market,
        side=bet.side,
        bet_line=bet.line,
        close_line=close_line,
        clv_points=clv,
        clv_cents=clv_points_to_cents(clv),
    )


@dataclass
class GradeSummary:
    """Counts from one grading pass."""

    graded: int = 0
    wins: int = 0
    losses: int = 0
    pushes: int = 0
    clv_computed: int = 0
    clv_unavailable: int = 0
    not_final: int = 0
    already_graded: int = 0
    errors: int = 0

    def record(self, outcome: Outcome, clv: CLVRecord) -> None:
        self.graded += 1
        if outcome == Outcome.WIN:
            self.wins += 1
        elif outcome == Outcome.LOSS:
            self.losses += 1
        else:
            self.pushes += 1
        if clv.available:
            self.clv_computed += 1
        else:
            self.clv_unavailable += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "graded": self.graded,
            "wins": self.wins,
            "losses": self.losses,
            "pushes": self.pushes,
            "clv_computed": self.clv_computed,
            "clv_unavailable": self.clv_unavailable,
            "not_final": self.not_final,
            "already_graded": self.already_graded,
            "errors": self.errors,
        }

    def summary(self) -> str:
        return (
            f"Graded {self.graded} ({self.wins}W-{self.losses}L-{self.pushes}P), "
            f"CLV {self.clv_computed} computed / {self.clv_unavailable} unavailable, "
            f"{self.not_final} not final, {self.already_graded} already graded, "
            f"{self.errors} errors"
        )


class GradingEngine:
    """
    Grades bet records and writes outcomes back through the sink.

    Example:
        >>> engine = GradingEngine(store, store)
        >>> summary = await engine.grade_pending_bets()
        >>> print(summary.summary())
    """

    def __init__(self, source: LineDataSource, sink: EngineSink):
        self.source = source
        self.sink = sink
        self.logger = logger.bind(component="grading")

    def grade(self, bet: BetRecord, game: Game) -> Union[Outcome, AlreadyGradedNoOp]:
        """
        Grade a bet against its game.

        Returns:
            The outcome, or AlreadyGradedNoOp if the bet was already graded

        Raises:
            GameNotFinalError: If the game has not concluded
        """
        if bet.is_graded:
            return AlreadyGradedNoOp(bet.id, bet.outcome)
        return grade_outcome(bet.market, bet.side, bet.line, game)

    async def closing_line_value(self, bet: BetRecord) -> CLVRecord:
        close = await self.source.get_line_snapshot(
            bet.game_id, bet.provider, bet.market, LineLabel.CLOSE
        )
        return compute_clv(bet, close)

    async def grade_bet(
        self,
        bet: BetRecord,
        graded_at: Optional[datetime] = None,
    ) -> Union[Outcome, AlreadyGradedNoOp]:
        """
        Grade one bet and persist the result with compare-and-set.

        Raises:
            GameNotFoundError: If the bet's game does not exist
            GameNotFinalError: If the game has not concluded
        """
        result, _clv = await self._grade_and_write(bet, graded_at or datetime.now(timezone.utc))
        return result

    async def _grade_and_write(
        self,
        bet: BetRecord,
        graded_at: datetime,
    ) -> tuple[Union[Outcome, AlreadyGradedNoOp], Optional[CLVRecord]]:
        if bet.is_graded:
            return AlreadyGradedNoOp(bet.id, bet.outcome), None

        game = await self.source.get_game(bet.game_id)
        if game is None:
            raise GameNotFoundError(bet.game_id)

        outcome = self.grade(bet, game)
        clv = await self.closing_line_value(bet)
        written = await self.sink.update_bet_outcome(bet.id, outcome, clv.clv_points, graded_at)
        if not written:
            # Another run graded it between our read and write
            stored = await self.sink.get_bet_record(bet.id)
            return AlreadyGradedNoOp(bet.id, stored.outcome if stored else None), None
        return outcome, clv

    async def grade_pending_bets(self) -> GradeSummary:
        """Grade every ungraded bet whose game is final."""
        summary = GradeSummary()
        pending = await self.sink.list_ungraded_bets()
        graded_at = datetime.now(timezone.utc)

        for bet in pending:
            try:
                result, clv = await self._grade_and_write(bet, graded_at)
            except GameNotFinalError:
                summary.not_final += 1
                continue
            except (EngineError, DataSourceError) as e:
                self.logger.warning(f"Failed to grade bet {bet.id}: {e}")
                summary.errors += 1
                continue

            if isinstance(result, AlreadyGradedNoOp):
                summary.already_graded += 1
                continue

            summary.record(result, clv)
            self.logger.debug(f"Graded {bet.id} ({bet.description}): {result.value}")

        self.logger.info(summary.summary())
        return summary
