"""
Pydantic schemas for engine inputs and outputs.

Games, line snapshots and team ratings are supplied by external
collaborators; edges, bet records and CLV records are produced by the
engine's write path.
"""
import math
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from spread_edge.config.constants import (
    BREAKDOWN_VERSION,
    LABEL_ORDER,
    GameStatus,
    LineLabel,
    MarketType,
    Outcome,
    Side,
    SIDES_BY_MARKET,
    STANDARD_ODDS,
    UNIT_STAKE,
)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so comparisons never mix naive and aware."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# =============================================================================
# INPUT SCHEMAS
# =============================================================================
class Game(BaseModel):
    """A scheduled or completed game."""

    model_config = ConfigDict(frozen=True)

    id: str
    season: int
    home_team: str
    away_team: str
    start_time: datetime
    status: GameStatus = GameStatus.SCHEDULED
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    week: Optional[int] = None
    neutral_site: bool = False

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @model_validator(mode="after")
    def validate_scores(self) -> "Game":
        has_scores = self.home_score is not None and self.away_score is not None
        partial = (self.home_score is None) != (self.away_score is None)
        if partial:
            raise ValueError("home_score and away_score must both be set or both be null")
        if self.status == GameStatus.FINAL and not has_scores:
            raise ValueError(f"final game {self.id} must have scores")
        if self.status != GameStatus.FINAL and has_scores:
            raise ValueError(f"game {self.id} has scores but status is {self.status.value}")
        return self

    @property
    def is_final(self) -> bool:
        return self.status == GameStatus.FINAL

    @property
    def home_margin(self) -> Optional[int]:
        """Home score minus away score, None until final."""
        if not self.is_final:
            return None
        return self.home_score - self.away_score

    @property
    def final_total(self) -> Optional[int]:
        if not self.is_final:
            return None
        return self.home_score + self.away_score

    @property
    def matchup(self) -> str:
        return f"{self.away_team} @ {self.home_team}"


class LineSnapshot(BaseModel):
    """
    Market line captured at a labelled moment.

    Spread lines are from the home team's perspective (negative = home
    favored). Total lines are the posted total points.
    """

    model_config = ConfigDict(frozen=True)

    game_id: str
    provider: str
    market: MarketType
    label: LineLabel
    line: float
    captured_at: datetime
    price_american: int = STANDARD_ODDS

    @field_validator("line")
    @classmethod
    def validate_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("line must be finite")
        return v

    @field_validator("captured_at")
    @classmethod
    def validate_captured_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def key(self) -> tuple[str, str, str, str]:
        return (self.game_id, self.provider, self.market.value, self.label.value)


def validate_snapshot_order(snapshots: list[LineSnapshot]) -> None:
    """
    Check that labels for one (game, provider, market) are chronological.

    Raises:
        ValueError: If a later label was captured before an earlier one
    """
    by_label = {s.label: s for s in snapshots}
    present = [label for label in LABEL_ORDER if label in by_label]
    for earlier, later in zip(present, present[1:]):
        if by_label[later].captured_at < by_label[earlier].captured_at:
            raise ValueError(
                f"snapshot '{later.value}' captured before '{earlier.value}' "
                f"for game {by_label[later].game_id}"
            )


class TeamRating(BaseModel):
    """Strength ratings for a team in a season."""

    model_config = ConfigDict(frozen=True)

    team: str
    season: int
    rating: float = Field(description="Elo-style strength rating")
    sp_overall: Optional[float] = None
    off_ppa: Optional[float] = None
    def_ppa: Optional[float] = None
    points_for: Optional[float] = Field(default=None, description="Avg points scored per game")
    points_against: Optional[float] = Field(default=None, description="Avg points allowed per game")
    games_played: int = 0
    as_of: Optional[datetime] = Field(
        default=None,
        description="Moment from which this value was known",
    )

    @field_validator("as_of")
    @classmethod
    def validate_as_of(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @property
    def has_ppa(self) -> bool:
        return self.off_ppa is not None and self.def_ppa is not None

    @property
    def has_scoring(self) -> bool:
        return self.points_for is not None and self.points_against is not None


class SituationalContext(BaseModel):
    """Optional situational inputs for a matchup."""

    model_config = ConfigDict(frozen=True)

    rest_days_diff: float = Field(
        default=0.0,
        description="Home rest days minus away rest days",
    )
    away_travel_miles: float = Field(default=0.0, ge=0)
    home_travel_miles: float = Field(default=0.0, ge=0)


# =============================================================================
# OUTPUT SCHEMAS
# =============================================================================
class AdjustmentItem(BaseModel):
    """A named contribution to the model line."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: float


class AdjustmentBreakdown(BaseModel):
    """
    Versioned, itemized explanation of a model line.

    The items sum to ``model_line - baseline``; ``validate_sum`` checks it.
    """

    model_config = ConfigDict(frozen=True)

    version: int = BREAKDOWN_VERSION
    market: MarketType
    baseline: float
    items: tuple[AdjustmentItem, ...] = ()

    @property
    def total(self) -> float:
        return math.fsum(item.value for item in self.items)

    def get(self, name: str) -> Optional[float]:
        for item in self.items:
            if item.name == name:
                return item.value
        return None

    def validate_sum(self, model_line: float, tolerance: float = 1e-9) -> bool:
        return abs(self.total - (model_line - self.baseline)) <= tolerance


class Edge(BaseModel):
    """Model-vs-market comparison for one (game, market, provider)."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    game_id: str
    market: MarketType
    provider: str
    label: Optional[LineLabel] = None
    model_line: Optional[float]
    market_line: Optional[float]
    raw_edge: Optional[float]
    edge_points: Optional[float] = Field(description="Capped edge used for qualification")
    recommended_side: Optional[Side] = None
    spread_size: Optional[float] = None
    qualifies: bool = False
    qualification_reason: str = ""
    breakdown: Optional[AdjustmentBreakdown] = None
    price_american: int = STANDARD_ODDS
    as_of: datetime

    @field_validator("as_of")
    @classmethod
    def validate_as_of(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.game_id, self.market.value, self.provider)

    @property
    def was_capped(self) -> bool:
        if self.raw_edge is None or self.edge_points is None:
            return False
        return self.raw_edge != self.edge_points

    @property
    def side_line(self) -> Optional[float]:
        """Market line from the recommended side's perspective."""
        if self.recommended_side is None or self.market_line is None:
            return None
        return side_line(self.market, self.recommended_side, self.market_line)


class BetRecord(BaseModel):
    """A bet recorded at qualification time and graded once after the game."""

    id: str
    game_id: str
    provider: str
    market: MarketType
    side: Side
    line: float = Field(description="Line from the bettor's side's perspective")
    price_american: int = STANDARD_ODDS
    stake: float = UNIT_STAKE
    edge_points: float
    placed_at: datetime
    outcome: Optional[Outcome] = None
    clv_points: Optional[float] = None
    graded_at: Optional[datetime] = None

    @field_validator("placed_at", "graded_at")
    @classmethod
    def validate_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @model_validator(mode="after")
    def validate_side(self) -> "BetRecord":
        if self.side not in SIDES_BY_MARKET[self.market]:
            raise ValueError(f"side {self.side.value} is not valid for {self.market.value}")
        return self

    @property
    def is_graded(self) -> bool:
        return self.outcome is not None

    @property
    def description(self) -> str:
        if self.market == MarketType.SPREAD:
            return f"{self.side.value} {self.line:+.1f}"
        return f"{self.side.value} {self.line:.1f}"


class CLVRecord(BaseModel):
    """Closing line value for a bet; clv_points is None when unavailable."""

    model_config = ConfigDict(frozen=True)

    bet_id: str
    market: MarketType
    side: Side
    bet_line: float
    close_line: Optional[float] = None
    clv_points: Optional[float] = None
    clv_cents: Optional[int] = None

    @property
    def available(self) -> bool:
        return self.clv_points is not None


def side_line(market: MarketType, side: Side, market_line: float) -> float:
    """
    Convert a stored market line to the perspective of a side.

    Spread lines are stored from the home perspective, so the away line is
    the negation. Totals are the same number for over and under.
    """
    if market == MarketType.SPREAD and side == Side.AWAY:
        return -market_line
    return market_line
