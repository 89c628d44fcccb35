"""
Constants and enumerations for the edge engine.

Contains market/label/side enums, snapshot ordering, and the default
numeric constants used by the projector, calculator and backtester.
"""
from enum import Enum
from typing import Final


# =============================================================================
# MARKETS AND SIDES
# =============================================================================
class MarketType(str, Enum):
    """Supported market types."""

    SPREAD = "spread"
    TOTAL = "total"


class Side(str, Enum):
    """Side of a market a bet can be placed on."""

    HOME = "home"
    AWAY = "away"
    OVER = "over"
    UNDER = "under"


SIDES_BY_MARKET: Final[dict[MarketType, tuple[Side, Side]]] = {
    MarketType.SPREAD: (Side.HOME, Side.AWAY),
    MarketType.TOTAL: (Side.OVER, Side.UNDER),
}


class GameStatus(str, Enum):
    """Lifecycle status of a game."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    FINAL = "final"


class Outcome(str, Enum):
    """Graded outcome of a bet."""

    WIN = "win"
    LOSS = "loss"
    PUSH = "push"


# =============================================================================
# LINE SNAPSHOT LABELS
# =============================================================================
class LineLabel(str, Enum):
    """Capture label of a line snapshot."""

    OPEN = "open"
    T60 = "t-60"
    T30 = "t-30"
    CLOSE = "close"


# Chronological order; later labels must not be captured before earlier ones
LABEL_ORDER: Final[tuple[LineLabel, ...]] = (
    LineLabel.OPEN,
    LineLabel.T60,
    LineLabel.T30,
    LineLabel.CLOSE,
)


# =============================================================================
# PROJECTION CONSTANTS
# =============================================================================
MEAN_RATING: Final[float] = 1500.0
ELO_TO_POINTS_DIVISOR: Final[float] = 25.0  # 25 Elo points ~ 1 point of spread
PPA_TO_POINTS_MULTIPLIER: Final[float] = 35.0  # approx plays per game
PRIOR_SEASON_WEIGHT: Final[float] = 0.67  # mean reversion for carried ratings

DEFAULT_HOME_FIELD: Final[float] = 2.5
DEFAULT_LEAGUE_TOTAL: Final[float] = 55.0

# Ensemble weights for the strength differential
ENSEMBLE_WEIGHTS: Final[dict[str, float]] = {
    "elo": 0.50,
    "sp": 0.30,
    "ppa": 0.20,
}


# =============================================================================
# BETTING CONSTANTS
# =============================================================================
STANDARD_ODDS: Final[int] = -110
UNIT_STAKE: Final[float] = 1.0
CLV_CENTS_PER_POINT: Final[int] = 20  # 0.5 pts ~ 10 cents at -110

# Cumulative win-rate thresholds reported alongside calibration buckets
CUMULATIVE_THRESHOLDS: Final[tuple[float, ...]] = (
    0.0, 0.5, 1.0, 1.5, 2.0, 2.5, 3.0, 4.0, 5.0, 7.0, 10.0,
)

BREAKDOWN_VERSION: Final[int] = 1
