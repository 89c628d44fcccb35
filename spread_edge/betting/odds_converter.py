"""
Odds conversion and payout utilities.

Provides functions for converting American odds, computing break-even win
rates, per-bet profit and closing line value in cents.
"""
from decimal import Decimal
from typing import NamedTuple

from spread_edge.config.constants import CLV_CENTS_PER_POINT, Outcome


class OddsFormats(NamedTuple):
    """Container for odds in multiple formats."""

    american: int
    decimal: Decimal
    implied_probability: Decimal


def american_to_decimal(american: int) -> Decimal:
    """
    Convert American odds to decimal odds.

    Args:
        american: American odds (e.g., -110, +150)

    Returns:
        Decimal odds (e.g., 1.91, 2.50)

    Examples:
        >>> american_to_decimal(+150)
        Decimal('2.5')
    """
    if american > 0:
        return Decimal(american) / Decimal("100") + Decimal("1")
    else:
        return Decimal("100") / Decimal(abs(american)) + Decimal("1")


def american_to_implied_probability(american: int) -> Decimal:
    """
    Convert American odds to implied probability.

    Note: This includes the bookmaker's vig.

    Examples:
        >>> american_to_implied_probability(+150)
        Decimal('0.4')
    """
    if american > 0:
        return Decimal("100") / (Decimal(american) + Decimal("100"))
    else:
        return Decimal(abs(american)) / (Decimal(abs(american)) + Decimal("100"))


def convert_odds(american: int) -> OddsFormats:
    """Convert American odds to all formats."""
    return OddsFormats(
        american=american,
        decimal=american_to_decimal(american),
        implied_probability=american_to_implied_probability(american),
    )


def break_even_win_rate(american: int) -> float:
    """
    Win rate needed to break even, ignoring pushes.

    Examples:
        >>> round(break_even_win_rate(-110), 4)
        0.5238
    """
    return float(american_to_implied_probability(american))


def win_payout(american: int, stake: float = 1.0) -> float:
    """Profit on a winning bet of ``stake`` units."""
    return float((american_to_decimal(american) - Decimal("1")) * Decimal(str(stake)))


def calculate_profit(outcome: Outcome, american: int, stake: float = 1.0) -> float:
    """
    Profit in units for a graded bet.

    Wins pay at the offered odds, losses forfeit the stake, pushes refund.

    Examples:
        >>> round(calculate_profit(Outcome.WIN, -110), 4)
        0.9091
        >>> calculate_profit(Outcome.LOSS, -110)
        -1.0
    """
    if outcome == Outcome.WIN:
        return win_payout(american, stake)
    if outcome == Outcome.LOSS:
        return -stake
    return 0.0


def calculate_expected_value(win_probability: float, american: int) -> float:
    """
    Expected value per unit wagered, ignoring pushes.

    EV = p * d - 1 for decimal odds d.
    """
    return win_probability * float(american_to_decimal(american)) - 1.0


def clv_points_to_cents(clv_points: float) -> int:
    """
    Approximate CLV in cents of price at -110.

    Each half point of line movement is worth roughly ten cents.
    """
    return int(round(clv_points * CLV_CENTS_PER_POINT))
