"""
Edge detection and bet qualification.

Provides tools for:
- Odds conversion and payouts
- Model-vs-market edge calculation
- Rule-table bet qualification
- Live edge materialization
"""

from .odds_converter import (
    american_to_decimal,
    american_to_implied_probability,
    break_even_win_rate,
    calculate_expected_value,
    calculate_profit,
    clv_points_to_cents,
    convert_odds,
    win_payout,
)

from .qualification import (
    QualificationDecision,
    QualificationEngine,
)

from .edge_calculator import (
    EdgeCalculator,
    recommended_side,
)

from .edge_materializer import (
    EdgeMaterializer,
    MaterializeSummary,
    bet_id_for,
)

__all__ = [
    # Odds converter
    "american_to_decimal",
    "american_to_implied_probability",
    "break_even_win_rate",
    "calculate_expected_value",
    "calculate_profit",
    "clv_points_to_cents",
    "convert_odds",
    "win_payout",
    # Qualification
    "QualificationDecision",
    "QualificationEngine",
    # Edges
    "EdgeCalculator",
    "recommended_side",
    "EdgeMaterializer",
    "MaterializeSummary",
    "bet_id_for",
]
