"""
Rating-ensemble projector for spreads and totals.

Combines three rating systems into a single strength differential:
- Elo (primary): rating difference scaled to points
- SP+ (secondary): already on a points-like scale
- PPA matchup (tertiary): net points-per-play scaled by plays per game

Situational adjustments (home field, rest, travel) are added on top, each
capped individually. The spread from the home perspective is the negation
of the home team's expected advantage, so negative means home favored.

Spread between the component projections is kept as a disagreement
diagnostic, in the same way the ensemble uses model disagreement as an
uncertainty estimate.
"""
import math
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np
from loguru import logger

from spread_edge.config.constants import MarketType
from spread_edge.config.settings import ProjectionSettings
from spread_edge.data.ratings import RatingLookup
from spread_edge.database.schemas import (
    AdjustmentBreakdown,
    AdjustmentItem,
    Game,
    SituationalContext,
    TeamRating,
)
from spread_edge.errors import EngineError

# Components must agree within this many points for a high-confidence projection
AGREEMENT_WINDOW = 5.0


def _clamp(value: float, cap: float) -> float:
    return max(-cap, min(cap, value))


@dataclass
class Projection:
    """Model-implied lines for one game."""

    game_id: str
    model_spread_home: float
    model_total: float
    spread_breakdown: AdjustmentBreakdown
    total_breakdown: AdjustmentBreakdown

    # Ensemble diagnostics (home advantage in points, before situational terms)
    components: dict[str, float] = field(default_factory=dict)
    model_disagreement: float = 0.0
    confidence: str = "low"
    carried_over: tuple[str, ...] = ()  # teams using a regressed prior-season rating

    def line_for(self, market: MarketType) -> float:
        if market == MarketType.SPREAD:
            return self.model_spread_home
        return self.model_total

    def breakdown_for(self, market: MarketType) -> AdjustmentBreakdown:
        if market == MarketType.SPREAD:
            return self.spread_breakdown
        return self.total_breakdown

    def to_dict(self) -> dict[str, Any]:
        return {
            "game_id": self.game_id,
            "model_spread_home": self.model_spread_home,
            "model_total": self.model_total,
            "components": dict(self.components),
            "model_disagreement": self.model_disagreement,
            "confidence": self.confidence,
            "carried_over": list(self.carried_over),
            "spread_breakdown": self.spread_breakdown.model_dump(mode="json"),
            "total_breakdown": self.total_breakdown.model_dump(mode="json"),
        }


class ModelProjector:
    """
    Pure projector from team ratings to model lines.

    Example:
        >>> projector = ModelProjector()
        >>> projection = projector.project(game, home_rating, away_rating)
        >>> projection.model_spread_home
        -6.5
    """

    def __init__(self, settings: Optional[ProjectionSettings] = None):
        self.settings = settings or ProjectionSettings()
        self.logger = logger.bind(component="projector")

    # -------------------------------------------------------------------------
    # Strength
    # -------------------------------------------------------------------------
    def component_strengths(
        self,
        home: TeamRating,
        away: TeamRating,
    ) -> dict[str, float]:
        """Home advantage in points from each available rating system."""
        s = self.settings
        components = {"elo": (home.rating - away.rating) / s.elo_divisor}

        if home.sp_overall is not None and away.sp_overall is not None:
            components["sp"] = home.sp_overall - away.sp_overall

        if home.has_ppa and away.has_ppa:
            home_net = home.off_ppa - home.def_ppa
            away_net = away.off_ppa - away.def_ppa
            components["ppa"] = (home_net - away_net) * s.ppa_multiplier

        return components

    def ensemble_strength(self, components: dict[str, float]) -> float:
        """Weighted average of available components, weights renormalized."""
        weights = {
            "elo": self.settings.elo_weight,
            "sp": self.settings.sp_weight,
            "ppa": self.settings.ppa_weight,
        }
        total_weight = sum(weights[name] for name in components)
        if total_weight <= 0:
            # Only zero-weighted components are present; fall back to Elo
            return components["elo"]
        return sum(value * weights[name] for name, value in components.items()) / total_weight

    # -------------------------------------------------------------------------
    # Projection
    # -------------------------------------------------------------------------
    def project(
        self,
        game: Game,
        home_rating: TeamRating,
        away_rating: TeamRating,
        situational: Optional[SituationalContext] = None,
    ) -> Projection:
        """
        Project spread and total for a matchup.

        Args:
            game: Game being projected
            home_rating: Home team's rating
            away_rating: Away team's rating
            situational: Optional rest and travel context

        Returns:
            Projection with itemized breakdowns for both markets
        """
        situational = situational or SituationalContext()

        components = self.component_strengths(home_rating, away_rating)
        strength = self.ensemble_strength(components)
        spread, spread_breakdown = self._project_spread(game, strength, situational)
        total, total_breakdown = self._project_total(home_rating, away_rating)

        if not (math.isfinite(spread) and math.isfinite(total)):
            raise EngineError(f"Non-finite projection for game {game.id}", game_id=game.id)

        values = np.array(list(components.values()))
        disagreement = float(values.max() - values.min())
        if len(components) >= 3:
            confidence = "high" if disagreement <= AGREEMENT_WINDOW else "medium"
        elif len(components) == 2:
            confidence = "medium"
        else:
            confidence = "low"

        return Projection(
            game_id=game.id,
            model_spread_home=spread,
            model_total=total,
            spread_breakdown=spread_breakdown,
            total_breakdown=total_breakdown,
            components=components,
            model_disagreement=disagreement,
            confidence=confidence,
        )

    async def project_game(
        self,
        game: Game,
        lookup: RatingLookup,
        situational: Optional[SituationalContext] = None,
    ) -> Projection:
        """
        Resolve both teams' ratings through a lookup and project.

        Raises:
            MissingRatingError: If either team has no usable rating
        """
        home = await lookup.resolve(game.home_team, game.season, game_id=game.id)
        away = await lookup.resolve(game.away_team, game.season, game_id=game.id)

        projection = self.project(game, home.rating, away.rating, situational)
        projection.carried_over = tuple(
            r.rating.team for r in (home, away) if r.carried_over
        )
        self.logger.debug(
            f"{game.matchup}: spread {projection.model_spread_home:+.2f}, "
            f"total {projection.model_total:.2f} ({projection.confidence})"
        )
        return projection

    def _project_spread(
        self,
        game: Game,
        strength: float,
        situational: SituationalContext,
    ) -> tuple[float, AdjustmentBreakdown]:
        s = self.settings

        # Home advantage terms, before capping
        raw = {
            "rating_differential": strength,
            "home_field": 0.0 if game.neutral_site else s.home_field_points,
            "rest": situational.rest_days_diff * s.rest_points_per_day,
            "travel": (
                (situational.away_travel_miles - situational.home_travel_miles)
                / 1000.0
                * s.travel_points_per_1000_miles
            ),
        }
        caps = {
            "rating_differential": s.max_rating_points,
            "home_field": s.max_home_field_points,
            "rest": s.max_rest_points,
            "travel": s.max_travel_points,
        }
        capped = {name: _clamp(value, caps[name]) for name, value in raw.items()}

        model_line = -math.fsum(capped.values())
        # Items are contributions to the home spread, so advantages are negated
        items = [AdjustmentItem(name=name, value=-value) for name, value in raw.items()]
        capping = model_line - math.fsum(item.value for item in items)
        items.append(AdjustmentItem(name="capping", value=capping))

        return model_line, AdjustmentBreakdown(
            market=MarketType.SPREAD,
            baseline=0.0,
            items=tuple(items),
        )

    def _project_total(
        self,
        home: TeamRating,
        away: TeamRating,
    ) -> tuple[float, AdjustmentBreakdown]:
        s = self.settings
        baseline = s.league_average_total
        per_team = baseline / 2

        def _scoring(rating: TeamRating) -> tuple[float, float]:
            if rating.has_scoring:
                return rating.points_for, rating.points_against
            return per_team, per_team

        home_for, home_against = _scoring(home)
        away_for, away_against = _scoring(away)

        home_dev = (home_for + away_against) / 2 - per_team
        away_dev = (away_for + home_against) / 2 - per_team

        model_total = baseline + (
            _clamp(home_dev, s.max_total_deviation) + _clamp(away_dev, s.max_total_deviation)
        )
        items = [
            AdjustmentItem(name="home_expected", value=home_dev),
            AdjustmentItem(name="away_expected", value=away_dev),
        ]
        capping = (model_total - baseline) - math.fsum(item.value for item in items)
        items.append(AdjustmentItem(name="capping", value=capping))

        return model_total, AdjustmentBreakdown(
            market=MarketType.TOTAL,
            baseline=baseline,
            items=tuple(items),
        )
