"""
Read-through team rating lookup.

A ``RatingLookup`` is created per run (live materialization or one backtest
decision moment) and passed into the projector. It caches fetched ratings
for its own lifetime only, so runs over different time windows never share
state.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from loguru import logger

from spread_edge.config.constants import DEFAULT_LEAGUE_TOTAL, MEAN_RATING, PRIOR_SEASON_WEIGHT
from spread_edge.database.schemas import TeamRating
from spread_edge.errors import MissingRatingError

from .sources.base import LineDataSource


@dataclass(frozen=True)
class ResolvedRating:
    """A rating ready for projection, with where it came from."""

    rating: TeamRating
    requested_season: int
    carried_over: bool  # True when regressed from the prior season


def regress_prior_season(
    prior: TeamRating,
    season: int,
    weight: float = PRIOR_SEASON_WEIGHT,
    league_total: float = DEFAULT_LEAGUE_TOTAL,
) -> TeamRating:
    """
    Carry a prior-season rating forward with mean reversion.

    Elo reverts toward the mean rating, composite components toward zero and
    scoring averages toward half the league-average total.
    """
    keep = weight
    revert = 1.0 - weight
    per_team = league_total / 2

    def _scale(value: Optional[float], target: float = 0.0) -> Optional[float]:
        if value is None:
            return None
        return value * keep + target * revert

    return TeamRating(
        team=prior.team,
        season=season,
        rating=prior.rating * keep + MEAN_RATING * revert,
        sp_overall=_scale(prior.sp_overall),
        off_ppa=_scale(prior.off_ppa),
        def_ppa=_scale(prior.def_ppa),
        points_for=_scale(prior.points_for, per_team),
        points_against=_scale(prior.points_against, per_team),
        games_played=0,
        as_of=prior.as_of,
    )


class RatingLookup:
    """
    Per-run rating resolver with prior-season fallback.

    Args:
        source: Data source to read ratings from
        as_of: Only ratings known at or before this moment are used
        league_total: Baseline total used when regressing scoring averages
    """

    def __init__(
        self,
        source: LineDataSource,
        as_of: Optional[datetime] = None,
        league_total: float = DEFAULT_LEAGUE_TOTAL,
    ):
        self.source = source
        self.as_of = as_of
        self.league_total = league_total
        self._cache: dict[tuple[str, int], Optional[TeamRating]] = {}

    async def _fetch(self, team: str, season: int) -> Optional[TeamRating]:
        key = (team, season)
        if key not in self._cache:
            self._cache[key] = await self.source.get_team_rating(team, season, as_of=self.as_of)
        return self._cache[key]

    async def resolve(
        self,
        team: str,
        season: int,
        game_id: Optional[str] = None,
    ) -> ResolvedRating:
        """
        Resolve a team's rating for a season.

        Raises:
            MissingRatingError: If neither this season nor the prior has a rating
        """
        current = await self._fetch(team, season)
        if current is not None:
            return ResolvedRating(rating=current, requested_season=season, carried_over=False)

        prior = await self._fetch(team, season - 1)
        if prior is not None:
            logger.debug(f"Using regressed {season - 1} rating for {team} in {season}")
            return ResolvedRating(
                rating=regress_prior_season(prior, season, league_total=self.league_total),
                requested_season=season,
                carried_over=True,
            )

        raise MissingRatingError(team, season, game_id=game_id)
