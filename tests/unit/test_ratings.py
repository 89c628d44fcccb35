"""Unit tests for the per-run rating lookup."""

import pytest

from conftest import make_rating, utc
from spread_edge.data.ratings import RatingLookup, regress_prior_season
from spread_edge.data.sources.memory import InMemoryStore
from spread_edge.errors import MissingRatingError


class CountingStore(InMemoryStore):
    def __init__(self):
        super().__init__()
        self.calls = 0

    async def get_team_rating(self, team, season, as_of=None):
        self.calls += 1
        return await super().get_team_rating(team, season, as_of=as_of)


def test_regression_toward_means():
    prior = make_rating(
        "ALA", 1800.0, season=2022, sp_overall=20.0, points_for=40.0, points_against=20.0
    )
    regressed = regress_prior_season(prior, 2023)

    assert regressed.season == 2023
    assert regressed.rating == pytest.approx(1800 * 0.67 + 1500 * 0.33)
    assert regressed.sp_overall == pytest.approx(20 * 0.67)
    assert regressed.off_ppa is None
    assert regressed.points_for == pytest.approx(40 * 0.67 + 27.5 * 0.33)
    assert regressed.points_against == pytest.approx(20 * 0.67 + 27.5 * 0.33)
    assert regressed.games_played == 0


async def test_current_season_preferred():
    store = InMemoryStore()
    store.upsert_ratings([make_rating("ALA", 1800.0, season=2022), make_rating("ALA", 1700.0)])
    resolved = await RatingLookup(store).resolve("ALA", 2023)
    assert resolved.rating.rating == 1700.0
    assert not resolved.carried_over


async def test_prior_season_fallback():
    store = InMemoryStore()
    store.upsert_rating(make_rating("ALA", 1800.0, season=2022))
    resolved = await RatingLookup(store).resolve("ALA", 2023)
    assert resolved.carried_over
    assert resolved.requested_season == 2023
    assert resolved.rating.season == 2023
    assert resolved.rating.rating == pytest.approx(1701.0)


async def test_missing_rating_raises():
    store = InMemoryStore()
    store.upsert_rating(make_rating("ALA", 1800.0, season=2021))
    with pytest.raises(MissingRatingError) as exc:
        await RatingLookup(store).resolve("ALA", 2023, game_id="g1")
    assert exc.value.team == "ALA"
    assert exc.value.game_id == "g1"


async def test_as_of_hides_later_ratings(season_store):
    lookup = RatingLookup(season_store, as_of=utc(2023, 9, 2, 18, 30))
    resolved = await lookup.resolve("ALA", 2023)
    assert resolved.rating.rating == 1700.0


async def test_lookups_are_cached_per_run():
    store = CountingStore()
    store.upsert_rating(make_rating("ALA", 1700.0))
    lookup = RatingLookup(store)
    await lookup.resolve("ALA", 2023)
    await lookup.resolve("ALA", 2023)
    assert store.calls == 1

    # A fresh lookup does not share the cache
    await RatingLookup(store).resolve("ALA", 2023)
    assert store.calls == 2


async def test_missing_results_are_cached():
    store = CountingStore()
    lookup = RatingLookup(store)
    for _ in range(2):
        with pytest.raises(MissingRatingError):
            await lookup.resolve("XXX", 2023)
    # Current and prior season each fetched once
    assert store.calls == 2
