"""Pytest configuration and fixtures for spread-edge tests."""

from datetime import datetime, timezone

import pytest

from spread_edge.config.constants import GameStatus, LineLabel, MarketType
from spread_edge.data.sources.memory import InMemoryStore
from spread_edge.database.schemas import Game, LineSnapshot, TeamRating


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


RATINGS_AS_OF = utc(2023, 8, 1)


def make_game(
    game_id="2023_01_AUB_ALA",
    home="ALA",
    away="AUB",
    start=None,
    home_score=None,
    away_score=None,
    season=2023,
    **kwargs,
) -> Game:
    status = GameStatus.FINAL if home_score is not None else GameStatus.SCHEDULED
    return Game(
        id=game_id,
        season=season,
        home_team=home,
        away_team=away,
        start_time=start or utc(2023, 9, 2, 19, 30),
        status=status,
        home_score=home_score,
        away_score=away_score,
        **kwargs,
    )


def make_snapshot(
    game_id,
    market,
    label,
    line,
    captured_at,
    provider="book_a",
    **kwargs,
) -> LineSnapshot:
    return LineSnapshot(
        game_id=game_id,
        provider=provider,
        market=market,
        label=label,
        line=line,
        captured_at=captured_at,
        **kwargs,
    )


def make_rating(team, rating, season=2023, as_of=RATINGS_AS_OF, **kwargs) -> TeamRating:
    return TeamRating(team=team, season=season, rating=rating, as_of=as_of, **kwargs)


def build_season_store(include_close: bool = True) -> InMemoryStore:
    """
    Three final games from the 2023 season.

    - ALA (1700) hosts AUB (1500): model -10.5 vs market -7.0, total 55 vs 52.5
    - UGA (1600) hosts TCU (1650): model -0.5 vs market -3.0, ends in a push
    - XXX (no rating) hosts ALA: skipped for a missing rating
    """
    store = InMemoryStore()
    store.add_games([
        make_game("2023_01_AUB_ALA", "ALA", "AUB", utc(2023, 9, 2, 19, 30), 31, 17),
        make_game("2023_02_TCU_UGA", "UGA", "TCU", utc(2023, 9, 9, 20, 0), 24, 21),
        make_game("2023_02_ALA_XXX", "XXX", "ALA", utc(2023, 9, 9, 23, 0), 10, 42),
    ])

    snapshots = [
        make_snapshot("2023_01_AUB_ALA", MarketType.SPREAD, LineLabel.OPEN, -6.5, utc(2023, 8, 28, 12)),
        make_snapshot("2023_01_AUB_ALA", MarketType.SPREAD, LineLabel.T60, -7.0, utc(2023, 9, 2, 18, 30)),
        make_snapshot("2023_01_AUB_ALA", MarketType.TOTAL, LineLabel.OPEN, 53.5, utc(2023, 8, 28, 12)),
        make_snapshot("2023_01_AUB_ALA", MarketType.TOTAL, LineLabel.T60, 52.5, utc(2023, 9, 2, 18, 30)),
        make_snapshot("2023_02_TCU_UGA", MarketType.SPREAD, LineLabel.T60, -3.0, utc(2023, 9, 9, 19, 0)),
        make_snapshot("2023_02_ALA_XXX", MarketType.SPREAD, LineLabel.T60, 20.0, utc(2023, 9, 9, 22, 0)),
    ]
    if include_close:
        snapshots += [
            make_snapshot("2023_01_AUB_ALA", MarketType.SPREAD, LineLabel.CLOSE, -8.5, utc(2023, 9, 2, 19, 25)),
            make_snapshot("2023_01_AUB_ALA", MarketType.TOTAL, LineLabel.CLOSE, 51.5, utc(2023, 9, 2, 19, 25)),
        ]
    store.add_snapshots(snapshots)

    store.upsert_ratings([
        make_rating("ALA", 1700.0),
        make_rating("AUB", 1500.0),
        make_rating("UGA", 1600.0),
        make_rating("TCU", 1650.0),
        # Known only after the games were played
        make_rating("ALA", 1900.0, as_of=utc(2023, 12, 1)),
    ])
    return store


@pytest.fixture
def season_store() -> InMemoryStore:
    """Store with three final games, closing lines included."""
    return build_season_store()


@pytest.fixture
def season_store_no_close() -> InMemoryStore:
    """Same games with every closing snapshot removed."""
    return build_season_store(include_close=False)


@pytest.fixture
def final_game() -> Game:
    """ALA 31 - AUB 17 final."""
    return make_game(home_score=31, away_score=17)
