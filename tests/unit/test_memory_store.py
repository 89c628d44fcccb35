"""Unit tests for the in-memory data source and sink."""

from datetime import date, datetime, timedelta, timezone

import polars as pl
import pytest

from conftest import make_game, make_rating, make_snapshot, utc
from spread_edge.config.constants import LineLabel, MarketType, Outcome, Side
from spread_edge.data.sources.base import DateRange
from spread_edge.data.sources.memory import InMemoryStore
from spread_edge.database.schemas import BetRecord
from spread_edge.errors import DuplicateSnapshotError


def _bet(bet_id="b1") -> BetRecord:
    return BetRecord(
        id=bet_id,
        game_id="2023_01_AUB_ALA",
        provider="book_a",
        market=MarketType.SPREAD,
        side=Side.HOME,
        line=-7.0,
        edge_points=3.5,
        placed_at=utc(2023, 9, 2, 18, 30),
    )


class TestSnapshots:
    def test_duplicate_snapshot_rejected(self):
        store = InMemoryStore()
        snapshot = make_snapshot("g", MarketType.SPREAD, LineLabel.T60, -3.0, utc(2023, 9, 2))
        store.add_snapshot(snapshot)
        with pytest.raises(DuplicateSnapshotError):
            store.add_snapshot(snapshot)

    def test_out_of_order_snapshot_rejected(self):
        store = InMemoryStore()
        store.add_snapshot(
            make_snapshot("g", MarketType.SPREAD, LineLabel.CLOSE, -3.0, utc(2023, 9, 2, 12))
        )
        with pytest.raises(ValueError):
            store.add_snapshot(
                make_snapshot("g", MarketType.SPREAD, LineLabel.OPEN, -2.0, utc(2023, 9, 3))
            )

    async def test_providers_per_market(self, season_store):
        season_store.add_snapshot(
            make_snapshot(
                "2023_01_AUB_ALA", MarketType.SPREAD, LineLabel.T60, -7.5,
                utc(2023, 9, 2, 18, 30), provider="book_b",
            )
        )
        providers = await season_store.list_providers("2023_01_AUB_ALA", MarketType.SPREAD)
        assert providers == ["book_a", "book_b"]
        totals = await season_store.list_providers("2023_01_AUB_ALA", MarketType.TOTAL)
        assert totals == ["book_a"]


class TestGames:
    async def test_final_games_ordered_and_filtered(self, season_store):
        season_store.add_game(make_game("2023_00_SCHED", start=utc(2023, 9, 1)))
        games = await season_store.list_final_games()
        assert [g.id for g in games] == [
            "2023_01_AUB_ALA",
            "2023_02_TCU_UGA",
            "2023_02_ALA_XXX",
        ]

        week_one = await season_store.list_final_games(DateRange(date(2023, 9, 1), date(2023, 9, 3)))
        assert [g.id for g in week_one] == ["2023_01_AUB_ALA"]

        assert await season_store.list_final_games(seasons=[2022]) == []

    async def test_upcoming_games_exclude_final(self, season_store):
        season_store.add_game(make_game("2023_00_SCHED", start=utc(2023, 9, 2)))
        upcoming = await season_store.list_upcoming_games(DateRange(date(2023, 9, 1), date(2023, 9, 30)))
        assert [g.id for g in upcoming] == ["2023_00_SCHED"]

    async def test_seasons(self, season_store):
        assert await season_store.list_seasons() == [2023]

    def test_date_range_rejects_inverted(self):
        with pytest.raises(ValueError):
            DateRange(date(2023, 9, 2), date(2023, 9, 1))


class TestRatings:
    async def test_as_of_filters_later_versions(self, season_store):
        latest = await season_store.get_team_rating("ALA", 2023)
        assert latest.rating == 1900.0

        preseason = await season_store.get_team_rating("ALA", 2023, as_of=utc(2023, 9, 2))
        assert preseason.rating == 1700.0

        assert await season_store.get_team_rating("ALA", 2023, as_of=utc(2023, 7, 1)) is None

    async def test_same_as_of_overwrites(self):
        store = InMemoryStore()
        store.upsert_rating(make_rating("ALA", 1700.0))
        store.upsert_rating(make_rating("ALA", 1710.0))
        rating = await store.get_team_rating("ALA", 2023)
        assert rating.rating == 1710.0
        assert len(store._ratings[("ALA", 2023)]) == 1

    async def test_versions_ordered_by_instant_across_offsets(self):
        central = timezone(timedelta(hours=-5))
        store = InMemoryStore()
        # 10:00-05:00 is 15:00Z, later than the 12:00Z version
        store.upsert_rating(make_rating("ALA", 1700.0, as_of=datetime(2023, 8, 1, 10, tzinfo=central)))
        store.upsert_rating(make_rating("ALA", 1600.0, as_of=utc(2023, 8, 1, 12)))

        rating = await store.get_team_rating("ALA", 2023, as_of=utc(2023, 8, 1, 16))
        assert rating.rating == 1700.0
        earlier = await store.get_team_rating("ALA", 2023, as_of=utc(2023, 8, 1, 13))
        assert earlier.rating == 1600.0

    def test_same_wall_clock_different_offsets_kept_apart(self):
        central = timezone(timedelta(hours=-5))
        store = InMemoryStore()
        store.upsert_rating(make_rating("ALA", 1700.0, as_of=datetime(2023, 8, 1, 10, tzinfo=central)))
        store.upsert_rating(make_rating("ALA", 1600.0, as_of=utc(2023, 8, 1, 10)))
        assert [r.rating for r in store._ratings[("ALA", 2023)]] == [1600.0, 1700.0]


class TestBetRecords:
    async def test_create_is_idempotent(self):
        store = InMemoryStore()
        assert await store.create_bet_record(_bet())
        assert not await store.create_bet_record(_bet())
        assert len(await store.list_ungraded_bets()) == 1

    async def test_outcome_written_once(self):
        store = InMemoryStore()
        await store.create_bet_record(_bet())

        wrote = await store.update_bet_outcome("b1", Outcome.WIN, 1.5, utc(2023, 9, 3))
        assert wrote
        again = await store.update_bet_outcome("b1", Outcome.LOSS, None, utc(2023, 9, 4))
        assert not again

        record = await store.get_bet_record("b1")
        assert record.outcome == Outcome.WIN
        assert record.clv_points == 1.5
        assert await store.list_ungraded_bets() == []

    async def test_unknown_bet_raises(self):
        store = InMemoryStore()
        with pytest.raises(KeyError):
            await store.update_bet_outcome("nope", Outcome.WIN, None, utc(2023, 9, 3))

    async def test_returned_records_are_copies(self):
        store = InMemoryStore()
        await store.create_bet_record(_bet())
        record = await store.get_bet_record("b1")
        record.outcome = Outcome.LOSS
        assert (await store.get_bet_record("b1")).outcome is None


def test_from_frames_sorts_snapshots_by_label():
    games = pl.DataFrame([
        {
            "id": "g1",
            "season": 2023,
            "home_team": "ALA",
            "away_team": "AUB",
            "start_time": utc(2023, 9, 2, 19, 30),
            "status": "final",
            "home_score": 31,
            "away_score": 17,
        },
    ])
    # Close listed first; loading must still pass the chronology check
    lines = pl.DataFrame([
        {
            "game_id": "g1", "provider": "book_a", "market": "spread", "label": "close",
            "line": -8.5, "captured_at": utc(2023, 9, 2, 19, 25),
        },
        {
            "game_id": "g1", "provider": "book_a", "market": "spread", "label": "t-60",
            "line": -7.0, "captured_at": utc(2023, 9, 2, 18, 30),
        },
    ])
    ratings = pl.DataFrame([
        {"team": "ALA", "season": 2023, "rating": 1700.0, "as_of": utc(2023, 8, 1)},
        {"team": "AUB", "season": 2023, "rating": 1500.0, "as_of": utc(2023, 8, 1)},
    ])

    store = InMemoryStore.from_frames(games, lines, ratings)
    assert len(store._snapshots) == 2
    assert ("g1", "book_a", "spread", "t-60") in store._snapshots
