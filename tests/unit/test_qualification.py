"""Unit tests for the qualification rule table."""

import pytest

from spread_edge.betting.qualification import (
    REASON_BELOW_THRESHOLD,
    REASON_INCOMPLETE,
    REASON_OUTSIDE_BAND,
    QualificationEngine,
)
from spread_edge.config.constants import MarketType
from spread_edge.config.settings import QualificationSettings


@pytest.fixture
def engine():
    return QualificationEngine(QualificationSettings(min_edge_threshold=1.5, max_spread=21.0))


class TestRuleOrder:
    def test_qualifying_reason_formats_magnitude(self, engine):
        decision = engine.qualifies(-2.3, 7.0, MarketType.SPREAD)
        assert decision
        assert decision.reason == "edge 2.3 exceeds threshold 1.5"

    def test_exactly_at_threshold_qualifies(self, engine):
        assert engine.qualifies(1.5, 7.0, MarketType.SPREAD).qualifies

    def test_below_threshold_checked_before_band(self, engine):
        decision = engine.qualifies(1.0, 24.0, MarketType.SPREAD)
        assert not decision
        assert decision.reason == REASON_BELOW_THRESHOLD

    def test_blowout_spread_rejected(self, engine):
        decision = engine.qualifies(3.0, 21.0, MarketType.SPREAD)
        assert decision.reason == REASON_OUTSIDE_BAND

    def test_band_lower_bound_inclusive(self):
        engine = QualificationEngine(QualificationSettings(min_spread=3.0, max_spread=14.0))
        assert engine.qualifies(2.0, 3.0, MarketType.SPREAD).qualifies
        assert engine.qualifies(2.0, 2.5, MarketType.SPREAD).reason == REASON_OUTSIDE_BAND

    def test_missing_edge_is_incomplete(self, engine):
        decision = engine.qualifies(None, 7.0, MarketType.SPREAD)
        assert decision.reason == REASON_INCOMPLETE

    def test_spread_without_size_is_incomplete(self, engine):
        assert engine.qualifies(3.0, None, MarketType.SPREAD).reason == REASON_INCOMPLETE


class TestTotals:
    def test_band_ignored_for_totals(self, engine):
        assert engine.qualifies(2.0, None, MarketType.TOTAL).qualifies

    def test_total_threshold(self):
        engine = QualificationEngine(
            QualificationSettings(min_edge_threshold=1.0, min_total_edge_threshold=2.5)
        )
        assert engine.threshold(MarketType.TOTAL) == 2.5
        decision = engine.qualifies(2.0, None, MarketType.TOTAL)
        assert decision.reason == REASON_BELOW_THRESHOLD
        assert engine.qualifies(2.0, 7.0, MarketType.SPREAD).qualifies


@pytest.mark.parametrize(
    "edge,spread_size,qualifies,reason",
    [
        (2.5, 10.0, True, "edge 2.5 exceeds threshold 1.0"),
        (0.5, 10.0, False, REASON_BELOW_THRESHOLD),
        (-2.5, 10.0, True, "edge 2.5 exceeds threshold 1.0"),
    ],
)
def test_default_table(edge, spread_size, qualifies, reason):
    decision = QualificationEngine().qualifies(edge, spread_size, MarketType.SPREAD)
    assert decision.qualifies is qualifies
    assert decision.reason == reason
    assert decision.threshold == 1.0
