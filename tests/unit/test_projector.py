"""Unit tests for the rating-ensemble projector."""

import pytest

from conftest import make_game, make_rating
from spread_edge.config.constants import MarketType
from spread_edge.config.settings import ProjectionSettings
from spread_edge.database.schemas import SituationalContext
from spread_edge.models.projector import ModelProjector


class TestSpreadProjection:
    def setup_method(self):
        self.projector = ModelProjector()

    def test_elo_only_spread(self):
        """200 Elo points is 8 points, plus 2.5 home field."""
        projection = self.projector.project(
            make_game(), make_rating("ALA", 1700), make_rating("AUB", 1500)
        )
        assert projection.model_spread_home == pytest.approx(-10.5)
        assert projection.components == {"elo": pytest.approx(8.0)}
        assert projection.confidence == "low"

    def test_neutral_site_removes_home_field(self):
        projection = self.projector.project(
            make_game(neutral_site=True), make_rating("ALA", 1700), make_rating("AUB", 1500)
        )
        assert projection.model_spread_home == pytest.approx(-8.0)
        assert projection.spread_breakdown.get("home_field") == 0.0

    def test_situational_terms(self):
        situational = SituationalContext(rest_days_diff=2, away_travel_miles=2000)
        projection = self.projector.project(
            make_game(), make_rating("ALA", 1500), make_rating("AUB", 1500), situational
        )
        # home field 2.5 + rest 1.0 + travel 0.6
        assert projection.model_spread_home == pytest.approx(-4.1)
        assert projection.spread_breakdown.get("rest") == pytest.approx(-1.0)
        assert projection.spread_breakdown.get("travel") == pytest.approx(-0.6)

    def test_terms_are_capped_individually(self):
        situational = SituationalContext(rest_days_diff=20)
        projection = self.projector.project(
            make_game(), make_rating("ALA", 3000), make_rating("AUB", 1000), situational
        )
        # rating 80 -> 35, rest 10 -> 3, home field 2.5
        assert projection.model_spread_home == pytest.approx(-40.5)
        breakdown = projection.spread_breakdown
        assert breakdown.get("rating_differential") == pytest.approx(-80.0)
        assert breakdown.get("capping") == pytest.approx(52.0)

    def test_breakdown_sums_to_model_line(self):
        situational = SituationalContext(rest_days_diff=-1, away_travel_miles=800)
        projection = self.projector.project(
            make_game(),
            make_rating("ALA", 1620, sp_overall=12.0, off_ppa=0.3, def_ppa=0.1),
            make_rating("AUB", 1540, sp_overall=4.0, off_ppa=0.2, def_ppa=0.15),
            situational,
        )
        assert projection.spread_breakdown.validate_sum(projection.model_spread_home)
        assert projection.total_breakdown.validate_sum(projection.model_total)
        assert projection.spread_breakdown.baseline == 0.0
        names = [item.name for item in projection.spread_breakdown.items]
        assert names == ["rating_differential", "home_field", "rest", "travel", "capping"]


class TestEnsemble:
    def test_weighted_components(self):
        projector = ModelProjector()
        home = make_rating("ALA", 1600, sp_overall=10.0, off_ppa=0.30, def_ppa=0.10)
        away = make_rating("AUB", 1500, sp_overall=4.0, off_ppa=0.20, def_ppa=0.20)

        components = projector.component_strengths(home, away)
        assert components["elo"] == pytest.approx(4.0)
        assert components["sp"] == pytest.approx(6.0)
        assert components["ppa"] == pytest.approx(7.0)  # (0.2 - 0.0) * 35

        strength = projector.ensemble_strength(components)
        assert strength == pytest.approx(0.5 * 4.0 + 0.3 * 6.0 + 0.2 * 7.0)

    def test_missing_component_renormalizes(self):
        projector = ModelProjector()
        components = {"elo": 4.0, "sp": 6.0}
        assert projector.ensemble_strength(components) == pytest.approx((0.5 * 4 + 0.3 * 6) / 0.8)

    def test_agreement_sets_confidence(self):
        projector = ModelProjector()
        projection = projector.project(
            make_game(),
            make_rating("ALA", 1600, sp_overall=10.0, off_ppa=0.30, def_ppa=0.10),
            make_rating("AUB", 1500, sp_overall=4.0, off_ppa=0.20, def_ppa=0.20),
        )
        assert projection.model_disagreement == pytest.approx(3.0)
        assert projection.confidence == "high"


class TestTotalProjection:
    def test_league_average_without_scoring(self):
        projection = ModelProjector().project(
            make_game(), make_rating("ALA", 1600), make_rating("AUB", 1500)
        )
        assert projection.model_total == pytest.approx(55.0)
        assert projection.line_for(MarketType.TOTAL) == projection.model_total

    def test_scoring_averages(self):
        home = make_rating("ALA", 1600, points_for=35.0, points_against=17.0)
        away = make_rating("AUB", 1500, points_for=24.0, points_against=27.0)
        projection = ModelProjector().project(make_game(), home, away)
        # (35 + 27) / 2 + (24 + 17) / 2
        assert projection.model_total == pytest.approx(51.5)
        assert projection.total_breakdown.get("home_expected") == pytest.approx(3.5)
        assert projection.total_breakdown.get("away_expected") == pytest.approx(-7.0)

    def test_custom_league_average(self):
        settings = ProjectionSettings(league_average_total=47.0)
        projection = ModelProjector(settings).project(
            make_game(), make_rating("ALA", 1600), make_rating("AUB", 1500)
        )
        assert projection.model_total == pytest.approx(47.0)
        assert projection.total_breakdown.baseline == 47.0
