"""Tests for domain/scoring/normalizers.py."""

from datetime import date

import pytest

from domain.scoring.normalizers import (
    NORMALIZERS,
    MissingPolicy,
    Normalizer,
    normalize_capacity_factor,
    normalize_cod,
    normalize_environmental,
    normalize_fields,
    normalize_infrastructure,
    normalize_interconnection,
    normalize_market,
    normalize_redevelopment_market,
    normalize_thermal_optimization,
    normalize_transactability,
)

MISSING_INPUTS = [None, "", "  ", "#N/A", "N/A", "#VALUE!"]


class TestMissingPolicy:
    """Every factor except thermal optimization propagates N/A."""

    @pytest.mark.parametrize("value", MISSING_INPUTS)
    @pytest.mark.parametrize(
        "normalizer",
        [
            normalize_cod,
            normalize_capacity_factor,
            normalize_market,
            normalize_transactability,
            normalize_environmental,
            normalize_redevelopment_market,
            normalize_infrastructure,
            normalize_interconnection,
        ],
        ids=lambda normalizer: normalizer.factor,
    )
    def test_missing_propagates(self, normalizer, value):
        assert normalizer(value) is None

    @pytest.mark.parametrize("value", MISSING_INPUTS)
    def test_thermal_optimization_defaults_to_zero(self, value):
        assert normalize_thermal_optimization(value) == 0

    def test_thermal_optimization_policy_is_explicit(self):
        assert normalize_thermal_optimization.on_missing is MissingPolicy.ZERO_DEFAULT
        others = [n for key, n in NORMALIZERS.items() if key != "thermal_optimization"]
        assert all(n.on_missing is MissingPolicy.MISSING for n in others)

    def test_custom_policy(self):
        lenient = Normalizer("cod", normalize_cod.rule, on_missing=MissingPolicy.ZERO_DEFAULT)
        assert lenient("#N/A") == 0
        assert lenient("not a year") == 0


class TestCod:
    @pytest.mark.parametrize("year,expected", [
        (1975, 3),
        (1999, 3),
        (2000, 2),
        (2005, 2),
        (2006, 1),
        (2024, 1),
        ("1999", 3),
        ("2003.0", 2),
    ])
    def test_year_buckets(self, year, expected):
        assert normalize_cod(year) == expected

    def test_date_like_values(self):
        assert normalize_cod(date(2004, 6, 1)) == 2
        assert normalize_cod("6/1/1988") == 3
        assert normalize_cod("2010-05-01") == 1

    def test_unparseable_text_is_missing(self):
        assert normalize_cod("unknown") is None


class TestCapacityFactor:
    @pytest.mark.parametrize("value,expected", [
        (0.0, 3),
        (0.099, 3),
        (0.10, 2),
        (0.25, 2),
        (0.2501, 1),
        (0.9, 1),
        ("0.05", 3),
    ])
    def test_buckets(self, value, expected):
        assert normalize_capacity_factor(value) == expected

    def test_text_is_missing(self):
        assert normalize_capacity_factor("peaker") is None


class TestMarket:
    @pytest.mark.parametrize("iso,expected", [
        ("PJM", 3),
        ("NYISO", 3),
        ("ISO-NE", 3),
        ("MISO North", 2),
        ("SERC", 2),
        ("SPP", 1),
        ("MISO South", 1),
        ("ERCOT", 0),
        ("WECC", 0),
        ("CAISO", 0),
        (" PJM ", 3),
        ("pjm", 1),
        ("Miso North", 1),
        ("ISONE", 1),
        ("Other", 1),
        (3, 3),
        ("2", 2),
        (2.7, 2),
        (5, 3),
        (-1, 0),
    ])
    def test_tiers(self, iso, expected):
        assert normalize_market(iso) == expected

    def test_poor_market_is_present_zero(self):
        assert normalize_market("ERCOT") == 0
        assert normalize_market("ERCOT") is not None


class TestTransactability:
    @pytest.mark.parametrize("text,expected", [
        ("Bilateral, developed project", 3),
        ("Bilateral", 2),
        ("B - bilateral negotiation", 2),
        ("Process with less than 10 bidders", 2),
        ("Competitive process with more than 10 bidders", 1),
        ("Competitive, more than 10 bidders", 1),
        ("Unclear", 2),
    ])
    def test_keyword_rules(self, text, expected):
        assert normalize_transactability(text) == expected

    def test_or_binds_bilateral_alone(self):
        """'bilateral' scores 2 without 'less than 10'; 'process' needs it."""
        assert normalize_transactability("bilateral, more than 10 parties") == 2
        assert normalize_transactability("less than 10 parties") == 2  # default branch
        assert normalize_transactability("process, competitive, more than 10") == 1

    def test_process_without_threshold_falls_through(self):
        assert normalize_transactability("competitive process, more than 10 bidders") == 1

    @pytest.mark.parametrize("value,expected", [
        (0, 0),
        (1.4, 1),
        (1.5, 2),
        (2.5, 3),
        (7, 3),
        (-2, 0),
        ("3", 3),
    ])
    def test_numeric_rounded_and_clamped(self, value, expected):
        assert normalize_transactability(value) == expected


class TestThermalOptimization:
    @pytest.mark.parametrize("value,expected", [
        ("Optimization readily apparent", 2),
        ("No identifiable upside", 1),
        ("READILY APPARENT", 2),
        (0, 0),
        (1, 1),
        (2, 2),
        ("2", 2),
        (3, 0),
        (-1, 0),
        ("something else", 0),
    ])
    def test_values(self, value, expected):
        assert normalize_thermal_optimization(value) == expected


class TestRatings:
    @pytest.mark.parametrize("value,expected", [
        (0, 0),
        (1, 1),
        (2.9, 2),
        (3, 3),
        (5, 3),
        (-1, 0),
        ("2", 2),
    ])
    def test_integer_ratings_clamp(self, value, expected):
        assert normalize_environmental(value) == expected
        assert normalize_redevelopment_market(value) == expected

    @pytest.mark.parametrize("value,expected", [
        (0, 0),
        (0.49, 0),
        (0.5, 1),
        (1.49, 1),
        (1.5, 2),
        (2.49, 2),
        (2.5, 3),
        (3, 3),
        ("1.6", 2),
    ])
    def test_continuous_ratings_bucket(self, value, expected):
        assert normalize_infrastructure(value) == expected
        assert normalize_interconnection(value) == expected

    def test_zero_rating_is_not_missing(self):
        assert normalize_infrastructure(0) == 0
        assert normalize_environmental("0") == 0

    def test_text_rating_is_missing(self):
        assert normalize_infrastructure("good") is None
        assert normalize_environmental("good") is None


class TestNormalizeFields:
    def test_all_factors_reported(self, canonical_fields):
        components = normalize_fields(canonical_fields)
        assert components == {
            "cod": 2,
            "capacity_factor": 2,
            "markets": 3,
            "transactability": 1,
            "thermal_optimization": 0,
            "environmental": 2,
            "redevelopment_market": 3,
            "infra": 2,
            "ix": 3,
        }

    def test_empty_fields(self):
        components = normalize_fields({})
        assert components["thermal_optimization"] == 0
        assert all(
            value is None for key, value in components.items() if key != "thermal_optimization"
        )
