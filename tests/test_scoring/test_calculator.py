"""
Unit tests for score calculation and risk classification.
"""

import math
from datetime import date

import pytest

from src.core.config import Settings
from src.core.scoring import (
    ExposureCalculator,
    TemporalKey,
    TrackerKind,
    build_tracker_profile,
    classify_risk,
    compute_total_score,
    score_entry,
    source_breakdown,
)
from src.core.scoring.catalog import MICROPLASTIC_BANDS, get_catalog


def test_microplastic_scenario(microplastic_profile):
    """Weighted sum of two sources, rounded to 2 decimals, classified Low."""
    counts = {"bottledWater": 10, "seafood": 2}

    total = compute_total_score(counts, microplastic_profile.catalog, precision=2)

    assert total == 2.7
    assert classify_risk(total, microplastic_profile.bands) == "Low"


def test_catalog_versions_change_weights():
    counts = {"bottledWater": 10, "seafood": 2}

    assert compute_total_score(counts, get_catalog(TrackerKind.MICROPLASTIC, "v1")) == 2.8
    assert compute_total_score(counts, get_catalog(TrackerKind.MICROPLASTIC, "v2")) == 2.7


def test_malformed_counts_contribute_nothing(microplastic_profile):
    counts = {
        "bottledWater": -3,
        "seafood": float("nan"),
        "salt": "lots",
        "teaBags": None,
        "cannedFood": True,
        "coffeeCups": float("inf"),
    }

    assert compute_total_score(counts, microplastic_profile.catalog) == 0


def test_unknown_and_missing_keys(microplastic_profile):
    assert compute_total_score({}, microplastic_profile.catalog) == 0
    assert compute_total_score({"notASource": 50, "teaBags": 10}, microplastic_profile.catalog) == 1.0


def test_pfas_uses_three_decimals(pfas_profile):
    counts = {"dentalFloss": 3, "toiletPaper": 1, "tapWater": 7}

    total = compute_total_score(counts, pfas_profile.catalog, pfas_profile.precision)

    assert total == pytest.approx(0.177)
    assert total == round(total, 3)
    assert classify_risk(total, pfas_profile.bands) == "Normal"


def test_score_is_monotonic_in_each_source(microplastic_profile):
    base = {source.key: 2 for source in microplastic_profile.catalog}
    base_total = compute_total_score(base, microplastic_profile.catalog)

    for source in microplastic_profile.catalog:
        bumped = dict(base, **{source.key: base[source.key] + 5})
        assert compute_total_score(bumped, microplastic_profile.catalog) >= base_total


@pytest.mark.parametrize(
    "score,expected",
    [
        (0, "Low"),
        (4.99, "Low"),
        (5, "Normal"),
        (19.99, "Normal"),
        (20, "High"),
        (89.9, "High"),
        (90, "Extreme"),
        (1e9, "Extreme"),
    ],
)
def test_classify_band_edges(score, expected):
    assert classify_risk(score, MICROPLASTIC_BANDS["v1"]) == expected


@pytest.mark.parametrize("score", [-0.01, float("nan"), float("inf")])
def test_classify_rejects_invalid_scores(score):
    with pytest.raises(ValueError):
        classify_risk(score, MICROPLASTIC_BANDS["v1"])


def test_source_breakdown_orders_by_contribution(microplastic_profile):
    breakdown = source_breakdown(
        {"bottledWater": 10, "seafood": 2}, microplastic_profile.catalog, microplastic_profile.precision
    )

    assert len(breakdown) == len(microplastic_profile.catalog)
    assert breakdown[0].key == "bottledWater"
    assert breakdown[0].contribution == 2.0
    assert breakdown[0].percentage == 74
    assert breakdown[1].key == "seafood"
    assert breakdown[1].percentage == 26
    assert all(item.contribution == 0 for item in breakdown[2:])


def test_source_breakdown_empty_total(pfas_profile):
    breakdown = source_breakdown({}, pfas_profile.catalog, pfas_profile.precision)

    assert [item.percentage for item in breakdown] == [0] * len(pfas_profile.catalog)


def test_score_entry_is_consistent(microplastic_profile):
    entry = score_entry(
        microplastic_profile,
        week_start=date(2025, 1, 8),
        source_counts={"bottledWater": 30, "seafood": -1, "unknown": 4},
    )

    assert entry.week_start == date(2025, 1, 6)
    assert entry.source_counts["bottledWater"] == 30
    assert entry.source_counts["seafood"] == 0
    assert "unknown" not in entry.source_counts
    assert set(entry.source_counts) == set(microplastic_profile.source_keys)
    assert entry.total_score == 6.0
    assert entry.risk_tier == "Normal"
    assert entry.catalog_version == "v2"


def test_calculator_result(pfas_profile):
    result = ExposureCalculator(pfas_profile).calculate({"nonStickPans": 20})

    assert result.total_score == pytest.approx(0.6)
    assert result.risk_tier == "Extreme"
    assert result.band.max_value == math.inf
    assert result.breakdown[0].key == "nonStickPans"


def test_profile_from_settings():
    settings = Settings(
        _env_file=None,
        microplastic_catalog_version="v1",
        pfas_band_version="v1",
        pfas_temporal_key="CREATED_AT",
    )

    micro = build_tracker_profile(TrackerKind.MICROPLASTIC, settings)
    pfas = build_tracker_profile(TrackerKind.PFAS, settings)

    assert micro.catalog_version == "v1"
    assert micro.precision == 2
    assert pfas.bands[0].max_value == 0.02
    assert pfas.temporal_key is TemporalKey.CREATED_AT
    assert pfas.precision == 3


def test_profile_rejects_unknown_version():
    settings = Settings(_env_file=None, microplastic_catalog_version="v9")

    with pytest.raises(ValueError, match="v9"):
        build_tracker_profile(TrackerKind.MICROPLASTIC, settings)
