"""
Tests for the tracker service's record parsing and summary builders.
"""

from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from src.core.config import Settings
from src.core.scoring import Granularity, TrackerKind
from src.services.tracker_service import EntryInput, TrackerService

@pytest.fixture
def service(settings):
    return TrackerService(settings)


def test_entry_input_collects_flat_counts():
    payload = EntryInput.model_validate(
        {
            "weekStart": "2025-03-12",
            "bottledWater": 3,
            "totalParticles": 99,
            "riskLevel": "High",
            "seafood": 1,
        }
    )

    assert payload.week_start == date(2025, 3, 10)
    assert payload.source_counts == {"bottledWater": 3, "seafood": 1}
    assert payload.created_at is None


def test_entry_input_accepts_nested_counts():
    payload = EntryInput.model_validate(
        {
            "weekStart": "2025-03-10",
            "createdAt": "2025-03-11T08:00:00Z",
            "sourceCounts": {"dentalFloss": 2},
        }
    )

    assert payload.source_counts == {"dentalFloss": 2}
    assert payload.created_at == datetime(2025, 3, 11, 8, 0, tzinfo=timezone.utc)


def test_entry_input_rejects_negative_counts():
    with pytest.raises(ValidationError):
        EntryInput.model_validate({"weekStart": "2025-03-10", "bottledWater": -1})


@pytest.mark.parametrize("counts", [5, True, [1, 2], "bottledWater"])
def test_entry_input_rejects_non_object_counts(counts):
    with pytest.raises(ValidationError):
        EntryInput.model_validate({"weekStart": "2025-03-10", "sourceCounts": counts})


def test_build_entry_scores_with_server_catalog(service):
    payload = EntryInput.model_validate(
        {"weekStart": "2025-01-08", "bottledWater": 30, "totalParticles": 0.1, "madeUp": 4}
    )

    entry = service.build_entry(TrackerKind.MICROPLASTIC, payload, created_at=datetime(2025, 1, 8, 9, 0))

    assert entry.week_start == date(2025, 1, 6)
    assert entry.total_score == 6.0
    assert entry.risk_tier == "Normal"
    assert entry.source_counts["bottledWater"] == 30
    assert set(entry.source_counts) == set(service.profile(TrackerKind.MICROPLASTIC).source_keys)
    assert entry.created_at.tzinfo is not None
    assert entry.catalog_version == "v2"


def test_score_pfas(service):
    result = service.score(TrackerKind.PFAS, {"nonStickPans": 20})

    assert result.total_score == 0.6
    assert result.risk_tier == "Extreme"
    assert result.breakdown[0].key == "nonStickPans"


def test_build_trend_without_entries(service, reference):
    result = service.build_trend(TrackerKind.MICROPLASTIC, [], Granularity.MEDIUM, reference)

    assert result.points == []
    assert result.trend == []
    assert result.display_range == (0.0, pytest.approx(103.5))
    assert result.thresholds == [5, 20, 90]


def test_build_trend_with_entries(service, make_entry, reference):
    entries = [
        make_entry(2.0, date(2025, 2, 24)),
        make_entry(4.0, date(2025, 3, 3)),
        make_entry(6.0, date(2025, 3, 10)),
    ]

    result = service.build_trend(TrackerKind.MICROPLASTIC, entries, "medium", reference)

    assert [point.mean for point in result.points] == [2.0, 4.0, 6.0]
    assert result.trend == pytest.approx([2.0, 4.0, 6.0])
    assert result.granularity is Granularity.MEDIUM


def test_build_stats_uses_configured_policy(make_entry, reference):
    service = TrackerService(
        Settings(_env_file=None, log_file_path="", monthly_average_policy="LAST_4_ENTRIES")
    )
    entries = [
        make_entry(10.0, date(2025, 3, 10), created_at=datetime(2025, 3, 11)),
        make_entry(20.0, date(2025, 1, 6), created_at=datetime(2025, 1, 7)),
    ]

    stats = service.build_stats(TrackerKind.MICROPLASTIC, entries, now=reference)

    assert stats.monthly_average == 15.0
    assert stats.total_entries == 2


def test_build_insights_without_entries(service, reference):
    assert service.build_insights(TrackerKind.PFAS, [], now=reference) == []


def test_build_percentile(service):
    population = [1.0] * 10 + [5.0] * 10 + [10.0] * 10

    result = service.build_percentile(TrackerKind.MICROPLASTIC, 5.0, population)

    assert result.percentile == 33
    assert result.total_count == 30
    assert result.message == "Your exposure is higher than 33% of users"


def test_build_percentile_without_data(service):
    no_user = service.build_percentile(TrackerKind.MICROPLASTIC, None, [1.0, 2.0])
    no_population = service.build_percentile(TrackerKind.MICROPLASTIC, 3.0, [])

    assert no_user.percentile is None
    assert no_user.message == "No entries yet"
    assert no_population.percentile is None
    assert no_population.total_count == 0
    assert no_population.message == "Not enough data for comparison"


@pytest.mark.parametrize(
    "override",
    [{"pfas_band_version": "v9"}, {"microplastic_catalog_version": "v0"}, {"monthly_average_policy": "median"}],
)
def test_unknown_configuration_is_rejected(override):
    with pytest.raises(ValueError):
        TrackerService(Settings(_env_file=None, log_file_path="", **override))
