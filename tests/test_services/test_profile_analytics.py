"""
Tests for user profiles and usage analytics.
"""

from datetime import date, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from src.core.scoring import TrackerKind, age_band
from src.services.analytics_service import AnalyticsService, UserActivity, summarize_usage, user_growth
from src.services.profile_service import ProfileInput, ProfileService
from src.services.tracker_service import EntryInput, TrackerService

NOW = datetime(2025, 3, 12, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("age,expected", [(0, (0, 9)), (34, (30, 39)), (40, (40, 49)), (99, (90, 99))])
def test_age_band(age, expected):
    assert age_band(age) == expected


def test_age_band_width_and_errors():
    assert age_band(34, width=5) == (30, 34)
    with pytest.raises(ValueError):
        age_band(-1)
    with pytest.raises(ValueError):
        age_band(30, width=0)


def test_profile_input_limits():
    assert ProfileInput(age=34, gender=" female ").gender == "female"
    with pytest.raises(ValidationError):
        ProfileInput(age=-3)
    with pytest.raises(ValidationError):
        ProfileInput(age=200)


def test_save_profile_creates_then_replaces(run_db):
    profiles = ProfileService()

    async def save(db, payload):
        record = await profiles.save_profile(db, "alice", payload)
        return record.id

    first_id = run_db(lambda db: save(db, ProfileInput(age=34, location="Lisbon")))
    second_id = run_db(lambda db: save(db, ProfileInput(age=35)))
    record = run_db(lambda db: profiles.get_profile(db, "alice"))

    assert first_id == second_id
    assert record.age == 35
    assert record.location is None
    assert run_db(lambda db: profiles.get_age(db, "bob")) is None


def test_update_profile_requires_own_id(run_db):
    profiles = ProfileService()
    run_db(lambda db: profiles.save_profile(db, "alice", ProfileInput(age=34)))
    profile_id = run_db(lambda db: profiles.get_profile(db, "alice")).id

    assert run_db(lambda db: profiles.update_profile(db, "alice", profile_id + 1, ProfileInput(age=40))) is None
    assert run_db(lambda db: profiles.update_profile(db, "bob", profile_id, ProfileInput(age=40))) is None
    assert run_db(lambda db: profiles.get_age(db, "alice")) == 34

    run_db(lambda db: profiles.update_profile(db, "alice", profile_id, ProfileInput(age=40)))
    assert run_db(lambda db: profiles.get_age(db, "alice")) == 40


def test_summarize_usage():
    activity = {
        "alice": UserActivity(first_seen=NOW - timedelta(hours=2), last_active=NOW - timedelta(hours=2)),
        "bob": UserActivity(first_seen=NOW - timedelta(days=3), last_active=NOW - timedelta(days=20)),
        "carol": UserActivity(first_seen=NOW - timedelta(days=40), last_active=NOW - timedelta(days=1)),
        "dana": UserActivity(first_seen=datetime(2025, 3, 12, 11, 0)),
    }

    summary = summarize_usage(activity, {"microplastic": 7}, NOW)

    assert summary.total_users == 4
    assert summary.new_today == 2
    assert summary.new_this_week == 3
    assert summary.active_this_week == 2
    assert summary.entries == {"microplastic": 7, "pfas": 0}


def test_user_growth_running_total():
    activity = {
        "alice": UserActivity(first_seen=datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)),
        "bob": UserActivity(first_seen=datetime(2025, 3, 1, 18, 0, tzinfo=timezone.utc)),
        "carol": UserActivity(first_seen=datetime(2025, 3, 10, 8, 0, tzinfo=timezone.utc)),
        "dana": UserActivity(first_seen=datetime(2025, 1, 2, 8, 0, tzinfo=timezone.utc)),
    }

    growth = user_growth(activity, NOW, days=30)

    assert [(p.day, p.new_users, p.total_users) for p in growth] == [
        (date(2025, 3, 1), 2, 2),
        (date(2025, 3, 10), 1, 3),
    ]
    assert user_growth({}, NOW) == []


def test_usage_summary_from_database(run_db, settings):
    tracker = TrackerService(settings)
    analytics = AnalyticsService(settings)
    now = datetime.now(timezone.utc)

    run_db(
        lambda db: tracker.create_entry(
            db, "alice", TrackerKind.MICROPLASTIC, EntryInput.model_validate({"weekStart": "2025-03-10", "salt": 2})
        )
    )
    run_db(
        lambda db: tracker.create_entry(
            db, "bob", TrackerKind.PFAS, EntryInput.model_validate({"weekStart": "2025-03-10", "tapWater": 2})
        )
    )
    run_db(lambda db: ProfileService().save_profile(db, "carol", ProfileInput(age=28)))

    summary = run_db(lambda db: analytics.get_summary(db))
    growth = run_db(lambda db: analytics.get_growth(db))

    assert summary.total_users == 3
    assert summary.active_this_week == 2
    assert summary.new_this_week == 3
    assert summary.entries == {"microplastic": 1, "pfas": 1}
    assert sum(point.new_users for point in growth) == 3
    assert growth[-1].total_users == 3
    assert summary.timestamp >= now
