from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from eliterank_core import (
    Competition,
    CompetitionSettings,
    NominationPeriod,
    Status,
    build_timeline,
    check_publish_requirements,
    check_status_sync,
    compute_status,
    next_auto_transition,
    should_auto_transition_to_completed,
    should_auto_transition_to_live,
    status_change_restriction,
    validate_status_change,
)

NOW = datetime(2026, 10, 18, 12, tzinfo=timezone.utc)


def _published(start: datetime | None, **kwargs) -> Competition:
    timeline = build_timeline(
        periods=[NominationPeriod(order=1, start=start, end=start + timedelta(days=30))]
        if start is not None
        else []
    )
    return Competition(id="c", status=Status.PUBLISH, timeline=timeline, **kwargs)


def test_publish_goes_live_once_nomination_started():
    assert should_auto_transition_to_live(_published(NOW - timedelta(days=1)), NOW) is True
    assert should_auto_transition_to_live(_published(NOW + timedelta(days=1)), NOW) is False


def test_publish_goes_live_exactly_at_nomination_start():
    assert should_auto_transition_to_live(_published(NOW), NOW) is True


def test_publish_without_nomination_start_stays_published():
    assert should_auto_transition_to_live(_published(None), NOW) is False


def test_settings_nomination_start_takes_priority_over_flat_field():
    competition = Competition(
        id="c",
        status=Status.PUBLISH,
        nomination_start=NOW - timedelta(days=5),
        settings=CompetitionSettings(nomination_start=NOW + timedelta(days=5)),
    )
    assert should_auto_transition_to_live(competition, NOW) is False

    flat_only = Competition(
        id="c", status=Status.PUBLISH, nomination_start=NOW - timedelta(days=5)
    )
    assert should_auto_transition_to_live(flat_only, NOW) is True


def test_earliest_period_start_is_used():
    timeline = build_timeline(
        periods=[
            NominationPeriod(order=2, start=NOW + timedelta(days=10), end=NOW + timedelta(days=20)),
            NominationPeriod(order=1, start=NOW - timedelta(hours=1), end=NOW + timedelta(days=5)),
        ]
    )
    competition = Competition(id="c", status=Status.PUBLISH, timeline=timeline)
    assert should_auto_transition_to_live(competition, NOW) is True


def test_live_completes_at_finale():
    timeline = build_timeline(finale=NOW - timedelta(minutes=1))
    live = Competition(id="c", status=Status.LIVE, timeline=timeline)
    assert should_auto_transition_to_completed(live, NOW) is True
    assert should_auto_transition_to_completed(
        replace(live, timeline=build_timeline(finale=NOW + timedelta(days=1))), NOW
    ) is False
    assert should_auto_transition_to_completed(
        replace(live, timeline=build_timeline(finale=NOW)), NOW
    ) is True


def test_predicates_are_idempotent_and_false_after_persisting():
    competition = _published(NOW - timedelta(days=1))
    first = should_auto_transition_to_live(competition, NOW)
    second = should_auto_transition_to_live(competition, NOW)
    assert first is second is True

    persisted = replace(competition, status=compute_status(competition, NOW))
    assert persisted.status is Status.LIVE
    assert should_auto_transition_to_live(persisted, NOW) is False


@pytest.mark.parametrize("status", [Status.DRAFT, Status.ARCHIVE, Status.COMPLETED])
def test_manual_states_never_auto_transition(status):
    competition = Competition(
        id="c",
        status=status,
        nomination_start=NOW - timedelta(days=10),
        timeline=build_timeline(finale=NOW - timedelta(days=1)),
    )
    assert compute_status(competition, NOW) is status
    sync = check_status_sync(competition, NOW)
    assert sync.needs_update is False


def test_check_status_sync_reports_due_transition():
    sync = check_status_sync(_published(NOW - timedelta(days=1)), NOW)
    assert sync.needs_update is True
    assert sync.current is Status.PUBLISH
    assert sync.computed is Status.LIVE


def test_next_auto_transition():
    start = NOW + timedelta(days=3)
    upcoming = next_auto_transition(_published(start))
    assert upcoming.next_status is Status.LIVE
    assert upcoming.trigger_at == start

    live = Competition(id="c", status=Status.LIVE, timeline=build_timeline(finale=start))
    assert next_auto_transition(live).next_status is Status.COMPLETED
    assert next_auto_transition(Competition(id="c", status=Status.DRAFT)) is None


def test_completed_cannot_be_reactivated():
    completed = Competition(id="c", status=Status.COMPLETED)
    for target in ("draft", "publish", "live"):
        check = validate_status_change(completed, target)
        assert check.allowed is False
        assert "create a new season" in check.reason
    assert validate_status_change(completed, "archive").allowed is True


def test_archive_only_unwinds_to_draft():
    archived = Competition(id="c", status=Status.ARCHIVE, city_id="nyc")
    assert validate_status_change(archived, Status.DRAFT).allowed is True
    check = validate_status_change(archived, Status.PUBLISH)
    assert check.allowed is False
    assert check.reason == "Archived competitions can only be moved back to Draft"


def test_going_live_requires_complete_nomination_window():
    incomplete = Competition(
        id="c",
        status=Status.PUBLISH,
        timeline=build_timeline(periods=[NominationPeriod(order=1, start=NOW, end=None)]),
    )
    check = validate_status_change(incomplete, Status.LIVE)
    assert check.allowed is False
    assert check.reason == "Going live requires a nomination period with start and end dates"

    assert validate_status_change(_published(NOW), Status.LIVE).allowed is True

    legacy = Competition(
        id="c",
        status=Status.PUBLISH,
        nomination_start=NOW,
        nomination_end=NOW + timedelta(days=7),
    )
    assert validate_status_change(legacy, Status.LIVE).allowed is True


def test_publish_requires_city_and_warns_on_the_rest():
    draft = Competition(id="c", status=Status.DRAFT)
    check = validate_status_change(draft, Status.PUBLISH)
    assert check.allowed is False
    assert check.errors == ("City must be assigned",)

    with_city = replace(draft, city_id="city-1")
    check = validate_status_change(with_city, Status.PUBLISH)
    assert check.allowed is True
    assert "Host not assigned" in check.warnings
    assert "Finale date not set" in check.warnings


def test_backwards_move_is_allowed_with_warning():
    live = Competition(id="c", status=Status.LIVE, city_id="city-1")
    check = validate_status_change(live, Status.PUBLISH)
    assert check.allowed is True
    assert check.warnings[-1] == "Moving from live back to publish - this is unusual"


def test_unknown_status_is_refused_not_raised():
    check = validate_status_change(Competition(id="c", status=Status.DRAFT), "cancelled")
    assert check.allowed is False
    assert check.reason == "Unknown status: cancelled"


def test_same_status_is_a_no_op():
    check = validate_status_change(Competition(id="c", status=Status.ARCHIVE), "archive")
    assert check.allowed is True
    assert check.errors == ()


def test_publish_requirements_for_missing_competition():
    assert set(check_publish_requirements(None).values()) == {False}


def test_status_change_restriction_text():
    assert "go live automatically" in status_change_restriction("publish")
    assert status_change_restriction("unknown").startswith("Status is managed")


def test_naive_nomination_start_is_compared_as_utc():
    competition = Competition(
        id="c", status=Status.PUBLISH, nomination_start=datetime(2026, 10, 18, 11)
    )
    assert should_auto_transition_to_live(competition, NOW) is True
    later = replace(competition, nomination_start=datetime(2026, 10, 18, 13))
    assert should_auto_transition_to_live(later, NOW) is False
