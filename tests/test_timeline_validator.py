from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from eliterank_core import (
    NominationPeriod,
    Status,
    VotingRound,
    build_timeline,
    validate_timeline,
)


def _at(month: int, day: int) -> datetime:
    return datetime(2026, month, day, tzinfo=timezone.utc)


def test_well_ordered_timeline_is_valid():
    timeline = build_timeline(
        periods=[
            NominationPeriod(order=1, start=_at(1, 1), end=_at(1, 15)),
            NominationPeriod(order=2, start=_at(1, 15), end=_at(1, 31)),
        ],
        rounds=[
            VotingRound(order=1, title="R1", start=_at(2, 1), end=_at(2, 14)),
            VotingRound(order=2, title="R2", kind="judging", start=_at(2, 14), end=_at(2, 20)),
        ],
        finale=_at(3, 1),
    )
    result = validate_timeline(timeline, status=Status.LIVE)
    assert result.valid is True
    assert result.errors == ()


@pytest.mark.parametrize("offset", [timedelta(0), timedelta(hours=-1), timedelta(days=-10)])
def test_period_end_must_be_after_start(offset):
    start = _at(1, 10)
    timeline = build_timeline(
        periods=[NominationPeriod(order=1, start=start, end=start + offset)]
    )
    result = validate_timeline(timeline)
    assert result.valid is False
    assert result.errors == ("Nomination Period 1: End date must be after start date",)


@pytest.mark.parametrize("offset", [timedelta(0), timedelta(minutes=-5)])
def test_round_end_must_be_after_start(offset):
    start = _at(2, 10)
    timeline = build_timeline(
        rounds=[VotingRound(order=1, title="R1", start=start, end=start + offset)]
    )
    result = validate_timeline(timeline)
    assert result.valid is False
    assert "Voting Round 1: End date must be after start date" in result.errors


def test_live_without_any_ending_is_rejected():
    timeline = build_timeline(
        periods=[NominationPeriod(order=1, start=_at(1, 1), end=None)],
        rounds=[VotingRound(order=1, title="R1", start=_at(2, 1), end=None)],
    )
    result = validate_timeline(timeline, status="live")
    assert result.valid is False
    assert any("Live competitions need an end" in e for e in result.errors)

    # Same data is acceptable while not going live
    assert validate_timeline(timeline, status="draft").valid is True


def test_live_with_only_a_finale_is_accepted():
    timeline = build_timeline(finale=_at(3, 1))
    assert validate_timeline(timeline, status=Status.LIVE).valid is True


def test_round_may_not_start_before_previous_segment_ends():
    timeline = build_timeline(
        periods=[NominationPeriod(order=1, start=_at(1, 1), end=_at(2, 5))],
        rounds=[
            VotingRound(order=1, title="R1", start=_at(2, 1), end=_at(2, 10)),
            VotingRound(order=2, title="R2", start=_at(2, 8), end=_at(2, 20)),
        ],
    )
    result = validate_timeline(timeline)
    assert result.valid is False
    assert "Voting Round 1: Starts before Nomination Period 1 ends" in result.errors
    assert "Voting Round 2: Starts before Voting Round 1 ends" in result.errors


def test_period_may_not_start_before_previous_period_ends():
    timeline = build_timeline(
        periods=[
            NominationPeriod(order=1, start=_at(1, 1), end=_at(1, 20)),
            NominationPeriod(order=2, start=_at(1, 10), end=_at(1, 31)),
        ]
    )
    result = validate_timeline(timeline)
    assert result.errors == ("Nomination Period 2: Starts before Nomination Period 1 ends",)


def test_finale_must_not_precede_last_round_end():
    timeline = build_timeline(
        rounds=[VotingRound(order=1, title="R1", start=_at(2, 1), end=_at(2, 14))],
        finale=_at(2, 10),
    )
    result = validate_timeline(timeline)
    assert result.errors == ("Finale date must be at or after the end of Voting Round 1",)

    on_time = build_timeline(
        rounds=[VotingRound(order=1, title="R1", start=_at(2, 1), end=_at(2, 14))],
        finale=_at(2, 14),
    )
    assert validate_timeline(on_time).valid is True


def test_all_violations_are_collected():
    timeline = build_timeline(
        periods=[NominationPeriod(order=1, start=_at(1, 20), end=_at(1, 10))],
        rounds=[
            VotingRound(order=1, title="R1", start=_at(2, 10), end=_at(2, 1)),
            VotingRound(order=1, title="R1 again", start=_at(2, 20), end=_at(2, 25)),
        ],
        finale=_at(2, 21),
    )
    result = validate_timeline(timeline)
    assert result.valid is False
    assert len(result.errors) == 4
    assert "Rounds share order index 1" in result.errors
    assert "Nomination Period 1: End date must be after start date" in result.errors
    assert "Voting Round 1: End date must be after start date" in result.errors
    assert "Finale date must be at or after the end of Voting Round 2" in result.errors


def test_half_open_segment_is_a_warning_not_an_error():
    timeline = build_timeline(
        periods=[NominationPeriod(order=1, start=_at(1, 1), end=None)],
        finale=_at(3, 1),
    )
    result = validate_timeline(timeline)
    assert result.valid is True
    assert result.warnings == (
        "Nomination Period 1: No end date; it will not be shown as active",
    )


def test_mixed_naive_and_aware_dates_are_compared_as_utc():
    timeline = build_timeline(
        periods=[NominationPeriod(order=1, start=datetime(2026, 1, 20), end=_at(1, 10))],
        rounds=[VotingRound(order=1, title="R1", start=_at(2, 1), end=datetime(2026, 2, 14))],
        finale=datetime(2026, 3, 1),
    )
    result = validate_timeline(timeline)
    assert result.errors == ("Nomination Period 1: End date must be after start date",)
