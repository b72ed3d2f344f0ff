from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from eliterank_core import InputSanitizer, TimelineLimits, ValidatedTimelineEdit, contestant_from_row
from eliterank_core.timeline import round_from_row
from eliterank_core.validation import (
    ValidatedContestant,
    ValidatedRound,
    ValidatedVoteAdjustment,
)


def test_round_row_defaults_and_coercion():
    data = ValidatedRound.model_validate(
        {
            "round_type": " Judging ",
            "start_date": "2026-02-01T09:00:00+02:00",
            "end_date": "",
            "votes_accumulate": None,
            "unrelated_column": 7,
        }
    )
    assert data.round_type == "judging"
    assert data.start_date == datetime(2026, 2, 1, 7, tzinfo=timezone.utc)
    assert data.end_date is None
    assert data.votes_accumulate is True


def test_unknown_round_type_is_rejected():
    with pytest.raises(ValidationError):
        ValidatedRound.model_validate({"round_type": "lottery"})


def test_round_from_row_falls_back_to_position_and_default_title():
    voting_round = round_from_row({"start_date": "2026-02-01T00:00:00"}, 2)
    assert voting_round.order == 3
    assert voting_round.title == "Round 3"
    assert voting_round.kind == TimelineLimits.DEFAULT_ROUND_KIND
    assert voting_round.start.utcoffset() == timedelta(0)


def test_contestant_rows_treat_missing_votes_as_zero():
    contestant = contestant_from_row({"id": 42, "name": "  Ana  ", "votes": None})
    assert contestant.id == "42"
    assert contestant.name == "Ana"
    assert contestant.votes == 0


def test_contestant_rows_reject_negative_votes_and_unknown_status():
    with pytest.raises(ValidationError):
        ValidatedContestant.model_validate({"id": "a", "votes": -1})
    with pytest.raises(ValidationError):
        ValidatedContestant.model_validate({"id": "a", "advancement_status": "winner"})


def test_timeline_edit_renumbers_rows_by_position():
    edit = ValidatedTimelineEdit.model_validate(
        {
            "status": "Live",
            "nomination_periods": None,
            "voting_rounds": [{"round_order": 9}, {"round_order": 4}],
        }
    )
    assert edit.status == "live"
    assert edit.nomination_periods == []
    assert [r.round_order for r in edit.voting_rounds] == [1, 2]


def test_timeline_edit_caps_number_of_rounds():
    rounds = [{} for _ in range(TimelineLimits.MAX_VOTING_ROUNDS + 1)]
    with pytest.raises(ValidationError):
        ValidatedTimelineEdit.model_validate({"voting_rounds": rounds})


@pytest.mark.parametrize("delta", [0, TimelineLimits.MAX_VOTE_ADJUSTMENT + 1])
def test_vote_adjustment_bounds(delta):
    with pytest.raises(ValidationError):
        ValidatedVoteAdjustment(contestant_id="a", delta=delta)


def test_sanitize_title_strips_markup_and_length():
    assert InputSanitizer.sanitize_title("  <b>Top\x0010</b> ") == "bTop10/b"
    long_title = "x" * (TimelineLimits.MAX_TITLE_LENGTH + 30)
    assert len(InputSanitizer.sanitize_title(long_title)) == TimelineLimits.MAX_TITLE_LENGTH
