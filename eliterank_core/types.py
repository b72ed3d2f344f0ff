"""Type definitions for backend rows consumed by the lifecycle engine."""
from __future__ import annotations

from typing import List, Optional, TypedDict


class CompetitionRow(TypedDict, total=False):
    """
    TypedDict representing a row of the ``competitions`` table.

    All fields are optional (total=False) because older competitions predate
    the richer timeline collections and only carry the flat date fields.
    """
    id: str
    status: str  # 'draft' | 'publish' | 'live' | 'completed' | 'archive'

    # Publish requirements
    city_id: Optional[str]
    city: Optional[str]
    host_id: Optional[str]
    category_id: Optional[str]
    demographic_id: Optional[str]

    # Legacy flat timeline (ISO strings or datetimes)
    nomination_start: Optional[str]
    nomination_end: Optional[str]
    voting_start: Optional[str]
    voting_end: Optional[str]
    finale_date: Optional[str]
    finals_date: Optional[str]  # older spelling of finale_date

    # Embedded collections, when loaded with a nested select
    nomination_periods: List["NominationPeriodRow"]
    voting_rounds: List["VotingRoundRow"]


class SettingsRow(TypedDict, total=False):
    """A row of ``competition_settings``; its dates override the flat fields."""
    competition_id: str
    nomination_start: Optional[str]
    nomination_end: Optional[str]
    finale_date: Optional[str]
    finale_title: Optional[str]


class NominationPeriodRow(TypedDict, total=False):
    id: str
    competition_id: str
    title: Optional[str]
    period_order: int
    start_date: Optional[str]
    end_date: Optional[str]
    max_submissions: Optional[int]


class VotingRoundRow(TypedDict, total=False):
    id: str
    competition_id: str
    title: Optional[str]
    round_order: int
    round_type: str  # 'voting' | 'judging'
    start_date: Optional[str]
    end_date: Optional[str]
    # Number of contestants moving on; None means everyone advances
    contestants_advance: Optional[int]
    # False resets vote totals to zero when the round starts
    votes_accumulate: bool


class ContestantRow(TypedDict, total=False):
    id: str
    competition_id: str
    name: str
    votes: int
    # 'active' | 'advancing' | 'eliminated' (None for never processed)
    advancement_status: Optional[str]


class TimelineEditPayload(TypedDict, total=False):
    """
    TypedDict for the payload an administrator submits from the timeline editor.

    Order indices may be omitted; list position is used instead.
    """
    status: Optional[str]
    finale_date: Optional[str]
    finale_title: Optional[str]
    nomination_periods: List[NominationPeriodRow]
    voting_rounds: List[VotingRoundRow]

