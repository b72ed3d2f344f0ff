"""Timeline model for competitions (pure, no DB).

A competition's schedule is stored as separate collections (nomination periods,
voting/judging rounds) plus a finale instant, with older competitions carrying
only flat date fields on the competition row. This module turns those rows into
immutable values and exposes them as one ordered list of typed segments:

    periods (by period_order) -> rounds (by round_order) -> finale

The phase resolver and the timeline validator both walk that single list.

Dual source of truth:
- Nomination/finale dates may live on ``competition_settings`` or on the
  competition row itself. The accessors below (nomination_start, nomination_end,
  finale_date) are the only place that precedence is decided: settings first,
  then the richer collections, then the flat field.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, Literal, Mapping, Optional, Sequence

from .validation import (
    TimelineLimits,
    ValidatedCompetition,
    ValidatedContestant,
    ValidatedPeriod,
    ValidatedRound,
    ValidatedSettings,
    ensure_utc,
)

logger = logging.getLogger(__name__)


class Status(str, Enum):
    DRAFT = "draft"
    PUBLISH = "publish"
    LIVE = "live"
    COMPLETED = "completed"
    ARCHIVE = "archive"


# Forward order of the administrative lifecycle; archive sits outside it.
STATUS_ORDER = (Status.DRAFT, Status.PUBLISH, Status.LIVE, Status.COMPLETED)

RoundKind = Literal["voting", "judging"]
SegmentKind = Literal["nomination", "voting", "judging", "finale"]


def _utc_fields(instance, *names: str) -> None:
    # Frozen dataclasses: naive instants are taken to be UTC
    for name in names:
        object.__setattr__(instance, name, ensure_utc(getattr(instance, name)))


def in_window(now: datetime, start: datetime | None, end: datetime | None) -> bool:
    """Half-open ``[start, end)`` membership; a missing bound never matches."""
    if start is None or end is None:
        return False
    return start <= now < end


@dataclass(frozen=True)
class NominationPeriod:
    order: int
    title: str = TimelineLimits.DEFAULT_PERIOD_TITLE
    start: datetime | None = None
    end: datetime | None = None
    max_submissions: int | None = None
    id: str | None = None

    def __post_init__(self) -> None:
        _utc_fields(self, "start", "end")


@dataclass(frozen=True)
class VotingRound:
    order: int
    title: str
    kind: RoundKind = "voting"
    start: datetime | None = None
    end: datetime | None = None
    contestants_advance: int | None = None
    votes_accumulate: bool = TimelineLimits.DEFAULT_VOTES_ACCUMULATE
    id: str | None = None

    def __post_init__(self) -> None:
        _utc_fields(self, "start", "end")

    @property
    def has_cutoff(self) -> bool:
        return bool(self.contestants_advance)


@dataclass(frozen=True)
class Finale:
    date: datetime
    title: str = TimelineLimits.DEFAULT_FINALE_TITLE

    def __post_init__(self) -> None:
        _utc_fields(self, "date")


@dataclass(frozen=True)
class Segment:
    """One entry of the unified timeline sequence."""

    kind: SegmentKind
    # 0-based position within its own kind (period 0, period 1, round 0, ...)
    index: int
    order: int
    title: str
    start: datetime | None
    end: datetime | None
    source: NominationPeriod | VotingRound | Finale

    @property
    def label(self) -> str:
        if self.kind == "nomination":
            return f"Nomination Period {self.index + 1}"
        if self.kind == "finale":
            return "Finale"
        return f"{self.kind.capitalize()} Round {self.index + 1}"

    @property
    def is_round(self) -> bool:
        return self.kind in ("voting", "judging")

    def contains(self, now: datetime) -> bool:
        return in_window(now, self.start, self.end)


@dataclass(frozen=True)
class Timeline:
    periods: tuple[NominationPeriod, ...] = ()
    rounds: tuple[VotingRound, ...] = ()
    finale: Finale | None = None

    def __post_init__(self) -> None:
        # Order index is the only sequencing signal; keep the collections sorted by it.
        object.__setattr__(
            self, "periods", tuple(sorted(self.periods, key=lambda p: p.order))
        )
        object.__setattr__(
            self, "rounds", tuple(sorted(self.rounds, key=lambda r: r.order))
        )

    @property
    def is_legacy(self) -> bool:
        return not self.periods and not self.rounds

    def period_segments(self) -> list[Segment]:
        return [
            Segment(
                kind="nomination",
                index=i,
                order=p.order,
                title=p.title,
                start=p.start,
                end=p.end,
                source=p,
            )
            for i, p in enumerate(self.periods)
        ]

    def round_segments(self) -> list[Segment]:
        return [
            Segment(
                kind=r.kind,
                index=i,
                order=r.order,
                title=r.title,
                start=r.start,
                end=r.end,
                source=r,
            )
            for i, r in enumerate(self.rounds)
        ]

    def segments(self, *, include_finale: bool = True) -> list[Segment]:
        """Periods, then rounds, then the finale (start == end == finale date)."""
        out = self.period_segments() + self.round_segments()
        if include_finale and self.finale is not None:
            out.append(
                Segment(
                    kind="finale",
                    index=0,
                    order=0,
                    title=self.finale.title,
                    start=self.finale.date,
                    end=self.finale.date,
                    source=self.finale,
                )
            )
        return out

    def last_known_end(self) -> datetime | None:
        """End of the latest period/round in sequence that has one."""
        for segment in reversed(self.segments(include_finale=False)):
            if segment.end is not None:
                return segment.end
        return None

    def round_by_id(self, round_id: str) -> VotingRound | None:
        for rnd in self.rounds:
            if rnd.id == round_id:
                return rnd
        return None


@dataclass(frozen=True)
class CompetitionSettings:
    nomination_start: datetime | None = None
    nomination_end: datetime | None = None
    finale_date: datetime | None = None
    finale_title: str | None = None

    def __post_init__(self) -> None:
        _utc_fields(self, "nomination_start", "nomination_end", "finale_date")


@dataclass(frozen=True)
class Competition:
    id: str | None
    status: Status
    timeline: Timeline = field(default_factory=Timeline)
    settings: CompetitionSettings | None = None
    # Legacy flat timeline, kept for competitions without period/round rows
    nomination_start: datetime | None = None
    nomination_end: datetime | None = None
    voting_start: datetime | None = None
    voting_end: datetime | None = None
    finale_date: datetime | None = None
    # Publish requirements
    city_id: str | None = None
    host_id: str | None = None
    category_id: str | None = None
    demographic_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", Status(self.status))
        _utc_fields(
            self,
            "nomination_start",
            "nomination_end",
            "voting_start",
            "voting_end",
            "finale_date",
        )


@dataclass(frozen=True)
class Contestant:
    id: str
    name: str = ""
    votes: int = 0
    competition_id: str | None = None
    advancement_status: str | None = None


# ==================== SHARED DATE ACCESSORS ====================


def nomination_start(competition: Competition) -> datetime | None:
    """Earliest configured nomination start: settings override, periods, flat field."""
    if competition.settings is not None and competition.settings.nomination_start:
        return competition.settings.nomination_start
    starts = [p.start for p in competition.timeline.periods if p.start is not None]
    if starts:
        return min(starts)
    return competition.nomination_start


def nomination_end(competition: Competition) -> datetime | None:
    if competition.settings is not None and competition.settings.nomination_end:
        return competition.settings.nomination_end
    ends = [p.end for p in competition.timeline.periods if p.end is not None]
    if ends:
        return max(ends)
    return competition.nomination_end


def finale_date(competition: Competition) -> datetime | None:
    if competition.settings is not None and competition.settings.finale_date:
        return competition.settings.finale_date
    if competition.timeline.finale is not None:
        return competition.timeline.finale.date
    return competition.finale_date


# ==================== ROW LOADERS ====================


def period_from_row(row: Mapping[str, Any], position: int = 0) -> NominationPeriod:
    """Build a NominationPeriod from a ``nomination_periods`` row.

    Args:
        row: Raw row dict (ISO strings or datetimes for dates)
        position: 0-based list position, used when the row has no period_order

    Raises:
        pydantic.ValidationError: malformed row (unparseable date, negative cap)
    """
    data = ValidatedPeriod.model_validate(dict(row))
    order = data.period_order if data.period_order is not None else position + 1
    return NominationPeriod(
        order=order,
        title=data.title or TimelineLimits.DEFAULT_PERIOD_TITLE,
        start=data.start_date,
        end=data.end_date,
        max_submissions=data.max_submissions,
        id=data.id,
    )


def round_from_row(row: Mapping[str, Any], position: int = 0) -> VotingRound:
    data = ValidatedRound.model_validate(dict(row))
    order = data.round_order if data.round_order is not None else position + 1
    return VotingRound(
        order=order,
        title=data.title or f"Round {order}",
        kind=data.round_type,  # type: ignore[arg-type]
        start=data.start_date,
        end=data.end_date,
        contestants_advance=data.contestants_advance,
        votes_accumulate=data.votes_accumulate,
        id=data.id,
    )


def settings_from_row(row: Mapping[str, Any] | None) -> CompetitionSettings | None:
    if not row:
        return None
    data = ValidatedSettings.model_validate(dict(row))
    return CompetitionSettings(
        nomination_start=data.nomination_start,
        nomination_end=data.nomination_end,
        finale_date=data.finale_date,
        finale_title=data.finale_title,
    )


def contestant_from_row(row: Mapping[str, Any]) -> Contestant:
    data = ValidatedContestant.model_validate(dict(row))
    return Contestant(
        id=data.id,
        name=data.name,
        votes=data.votes,
        competition_id=data.competition_id,
        advancement_status=data.advancement_status,
    )


def build_timeline(
    periods: Iterable[NominationPeriod] = (),
    rounds: Iterable[VotingRound] = (),
    finale: datetime | None = None,
    finale_title: str | None = None,
) -> Timeline:
    return Timeline(
        periods=tuple(periods),
        rounds=tuple(rounds),
        finale=(
            Finale(date=finale, title=finale_title or TimelineLimits.DEFAULT_FINALE_TITLE)
            if finale is not None
            else None
        ),
    )


def competition_from_rows(
    row: Mapping[str, Any],
    *,
    periods: Sequence[Mapping[str, Any]] | None = None,
    rounds: Sequence[Mapping[str, Any]] | None = None,
    settings: Mapping[str, Any] | None = None,
) -> Competition:
    """Assemble a Competition from its stored rows.

    Args:
        row: ``competitions`` row (status + flat legacy fields)
        periods: ``nomination_periods`` rows; falls back to row["nomination_periods"]
        rounds: ``voting_rounds`` rows; falls back to row["voting_rounds"]
        settings: ``competition_settings`` row, whose dates take priority

    Returns:
        Competition with a sorted Timeline. The finale comes from settings when
        present, otherwise from the flat finale_date (or the older finals_date).

    Raises:
        ValueError: row is None
        pydantic.ValidationError: malformed rows
    """
    if row is None:
        raise ValueError("competition row is required")
    data = ValidatedCompetition.model_validate(dict(row))
    period_rows = periods if periods else (row.get("nomination_periods") or [])
    round_rows = rounds if rounds else (row.get("voting_rounds") or [])
    settings_obj = settings_from_row(settings)

    finale = None
    finale_title = None
    if settings_obj is not None and settings_obj.finale_date is not None:
        finale = settings_obj.finale_date
        finale_title = settings_obj.finale_title
    if finale is None:
        finale = data.finale_date or data.finals_date

    timeline = build_timeline(
        periods=[period_from_row(r, i) for i, r in enumerate(period_rows)],
        rounds=[round_from_row(r, i) for i, r in enumerate(round_rows)],
        finale=finale,
        finale_title=finale_title,
    )
    logger.debug(
        f"Loaded competition {data.id}: status={data.status} "
        f"periods={len(timeline.periods)} rounds={len(timeline.rounds)} "
        f"finale={'set' if timeline.finale else 'unset'}"
    )
    return Competition(
        id=data.id,
        status=Status(data.status),
        timeline=timeline,
        settings=settings_obj,
        nomination_start=data.nomination_start,
        nomination_end=data.nomination_end,
        voting_start=data.voting_start,
        voting_end=data.voting_end,
        finale_date=data.finale_date or data.finals_date,
        city_id=data.city_id or data.city,
        host_id=data.host_id,
        category_id=data.category_id,
        demographic_id=data.demographic_id,
    )


def timeline_rows(timeline: Timeline) -> Dict[str, Any]:
    """Rows to persist for a timeline (replace-by-delete-then-insert)."""
    return {
        "nomination_periods": [
            {
                "title": p.title,
                "period_order": p.order,
                "start_date": p.start,
                "end_date": p.end,
                "max_submissions": p.max_submissions,
            }
            for p in timeline.periods
        ],
        "voting_rounds": [
            {
                "title": r.title,
                "round_order": r.order,
                "round_type": r.kind,
                "start_date": r.start,
                "end_date": r.end,
                "contestants_advance": r.contestants_advance,
                "votes_accumulate": r.votes_accumulate,
            }
            for r in timeline.rounds
        ],
        "finale_date": timeline.finale.date if timeline.finale else None,
        "finale_title": timeline.finale.title if timeline.finale else None,
    }
