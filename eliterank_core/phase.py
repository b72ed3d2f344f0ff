"""Competition phase resolver (pure, no I/O).

The administrative status decides whether time matters at all: only a ``live``
competition has a time-derived timeline phase. Every other status is its own
phase. ``Phase`` encodes that two-level shape, so a timeline phase attached to
a draft competition cannot be constructed.

Resolution order for a live competition:
1. finale passed            -> completed-timeline (wins over any round data)
2. inside a round           -> voting | judging (first match by round_order)
3. inside a period          -> nomination
4. before the first period  -> nomination (upcoming)
5. after the last period, before the first round (or no rounds) -> between-rounds
6. after the last round (finale not yet reached) or in a gap between rounds
                            -> between-rounds
7. otherwise                -> nomination

Windows are half-open ``[start, end)``. A period/round missing either bound
never matches and falls through to the later checks.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from .timeline import (
    Competition,
    NominationPeriod,
    Segment,
    Status,
    ensure_utc,
    finale_date,
    in_window,
    nomination_end,
    nomination_start,
)

logger = logging.getLogger(__name__)


TimelinePhase = Literal[
    "nomination", "voting", "judging", "between-rounds", "completed-timeline"
]
TIMELINE_PHASES = ("nomination", "voting", "judging", "between-rounds", "completed-timeline")


@dataclass(frozen=True)
class Phase:
    status: Status
    timeline_phase: TimelinePhase | None = None
    # Period/round whose window contains now
    segment: Segment | None = None
    # What comes next while waiting (first period, next round, finale)
    next_segment: Segment | None = None
    # Live but before the first nomination period opens
    upcoming: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", Status(self.status))
        if self.status is Status.LIVE:
            if self.timeline_phase not in TIMELINE_PHASES:
                raise ValueError(
                    f"live phase requires a timeline phase, got {self.timeline_phase!r}"
                )
            return
        if (
            self.timeline_phase is not None
            or self.segment is not None
            or self.next_segment is not None
            or self.upcoming
        ):
            raise ValueError(f"{self.status.value} competitions have no timeline phase")

    @property
    def name(self) -> str:
        if self.timeline_phase is not None:
            return self.timeline_phase
        if self.status is Status.COMPLETED:
            return "completed-status"
        return self.status.value

    @property
    def is_live(self) -> bool:
        return self.status is Status.LIVE


def _live(timeline_phase: TimelinePhase, **kwargs) -> Phase:
    return Phase(status=Status.LIVE, timeline_phase=timeline_phase, **kwargs)


def _resolve_legacy(competition: Competition, now: datetime) -> Phase:
    # Without round rows no voting window can be derived; only the flat
    # nomination window is meaningful.
    start = nomination_start(competition)
    end = nomination_end(competition)
    if in_window(now, start, end):
        period = NominationPeriod(order=1, start=start, end=end)
        segment = Segment(
            kind="nomination",
            index=0,
            order=1,
            title=period.title,
            start=start,
            end=end,
            source=period,
        )
        return _live("nomination", segment=segment)
    return _live("nomination", upcoming=start is not None and now < start)


def resolve_phase(competition: Competition, now: datetime) -> Phase:
    """Derive the display phase of a competition at ``now``.

    Args:
        competition: loaded Competition (status + timeline)
        now: current instant; naive values are treated as UTC

    Returns:
        Phase; never raises for malformed timeline data.

    Raises:
        ValueError: competition is None
    """
    if competition is None:
        raise ValueError("competition is required")
    if competition.status is not Status.LIVE:
        return Phase(status=competition.status)

    now = ensure_utc(now)
    timeline = competition.timeline

    finale = finale_date(competition)
    if finale is not None and now >= finale:
        return _live("completed-timeline")

    if timeline.is_legacy:
        return _resolve_legacy(competition, now)

    rounds = timeline.round_segments()
    periods = timeline.period_segments()

    for segment in rounds:
        if segment.contains(now):
            logger.debug(f"Competition {competition.id}: in {segment.label} at {now}")
            return _live(segment.kind, segment=segment)  # type: ignore[arg-type]

    for segment in periods:
        if segment.contains(now):
            return _live("nomination", segment=segment)

    first_round = rounds[0] if rounds else None

    if periods:
        first_period, last_period = periods[0], periods[-1]
        if first_period.start is not None and now < first_period.start:
            return _live("nomination", upcoming=True, next_segment=first_period)
        if last_period.end is not None and now >= last_period.end:
            if first_round is None or (
                first_round.start is not None and now < first_round.start
            ):
                return _live("between-rounds", next_segment=first_round)

    if rounds:
        last_round = rounds[-1]
        if last_round.end is not None and now >= last_round.end:
            finale_segment = next(
                (s for s in timeline.segments() if s.kind == "finale"), None
            )
            return _live("between-rounds", next_segment=finale_segment)
        for previous, following in zip(rounds, rounds[1:]):
            if (
                previous.end is not None
                and following.start is not None
                and previous.end <= now < following.start
            ):
                return _live("between-rounds", next_segment=following)

    return _live("nomination")


# ==================== DISPLAY HELPERS ====================


@dataclass(frozen=True)
class PhaseDisplay:
    label: str
    variant: str
    pulse: bool = False


PHASE_DISPLAY: dict[str, PhaseDisplay] = {
    "draft": PhaseDisplay(label="DRAFT", variant="default"),
    "publish": PhaseDisplay(label="COMING SOON", variant="warning"),
    "completed-status": PhaseDisplay(label="COMPLETED", variant="secondary"),
    "archive": PhaseDisplay(label="ARCHIVED", variant="default"),
    "upcoming": PhaseDisplay(label="COMING SOON", variant="warning"),
    "nomination": PhaseDisplay(label="NOMINATIONS OPEN", variant="warning"),
    "voting": PhaseDisplay(label="VOTING", variant="success", pulse=True),
    "judging": PhaseDisplay(label="JUDGING", variant="info", pulse=True),
    "between-rounds": PhaseDisplay(label="BETWEEN ROUNDS", variant="info"),
    "completed-timeline": PhaseDisplay(label="COMPLETED", variant="secondary"),
}


def phase_display(phase: Phase) -> PhaseDisplay:
    if phase.upcoming:
        return PHASE_DISPLAY["upcoming"]
    return PHASE_DISPLAY.get(phase.name, PHASE_DISPLAY["draft"])


def can_vote(phase: Phase) -> bool:
    return phase.timeline_phase == "voting"


def can_nominate(phase: Phase) -> bool:
    """Only while a nomination window is actually open."""
    return phase.timeline_phase == "nomination" and phase.segment is not None


def is_public(phase: Phase) -> bool:
    return phase.status in (Status.PUBLISH, Status.LIVE, Status.COMPLETED)


@dataclass(frozen=True)
class TimeRemaining:
    expired: bool
    days: int
    hours: int
    minutes: int
    seconds: int
    total_seconds: float

    @property
    def formatted(self) -> str:
        if self.days > 0:
            return f"{self.days}d {self.hours}h"
        if self.hours > 0:
            return f"{self.hours}h {self.minutes}m"
        return f"{self.minutes}m"


def time_remaining(until: datetime | None, now: datetime) -> TimeRemaining | None:
    """Countdown from ``now`` to ``until``; None when there is nothing to count to."""
    if until is None:
        return None
    diff = (ensure_utc(until) - ensure_utc(now)).total_seconds()
    if diff <= 0:
        return TimeRemaining(
            expired=True, days=0, hours=0, minutes=0, seconds=0, total_seconds=0.0
        )
    whole = int(diff)
    days, rest = divmod(whole, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)
    return TimeRemaining(
        expired=False,
        days=days,
        hours=hours,
        minutes=minutes,
        seconds=seconds,
        total_seconds=diff,
    )
