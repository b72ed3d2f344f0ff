"""Round advancement engine (vote ranking + cutoff + manual tie-break workflow).

Single source of truth for who moves on after a round, across dashboard views:
- Ranking: votes descending; equal votes keep input order (display only).
- Cutoff N: top N advance; unset/0, or N >= contestant count, means all advance.
- Tie at cutoff: more than one contestant at position >= N shares the vote
  count found at position N. Vote counts alone cannot fill the slot, so an
  administrator picks one member.
- Tie break: the picked contestant gets +1 vote. The caller persists the
  increment and re-derives the result from stored counts; the result is never
  patched in memory.
"""
from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Sequence

from .timeline import Contestant, VotingRound, ensure_utc

logger = logging.getLogger(__name__)


Zone = Literal["advancing", "tied", "eliminated"]
AdjustmentReason = Literal["tie_break", "manual", "round_reset"]

# Contestants still in the running; None means never processed by a round
ACTIVE_ADVANCEMENT_STATUSES = (None, "active", "advancing")


@dataclass(frozen=True)
class StandingRow:
    contestant_id: str
    contestant_name: str
    # 1-based position in vote order
    position: int
    votes: int
    zone: Zone


@dataclass(frozen=True)
class TieEvent:
    # Cutoff position N the tie straddles
    position: int
    cutoff_votes: int
    members: tuple[StandingRow, ...]
    # Slots left for the tied members after everyone ranked above N-1
    open_slots: int
    fingerprint: str

    @property
    def member_ids(self) -> tuple[str, ...]:
        return tuple(row.contestant_id for row in self.members)


@dataclass(frozen=True)
class AdvancementResult:
    rows: tuple[StandingRow, ...]
    cutoff: int | None
    cutoff_votes: int | None
    tie: TieEvent | None
    is_resolved: bool

    @property
    def advancing_ids(self) -> tuple[str, ...]:
        return tuple(r.contestant_id for r in self.rows if r.zone == "advancing")

    @property
    def eliminated_ids(self) -> tuple[str, ...]:
        return tuple(r.contestant_id for r in self.rows if r.zone == "eliminated")


@dataclass(frozen=True)
class VoteAdjustment:
    contestant_id: str
    delta: int
    reason: AdjustmentReason = "manual"


@dataclass(frozen=True)
class AdvancementRecord:
    contestant_id: str
    round_id: str | None
    round_order: int
    advanced: bool
    final_vote_count: int
    final_rank: int
    decided_at: datetime


def _fingerprint(payload: dict) -> str:
    raw = json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"))
    return f"tie:{hashlib.sha1(raw.encode('utf-8')).hexdigest()}"


def _build_tie_fingerprint(position: int, cutoff_votes: int, members: Sequence[StandingRow]) -> str:
    payload = {
        "position": position,
        "votes": cutoff_votes,
        "members": sorted(row.contestant_id for row in members),
    }
    return _fingerprint(payload)


def active_contestants(contestants: Sequence[Contestant]) -> list[Contestant]:
    """Contestants not yet eliminated in an earlier round."""
    return [c for c in contestants if c.advancement_status in ACTIVE_ADVANCEMENT_STATUSES]


def rank_contestants(contestants: Sequence[Contestant]) -> list[Contestant]:
    # sorted() is stable: equal votes keep their input order
    return sorted(contestants, key=lambda c: -int(c.votes or 0))


def _row(contestant: Contestant, index: int, zone: Zone) -> StandingRow:
    return StandingRow(
        contestant_id=contestant.id,
        contestant_name=contestant.name,
        position=index + 1,
        votes=int(contestant.votes or 0),
        zone=zone,
    )


def compute_advancement(
    contestants: Sequence[Contestant], cutoff: int | None
) -> AdvancementResult:
    """
    Rank contestants and split them at the advancement cutoff.

    Args:
      contestants: contestants with current vote counts (input order breaks
        display ties between equal counts).
      cutoff: the round's contestants_advance (N); None/0 means all advance.

    Returns:
      AdvancementResult. When a tie straddles the cutoff, tied members are in
      zone "tied", ``tie`` describes them and ``is_resolved`` is False.

    Only positions N and below form the tie. A contestant above N with the
    same count advances outright, so after one +1 break it can become the new
    tie at position N; a tie may take several breaks to settle.
    """
    ranked = rank_contestants(contestants)
    n = int(cutoff or 0)

    if n <= 0 or len(ranked) <= n:
        rows = tuple(_row(c, i, "advancing") for i, c in enumerate(ranked))
        return AdvancementResult(
            rows=rows,
            cutoff=n if n > 0 else None,
            cutoff_votes=None,
            tie=None,
            is_resolved=True,
        )

    cutoff_votes = int(ranked[n - 1].votes or 0)
    tied_indexes = {
        i for i in range(n - 1, len(ranked)) if int(ranked[i].votes or 0) == cutoff_votes
    }

    if len(tied_indexes) <= 1:
        rows = tuple(
            _row(c, i, "advancing" if i < n else "eliminated") for i, c in enumerate(ranked)
        )
        return AdvancementResult(
            rows=rows, cutoff=n, cutoff_votes=cutoff_votes, tie=None, is_resolved=True
        )

    rows_list: list[StandingRow] = []
    for i, c in enumerate(ranked):
        if i in tied_indexes:
            zone: Zone = "tied"
        elif i < n - 1:
            zone = "advancing"
        else:
            zone = "eliminated"
        rows_list.append(_row(c, i, zone))
    rows = tuple(rows_list)
    members = tuple(r for r in rows if r.zone == "tied")
    advancing_count = sum(1 for r in rows if r.zone == "advancing")
    tie = TieEvent(
        position=n,
        cutoff_votes=cutoff_votes,
        members=members,
        open_slots=n - advancing_count,
        fingerprint=_build_tie_fingerprint(n, cutoff_votes, members),
    )
    logger.debug(
        f"Tie at position {n}: {len(members)} contestants with {cutoff_votes} votes"
    )
    return AdvancementResult(
        rows=rows, cutoff=n, cutoff_votes=cutoff_votes, tie=tie, is_resolved=False
    )


def break_tie(result: AdvancementResult, contestant_id: str) -> VoteAdjustment:
    """Vote adjustment that lets ``contestant_id`` take the contested slot.

    Raises:
        ValueError: there is no tie, or the contestant is not one of its members
    """
    if result.tie is None:
        raise ValueError("no tie at the cutoff to break")
    if contestant_id not in result.tie.member_ids:
        raise ValueError(f"contestant {contestant_id} is not part of the tie")
    return VoteAdjustment(contestant_id=contestant_id, delta=1, reason="tie_break")


def build_advancement_records(
    result: AdvancementResult, voting_round: VotingRound, decided_at: datetime
) -> tuple[AdvancementRecord, ...]:
    """Per-contestant advancement outcome for a processed round.

    Raises:
        ValueError: the tie at the cutoff has not been broken yet
    """
    if not result.is_resolved:
        raise ValueError("tie at the cutoff must be resolved before recording advancement")
    decided_at = ensure_utc(decided_at)
    return tuple(
        AdvancementRecord(
            contestant_id=row.contestant_id,
            round_id=voting_round.id,
            round_order=voting_round.order,
            advanced=row.zone == "advancing",
            final_vote_count=row.votes,
            final_rank=row.position,
            decided_at=decided_at,
        )
        for row in result.rows
    )


def select_advancement_round(
    rounds: Sequence[VotingRound], now: datetime
) -> VotingRound | None:
    """Round the advancement view opens on: active, else latest ended, else last."""
    if not rounds:
        return None
    now = ensure_utc(now)
    ordered = sorted(rounds, key=lambda r: r.order)
    for rnd in ordered:
        if rnd.start is not None and rnd.end is not None and rnd.start <= now < rnd.end:
            return rnd
    ended = [r for r in ordered if r.end is not None and r.end <= now]
    if ended:
        return ended[-1]
    return ordered[-1]


def round_start_adjustments(
    contestants: Sequence[Contestant], voting_round: VotingRound
) -> tuple[VoteAdjustment, ...]:
    """Adjustments that zero vote totals when a round does not carry them over."""
    if voting_round.votes_accumulate:
        return ()
    return tuple(
        VoteAdjustment(contestant_id=c.id, delta=-int(c.votes), reason="round_reset")
        for c in contestants
        if int(c.votes or 0) > 0
    )
