"""Lifecycle call sites: load rows, run the pure engine, persist the outcome.

The engine modules (phase, timeline_validator, status, advancement) are pure.
Everything that writes lives here and goes through a CompetitionStore, the
persistence collaborator provided by the parent application. Store exceptions
are propagated unchanged; retry policy belongs to the store.

Key behaviors:
- sync_status() persists a due auto-transition. Re-running it at the same
  instant finds nothing to do, because the stored status has moved on.
- save_timeline() validates the whole edit first and writes nothing when any
  check fails.
- resolve_tie() persists the +1 increment through the store and then re-reads
  contestants to rebuild the view, so the view always matches stored counts.
- Vote increments are delegated to store.increment_votes(), which must apply
  ``votes = votes + delta`` atomically rather than read-then-write.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Protocol, Sequence

from pydantic import ValidationError as PydanticValidationError

from .advancement import (
    AdvancementResult,
    active_contestants,
    break_tie,
    compute_advancement,
    select_advancement_round,
)
from .phase import Phase, resolve_phase
from .status import (
    StatusSync,
    TransitionCheck,
    check_status_sync,
    validate_status_change,
)
from .timeline import (
    Competition,
    Contestant,
    Status,
    VotingRound,
    build_timeline,
    competition_from_rows,
    contestant_from_row,
    period_from_row,
    round_from_row,
    timeline_rows,
)
from .timeline_validator import ValidationResult, validate_timeline
from .validation import (
    ValidatedTimelineEdit,
    ValidatedVoteAdjustment,
    format_validation_errors,
)

logger = logging.getLogger(__name__)


class CompetitionStore(Protocol):
    def get_competition(self, competition_id: str) -> Mapping[str, Any] | None:
        ...

    def get_settings(self, competition_id: str) -> Mapping[str, Any] | None:
        ...

    def list_nomination_periods(self, competition_id: str) -> Sequence[Mapping[str, Any]]:
        ...

    def list_voting_rounds(self, competition_id: str) -> Sequence[Mapping[str, Any]]:
        ...

    def list_contestants(self, competition_id: str) -> Sequence[Mapping[str, Any]]:
        ...

    def update_status(self, competition_id: str, status: str) -> None:
        ...

    def replace_timeline(self, competition_id: str, rows: Dict[str, Any]) -> None:
        """Delete the stored periods/rounds and insert ``rows``; upsert the finale.

        When ``rows`` carries a ``status`` it is written in the same transaction,
        so a timeline and the status it was validated against land together.
        """
        ...

    def increment_votes(self, contestant_id: str, delta: int) -> int:
        """Atomically add ``delta`` (floored at 0) and return the new count."""
        ...


class CompetitionNotFound(LookupError):
    pass


class RoundNotFound(LookupError):
    pass


@dataclass
class LifecycleError:
    """Represents a refused lifecycle operation (nothing was persisted)."""

    kind: str
    message: str | None = None


@dataclass(frozen=True)
class AdvancementView:
    voting_round: VotingRound | None
    result: AdvancementResult


@dataclass(frozen=True)
class TieResolution:
    view: AdvancementView | None
    applied: bool
    error: LifecycleError | None = None


@dataclass(frozen=True)
class VoteAdjustmentOutcome:
    applied: bool
    votes: int | None = None
    error: LifecycleError | None = None


# ==================== LOADING ====================


def load_competition(store: CompetitionStore, competition_id: str) -> Competition:
    row = store.get_competition(competition_id)
    if row is None:
        raise CompetitionNotFound(competition_id)
    return competition_from_rows(
        row,
        periods=store.list_nomination_periods(competition_id),
        rounds=store.list_voting_rounds(competition_id),
        settings=store.get_settings(competition_id),
    )


def load_contestants(
    store: CompetitionStore, competition_id: str, *, active_only: bool = True
) -> list[Contestant]:
    contestants = [contestant_from_row(r) for r in store.list_contestants(competition_id)]
    return active_contestants(contestants) if active_only else contestants


# ==================== PHASE / STATUS ====================


def current_phase(store: CompetitionStore, competition_id: str, now: datetime) -> Phase:
    return resolve_phase(load_competition(store, competition_id), now)


def sync_status(store: CompetitionStore, competition_id: str, now: datetime) -> StatusSync:
    """Persist the automatic status transition that is due at ``now``, if any."""
    competition = load_competition(store, competition_id)
    sync = check_status_sync(competition, now)
    if sync.needs_update:
        store.update_status(competition_id, sync.computed.value)
        logger.info(
            f"Competition {competition_id}: auto-transition "
            f"{sync.current.value} -> {sync.computed.value}"
        )
    return sync


def sync_statuses(
    store: CompetitionStore, competition_ids: Iterable[str], now: datetime
) -> Dict[str, StatusSync]:
    """Admin listing pass: sync every competition shown."""
    return {cid: sync_status(store, cid, now) for cid in competition_ids}


def change_status(
    store: CompetitionStore, competition_id: str, new_status: Status | str
) -> TransitionCheck:
    competition = load_competition(store, competition_id)
    check = validate_status_change(competition, new_status)
    if check.allowed and Status(new_status) is not competition.status:
        store.update_status(competition_id, Status(new_status).value)
        logger.info(
            f"Competition {competition_id}: status {competition.status.value} -> "
            f"{Status(new_status).value}"
        )
    return check


# ==================== TIMELINE EDITS ====================


def save_timeline(
    store: CompetitionStore, competition_id: str, payload: Mapping[str, Any]
) -> ValidationResult:
    """Validate and persist an edited timeline (and optional status).

    Args:
        store: persistence collaborator
        competition_id: competition being edited
        payload: editor payload (see types.TimelineEditPayload)

    Returns:
        ValidationResult. When invalid nothing is written; errors are meant to
        be shown verbatim in the editor.
    """
    try:
        edit = ValidatedTimelineEdit.model_validate(dict(payload or {}))
    except PydanticValidationError as exc:
        return ValidationResult.from_messages(format_validation_errors(exc))

    current = load_competition(store, competition_id)
    status = Status(edit.status) if edit.status else current.status
    timeline = build_timeline(
        periods=[
            period_from_row(p.model_dump(), i) for i, p in enumerate(edit.nomination_periods)
        ],
        rounds=[round_from_row(r.model_dump(), i) for i, r in enumerate(edit.voting_rounds)],
        finale=edit.finale_date,
        finale_title=edit.finale_title,
    )

    result = validate_timeline(timeline, status=status)
    if not result.valid:
        return result

    if status is not current.status:
        check = validate_status_change(replace(current, timeline=timeline), status)
        if not check.allowed:
            return ValidationResult.from_messages(
                check.errors, result.warnings + check.warnings
            )

    rows = timeline_rows(timeline)
    if status is not current.status:
        rows["status"] = status.value
    store.replace_timeline(competition_id, rows)
    logger.info(
        f"Competition {competition_id}: saved timeline with {len(timeline.periods)} "
        f"period(s), {len(timeline.rounds)} round(s)"
    )
    return result


# ==================== ADVANCEMENT ====================


def advancement_view(
    store: CompetitionStore,
    competition_id: str,
    now: datetime,
    *,
    round_id: str | None = None,
) -> AdvancementView:
    """Rank active contestants against a round's cutoff.

    Uses ``round_id`` when given, otherwise the active round, else the most
    recently ended one, else the last round.

    Raises:
        CompetitionNotFound: unknown competition
        RoundNotFound: ``round_id`` is not one of the competition's rounds
    """
    competition = load_competition(store, competition_id)
    rounds = competition.timeline.rounds
    if round_id is not None:
        voting_round = competition.timeline.round_by_id(round_id)
        if voting_round is None:
            raise RoundNotFound(f"round {round_id} not found in competition {competition_id}")
    else:
        voting_round = select_advancement_round(rounds, now)
    cutoff = voting_round.contestants_advance if voting_round is not None else None
    result = compute_advancement(load_contestants(store, competition_id), cutoff)
    return AdvancementView(voting_round=voting_round, result=result)


def resolve_tie(
    store: CompetitionStore,
    competition_id: str,
    contestant_id: str,
    now: datetime,
    *,
    round_id: str | None = None,
    fingerprint: str | None = None,
) -> TieResolution:
    """Advance one tied contestant by giving them one extra vote.

    ``fingerprint`` is the tie fingerprint the administrator was looking at;
    when the tie has changed since (new votes came in) nothing is applied.
    """
    try:
        view = advancement_view(store, competition_id, now, round_id=round_id)
    except RoundNotFound as exc:
        return TieResolution(
            view=None,
            applied=False,
            error=LifecycleError(kind="unknown_round", message=str(exc)),
        )
    tie = view.result.tie
    if tie is None:
        return TieResolution(
            view=view, applied=False, error=LifecycleError(kind="no_tie")
        )
    if fingerprint is not None and fingerprint != tie.fingerprint:
        return TieResolution(
            view=view,
            applied=False,
            error=LifecycleError(kind="stale_tie", message="tie changed; reload the view"),
        )
    if contestant_id not in tie.member_ids:
        return TieResolution(
            view=view,
            applied=False,
            error=LifecycleError(
                kind="not_in_tie", message=f"contestant {contestant_id} is not tied"
            ),
        )

    adjustment = break_tie(view.result, contestant_id)
    new_votes = store.increment_votes(adjustment.contestant_id, adjustment.delta)
    logger.info(
        f"Competition {competition_id}: tie at position {tie.position} broken for "
        f"{contestant_id} ({tie.cutoff_votes} -> {new_votes} votes)"
    )
    refreshed = advancement_view(store, competition_id, now, round_id=round_id)
    return TieResolution(view=refreshed, applied=True)


def adjust_votes(
    store: CompetitionStore, competition_id: str, contestant_id: str, delta: int
) -> VoteAdjustmentOutcome:
    """Manual vote adjustment by an administrator."""
    try:
        request = ValidatedVoteAdjustment(contestant_id=contestant_id, delta=delta)
    except PydanticValidationError as exc:
        return VoteAdjustmentOutcome(
            applied=False,
            error=LifecycleError(
                kind="invalid_adjustment", message="; ".join(format_validation_errors(exc))
            ),
        )

    contestants = {
        c.id: c for c in load_contestants(store, competition_id, active_only=False)
    }
    contestant = contestants.get(request.contestant_id)
    if contestant is None:
        return VoteAdjustmentOutcome(
            applied=False, error=LifecycleError(kind="unknown_contestant")
        )
    if contestant.votes + request.delta < 0:
        return VoteAdjustmentOutcome(
            applied=False,
            votes=contestant.votes,
            error=LifecycleError(
                kind="negative_votes",
                message=f"cannot remove {-request.delta} votes from {contestant.votes}",
            ),
        )

    votes = store.increment_votes(request.contestant_id, request.delta)
    logger.info(
        f"Competition {competition_id}: manual adjustment {request.delta:+d} for "
        f"{request.contestant_id} -> {votes}"
    )
    return VoteAdjustmentOutcome(applied=True, votes=votes)
