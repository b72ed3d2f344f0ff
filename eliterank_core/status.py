"""Competition status state machine (pure, no DB).

| Status    | Trigger                                          | Who controls |
|-----------|--------------------------------------------------|--------------|
| draft     | competition created                              | admin        |
| publish   | admin sets (requires a city)                     | admin        |
| live      | nomination start <= now AND status == publish    | automatic    |
| completed | finale <= now AND status == live                 | automatic    |
| archive   | admin archives                                   | admin        |

Auto-transitions are detected by predicates only; the caller persists the new
status. Once persisted the predicate no longer holds (status moved on), so
re-running the check at the same instant is a no-op. The engine never moves a
status backwards on its own.

Manual changes go through validate_status_change(), which reports refusals as
strings instead of raising.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict

from .timeline import (
    STATUS_ORDER,
    Competition,
    Status,
    ensure_utc,
    finale_date,
    nomination_start,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusSync:
    """Stored status vs. the status the clock says it should have."""

    needs_update: bool
    current: Status
    computed: Status


@dataclass(frozen=True)
class AutoTransition:
    next_status: Status
    trigger_at: datetime
    description: str


@dataclass(frozen=True)
class TransitionCheck:
    allowed: bool
    # First refusal, suitable for surfacing verbatim
    reason: str | None = None
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


def should_auto_transition_to_live(competition: Competition, now: datetime) -> bool:
    """publish -> live once the earliest nomination start has been reached."""
    if competition is None:
        raise ValueError("competition is required")
    if competition.status is not Status.PUBLISH:
        return False
    start = nomination_start(competition)
    return start is not None and start <= ensure_utc(now)


def should_auto_transition_to_completed(competition: Competition, now: datetime) -> bool:
    """live -> completed once the finale instant has been reached."""
    if competition is None:
        raise ValueError("competition is required")
    if competition.status is not Status.LIVE:
        return False
    finale = finale_date(competition)
    return finale is not None and finale <= ensure_utc(now)


def compute_status(competition: Competition, now: datetime) -> Status:
    """Status the competition should have at ``now``.

    Applies at most one automatic step; draft and archive are manual states and
    are returned unchanged.
    """
    if should_auto_transition_to_live(competition, now):
        return Status.LIVE
    if should_auto_transition_to_completed(competition, now):
        return Status.COMPLETED
    return competition.status


def check_status_sync(competition: Competition, now: datetime) -> StatusSync:
    computed = compute_status(competition, now)
    return StatusSync(
        needs_update=computed is not competition.status,
        current=competition.status,
        computed=computed,
    )


def next_auto_transition(competition: Competition) -> AutoTransition | None:
    """Upcoming automatic transition, if the current status has one."""
    if competition is None:
        return None
    if competition.status is Status.PUBLISH:
        start = nomination_start(competition)
        if start is not None:
            return AutoTransition(
                next_status=Status.LIVE,
                trigger_at=start,
                description="Will go live when nomination period starts",
            )
    if competition.status is Status.LIVE:
        finale = finale_date(competition)
        if finale is not None:
            return AutoTransition(
                next_status=Status.COMPLETED,
                trigger_at=finale,
                description="Will complete after finale date",
            )
    return None


PUBLISH_REQUIREMENTS = {
    "city": lambda c: bool(c.city_id),
    "category": lambda c: bool(c.category_id),
    "demographic": lambda c: bool(c.demographic_id),
    "host": lambda c: bool(c.host_id),
    "nomination_start": lambda c: nomination_start(c) is not None,
    "finale_date": lambda c: finale_date(c) is not None,
}


def check_publish_requirements(competition: Competition | None) -> Dict[str, bool]:
    if competition is None:
        return {key: False for key in PUBLISH_REQUIREMENTS}
    return {key: bool(check(competition)) for key, check in PUBLISH_REQUIREMENTS.items()}


def has_complete_nomination_window(competition: Competition) -> bool:
    """At least one period with both dates, or a settings/legacy flat pair."""
    if any(
        p.start is not None and p.end is not None for p in competition.timeline.periods
    ):
        return True
    settings = competition.settings
    if settings is not None and settings.nomination_start and settings.nomination_end:
        return True
    return competition.nomination_start is not None and competition.nomination_end is not None


def validate_status_change(competition: Competition, new_status: Status | str) -> TransitionCheck:
    """Validate a manual status change requested by an administrator.

    Args:
        competition: current competition
        new_status: requested status

    Returns:
        TransitionCheck; ``allowed`` is False with the refusal in ``reason``
        and ``errors``. Warnings never block the change.

    Rules:
        1. completed cannot be reactivated (draft/publish/live)
        2. archive can only be unwound to draft
        3. live needs a nomination period with start and end dates
        4. publish needs a city
    """
    if competition is None:
        raise ValueError("competition is required")
    try:
        target = Status(new_status)
    except ValueError:
        reason = f"Unknown status: {new_status}"
        return TransitionCheck(allowed=False, reason=reason, errors=(reason,))

    current = competition.status
    errors: list[str] = []
    warnings: list[str] = []

    if target is current:
        return TransitionCheck(allowed=True)

    if current is Status.COMPLETED and target is not Status.ARCHIVE:
        errors.append(
            "Completed competitions cannot be reactivated; create a new season instead"
        )

    if current is Status.ARCHIVE and target is not Status.DRAFT:
        errors.append("Archived competitions can only be moved back to Draft")

    if target is Status.LIVE and not has_complete_nomination_window(competition):
        errors.append("Going live requires a nomination period with start and end dates")

    if target is Status.PUBLISH:
        requirements = check_publish_requirements(competition)
        if not requirements["city"]:
            errors.append("City must be assigned")
        if not requirements["host"]:
            warnings.append("Host not assigned")
        if not requirements["category"]:
            warnings.append("Category not assigned")
        if not requirements["demographic"]:
            warnings.append("Demographic not assigned")
        if not requirements["nomination_start"]:
            warnings.append("Nomination start date not set")
        if not requirements["finale_date"]:
            warnings.append("Finale date not set")

    if current in STATUS_ORDER and target in STATUS_ORDER:
        if STATUS_ORDER.index(target) < STATUS_ORDER.index(current):
            warnings.append(
                f"Moving from {current.value} back to {target.value} - this is unusual"
            )

    if errors:
        logger.info(
            f"Refused status change for {competition.id}: {current.value} -> "
            f"{target.value}: {errors}"
        )
        return TransitionCheck(
            allowed=False, reason=errors[0], errors=tuple(errors), warnings=tuple(warnings)
        )
    return TransitionCheck(allowed=True, warnings=tuple(warnings))


def status_change_restriction(status: Status | str) -> str:
    """Human-readable note on how a status changes from here."""
    descriptions = {
        Status.DRAFT: "Competition is in draft. Admin can publish when requirements are met.",
        Status.PUBLISH: "Competition will go live automatically when nomination period starts.",
        Status.LIVE: "Competition will complete automatically after the finale date.",
        Status.COMPLETED: "Competition has ended. Admin can archive if needed.",
        Status.ARCHIVE: "Competition is archived. Admin can restore it to draft.",
    }
    try:
        return descriptions[Status(status)]
    except ValueError:
        return "Status is managed automatically based on timeline dates."
