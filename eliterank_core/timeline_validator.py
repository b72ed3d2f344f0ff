"""Timeline consistency checks run before an edited timeline is persisted.

Pure: no I/O, never raises for bad timeline data. Every violation is
collected so the editor can show all of them at once.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Iterable

from .timeline import Status, Timeline

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @classmethod
    def from_messages(
        cls, errors: Iterable[str], warnings: Iterable[str] = ()
    ) -> "ValidationResult":
        errors = tuple(errors)
        return cls(valid=not errors, errors=errors, warnings=tuple(warnings))


def _duplicate_orders(orders: Iterable[int]) -> list[int]:
    return sorted(order for order, count in Counter(orders).items() if count > 1)


def validate_timeline(
    timeline: Timeline, *, status: Status | str | None = None
) -> ValidationResult:
    """Check a timeline for contradictory segments.

    Args:
        timeline: the edited timeline
        status: status the competition will have after saving; ``live``
            additionally requires a defined ending

    Returns:
        ValidationResult with every error found (valid when there are none)
        and non-blocking warnings.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if status is not None and Status(status) is Status.LIVE:
        has_ending = (
            any(p.end is not None for p in timeline.periods)
            or any(r.end is not None for r in timeline.rounds)
            or timeline.finale is not None
        )
        if not has_ending:
            errors.append(
                "Live competitions need an end: set a nomination period end, "
                "a round end, or a finale date"
            )

    for order in _duplicate_orders(p.order for p in timeline.periods):
        errors.append(f"Nomination periods share order index {order}")
    for order in _duplicate_orders(r.order for r in timeline.rounds):
        errors.append(f"Rounds share order index {order}")

    segments = timeline.segments(include_finale=False)
    previous = None
    for segment in segments:
        if segment.start is not None and segment.end is not None:
            if segment.end <= segment.start:
                errors.append(f"{segment.label}: End date must be after start date")
        elif segment.start is not None or segment.end is not None:
            missing = "end" if segment.end is None else "start"
            warnings.append(
                f"{segment.label}: No {missing} date; it will not be shown as active"
            )

        if (
            previous is not None
            and previous.end is not None
            and segment.start is not None
            and segment.start < previous.end
        ):
            errors.append(f"{segment.label}: Starts before {previous.label} ends")
        previous = segment

    if timeline.finale is not None:
        last_with_end = next(
            (s for s in reversed(segments) if s.end is not None), None
        )
        if last_with_end is not None and timeline.finale.date < last_with_end.end:
            errors.append(
                f"Finale date must be at or after the end of {last_with_end.label}"
            )

    result = ValidationResult.from_messages(errors, warnings)
    if not result.valid:
        logger.debug(f"Timeline rejected with {len(errors)} error(s): {errors}")
    return result
