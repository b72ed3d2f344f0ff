"""
Input validation schemas using Pydantic v2
Coerces backend rows and timeline editor payloads into typed values
"""

import logging
import re
from datetime import datetime, timezone
from typing import List, Optional, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

STATUSES = ("draft", "publish", "live", "completed", "archive")
ROUND_KINDS = ("voting", "judging")
ADVANCEMENT_STATUSES = ("active", "advancing", "eliminated")


class TimelineLimits:
    """Limits and defaults applied to timeline data"""

    MAX_NOMINATION_PERIODS = 20
    MAX_VOTING_ROUNDS = 50
    MAX_TITLE_LENGTH = 120
    MAX_VOTE_ADJUSTMENT = 1_000_000

    DEFAULT_PERIOD_TITLE = "Nominations"
    DEFAULT_FINALE_TITLE = "Finale"
    DEFAULT_ROUND_KIND = "voting"
    # Rows without an explicit flag keep totals from the previous round
    DEFAULT_VOTES_ACCUMULATE = True


# ==================== VALIDATOR FUNCTIONS ====================


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive instants are stored as UTC; everything is compared as absolute time."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class _Row(BaseModel):
    # Backend rows carry many columns the engine does not read
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ValidatedPeriod(_Row):
    id: Optional[str] = None
    title: Optional[str] = Field(None, max_length=500)
    period_order: Optional[int] = Field(None, ge=0, le=9999)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    max_submissions: Optional[int] = Field(None, ge=1)

    @field_validator("id", "title", "start_date", "end_date", "max_submissions", mode="before")
    @classmethod
    def blank_is_unset(cls, v):
        return _blank_to_none(v)

    @field_validator("id", mode="before")
    @classmethod
    def id_as_string(cls, v):
        return None if v is None else str(v)

    @field_validator("title")
    @classmethod
    def clean_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return InputSanitizer.sanitize_title(v) or None

    @field_validator("start_date", "end_date")
    @classmethod
    def absolute_instant(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class ValidatedRound(_Row):
    id: Optional[str] = None
    title: Optional[str] = Field(None, max_length=500)
    round_order: Optional[int] = Field(None, ge=0, le=9999)
    round_type: str = TimelineLimits.DEFAULT_ROUND_KIND
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    contestants_advance: Optional[int] = Field(None, ge=0)
    votes_accumulate: bool = TimelineLimits.DEFAULT_VOTES_ACCUMULATE

    @field_validator(
        "id", "title", "start_date", "end_date", "contestants_advance", mode="before"
    )
    @classmethod
    def blank_is_unset(cls, v):
        return _blank_to_none(v)

    @field_validator("id", mode="before")
    @classmethod
    def id_as_string(cls, v):
        return None if v is None else str(v)

    @field_validator("round_type", mode="before")
    @classmethod
    def validate_round_type(cls, v) -> str:
        """Validate round type is one of the scoring kinds"""
        if v is None or (isinstance(v, str) and not v.strip()):
            return TimelineLimits.DEFAULT_ROUND_KIND
        if not isinstance(v, str):
            raise ValueError("round_type must be a string")
        v = v.strip().lower()
        if v not in ROUND_KINDS:
            raise ValueError(f"round_type must be one of {ROUND_KINDS}, got {v}")
        return v

    @field_validator("votes_accumulate", mode="before")
    @classmethod
    def default_accumulate(cls, v):
        if v is None:
            return TimelineLimits.DEFAULT_VOTES_ACCUMULATE
        return v

    @field_validator("title")
    @classmethod
    def clean_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return InputSanitizer.sanitize_title(v) or None

    @field_validator("start_date", "end_date")
    @classmethod
    def absolute_instant(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class ValidatedSettings(_Row):
    nomination_start: Optional[datetime] = None
    nomination_end: Optional[datetime] = None
    finale_date: Optional[datetime] = None
    finale_title: Optional[str] = None

    @field_validator("nomination_start", "nomination_end", "finale_date", "finale_title", mode="before")
    @classmethod
    def blank_is_unset(cls, v):
        return _blank_to_none(v)

    @field_validator("nomination_start", "nomination_end", "finale_date")
    @classmethod
    def absolute_instant(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class ValidatedCompetition(_Row):
    id: Optional[str] = None
    status: str = "draft"
    city_id: Optional[str] = None
    city: Optional[str] = None
    host_id: Optional[str] = None
    category_id: Optional[str] = None
    demographic_id: Optional[str] = None
    nomination_start: Optional[datetime] = None
    nomination_end: Optional[datetime] = None
    voting_start: Optional[datetime] = None
    voting_end: Optional[datetime] = None
    finale_date: Optional[datetime] = None
    finals_date: Optional[datetime] = None

    @field_validator(
        "id",
        "city_id",
        "city",
        "host_id",
        "category_id",
        "demographic_id",
        "nomination_start",
        "nomination_end",
        "voting_start",
        "voting_end",
        "finale_date",
        "finals_date",
        mode="before",
    )
    @classmethod
    def blank_is_unset(cls, v):
        return _blank_to_none(v)

    @field_validator("id", "city_id", "host_id", "category_id", "demographic_id", mode="before")
    @classmethod
    def id_as_string(cls, v):
        return None if v is None else str(v)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v) -> str:
        """Validate status is a known lifecycle status"""
        if v is None:
            return "draft"
        if not isinstance(v, str):
            raise ValueError("status must be a string")
        v = v.strip().lower()
        if v not in STATUSES:
            raise ValueError(f"status must be one of {STATUSES}, got {v}")
        return v

    @field_validator(
        "nomination_start",
        "nomination_end",
        "voting_start",
        "voting_end",
        "finale_date",
        "finals_date",
    )
    @classmethod
    def absolute_instant(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class ValidatedContestant(_Row):
    id: str = Field(..., min_length=1)
    name: str = ""
    votes: int = Field(0, ge=0)
    competition_id: Optional[str] = None
    advancement_status: Optional[str] = None

    @field_validator("id", "competition_id", mode="before")
    @classmethod
    def id_as_string(cls, v):
        return None if v is None else str(v)

    @field_validator("votes", mode="before")
    @classmethod
    def missing_votes_are_zero(cls, v):
        return 0 if v is None else v

    @field_validator("name", mode="before")
    @classmethod
    def clean_name(cls, v) -> str:
        if v is None:
            return ""
        return InputSanitizer.sanitize_string(v, 255)

    @field_validator("advancement_status", mode="before")
    @classmethod
    def validate_advancement_status(cls, v) -> Optional[str]:
        v = _blank_to_none(v)
        if v is None:
            return None
        v = str(v).strip().lower()
        if v not in ADVANCEMENT_STATUSES:
            raise ValueError(
                f"advancement_status must be one of {ADVANCEMENT_STATUSES}, got {v}"
            )
        return v


class ValidatedTimelineEdit(BaseModel):
    """Payload submitted by the timeline editor before it is persisted"""

    status: Optional[str] = None
    finale_date: Optional[datetime] = None
    finale_title: Optional[str] = None
    nomination_periods: List[ValidatedPeriod] = Field(
        default_factory=list, max_length=TimelineLimits.MAX_NOMINATION_PERIODS
    )
    voting_rounds: List[ValidatedRound] = Field(
        default_factory=list, max_length=TimelineLimits.MAX_VOTING_ROUNDS
    )

    @field_validator("status", "finale_date", "finale_title", mode="before")
    @classmethod
    def blank_is_unset(cls, v):
        return _blank_to_none(v)

    @field_validator("nomination_periods", "voting_rounds", mode="before")
    @classmethod
    def missing_list_is_empty(cls, v):
        return [] if v is None else v

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().lower()
        if v not in STATUSES:
            raise ValueError(f"status must be one of {STATUSES}, got {v}")
        return v

    @field_validator("finale_title")
    @classmethod
    def clean_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return InputSanitizer.sanitize_title(v) or None

    @field_validator("finale_date")
    @classmethod
    def absolute_instant(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @model_validator(mode="after")
    def number_segments(self) -> Self:
        """Editor rows are re-numbered from their list position, like the saved rows"""
        for index, period in enumerate(self.nomination_periods):
            period.period_order = index + 1
        for index, rnd in enumerate(self.voting_rounds):
            rnd.round_order = index + 1
        return self

    model_config = ConfigDict(extra="ignore")


class ValidatedVoteAdjustment(BaseModel):
    """Manual vote adjustment requested by an administrator"""

    contestant_id: str = Field(..., min_length=1, max_length=64)
    delta: int = Field(
        ...,
        ge=-TimelineLimits.MAX_VOTE_ADJUSTMENT,
        le=TimelineLimits.MAX_VOTE_ADJUSTMENT,
    )

    @field_validator("contestant_id", mode="before")
    @classmethod
    def id_as_string(cls, v):
        return None if v is None else str(v)

    @field_validator("delta")
    @classmethod
    def non_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("delta must not be zero")
        return v


class InputSanitizer:
    """Utility class for input sanitization"""

    @staticmethod
    def sanitize_string(value: str, max_length: int = 255) -> str:
        """Sanitize string input"""
        if not isinstance(value, str):
            return str(value)[:max_length]

        # Strip whitespace
        value = value.strip()

        # Limit length
        value = value[:max_length]

        # Remove null bytes
        value = value.replace("\0", "")

        return value

    @staticmethod
    def sanitize_title(title: str) -> str:
        """Sanitize a period/round/finale title for display"""
        title = InputSanitizer.sanitize_string(title, TimelineLimits.MAX_TITLE_LENGTH)
        # Control characters and markup brackets never belong in a title
        title = re.sub(r"[<>\x00-\x1f\x7f]", "", title)
        return title.strip()


def format_validation_errors(exc) -> List[str]:
    """Flatten a pydantic ValidationError into editor-facing messages"""
    messages: List[str] = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()))
        message = err.get("msg", "invalid value")
        messages.append(f"{location}: {message}" if location else message)
    logger.warning(f"Timeline payload rejected: {messages}")
    return messages


# ==================== EXPORT ====================

__all__ = [
    "TimelineLimits",
    "ValidatedPeriod",
    "ValidatedRound",
    "ValidatedSettings",
    "ValidatedCompetition",
    "ValidatedContestant",
    "ValidatedTimelineEdit",
    "ValidatedVoteAdjustment",
    "InputSanitizer",
    "ensure_utc",
    "format_validation_errors",
]
