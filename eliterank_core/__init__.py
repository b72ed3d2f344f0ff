from .timeline import (
    Competition,
    CompetitionSettings,
    Contestant,
    Finale,
    NominationPeriod,
    Segment,
    Status,
    Timeline,
    VotingRound,
    build_timeline,
    competition_from_rows,
    contestant_from_row,
    finale_date,
    nomination_end,
    nomination_start,
)
from .types import CompetitionRow, ContestantRow, NominationPeriodRow, SettingsRow, VotingRoundRow
from .validation import InputSanitizer, TimelineLimits, ValidatedTimelineEdit
from .phase import (
    Phase,
    PhaseDisplay,
    TimeRemaining,
    can_nominate,
    can_vote,
    is_public,
    phase_display,
    resolve_phase,
    time_remaining,
)
from .timeline_validator import ValidationResult, validate_timeline
from .status import (
    AutoTransition,
    StatusSync,
    TransitionCheck,
    check_publish_requirements,
    check_status_sync,
    compute_status,
    next_auto_transition,
    should_auto_transition_to_completed,
    should_auto_transition_to_live,
    status_change_restriction,
    validate_status_change,
)
from .advancement import (
    AdvancementRecord,
    AdvancementResult,
    StandingRow,
    TieEvent,
    VoteAdjustment,
    active_contestants,
    break_tie,
    build_advancement_records,
    compute_advancement,
    rank_contestants,
    round_start_adjustments,
    select_advancement_round,
)
from .lifecycle import (
    AdvancementView,
    CompetitionNotFound,
    CompetitionStore,
    LifecycleError,
    RoundNotFound,
    TieResolution,
    VoteAdjustmentOutcome,
    adjust_votes,
    advancement_view,
    change_status,
    current_phase,
    load_competition,
    load_contestants,
    resolve_tie,
    save_timeline,
    sync_status,
    sync_statuses,
)

__all__ = [
    "Competition",
    "CompetitionSettings",
    "Contestant",
    "Finale",
    "NominationPeriod",
    "Segment",
    "Status",
    "Timeline",
    "VotingRound",
    "build_timeline",
    "competition_from_rows",
    "contestant_from_row",
    "finale_date",
    "nomination_end",
    "nomination_start",
    "CompetitionRow",
    "ContestantRow",
    "NominationPeriodRow",
    "SettingsRow",
    "VotingRoundRow",
    "InputSanitizer",
    "TimelineLimits",
    "ValidatedTimelineEdit",
    "Phase",
    "PhaseDisplay",
    "TimeRemaining",
    "can_nominate",
    "can_vote",
    "is_public",
    "phase_display",
    "resolve_phase",
    "time_remaining",
    "ValidationResult",
    "validate_timeline",
    "AutoTransition",
    "StatusSync",
    "TransitionCheck",
    "check_publish_requirements",
    "check_status_sync",
    "compute_status",
    "next_auto_transition",
    "should_auto_transition_to_completed",
    "should_auto_transition_to_live",
    "status_change_restriction",
    "validate_status_change",
    "AdvancementRecord",
    "AdvancementResult",
    "StandingRow",
    "TieEvent",
    "VoteAdjustment",
    "active_contestants",
    "break_tie",
    "build_advancement_records",
    "compute_advancement",
    "rank_contestants",
    "round_start_adjustments",
    "select_advancement_round",
    "AdvancementView",
    "CompetitionNotFound",
    "CompetitionStore",
    "LifecycleError",
    "RoundNotFound",
    "TieResolution",
    "VoteAdjustmentOutcome",
    "adjust_votes",
    "advancement_view",
    "change_status",
    "current_phase",
    "load_competition",
    "load_contestants",
    "resolve_tie",
    "save_timeline",
    "sync_status",
    "sync_statuses",
]
