"""
Pure domain layer.

Frozen value objects and pure functions with NO dependencies on the ORM,
the database or I/O.  Time comes from an injected Clock.
"""

from demand_kernel.domain.approval import (
    ApprovalDecision,
    ApprovalLevel,
    ApprovalRecord,
    ApprovalStatus,
    CanonicalApprovalEntry,
    EntrySource,
    RosterMember,
    RosterProvider,
)
from demand_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from demand_kernel.domain.demand import DemandRecord
from demand_kernel.domain.events import (
    ActionCode,
    EventRecord,
    FieldChange,
    HistoryCategory,
    diff_snapshots,
)
from demand_kernel.domain.lifecycle import DemandStatus, Priority
from demand_kernel.domain.policy import DEFAULT_POLICY, AutoTransitionRule, LifecyclePolicy
from demand_kernel.domain.reconciliation import reconcile_approvals
from demand_kernel.domain.transitions import (
    DemandState,
    TransitionValidation,
    allowed_targets,
    cascade_target,
    validate_transition,
)
from demand_kernel.domain.versioning import VersionSnapshot, number_versions

__all__ = [
    "ActionCode",
    "ApprovalDecision",
    "ApprovalLevel",
    "ApprovalRecord",
    "ApprovalStatus",
    "AutoTransitionRule",
    "CanonicalApprovalEntry",
    "Clock",
    "DEFAULT_POLICY",
    "DemandRecord",
    "DemandState",
    "DemandStatus",
    "DeterministicClock",
    "EntrySource",
    "EventRecord",
    "FieldChange",
    "HistoryCategory",
    "LifecyclePolicy",
    "Priority",
    "RosterMember",
    "RosterProvider",
    "SystemClock",
    "TransitionValidation",
    "VersionSnapshot",
    "allowed_targets",
    "cascade_target",
    "diff_snapshots",
    "number_versions",
    "reconcile_approvals",
    "validate_transition",
]
