"""Write services.  Each flushes within the caller's transaction."""

from demand_kernel.services.approval_service import (
    ApprovalDecisionOutcome,
    ApprovalService,
)
from demand_kernel.services.demand_service import DemandService
from demand_kernel.services.event_log_service import EventLogService
from demand_kernel.services.phase_service import PhaseRecord, PhaseService
from demand_kernel.services.scope_change_service import (
    ScopeChangeOutcome,
    ScopeChangeService,
)
from demand_kernel.services.sequence_service import SequenceService
from demand_kernel.services.transition_service import (
    AppliedTransition,
    TransitionOutcome,
    TransitionService,
)

__all__ = [
    "AppliedTransition",
    "ApprovalDecisionOutcome",
    "ApprovalService",
    "DemandService",
    "EventLogService",
    "PhaseRecord",
    "PhaseService",
    "ScopeChangeOutcome",
    "ScopeChangeService",
    "SequenceService",
    "TransitionOutcome",
    "TransitionService",
]
