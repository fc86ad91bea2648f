"""
Status transition validator (``demand_kernel.domain.transitions``).

Responsibility
--------------
Decide whether a demand may move to a target status, and whether the move
needs the caller's explicit confirmation.  Also computes the automatic
follow-up transition (the ApprovedByPM -> InProgress cascade) as a separate,
explicit step.

Architecture position
---------------------
**Kernel domain layer**.  Pure functions over frozen snapshots.  ZERO I/O.
``services/transition_service.py`` is the imperative shell that persists the
outcome.

Rules
-----
* Only edges in ``DEMAND_TRANSITIONS`` are legal; terminal states have none.
* Entering StandBy requires the regulatory flag and a deadline.
* Leaving AwaitingTechnicalReview is refused once phases were recorded, and
  otherwise needs confirmation.
* Fast-track edges (AwaitingManager -> Approved, ApprovedByPM -> InProgress)
  are limited to low and medium priority.
* Committee submission needs the technical coordinator's approval; moving to
  UnderReview needs the committee approval threshold.
* Starting an approved demand needs a squad.
* Entering a terminal state always needs confirmation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from demand_kernel.domain.lifecycle import (
    DEMAND_TRANSITIONS,
    TERMINAL_STATUSES,
    DemandStatus,
    Priority,
    has_edge,
)
from demand_kernel.domain.policy import DEFAULT_POLICY, LifecyclePolicy


@dataclass(frozen=True)
class DemandState:
    """The fields of a demand the validator looks at."""

    status: DemandStatus
    priority: Priority
    company: str | None = None
    regulatory: bool = False
    regulatory_deadline: date | str | None = None
    squad: str | None = None
    technical_approval: bool = False
    committee_approval_percent: int = 0
    phase_count: int = 0

    @property
    def has_regulatory_fields(self) -> bool:
        deadline = self.regulatory_deadline
        if isinstance(deadline, str):
            deadline = deadline.strip()
        return bool(self.regulatory) and bool(deadline)


@dataclass(frozen=True)
class TransitionValidation:
    """Outcome of validating one move.

    ``message`` explains a refusal; ``confirmation_message`` is the prompt to
    show when ``requires_confirmation`` is set.
    """

    allowed: bool
    requires_confirmation: bool = False
    message: str | None = None
    confirmation_message: str | None = None

    @classmethod
    def deny(cls, message: str) -> TransitionValidation:
        return cls(allowed=False, message=message)

    @classmethod
    def allow(cls, confirmation_message: str | None = None) -> TransitionValidation:
        return cls(
            allowed=True,
            requires_confirmation=confirmation_message is not None,
            confirmation_message=confirmation_message,
        )


_REVERSIBLE_REVIEW_TARGETS = frozenset({
    DemandStatus.BACKLOG,
    DemandStatus.STAND_BY,
    DemandStatus.APPROVED_BY_PM,
})


def validate_transition(
    demand: DemandState,
    target: DemandStatus,
    policy: LifecyclePolicy | None = None,
) -> TransitionValidation:
    """Validate moving ``demand`` to ``target``.  Pure and idempotent."""
    policy = policy or DEFAULT_POLICY
    current = demand.status

    if current in TERMINAL_STATUSES:
        return TransitionValidation.deny(
            f"{current.label} demands cannot be moved."
        )
    if target == current:
        return TransitionValidation.deny(
            f"Demand is already in {current.label}."
        )
    if not has_edge(current, target):
        return TransitionValidation.deny(
            f"Moving from {current.label} to {target.label} is not allowed."
        )

    if target == DemandStatus.STAND_BY and not demand.has_regulatory_fields:
        return TransitionValidation.deny(
            "Regulatory fields required: mark the demand as regulatory and "
            "set its deadline before moving it to Stand by."
        )

    if current == DemandStatus.AWAITING_TECHNICAL_REVIEW:
        if demand.phase_count >= 1:
            return TransitionValidation.deny(
                f"The technical review already produced {demand.phase_count} "
                "phase(s); it can no longer be reverted."
            )
        return TransitionValidation.allow(
            "Revert the submitted technical review? The estimate will have "
            "to be requested again."
        )

    if (current, target) == (DemandStatus.AWAITING_MANAGER, DemandStatus.APPROVED):
        if not demand.priority.is_fast_track:
            return TransitionValidation.deny(
                "Only low and medium priority demands can be approved "
                "directly by the manager."
            )
        return TransitionValidation.allow()

    if (current, target) == (DemandStatus.APPROVED_BY_PM, DemandStatus.IN_PROGRESS):
        if not demand.priority.is_fast_track:
            return TransitionValidation.deny(
                "High and critical demands must go through committee review "
                "before development starts."
            )
        return TransitionValidation.allow(
            "Start development without committee review?"
        )

    if (current, target) == (DemandStatus.APPROVED_BY_PM, DemandStatus.AWAITING_COMMITTEE):
        if not demand.technical_approval:
            return TransitionValidation.deny(
                "The technical coordinator must approve the demand before it "
                "goes to the committee."
            )
        return TransitionValidation.allow()

    if (current, target) == (DemandStatus.AWAITING_COMMITTEE, DemandStatus.UNDER_REVIEW):
        threshold = policy.committee_threshold_percent
        if demand.committee_approval_percent < threshold:
            return TransitionValidation.deny(
                f"Committee approval is {demand.committee_approval_percent}%; "
                f"at least {threshold}% is required."
            )
        return TransitionValidation.allow()

    if (current, target) == (DemandStatus.AWAITING_COMMITTEE, DemandStatus.APPROVED_BY_PM):
        return TransitionValidation.allow(
            "Withdraw the demand from committee review?"
        )

    if (current, target) == (DemandStatus.APPROVED, DemandStatus.IN_PROGRESS):
        if not demand.squad:
            return TransitionValidation.deny(
                "Assign a squad before starting development."
            )
        return TransitionValidation.allow()

    if current == DemandStatus.IN_PROGRESS and target in (
        DemandStatus.APPROVED_BY_PM,
        DemandStatus.APPROVED,
    ):
        return TransitionValidation.allow(
            f"Move the demand back to {target.label}? Development will stop."
        )

    if target in TERMINAL_STATUSES:
        return TransitionValidation.allow(
            f"Move the demand to {target.label}? It cannot be moved again afterwards."
        )

    return TransitionValidation.allow()


def allowed_targets(
    demand: DemandState,
    policy: LifecyclePolicy | None = None,
) -> tuple[DemandStatus, ...]:
    """Targets that currently validate, in lifecycle declaration order."""
    candidates = DEMAND_TRANSITIONS.get(demand.status, frozenset())
    return tuple(
        status
        for status in DemandStatus
        if status in candidates and validate_transition(demand, status, policy).allowed
    )


def cascade_target(
    demand: DemandState,
    policy: LifecyclePolicy | None = None,
) -> DemandStatus | None:
    """
    The automatic follow-up after a transition landed ``demand`` where it is.

    A demand that reached ApprovedByPM moves on to InProgress when
    auto-transition is enabled for its company and priority.
    """
    policy = policy or DEFAULT_POLICY
    if demand.status != DemandStatus.APPROVED_BY_PM:
        return None
    if not policy.auto_transition_enabled(demand.company, demand.priority):
        return None
    return DemandStatus.IN_PROGRESS
