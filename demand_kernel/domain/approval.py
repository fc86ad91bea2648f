"""
Approval domain types (``demand_kernel.domain.approval``).

Responsibility
--------------
Value objects for the three approval levels (manager, committee, technical)
and the three input streams of reconciliation: approval events, approval
records and the committee roster.

Architecture position
---------------------
**Kernel domain layer**.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol
from uuid import UUID

from demand_kernel.domain.events import ActionCode


class ApprovalLevel(str, Enum):
    MANAGER = "manager"
    COMMITTEE = "committee"
    TECHNICAL = "technical"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalDecision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"

    @property
    def status(self) -> ApprovalStatus:
        if self is ApprovalDecision.APPROVE:
            return ApprovalStatus.APPROVED
        return ApprovalStatus.REJECTED


class EntrySource(str, Enum):
    """Which input stream produced a canonical entry."""

    EVENT = "event"
    RECORD = "record"
    ROSTER = "roster"


# Approval event codes and the (level, status) each one records.
APPROVAL_ACTIONS: dict[ActionCode, tuple[ApprovalLevel, ApprovalStatus]] = {
    ActionCode.APPROVE_MANAGER: (ApprovalLevel.MANAGER, ApprovalStatus.APPROVED),
    ActionCode.REJECT_MANAGER: (ApprovalLevel.MANAGER, ApprovalStatus.REJECTED),
    ActionCode.APPROVE_COMMITTEE: (ApprovalLevel.COMMITTEE, ApprovalStatus.APPROVED),
    ActionCode.REJECT_COMMITTEE: (ApprovalLevel.COMMITTEE, ApprovalStatus.REJECTED),
    ActionCode.APPROVE_TECHNICAL: (ApprovalLevel.TECHNICAL, ApprovalStatus.APPROVED),
    ActionCode.REJECT_TECHNICAL: (ApprovalLevel.TECHNICAL, ApprovalStatus.REJECTED),
}


def decision_action(level: ApprovalLevel, decision: ApprovalDecision) -> ActionCode:
    """Event code recording ``decision`` at ``level``."""
    for action, (lvl, status) in APPROVAL_ACTIONS.items():
        if lvl == level and status == decision.status:
            return action
    raise KeyError((level, decision))


@dataclass(frozen=True)
class ApprovalRecord:
    """
    One row of the approval record store.

    ``status`` is kept as the raw stored string: values outside
    pending/approved/rejected are tolerated and rank lowest in reconciliation.
    """

    demand_id: UUID
    level: ApprovalLevel
    approver_id: UUID | None
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    approver_name: str | None = None
    rejection_reason: str | None = None
    id: UUID | None = None


@dataclass(frozen=True)
class RosterMember:
    user_id: UUID
    display_name: str | None
    active: bool = True


@dataclass(frozen=True)
class CanonicalApprovalEntry:
    """One line of the reconciled "who approved what" view."""

    level: ApprovalLevel
    approver_id: UUID | None
    status: str
    timestamp: datetime | None
    display_name: str | None
    source: EntrySource
    rejection_reason: str | None = None
    description: str | None = None

    @property
    def key(self) -> str:
        return approval_key(self.level, self.approver_id)


def approval_key(level: ApprovalLevel, approver_id: UUID | None) -> str:
    """Merge key: ``<level>-<approver id>`` or ``<level>-global``."""
    who = str(approver_id) if approver_id is not None else "global"
    return f"{level.value}-{who}"


class RosterProvider(Protocol):
    """Source of the active committee roster."""

    def active_committee_members(self) -> list[RosterMember]:
        ...
