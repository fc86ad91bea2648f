"""
Demand lifecycle vocabulary (``demand_kernel.domain.lifecycle``).

Responsibility
--------------
The status and priority enumerations and the static transition graph.
Guards that depend on the demand's fields live in ``domain/transitions.py``;
this module only answers "is there an edge from A to B at all".

Architecture position
---------------------
**Kernel domain layer**.  ZERO I/O.
"""

from __future__ import annotations

from enum import Enum


class DemandStatus(str, Enum):
    """Lifecycle states of a demand."""

    STAND_BY = "stand_by"
    BACKLOG = "backlog"
    AWAITING_MANAGER = "awaiting_manager"
    APPROVED_BY_PM = "approved_by_pm"
    AWAITING_TECHNICAL_REVIEW = "awaiting_technical_review"
    AWAITING_COMMITTEE = "awaiting_committee"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    COMPLETED = "completed"
    REJECTED = "rejected"
    ARCHIVED = "archived"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def is_fast_track(self) -> bool:
        """Low and medium demands may skip committee review."""
        return self in (Priority.LOW, Priority.MEDIUM)


STATUS_LABELS: dict[DemandStatus, str] = {
    DemandStatus.STAND_BY: "Stand by",
    DemandStatus.BACKLOG: "Backlog",
    DemandStatus.AWAITING_MANAGER: "Awaiting manager",
    DemandStatus.APPROVED_BY_PM: "Approved by PM",
    DemandStatus.AWAITING_TECHNICAL_REVIEW: "Awaiting technical review",
    DemandStatus.AWAITING_COMMITTEE: "Awaiting committee",
    DemandStatus.UNDER_REVIEW: "Under review",
    DemandStatus.APPROVED: "Approved",
    DemandStatus.IN_PROGRESS: "In progress",
    DemandStatus.BLOCKED: "Blocked",
    DemandStatus.COMPLETED: "Completed",
    DemandStatus.REJECTED: "Rejected",
    DemandStatus.ARCHIVED: "Archived",
}


TERMINAL_STATUSES: frozenset[DemandStatus] = frozenset({
    DemandStatus.COMPLETED,
    DemandStatus.REJECTED,
    DemandStatus.ARCHIVED,
})


DEMAND_TRANSITIONS: dict[DemandStatus, frozenset[DemandStatus]] = {
    DemandStatus.STAND_BY: frozenset({
        DemandStatus.BACKLOG,
        DemandStatus.APPROVED_BY_PM,
    }),
    DemandStatus.BACKLOG: frozenset({
        DemandStatus.AWAITING_MANAGER,
        DemandStatus.APPROVED_BY_PM,
        DemandStatus.STAND_BY,
    }),
    DemandStatus.AWAITING_MANAGER: frozenset({
        DemandStatus.AWAITING_COMMITTEE,
        DemandStatus.BACKLOG,
        DemandStatus.APPROVED_BY_PM,
        DemandStatus.APPROVED,
        DemandStatus.REJECTED,
    }),
    DemandStatus.APPROVED_BY_PM: frozenset({
        DemandStatus.BACKLOG,
        DemandStatus.STAND_BY,
        DemandStatus.IN_PROGRESS,
        DemandStatus.AWAITING_COMMITTEE,
        DemandStatus.AWAITING_TECHNICAL_REVIEW,
    }),
    DemandStatus.AWAITING_TECHNICAL_REVIEW: frozenset({
        DemandStatus.BACKLOG,
        DemandStatus.STAND_BY,
        DemandStatus.APPROVED_BY_PM,
    }),
    DemandStatus.AWAITING_COMMITTEE: frozenset({
        DemandStatus.APPROVED_BY_PM,
        DemandStatus.UNDER_REVIEW,
        DemandStatus.REJECTED,
    }),
    DemandStatus.UNDER_REVIEW: frozenset({
        DemandStatus.AWAITING_COMMITTEE,
        DemandStatus.APPROVED,
        DemandStatus.ARCHIVED,
        DemandStatus.REJECTED,
    }),
    DemandStatus.APPROVED: frozenset({
        DemandStatus.IN_PROGRESS,
    }),
    DemandStatus.IN_PROGRESS: frozenset({
        DemandStatus.APPROVED,
        DemandStatus.APPROVED_BY_PM,
        DemandStatus.COMPLETED,
        DemandStatus.ARCHIVED,
        DemandStatus.BLOCKED,
    }),
    DemandStatus.BLOCKED: frozenset({
        DemandStatus.IN_PROGRESS,
        DemandStatus.ARCHIVED,
    }),
    DemandStatus.COMPLETED: frozenset(),
    DemandStatus.REJECTED: frozenset(),
    DemandStatus.ARCHIVED: frozenset(),
}


def has_edge(from_status: DemandStatus, to_status: DemandStatus) -> bool:
    return to_status in DEMAND_TRANSITIONS.get(from_status, frozenset())
