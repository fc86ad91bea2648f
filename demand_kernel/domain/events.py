"""
Event log vocabulary and snapshot diffing (``demand_kernel.domain.events``).

Responsibility
--------------
* ``ActionCode``: the closed vocabulary of event actions.
* ``EventRecord``: immutable DTO for one stored event.
* ``diff_snapshots``: key-union diff of two open-ended before/after payloads.
* History categories used to filter an event timeline.

Architecture position
---------------------
**Kernel domain layer**.  ZERO I/O.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Mapping
from uuid import UUID

from demand_kernel.exceptions import InvalidActionCodeError


class ActionCode(str, Enum):
    """Every action an event may record."""

    CREATE = "create"
    EDIT = "edit"
    REACTIVATE = "reactivate"
    DELETE = "delete"
    CANCEL = "cancel"
    ARCHIVE = "archive"
    APPROVE = "approve"
    REJECT = "reject"
    CHANGE_STATUS = "change_status"
    ADD_PHASE = "add_phase"
    UPDATE_PHASE = "update_phase"
    REQUEST_INPUT = "request_input"
    SEND_NOTIFICATION = "send_notification"
    REQUEST_UPDATE = "request_update"
    ASSIGN_OWNER = "assign_owner"
    REQUEST_CHANGE = "request_change"
    APPROVE_MANAGER = "approve_manager"
    REJECT_MANAGER = "reject_manager"
    APPROVE_COMMITTEE = "approve_committee"
    REJECT_COMMITTEE = "reject_committee"
    APPROVE_TECHNICAL = "approve_technical"
    REJECT_TECHNICAL = "reject_technical"
    LOG_DAILY_UPDATE = "log_daily_update"
    SCOPE_CHANGE = "scope_change"


def parse_action(action: ActionCode | str) -> ActionCode:
    """Coerce ``action`` into the vocabulary or raise InvalidActionCodeError."""
    if isinstance(action, ActionCode):
        return action
    try:
        return ActionCode(action)
    except ValueError:
        raise InvalidActionCodeError(str(action)) from None


@dataclass(frozen=True)
class EventRecord:
    """One append-only log entry."""

    id: UUID
    demand_id: UUID
    actor_id: UUID | None
    action: ActionCode
    description: str | None
    created_at: datetime
    before: Mapping[str, Any] | None = None
    after: Mapping[str, Any] | None = None
    actor_name: str | None = None
    seq: int = 0

    @property
    def category(self) -> HistoryCategory:
        return category_for(self.action)


# ---------------------------------------------------------------------------
# Snapshot diff
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldChange:
    key: str
    old: Any
    new: Any


def _canonical(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def diff_snapshots(
    before: Mapping[str, Any] | None,
    after: Mapping[str, Any] | None,
) -> tuple[FieldChange, ...]:
    """
    Changed keys between two snapshots.

    Keys present on either side are compared by their JSON serialization, so
    nested maps and lists compare by value.  A key missing on one side reads
    as ``None``.  Keys keep first-seen order: ``before`` keys, then keys only
    in ``after``.
    """
    before = before or {}
    after = after or {}
    keys = list(before)
    keys.extend(k for k in after if k not in before)

    changes = []
    for key in keys:
        old = before.get(key)
        new = after.get(key)
        if _canonical(old) != _canonical(new):
            changes.append(FieldChange(key=key, old=old, new=new))
    return tuple(changes)


# ---------------------------------------------------------------------------
# History categories
# ---------------------------------------------------------------------------


class HistoryCategory(str, Enum):
    LIFECYCLE = "lifecycle"
    APPROVAL = "approval"
    STATUS = "status"
    PHASE = "phase"
    COMMUNICATION = "communication"
    EDITING = "editing"


ACTION_CATEGORIES: dict[ActionCode, HistoryCategory] = {
    ActionCode.CREATE: HistoryCategory.LIFECYCLE,
    ActionCode.DELETE: HistoryCategory.LIFECYCLE,
    ActionCode.ARCHIVE: HistoryCategory.LIFECYCLE,
    ActionCode.REACTIVATE: HistoryCategory.LIFECYCLE,
    ActionCode.CANCEL: HistoryCategory.LIFECYCLE,
    ActionCode.APPROVE: HistoryCategory.APPROVAL,
    ActionCode.REJECT: HistoryCategory.APPROVAL,
    ActionCode.APPROVE_MANAGER: HistoryCategory.APPROVAL,
    ActionCode.REJECT_MANAGER: HistoryCategory.APPROVAL,
    ActionCode.APPROVE_COMMITTEE: HistoryCategory.APPROVAL,
    ActionCode.REJECT_COMMITTEE: HistoryCategory.APPROVAL,
    ActionCode.APPROVE_TECHNICAL: HistoryCategory.APPROVAL,
    ActionCode.REJECT_TECHNICAL: HistoryCategory.APPROVAL,
    ActionCode.CHANGE_STATUS: HistoryCategory.STATUS,
    ActionCode.ADD_PHASE: HistoryCategory.PHASE,
    ActionCode.UPDATE_PHASE: HistoryCategory.PHASE,
    ActionCode.SEND_NOTIFICATION: HistoryCategory.COMMUNICATION,
    ActionCode.REQUEST_INPUT: HistoryCategory.COMMUNICATION,
    ActionCode.REQUEST_UPDATE: HistoryCategory.COMMUNICATION,
    ActionCode.REQUEST_CHANGE: HistoryCategory.COMMUNICATION,
    ActionCode.LOG_DAILY_UPDATE: HistoryCategory.COMMUNICATION,
}


def category_for(action: ActionCode | str) -> HistoryCategory:
    """Category of ``action``; anything unmapped counts as editing."""
    try:
        action = ActionCode(action)
    except ValueError:
        return HistoryCategory.EDITING
    return ACTION_CATEGORIES.get(action, HistoryCategory.EDITING)


def actions_in(categories: Iterable[HistoryCategory | str]) -> frozenset[ActionCode]:
    """All action codes belonging to any of ``categories``."""
    wanted = {HistoryCategory(c) for c in categories}
    return frozenset(a for a in ActionCode if category_for(a) in wanted)
