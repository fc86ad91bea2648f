"""
Approval reconciliation (``demand_kernel.domain.reconciliation``).

Responsibility
--------------
Build the canonical "who approved what, and what is still pending" view of a
demand from three streams that disagree with each other:

1. approval events from the append-only log (history),
2. rows of the mutable approval record store (current state),
3. the active committee roster (who *should* vote).

Architecture position
---------------------
**Kernel domain layer**.  A pure, total function.  Fetching the streams is
``selectors/approval_selector.py``'s job.

Merge rules
-----------
Entries are keyed by ``<level>-<approver id|global>``.  Events are merged
first, then records.  For a key already present:

* a strictly higher status rank replaces the existing entry, whatever the
  timestamps say (approved/rejected = 2, pending = 1, anything else = 0);
* a lower rank is ignored;
* on equal rank the incoming entry wins when its timestamp
  (``updated_at`` falling back to ``created_at``) is not older.  A missing
  timestamp sorts as the earliest instant.

Active roster members with no entry get a synthetic pending committee entry.
Roster members that already have one only get a missing display name filled
in; their status is never touched.

Ordering: manager < committee < technical; inside a level timestamped entries
come first, newest first, and the rest are ordered by case-insensitive
display name.  The sort is stable, so equal timestamps keep merge order.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from typing import Iterable

from demand_kernel.domain.approval import (
    APPROVAL_ACTIONS,
    ApprovalLevel,
    ApprovalRecord,
    ApprovalStatus,
    CanonicalApprovalEntry,
    EntrySource,
    RosterMember,
    approval_key,
)
from demand_kernel.domain.events import EventRecord

_EARLIEST = datetime.min.replace(tzinfo=UTC)

LEVEL_ORDER: dict[ApprovalLevel, int] = {
    ApprovalLevel.MANAGER: 0,
    ApprovalLevel.COMMITTEE: 1,
    ApprovalLevel.TECHNICAL: 2,
}

_STATUS_RANK: dict[str, int] = {
    ApprovalStatus.APPROVED.value: 2,
    ApprovalStatus.REJECTED.value: 2,
    ApprovalStatus.PENDING.value: 1,
}


def status_rank(status: str) -> int:
    return _STATUS_RANK.get(status, 0)


def _instant(ts: datetime | None) -> datetime:
    if ts is None:
        return _EARLIEST
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts


def _from_event(event: EventRecord) -> CanonicalApprovalEntry | None:
    mapped = APPROVAL_ACTIONS.get(event.action)
    if mapped is None:
        return None
    level, status = mapped
    reason = None
    if event.after:
        reason = event.after.get("rejection_reason")
    return CanonicalApprovalEntry(
        level=level,
        approver_id=event.actor_id,
        status=status.value,
        timestamp=event.created_at,
        display_name=event.actor_name,
        source=EntrySource.EVENT,
        rejection_reason=reason,
        description=event.description,
    )


def _from_record(record: ApprovalRecord) -> CanonicalApprovalEntry:
    return CanonicalApprovalEntry(
        level=record.level,
        approver_id=record.approver_id,
        status=record.status,
        timestamp=record.updated_at or record.created_at,
        display_name=record.approver_name,
        source=EntrySource.RECORD,
        rejection_reason=record.rejection_reason,
    )


def _merge(
    merged: dict[str, CanonicalApprovalEntry],
    incoming: CanonicalApprovalEntry,
) -> None:
    key = incoming.key
    existing = merged.get(key)
    if existing is None:
        merged[key] = incoming
        return

    incoming_rank = status_rank(incoming.status)
    existing_rank = status_rank(existing.status)
    if incoming_rank > existing_rank:
        merged[key] = incoming
    elif incoming_rank == existing_rank:
        if _instant(incoming.timestamp) >= _instant(existing.timestamp):
            merged[key] = incoming


def _sort_key(entry: CanonicalApprovalEntry) -> tuple:
    level_rank = LEVEL_ORDER.get(entry.level, 99)
    if entry.timestamp is not None:
        return (level_rank, 0, -_instant(entry.timestamp).timestamp(), "")
    return (level_rank, 1, 0.0, (entry.display_name or "").lower())


def reconcile_approvals(
    events: Iterable[EventRecord],
    records: Iterable[ApprovalRecord],
    roster: Iterable[RosterMember],
) -> tuple[CanonicalApprovalEntry, ...]:
    """
    Merge the three streams into the canonical approval view.

    Deterministic: equal inputs (in equal order) give equal outputs.
    """
    merged: dict[str, CanonicalApprovalEntry] = {}

    for event in events:
        entry = _from_event(event)
        if entry is not None:
            _merge(merged, entry)

    for record in records:
        _merge(merged, _from_record(record))

    for member in roster:
        if not member.active:
            continue
        key = approval_key(ApprovalLevel.COMMITTEE, member.user_id)
        existing = merged.get(key)
        if existing is None:
            merged[key] = CanonicalApprovalEntry(
                level=ApprovalLevel.COMMITTEE,
                approver_id=member.user_id,
                status=ApprovalStatus.PENDING.value,
                timestamp=None,
                display_name=member.display_name,
                source=EntrySource.ROSTER,
            )
        elif not existing.display_name and member.display_name:
            merged[key] = replace(existing, display_name=member.display_name)

    return tuple(sorted(merged.values(), key=_sort_key))


def group_by_level(
    entries: Iterable[CanonicalApprovalEntry],
) -> dict[ApprovalLevel, list[CanonicalApprovalEntry]]:
    """Split a reconciled view per level, keeping its order."""
    grouped: dict[ApprovalLevel, list[CanonicalApprovalEntry]] = {
        level: [] for level in ApprovalLevel
    }
    for entry in entries:
        grouped[entry.level].append(entry)
    return grouped
