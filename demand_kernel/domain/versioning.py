"""
Scope versions (``demand_kernel.domain.versioning``).

A demand starts at version 1 and every scope change increments the stored
counter and logs a ``scope_change`` event carrying the full field snapshot.
Past versions are numbered retrospectively: the newest scope-change event is
``current_version``, the next one ``current_version - 1`` and so on.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping
from uuid import UUID

from demand_kernel.domain.events import ActionCode, EventRecord


@dataclass(frozen=True)
class VersionSnapshot:
    version: int
    event_id: UUID
    actor_id: UUID | None
    actor_name: str | None
    description: str | None
    created_at: datetime
    snapshot: Mapping[str, Any]
    previous: Mapping[str, Any] | None = None


def number_versions(
    events: Iterable[EventRecord],
    current_version: int,
) -> tuple[VersionSnapshot, ...]:
    """Scope-change events newest first, numbered down from ``current_version``."""
    scope_changes = sorted(
        (e for e in events if e.action == ActionCode.SCOPE_CHANGE),
        key=lambda e: (e.created_at, e.seq),
        reverse=True,
    )
    return tuple(
        VersionSnapshot(
            version=current_version - index,
            event_id=event.id,
            actor_id=event.actor_id,
            actor_name=event.actor_name,
            description=event.description,
            created_at=event.created_at,
            snapshot=dict(event.after or {}),
            previous=dict(event.before) if event.before is not None else None,
        )
        for index, event in enumerate(scope_changes)
    )


def versioned_code(code_base: str, version: int) -> str:
    """``ZS-00040-112025`` stays as-is at version 1 and becomes ``ZS-00040-112025.V3`` at 3."""
    if version <= 1:
        return code_base
    return f"{code_base}.V{version}"


def format_demand_code(company: str, sequence: int, month: int, year: int, width: int = 5) -> str:
    """``<COMPANY>-<zero-padded sequence>-<MMYYYY>``."""
    return f"{company.upper()}-{sequence:0{width}d}-{month:02d}{year:04d}"
