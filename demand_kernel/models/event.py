"""
Module: demand_kernel.models.event
Responsibility: ORM persistence for the append-only demand event log.

Architecture position: Kernel > Models.

Invariants enforced:
    - Rows are never updated or deleted (db/immutability.py).
    - action is limited to the ActionCode vocabulary by a CHECK constraint.
    - (demand_id, seq) is unique; seq gives the exact append order even when
      two events share a timestamp.

Audit relevance:
    This table is the history every derived view (approval reconciliation,
    version numbering, timeline) is rebuilt from.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from demand_kernel.db.base import Base, UTCDateTime, UUIDString
from demand_kernel.domain.events import ActionCode, EventRecord


class DemandEventModel(Base):
    """One immutable entry of a demand's history."""

    __tablename__ = "demand_events"

    __table_args__ = (
        CheckConstraint(
            "action IN ({})".format(", ".join(f"'{a.value}'" for a in ActionCode)),
            name="ck_demand_events_valid_action",
        ),
        UniqueConstraint("demand_id", "seq", name="uq_demand_events_demand_seq"),
        Index("ix_demand_events_demand_created", "demand_id", "created_at"),
        Index("ix_demand_events_demand_action", "demand_id", "action"),
    )

    demand_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("demands.id"), nullable=False,
    )
    # Per-demand append order, allocated from a locked counter row
    seq: Mapped[int] = mapped_column(BigInteger, nullable=False)
    actor_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    actor_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    action: Mapped[str] = mapped_column(String(40), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Open-ended field maps
    before: Mapped[dict[str, Any] | None] = mapped_column(
        "before_data", JSON, nullable=True,
    )
    after: Mapped[dict[str, Any] | None] = mapped_column(
        "after_data", JSON, nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    def __repr__(self) -> str:
        return f"<DemandEvent {self.action} demand={self.demand_id} at={self.created_at}>"

    def to_dto(self) -> EventRecord:
        return EventRecord(
            id=self.id,
            demand_id=self.demand_id,
            seq=self.seq,
            actor_id=self.actor_id,
            action=ActionCode(self.action),
            description=self.description,
            created_at=self.created_at,
            before=self.before,
            after=self.after,
            actor_name=self.actor_name,
        )
