"""
Module: demand_kernel.models.approval
Responsibility: ORM persistence for the mutable approval record store.

Architecture position: Kernel > Models.

Invariants enforced:
    - One row per (demand, level, approver): UNIQUE constraint.  A repeated
      decision updates the row in place; the event log keeps the history.
    - level is limited to manager/committee/technical.  status is free text
      so legacy values survive a read (reconciliation ranks them lowest).
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from demand_kernel.db.base import Base, UTCDateTime, UUIDString
from demand_kernel.domain.approval import ApprovalLevel, ApprovalRecord


class ApprovalRecordModel(Base):
    __tablename__ = "demand_approvals"

    __table_args__ = (
        CheckConstraint(
            "level IN ('manager', 'committee', 'technical')",
            name="ck_demand_approvals_valid_level",
        ),
        UniqueConstraint(
            "demand_id", "level", "approver_id",
            name="uq_demand_approvals_demand_level_approver",
        ),
        Index("ix_demand_approvals_demand", "demand_id"),
    )

    demand_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("demands.id"), nullable=False,
    )
    level: Mapped[str] = mapped_column(String(20), nullable=False)
    approver_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    approver_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<ApprovalRecord demand={self.demand_id} {self.level}/"
            f"{self.approver_id} status={self.status}>"
        )

    def to_dto(self) -> ApprovalRecord:
        return ApprovalRecord(
            id=self.id,
            demand_id=self.demand_id,
            level=ApprovalLevel(self.level),
            approver_id=self.approver_id,
            status=self.status,
            created_at=self.created_at,
            updated_at=self.updated_at,
            approver_name=self.approver_name,
            rejection_reason=self.rejection_reason,
        )
