"""
Module: demand_kernel.models.phase
Responsibility: Delivery phases recorded by the technical review.

A demand with at least one phase can no longer be reverted out of
AwaitingTechnicalReview.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from demand_kernel.db.base import Base, UTCDateTime, UUIDString


class PhaseModel(Base):
    __tablename__ = "demand_phases"

    __table_args__ = (
        UniqueConstraint("demand_id", "number", name="uq_demand_phases_demand_number"),
    )

    demand_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("demands.id"), nullable=False,
    )
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    estimated_hours: Mapped[Decimal | None] = mapped_column(nullable=True)
    execution_order: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    created_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    def __repr__(self) -> str:
        return f"<Phase {self.number} {self.name!r} demand={self.demand_id}>"
