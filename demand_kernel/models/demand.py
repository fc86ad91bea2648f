"""
Module: demand_kernel.models.demand
Responsibility: ORM persistence for demand records.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain value types only.

Invariants enforced:
    - status and priority are limited to their enum values by CHECK
      constraints; the service layer enforces the transition graph.
    - version >= 1 and committee_approval_percent within 0..100.
    - Demands are never hard-deleted (ORM listener in db/immutability.py).

Failure modes:
    - IntegrityError on duplicate code.
    - ImmutabilityViolationError on DELETE.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from demand_kernel.db.base import TrackedBase, UUIDString
from demand_kernel.domain.demand import DemandRecord
from demand_kernel.domain.lifecycle import DemandStatus, Priority


def _in_clause(column: str, values) -> str:
    quoted = ", ".join(f"'{v.value}'" for v in values)
    return f"{column} IN ({quoted})"


class DemandModel(TrackedBase):
    """
    Persistent demand.

    Contract:
        ``status`` and ``version`` are only changed through compare-and-swap
        UPDATEs issued by TransitionService and ScopeChangeService.

    Guarantees:
        - code is unique; code_base is the code without its version suffix.
    """

    __tablename__ = "demands"

    __table_args__ = (
        CheckConstraint(
            _in_clause("status", DemandStatus),
            name="ck_demands_valid_status",
        ),
        CheckConstraint(
            _in_clause("priority", Priority),
            name="ck_demands_valid_priority",
        ),
        CheckConstraint("version >= 1", name="ck_demands_version_positive"),
        CheckConstraint(
            "committee_approval_percent >= 0 AND committee_approval_percent <= 100",
            name="ck_demands_committee_percent_range",
        ),
        Index("ix_demands_company_status", "company", "status"),
        Index("ix_demands_code_base", "code_base"),
    )

    code: Mapped[str] = mapped_column(String(60), nullable=False, unique=True)
    code_base: Mapped[str] = mapped_column(String(60), nullable=False)
    status: Mapped[str] = mapped_column(String(40), nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False)
    company: Mapped[str] = mapped_column(String(20), nullable=False)
    requester_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    owner_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    title: Mapped[str | None] = mapped_column(String(300), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    checklist: Mapped[str | None] = mapped_column(Text, nullable=True)
    classification: Mapped[str | None] = mapped_column(String(50), nullable=True)
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    squad: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Set together or not at all
    regulatory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    regulatory_deadline: Mapped[date | None] = mapped_column(Date, nullable=True)

    estimated_hours: Mapped[Decimal | None] = mapped_column(nullable=True)
    estimated_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    expected_roi: Mapped[Decimal | None] = mapped_column(nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    technical_approval: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    committee_approval_percent: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )

    def __repr__(self) -> str:
        return f"<Demand {self.code} status={self.status} v{self.version}>"

    def to_dto(self) -> DemandRecord:
        return DemandRecord(
            id=self.id,
            code=self.code,
            code_base=self.code_base,
            status=DemandStatus(self.status),
            priority=Priority(self.priority),
            company=self.company,
            requester_id=self.requester_id,
            version=self.version,
            title=self.title,
            description=self.description,
            notes=self.notes,
            checklist=self.checklist,
            classification=self.classification,
            department=self.department,
            squad=self.squad,
            owner_id=self.owner_id,
            regulatory=self.regulatory,
            regulatory_deadline=self.regulatory_deadline,
            estimated_hours=self.estimated_hours,
            estimated_cost=self.estimated_cost,
            expected_roi=self.expected_roi,
            technical_approval=self.technical_approval,
            committee_approval_percent=self.committee_approval_percent,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
