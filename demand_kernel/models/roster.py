"""
Module: demand_kernel.models.roster
Responsibility: Committee roster and squad membership rows.

The kernel only reads these tables; user administration happens elsewhere.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from demand_kernel.db.base import Base, UUIDString
from demand_kernel.domain.approval import RosterMember


class CommitteeMemberModel(Base):
    __tablename__ = "committee_members"

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, unique=True)
    display_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<CommitteeMember {self.display_name or self.user_id} active={self.active}>"

    def to_dto(self) -> RosterMember:
        return RosterMember(
            user_id=self.user_id,
            display_name=self.display_name,
            active=self.active,
        )


class SquadMemberModel(Base):
    __tablename__ = "squad_members"

    __table_args__ = (
        UniqueConstraint(
            "company", "squad", "user_id",
            name="uq_squad_members_company_squad_user",
        ),
        Index("ix_squad_members_company_squad", "company", "squad"),
    )

    company: Mapped[str] = mapped_column(String(20), nullable=False)
    squad: Mapped[str] = mapped_column(String(100), nullable=False)
    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    def __repr__(self) -> str:
        return f"<SquadMember {self.company}/{self.squad} {self.user_id}>"
