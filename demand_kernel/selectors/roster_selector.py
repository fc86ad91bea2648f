"""
Module: demand_kernel.selectors.roster_selector
Responsibility: SQL-backed roster provider (committee members) and squad
    membership lookups used to address notifications.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from demand_kernel.domain.approval import RosterMember
from demand_kernel.exceptions import RosterUnavailableError
from demand_kernel.models.roster import CommitteeMemberModel, SquadMemberModel
from demand_kernel.selectors.base import BaseSelector


class SqlRosterProvider(BaseSelector):
    """RosterProvider reading the ``committee_members`` table."""

    def active_committee_members(self) -> list[RosterMember]:
        stmt = (
            select(CommitteeMemberModel)
            .where(CommitteeMemberModel.active.is_(True))
            .order_by(CommitteeMemberModel.display_name, CommitteeMemberModel.user_id)
        )
        try:
            rows = self.session.scalars(stmt).all()
        except SQLAlchemyError as exc:
            raise RosterUnavailableError(str(exc)) from exc
        return [row.to_dto() for row in rows]

    def squad_member_ids(self, company: str, squad: str) -> list[UUID]:
        stmt = (
            select(SquadMemberModel.user_id)
            .where(SquadMemberModel.company == company)
            .where(SquadMemberModel.squad == squad)
            .order_by(SquadMemberModel.user_id)
        )
        return list(self.session.scalars(stmt))
