"""
Module: demand_kernel.selectors.event_selector
Responsibility: Query the append-only event log of a demand.

Events come back newest first by default, ordered by their per-demand
sequence number so ties on ``created_at`` still have a stable order.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable
from uuid import UUID

from sqlalchemy import func, select

from demand_kernel.domain.approval import APPROVAL_ACTIONS
from demand_kernel.domain.events import (
    ActionCode,
    EventRecord,
    HistoryCategory,
    actions_in,
    parse_action,
)
from demand_kernel.models.event import DemandEventModel
from demand_kernel.selectors.base import BaseSelector


class EventSelector(BaseSelector):

    def list_for_demand(
        self,
        demand_id: UUID,
        actions: Iterable[ActionCode | str] | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
        categories: Iterable[HistoryCategory | str] | None = None,
        newest_first: bool = True,
    ) -> tuple[EventRecord, ...]:
        """
        Events of ``demand_id`` filtered by action codes, categories and an
        inclusive ``since``/``until`` time window.

        ``actions`` and ``categories`` combine as an intersection when both
        are given.  Unknown action codes raise InvalidActionCodeError.
        """
        stmt = select(DemandEventModel).where(DemandEventModel.demand_id == demand_id)

        wanted: set[ActionCode] | None = None
        if actions is not None:
            wanted = {parse_action(a) for a in actions}
        if categories is not None:
            in_categories = actions_in(categories)
            wanted = in_categories if wanted is None else wanted & in_categories
        if wanted is not None:
            if not wanted:
                return ()
            stmt = stmt.where(DemandEventModel.action.in_(sorted(a.value for a in wanted)))

        if since is not None:
            stmt = stmt.where(DemandEventModel.created_at >= since)
        if until is not None:
            stmt = stmt.where(DemandEventModel.created_at <= until)

        if newest_first:
            stmt = stmt.order_by(DemandEventModel.seq.desc())
        else:
            stmt = stmt.order_by(DemandEventModel.seq.asc())

        return tuple(row.to_dto() for row in self.session.scalars(stmt))

    def approval_events(self, demand_id: UUID) -> tuple[EventRecord, ...]:
        """The six approve/reject events in append order."""
        return self.list_for_demand(
            demand_id, actions=APPROVAL_ACTIONS.keys(), newest_first=False,
        )

    def scope_changes(self, demand_id: UUID) -> tuple[EventRecord, ...]:
        return self.list_for_demand(demand_id, actions=[ActionCode.SCOPE_CHANGE])

    def count_for_demand(self, demand_id: UUID) -> int:
        return self.session.scalar(
            select(func.count())
            .select_from(DemandEventModel)
            .where(DemandEventModel.demand_id == demand_id)
        ) or 0
