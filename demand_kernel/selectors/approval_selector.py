"""
Module: demand_kernel.selectors.approval_selector
Responsibility: Fetch the three reconciliation input streams of a demand and
    run the pure merge from domain/reconciliation.py.

Failure modes:
    - ApprovalSourceUnavailableError: one of the streams could not be read.
      The whole read fails; nothing is merged from a partial fetch.

Each source is read exactly once per call.  Missing data is empty input: a
demand without approval events or records yields only roster entries.
"""

from __future__ import annotations

from typing import Callable, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from demand_kernel.domain.approval import (
    ApprovalLevel,
    ApprovalRecord,
    CanonicalApprovalEntry,
    RosterProvider,
)
from demand_kernel.domain.reconciliation import group_by_level, reconcile_approvals
from demand_kernel.exceptions import (
    ApprovalRecordNotFoundError,
    ApprovalSourceUnavailableError,
    UpstreamError,
)
from demand_kernel.logging_config import get_logger
from demand_kernel.models.approval import ApprovalRecordModel
from demand_kernel.selectors.base import BaseSelector
from demand_kernel.selectors.event_selector import EventSelector
from demand_kernel.selectors.roster_selector import SqlRosterProvider

logger = get_logger("selectors.approval")

T = TypeVar("T")


class ApprovalSelector(BaseSelector):
    """
    Contract:
        ``reconcile(demand_id)`` returns the canonical approval view, sorted
        by level then recency.

    Non-goals:
        - No caching; every call re-reads all three sources.
    """

    SOURCE_EVENTS = "events"
    SOURCE_RECORDS = "approval_records"
    SOURCE_ROSTER = "roster"

    def __init__(self, session: Session, roster: RosterProvider | None = None):
        super().__init__(session)
        self._roster = roster or SqlRosterProvider(session)

    def records_for_demand(self, demand_id: UUID) -> list[ApprovalRecord]:
        stmt = (
            select(ApprovalRecordModel)
            .where(ApprovalRecordModel.demand_id == demand_id)
            .order_by(ApprovalRecordModel.created_at, ApprovalRecordModel.id)
        )
        return [row.to_dto() for row in self.session.scalars(stmt)]

    def get_record(
        self, demand_id: UUID, level: ApprovalLevel, approver_id: UUID,
    ) -> ApprovalRecord:
        """Stored decision row for one approver; raises if none was recorded."""
        row = self.session.scalars(
            select(ApprovalRecordModel).where(
                ApprovalRecordModel.demand_id == demand_id,
                ApprovalRecordModel.level == level.value,
                ApprovalRecordModel.approver_id == approver_id,
            )
        ).one_or_none()
        if row is None:
            raise ApprovalRecordNotFoundError(
                str(demand_id), level.value, str(approver_id),
            )
        return row.to_dto()

    def _fetch(self, demand_id: UUID, source: str, fetch: Callable[[], T]) -> T:
        try:
            return fetch()
        except (SQLAlchemyError, UpstreamError, OSError) as exc:
            logger.warning(
                "approval_source_unavailable",
                extra={"demand_id": str(demand_id), "source": source},
            )
            raise ApprovalSourceUnavailableError(
                str(demand_id), source, str(exc),
            ) from exc

    def reconcile(self, demand_id: UUID) -> tuple[CanonicalApprovalEntry, ...]:
        events = self._fetch(
            demand_id, self.SOURCE_EVENTS,
            lambda: EventSelector(self.session).approval_events(demand_id),
        )
        records = self._fetch(
            demand_id, self.SOURCE_RECORDS,
            lambda: self.records_for_demand(demand_id),
        )
        roster = self._fetch(
            demand_id, self.SOURCE_ROSTER,
            self._roster.active_committee_members,
        )

        entries = reconcile_approvals(events, records, roster)
        logger.debug(
            "approvals_reconciled",
            extra={
                "demand_id": str(demand_id),
                "event_count": len(events),
                "record_count": len(records),
                "roster_size": len(roster),
                "entry_count": len(entries),
            },
        )
        return entries

    def by_level(
        self, demand_id: UUID,
    ) -> dict[ApprovalLevel, list[CanonicalApprovalEntry]]:
        return group_by_level(self.reconcile(demand_id))
