"""
DemandService -- creating and editing demand records.

Responsibility:
    - ``create``: allocate the demand code from a locked per-company-month
      counter (``<COMPANY>-<NNNNN>-<MMYYYY>``), insert the demand at version 1
      and log a ``create`` event with the full snapshot.
    - ``edit``: apply editable field changes in place and log an ``edit``
      event carrying only the changed keys.  Status, version and code are
      not editable here (TransitionService and ScopeChangeService own them).
    - ``assign_owner``: set the responsible user, log ``assign_owner`` and
      notify the new owner.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy.orm import Session

from demand_kernel.domain.clock import Clock
from demand_kernel.domain.demand import (
    DemandRecord,
    check_regulatory_fields,
    coerce_field,
)
from demand_kernel.domain.events import ActionCode, diff_snapshots
from demand_kernel.domain.lifecycle import DemandStatus, Priority
from demand_kernel.domain.notifications import (
    LoggingNotificationSink,
    NotificationIntent,
    NotificationKind,
    NotificationSink,
    deliver,
)
from demand_kernel.domain.policy import DEFAULT_POLICY, LifecyclePolicy
from demand_kernel.domain.versioning import format_demand_code
from demand_kernel.exceptions import MissingRegulatoryFieldsError
from demand_kernel.logging_config import LogContext, get_logger
from demand_kernel.models.demand import DemandModel
from demand_kernel.services.base import BaseService
from demand_kernel.services.event_log_service import EventLogService
from demand_kernel.services.sequence_service import SequenceService

logger = get_logger("services.demand")


class DemandService(BaseService):

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: LifecyclePolicy | None = None,
        notifications: NotificationSink | None = None,
    ):
        super().__init__(session, clock)
        self.policy = policy or DEFAULT_POLICY
        self.notifications = notifications or LoggingNotificationSink()
        self._events = EventLogService(session, self.clock)
        self._sequences = SequenceService(session)

    def create(
        self,
        company: str,
        requester_id: UUID,
        priority: Priority | str,
        title: str,
        *,
        description: str | None = None,
        classification: str | None = None,
        department: str | None = None,
        squad: str | None = None,
        regulatory: bool = False,
        regulatory_deadline: date | None = None,
        estimated_hours: Decimal | None = None,
        estimated_cost: Decimal | None = None,
        expected_roi: Decimal | None = None,
        stand_by: bool = False,
        requester_name: str | None = None,
    ) -> DemandRecord:
        """
        Create a demand in Backlog, or in StandBy when ``stand_by`` is set
        (which requires the regulatory fields).
        """
        company = company.strip().upper()
        priority = Priority(priority)
        deadline = coerce_field("regulatory_deadline", regulatory_deadline)
        check_regulatory_fields(regulatory, deadline)
        if stand_by and not (regulatory and deadline):
            raise MissingRegulatoryFieldsError(
                None, "only regulatory demands with a deadline start in Stand by",
            )

        now = self.clock.now_utc()
        sequence = self._sequences.next_value(
            SequenceService.code_sequence(company, now.month, now.year)
        )
        code = format_demand_code(
            company, sequence, now.month, now.year,
            width=self.policy.code_sequence_width,
        )

        model = DemandModel(
            code=code,
            code_base=code,
            status=(DemandStatus.STAND_BY if stand_by else DemandStatus.BACKLOG).value,
            priority=priority.value,
            company=company,
            requester_id=requester_id,
            title=title,
            description=description,
            classification=classification,
            department=department,
            squad=squad,
            regulatory=regulatory,
            regulatory_deadline=deadline,
            estimated_hours=coerce_field("estimated_hours", estimated_hours),
            estimated_cost=coerce_field("estimated_cost", estimated_cost),
            expected_roi=coerce_field("expected_roi", expected_roi),
            version=1,
            technical_approval=False,
            committee_approval_percent=0,
            created_at=now,
            updated_at=now,
            created_by_id=requester_id,
        )
        self.session.add(model)
        self.session.flush()

        demand = model.to_dto()
        with LogContext.bind(demand_id=demand.id, actor_id=requester_id):
            self._events.append(
                demand.id,
                requester_id,
                ActionCode.CREATE,
                f"Demand {code} created",
                after=demand.snapshot(),
                actor_name=requester_name,
            )
            logger.info(
                "demand_created",
                extra={"code": code, "company": company, "priority": priority.value},
            )
        return demand

    def edit(
        self,
        demand_id: UUID,
        actor_id: UUID,
        changes: Mapping[str, Any],
        *,
        actor_name: str | None = None,
    ) -> DemandRecord:
        """Apply ``changes``; returns the demand unchanged when nothing differs."""
        coerced = {name: coerce_field(name, value) for name, value in changes.items()}
        model = self._load_demand(demand_id)

        check_regulatory_fields(
            coerced.get("regulatory", model.regulatory),
            coerced.get("regulatory_deadline", model.regulatory_deadline),
            demand_id,
        )

        before = model.to_dto().snapshot()
        for name, value in coerced.items():
            setattr(model, name, value)
        model.updated_at = self.clock.now_utc()
        model.updated_by_id = actor_id
        self.session.flush()
        demand = model.to_dto()

        changed = diff_snapshots(before, demand.snapshot())
        if not changed:
            return demand

        with LogContext.bind(demand_id=demand_id, actor_id=actor_id, action=ActionCode.EDIT):
            self._events.append(
                demand_id,
                actor_id,
                ActionCode.EDIT,
                "Edited " + ", ".join(c.key for c in changed),
                before={c.key: c.old for c in changed},
                after={c.key: c.new for c in changed},
                actor_name=actor_name,
            )
            logger.info(
                "demand_edited",
                extra={"changed_fields": [c.key for c in changed]},
            )
        return demand

    def assign_owner(
        self,
        demand_id: UUID,
        actor_id: UUID,
        owner_id: UUID,
        *,
        actor_name: str | None = None,
    ) -> DemandRecord:
        model = self._load_demand(demand_id)
        previous = model.owner_id
        model.owner_id = owner_id
        model.updated_at = self.clock.now_utc()
        model.updated_by_id = actor_id
        self.session.flush()
        demand = model.to_dto()

        with LogContext.bind(
            demand_id=demand_id, actor_id=actor_id, action=ActionCode.ASSIGN_OWNER,
        ):
            self._events.append(
                demand_id,
                actor_id,
                ActionCode.ASSIGN_OWNER,
                f"Owner assigned to demand {demand.code}",
                before={"owner_id": str(previous) if previous else None},
                after={"owner_id": str(owner_id)},
                actor_name=actor_name,
            )
            deliver(self.notifications, [
                NotificationIntent(
                    recipient_id=owner_id,
                    demand_id=demand.id,
                    kind=NotificationKind.OWNER_ASSIGNED,
                    title=f"You are now responsible for {demand.code}",
                    message=demand.title or demand.code,
                )
            ])
        return demand
