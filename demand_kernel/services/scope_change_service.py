"""
ScopeChangeService -- versioned scope changes.

Responsibility:
    Applies a set of field changes as a new scope version: the version
    counter goes up by one (compare-and-swap on the version that was read),
    the code becomes ``<code_base>.V<n>``, the demand returns to Backlog for
    re-approval and a ``scope_change`` event records the full before/after
    snapshots.  Squad members and the requester are notified.

Failure modes:
    - InvalidFieldError for non-editable fields or unparsable values.
    - MissingRegulatoryFieldsError when the result is regulatory without a
      deadline.
    - TransitionNotAllowedError for Rejected and Archived demands.  Completed
      demands may change scope; that reopens them in Backlog.
    - OptimisticLockError when the version moved underneath the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from demand_kernel.domain.clock import Clock
from demand_kernel.domain.demand import DemandRecord, check_regulatory_fields, coerce_field
from demand_kernel.domain.events import ActionCode, EventRecord
from demand_kernel.domain.lifecycle import DemandStatus
from demand_kernel.domain.notifications import (
    LoggingNotificationSink,
    NotificationIntent,
    NotificationKind,
    NotificationSink,
    deliver,
)
from demand_kernel.domain.versioning import versioned_code
from demand_kernel.exceptions import OptimisticLockError, TransitionNotAllowedError
from demand_kernel.logging_config import LogContext, get_logger
from demand_kernel.models.demand import DemandModel
from demand_kernel.selectors.roster_selector import SqlRosterProvider
from demand_kernel.services.base import BaseService
from demand_kernel.services.event_log_service import EventLogService

logger = get_logger("services.scope_change")

# Closed for good; a Completed demand can still be reopened by a scope change.
SCOPE_LOCKED_STATUSES = frozenset({DemandStatus.REJECTED, DemandStatus.ARCHIVED})


@dataclass(frozen=True)
class ScopeChangeOutcome:
    demand: DemandRecord
    event: EventRecord
    previous_version: int
    notified: tuple[UUID, ...] = ()

    @property
    def version(self) -> int:
        return self.demand.version


class ScopeChangeService(BaseService):

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        notifications: NotificationSink | None = None,
    ):
        super().__init__(session, clock)
        self.notifications = notifications or LoggingNotificationSink()
        self._events = EventLogService(session, self.clock)
        self._squads = SqlRosterProvider(session)

    def apply(
        self,
        demand_id: UUID,
        actor_id: UUID,
        changes: Mapping[str, Any],
        *,
        description: str | None = None,
        expected_version: int | None = None,
        actor_name: str | None = None,
    ) -> ScopeChangeOutcome:
        with LogContext.bind(
            demand_id=demand_id, actor_id=actor_id, action=ActionCode.SCOPE_CHANGE,
        ):
            coerced = {name: coerce_field(name, value) for name, value in changes.items()}
            model = self._load_demand(demand_id)
            current = DemandStatus(model.status)

            if current in SCOPE_LOCKED_STATUSES:
                raise TransitionNotAllowedError(
                    str(demand_id), current.value, DemandStatus.BACKLOG.value,
                    f"{current.label} demands cannot change scope.",
                )

            read_version = model.version
            if expected_version is not None and expected_version != read_version:
                raise OptimisticLockError(
                    "Demand", str(demand_id), str(expected_version), field="version",
                )

            check_regulatory_fields(
                coerced.get("regulatory", model.regulatory),
                coerced.get("regulatory_deadline", model.regulatory_deadline),
                demand_id,
            )

            before = model.to_dto().snapshot()
            new_version = read_version + 1
            now = self.clock.now_utc()
            values = dict(coerced)
            values.update(
                version=new_version,
                code=versioned_code(model.code_base, new_version),
                status=DemandStatus.BACKLOG.value,
                updated_at=now,
                updated_by_id=actor_id,
            )

            self.session.flush()
            cas = self.session.execute(
                update(DemandModel)
                .where(DemandModel.id == demand_id)
                .where(DemandModel.version == read_version)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if cas.rowcount != 1:
                logger.warning(
                    "scope_change_conflict", extra={"read_version": read_version},
                )
                raise OptimisticLockError(
                    "Demand", str(demand_id), str(read_version), field="version",
                )
            for key, value in values.items():
                set_committed_value(model, key, value)

            demand = model.to_dto()
            event = self._events.append(
                demand_id,
                actor_id,
                ActionCode.SCOPE_CHANGE,
                description or f"Scope change - Version {new_version}",
                before=before,
                after=demand.snapshot(),
                actor_name=actor_name,
            )

            recipients = self._recipients(demand)
            deliver(self.notifications, [
                NotificationIntent(
                    recipient_id=recipient,
                    demand_id=demand.id,
                    kind=NotificationKind.SCOPE_CHANGED,
                    title=f"Scope change on {demand.code}",
                    message=(
                        f"Demand {demand.code_base} moved to version {new_version} "
                        "and returned to Backlog for re-approval."
                    ),
                    data={"version": new_version, "previous_version": read_version},
                )
                for recipient in recipients
            ])

            logger.info(
                "scope_change_applied",
                extra={
                    "previous_version": read_version,
                    "version": new_version,
                    "changed_fields": sorted(coerced),
                    "recipient_count": len(recipients),
                },
            )
            return ScopeChangeOutcome(
                demand=demand,
                event=event,
                previous_version=read_version,
                notified=tuple(recipients),
            )

    def _recipients(self, demand: DemandRecord) -> list[UUID]:
        recipients: list[UUID] = []
        if demand.squad:
            recipients.extend(self._squads.squad_member_ids(demand.company, demand.squad))
        if demand.requester_id not in recipients:
            recipients.append(demand.requester_id)
        return recipients
