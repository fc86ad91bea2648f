"""
TransitionService -- applies validated status changes.

Responsibility:
    Imperative shell around ``domain/transitions.py``: load the demand,
    validate, compare-and-swap the stored status, log a ``change_status``
    event, emit notification intents and run the automatic cascade.

Architecture position:
    Kernel > Services.  Flushes, never commits.

Concurrency:
    The UPDATE is conditioned on the status that was validated
    (``WHERE id = :id AND status = :read_status``).  When another writer got
    there first no row matches and OptimisticLockError is raised; the caller
    re-reads and retries.  Nothing is appended on that path.

Cascade:
    After the requested transition lands, ``cascade_target`` may name a
    follow-up (ApprovedByPM -> InProgress for auto-transition priorities).
    The follow-up is validated against the new state and applied inside a
    SAVEPOINT with its own event.  If it fails only the savepoint is rolled
    back: the first transition stays applied and the failure is reported on
    the outcome.

Failure modes:
    - DemandNotFoundError, TransitionNotAllowedError,
      ConfirmationRequiredError, OptimisticLockError.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from demand_kernel.domain.clock import Clock
from demand_kernel.domain.demand import DemandRecord
from demand_kernel.domain.events import ActionCode, EventRecord
from demand_kernel.domain.lifecycle import DemandStatus
from demand_kernel.domain.notifications import (
    LoggingNotificationSink,
    NotificationIntent,
    NotificationKind,
    NotificationSink,
    deliver,
)
from demand_kernel.domain.policy import DEFAULT_POLICY, LifecyclePolicy
from demand_kernel.domain.transitions import cascade_target, validate_transition
from demand_kernel.exceptions import (
    ConfirmationRequiredError,
    DemandKernelError,
    OptimisticLockError,
    TransitionNotAllowedError,
)
from demand_kernel.logging_config import LogContext, get_logger
from demand_kernel.models.demand import DemandModel
from demand_kernel.selectors.demand_selector import DemandSelector
from demand_kernel.services.base import BaseService
from demand_kernel.services.event_log_service import EventLogService

logger = get_logger("services.transition")


@dataclass(frozen=True)
class AppliedTransition:
    from_status: DemandStatus
    to_status: DemandStatus
    event: EventRecord
    automatic: bool = False


@dataclass(frozen=True)
class TransitionOutcome:
    """
    Result of one ``transition()`` call.

    ``applied`` holds the requested transition followed by the cascade, if
    one ran.  ``cascade_error`` is set when a cascade was due but failed.
    """

    demand: DemandRecord
    applied: tuple[AppliedTransition, ...]
    cascade_error: str | None = None
    cascade_error_code: str | None = None

    @property
    def final_status(self) -> DemandStatus:
        return self.demand.status

    @property
    def events(self) -> tuple[EventRecord, ...]:
        return tuple(a.event for a in self.applied)

    @property
    def cascaded(self) -> bool:
        return any(a.automatic for a in self.applied)


class TransitionService(BaseService):

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
        self._demands = DemandSelector(session)

    def transition(
        self,
        demand_id: UUID,
        target: DemandStatus | str,
        actor_id: UUID,
        *,
        confirmed: bool = False,
        expected_status: DemandStatus | str | None = None,
        description: str | None = None,
        actor_name: str | None = None,
    ) -> TransitionOutcome:
        """
        Move ``demand_id`` to ``target``.

        ``expected_status`` is the status the caller last saw; when given and
        already stale, OptimisticLockError is raised before validation.
        """
        target = DemandStatus(target)

        with LogContext.bind(
            demand_id=demand_id,
            actor_id=actor_id,
            action=ActionCode.CHANGE_STATUS,
        ):
            model = self._load_demand(demand_id)

            if expected_status is not None:
                expected = DemandStatus(expected_status)
                if DemandStatus(model.status) != expected:
                    logger.info(
                        "transition_stale_read",
                        extra={"expected": expected.value, "actual": model.status},
                    )
                    raise OptimisticLockError("Demand", str(demand_id), expected.value)

            applied = [
                self._apply(
                    model, target, actor_id,
                    confirmed=confirmed,
                    description=description,
                    actor_name=actor_name,
                )
            ]

            cascade_error = None
            cascade_error_code = None
            follow_up = cascade_target(self._state(model), self.policy)
            if follow_up is not None:
                try:
                    with self.session.begin_nested():
                        applied.append(
                            self._apply(
                                model, follow_up, actor_id,
                                confirmed=True,
                                description=(
                                    f"Automatic transition from "
                                    f"{target.label} to {follow_up.label}"
                                ),
                                actor_name=actor_name,
                                automatic=True,
                            )
                        )
                except DemandKernelError as exc:
                    cascade_error = str(exc)
                    cascade_error_code = exc.code
                    logger.warning(
                        "cascade_failed",
                        extra={
                            "from_status": target.value,
                            "to_status": follow_up.value,
                            "error_code": exc.code,
                        },
                    )

            demand = self._load_demand(demand_id).to_dto()
            deliver(self.notifications, self._intents(demand, applied))

            return TransitionOutcome(
                demand=demand,
                applied=tuple(applied),
                cascade_error=cascade_error,
                cascade_error_code=cascade_error_code,
            )

    def _state(self, model: DemandModel):
        return model.to_dto().state(self._demands.phase_count(model.id))

    def _apply(
        self,
        model: DemandModel,
        target: DemandStatus,
        actor_id: UUID,
        *,
        confirmed: bool,
        description: str | None,
        actor_name: str | None,
        automatic: bool = False,
    ) -> AppliedTransition:
        current = DemandStatus(model.status)
        result = validate_transition(self._state(model), target, self.policy)

        if not result.allowed:
            logger.info(
                "transition_refused",
                extra={
                    "from_status": current.value,
                    "to_status": target.value,
                    "reason": result.message,
                },
            )
            raise TransitionNotAllowedError(
                str(model.id), current.value, target.value, result.message,
            )
        if result.requires_confirmation and not confirmed:
            raise ConfirmationRequiredError(
                str(model.id), current.value, target.value,
                result.confirmation_message,
            )

        now = self.clock.now_utc()
        self.session.flush()
        cas = self.session.execute(
            update(DemandModel)
            .where(DemandModel.id == model.id)
            .where(DemandModel.status == current.value)
            .values(status=target.value, updated_at=now, updated_by_id=actor_id)
            .execution_options(synchronize_session=False)
        )
        if cas.rowcount != 1:
            logger.warning(
                "transition_conflict",
                extra={"from_status": current.value, "to_status": target.value},
            )
            raise OptimisticLockError("Demand", str(model.id), current.value)

        set_committed_value(model, "status", target.value)
        set_committed_value(model, "updated_at", now)
        set_committed_value(model, "updated_by_id", actor_id)

        event = self._events.append(
            model.id,
            actor_id,
            ActionCode.CHANGE_STATUS,
            description or f"Status changed from {current.label} to {target.label}",
            before={"status": current.value},
            after={"status": target.value},
            actor_name=actor_name,
        )

        logger.info(
            "transition_applied",
            extra={
                "from_status": current.value,
                "to_status": target.value,
                "automatic": automatic,
                "event_id": str(event.id),
            },
        )
        return AppliedTransition(
            from_status=current,
            to_status=target,
            event=event,
            automatic=automatic,
        )

    def _intents(
        self,
        demand: DemandRecord,
        applied: list[AppliedTransition],
    ) -> list[NotificationIntent]:
        intents = []
        for step in applied:
            if step.to_status == DemandStatus.REJECTED:
                intents.append(
                    NotificationIntent(
                        recipient_id=demand.requester_id,
                        demand_id=demand.id,
                        kind=NotificationKind.DEMAND_REJECTED,
                        title=f"Demand {demand.code} rejected",
                        message=f"Demand {demand.code} was rejected.",
                        data={"from_status": step.from_status.value},
                    )
                )
        return intents
