"""
ApprovalService -- records approval decisions at the three levels.

Responsibility:
    One call per approver action: upsert the approval record, append the
    matching ``approve_<level>``/``reject_<level>`` event, keep the demand's
    derived approval fields current and drive the manager-level status
    change through TransitionService.

Rules:
    - A rejection needs a non-empty reason.
    - A repeated decision by the same approver at the same level updates the
      existing record in place; the event log keeps both decisions.
    - Committee decisions recompute ``committee_approval_percent`` from the
      active roster.
    - A technical decision sets ``technical_approval``.
    - A manager approval of a demand in AwaitingManager moves it to
      ApprovedByPM (the cascade may carry it further); a manager rejection
      moves it back to Backlog.
    - Every rejection notifies the requester.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from demand_kernel.domain.approval import (
    ApprovalDecision,
    ApprovalLevel,
    ApprovalRecord,
    ApprovalStatus,
    RosterProvider,
    decision_action,
)
from demand_kernel.domain.clock import Clock
from demand_kernel.domain.events import EventRecord
from demand_kernel.domain.lifecycle import DemandStatus
from demand_kernel.domain.notifications import (
    LoggingNotificationSink,
    NotificationIntent,
    NotificationKind,
    NotificationSink,
    deliver,
)
from demand_kernel.domain.policy import LifecyclePolicy
from demand_kernel.exceptions import MissingRejectionReasonError
from demand_kernel.logging_config import LogContext, get_logger
from demand_kernel.models.approval import ApprovalRecordModel
from demand_kernel.selectors.roster_selector import SqlRosterProvider
from demand_kernel.services.base import BaseService
from demand_kernel.services.event_log_service import EventLogService
from demand_kernel.services.transition_service import TransitionOutcome, TransitionService

logger = get_logger("services.approval")


@dataclass(frozen=True)
class ApprovalDecisionOutcome:
    record: ApprovalRecord
    event: EventRecord
    committee_approval_percent: int
    transition: TransitionOutcome | None = None


class ApprovalService(BaseService):

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: LifecyclePolicy | None = None,
        notifications: NotificationSink | None = None,
        roster: RosterProvider | None = None,
    ):
        super().__init__(session, clock)
        self.notifications = notifications or LoggingNotificationSink()
        self.roster = roster or SqlRosterProvider(session)
        self._events = EventLogService(session, self.clock)
        self._transitions = TransitionService(
            session, self.clock, policy=policy, notifications=self.notifications,
        )

    def record_decision(
        self,
        demand_id: UUID,
        level: ApprovalLevel | str,
        approver_id: UUID,
        decision: ApprovalDecision | str,
        *,
        reason: str | None = None,
        approver_name: str | None = None,
    ) -> ApprovalDecisionOutcome:
        level = ApprovalLevel(level)
        decision = ApprovalDecision(decision)
        action = decision_action(level, decision)

        with LogContext.bind(demand_id=demand_id, actor_id=approver_id, action=action):
            demand = self._load_demand(demand_id)

            if decision is ApprovalDecision.REJECT:
                if reason is None or not reason.strip():
                    raise MissingRejectionReasonError(str(demand_id), level.value)
                reason = reason.strip()
            else:
                reason = None

            record, previous_status = self._upsert_record(
                demand_id, level, approver_id, decision.status, reason, approver_name,
            )

            after = {"level": level.value, "status": decision.status.value}
            if reason is not None:
                after["rejection_reason"] = reason
            event = self._events.append(
                demand_id,
                approver_id,
                action,
                self._describe(level, decision, reason),
                before={"status": previous_status} if previous_status else None,
                after=after,
                actor_name=approver_name,
            )

            if level is ApprovalLevel.COMMITTEE:
                demand.committee_approval_percent = self._committee_percent(demand_id)
            elif level is ApprovalLevel.TECHNICAL:
                demand.technical_approval = decision is ApprovalDecision.APPROVE
            self.session.flush()

            transition = None
            if (
                level is ApprovalLevel.MANAGER
                and demand.status == DemandStatus.AWAITING_MANAGER.value
            ):
                target = (
                    DemandStatus.APPROVED_BY_PM
                    if decision is ApprovalDecision.APPROVE
                    else DemandStatus.BACKLOG
                )
                transition = self._transitions.transition(
                    demand_id,
                    target,
                    approver_id,
                    confirmed=True,
                    expected_status=DemandStatus.AWAITING_MANAGER,
                    actor_name=approver_name,
                )

            if decision is ApprovalDecision.REJECT:
                deliver(self.notifications, [
                    NotificationIntent(
                        recipient_id=demand.requester_id,
                        demand_id=demand.id,
                        kind=NotificationKind.APPROVAL_REJECTED,
                        title=f"Demand {demand.code} rejected by {level.value}",
                        message=reason,
                        data={"level": level.value, "approver_id": str(approver_id)},
                    )
                ])

            logger.info(
                "approval_decision_recorded",
                extra={
                    "level": level.value,
                    "decision": decision.value,
                    "previous_status": previous_status,
                    "committee_approval_percent": demand.committee_approval_percent,
                },
            )
            return ApprovalDecisionOutcome(
                record=record,
                event=event,
                committee_approval_percent=demand.committee_approval_percent,
                transition=transition,
            )

    def _upsert_record(
        self,
        demand_id: UUID,
        level: ApprovalLevel,
        approver_id: UUID,
        status: ApprovalStatus,
        reason: str | None,
        approver_name: str | None,
    ) -> tuple[ApprovalRecord, str | None]:
        now = self.clock.now_utc()
        model = self.session.execute(
            select(ApprovalRecordModel)
            .where(ApprovalRecordModel.demand_id == demand_id)
            .where(ApprovalRecordModel.level == level.value)
            .where(ApprovalRecordModel.approver_id == approver_id)
        ).scalar_one_or_none()

        previous_status = None
        if model is None:
            model = ApprovalRecordModel(
                demand_id=demand_id,
                level=level.value,
                approver_id=approver_id,
                approver_name=approver_name,
                status=status.value,
                rejection_reason=reason,
                created_at=now,
                updated_at=now,
            )
            self.session.add(model)
        else:
            previous_status = model.status
            model.status = status.value
            model.rejection_reason = reason
            model.updated_at = now
            if approver_name:
                model.approver_name = approver_name
        self.session.flush()
        return model.to_dto(), previous_status

    def _committee_percent(self, demand_id: UUID) -> int:
        members = {m.user_id for m in self.roster.active_committee_members()}
        if not members:
            return 0
        approved = self.session.scalars(
            select(ApprovalRecordModel.approver_id)
            .where(ApprovalRecordModel.demand_id == demand_id)
            .where(ApprovalRecordModel.level == ApprovalLevel.COMMITTEE.value)
            .where(ApprovalRecordModel.status == ApprovalStatus.APPROVED.value)
        ).all()
        votes = len(members.intersection(approved))
        return votes * 100 // len(members)

    @staticmethod
    def _describe(level: ApprovalLevel, decision: ApprovalDecision, reason: str | None) -> str:
        verb = "approved" if decision is ApprovalDecision.APPROVE else "rejected"
        text = f"Demand {verb} at {level.value} level"
        if reason:
            text = f"{text}: {reason}"
        return text
