"""
PhaseService -- delivery phases produced by the technical review.

Phases are numbered per demand in creation order.  Recording the first phase
locks the demand in AwaitingTechnicalReview against reversal (see the
validator in domain/transitions.py).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from demand_kernel.domain.clock import Clock
from demand_kernel.domain.events import ActionCode, EventRecord
from demand_kernel.logging_config import get_logger
from demand_kernel.models.phase import PhaseModel
from demand_kernel.selectors.demand_selector import DemandSelector
from demand_kernel.services.base import BaseService
from demand_kernel.services.event_log_service import EventLogService

logger = get_logger("services.phase")


@dataclass(frozen=True)
class PhaseRecord:
    id: UUID
    demand_id: UUID
    number: int
    name: str
    description: str | None
    estimated_hours: Decimal | None
    execution_order: int


class PhaseService(BaseService):

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)
        self._events = EventLogService(session, self.clock)

    def add_phase(
        self,
        demand_id: UUID,
        actor_id: UUID,
        name: str,
        *,
        description: str | None = None,
        estimated_hours: Decimal | None = None,
        actor_name: str | None = None,
    ) -> tuple[PhaseRecord, EventRecord]:
        self._load_demand(demand_id)
        number = DemandSelector(self.session).phase_count(demand_id) + 1
        hours = Decimal(str(estimated_hours)) if estimated_hours is not None else None

        model = PhaseModel(
            demand_id=demand_id,
            number=number,
            name=name,
            description=description,
            estimated_hours=hours,
            execution_order=number,
            created_at=self.clock.now_utc(),
            created_by_id=actor_id,
        )
        self.session.add(model)
        self.session.flush()

        event = self._events.append(
            demand_id,
            actor_id,
            ActionCode.ADD_PHASE,
            f"Phase {number} added: {name}",
            after={
                "phase_id": str(model.id),
                "number": number,
                "name": name,
                "estimated_hours": str(hours) if hours is not None else None,
            },
            actor_name=actor_name,
        )
        logger.info(
            "phase_added",
            extra={"phase_demand_id": str(demand_id), "number": number},
        )
        return (
            PhaseRecord(
                id=model.id,
                demand_id=demand_id,
                number=number,
                name=name,
                description=description,
                estimated_hours=hours,
                execution_order=number,
            ),
            event,
        )
