"""
EventLogService -- append-only writes to the demand event log.

Responsibility:
    Validates the action code, checks the demand exists, allocates the
    per-demand sequence number and inserts one immutable row.  Never touches
    earlier rows.

Failure modes:
    - InvalidActionCodeError for codes outside the vocabulary.
    - DemandNotFoundError when the demand does not exist.
"""

from __future__ import annotations

import json
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy.orm import Session

from demand_kernel.domain.clock import Clock
from demand_kernel.domain.events import ActionCode, EventRecord, parse_action
from demand_kernel.logging_config import get_logger
from demand_kernel.models.event import DemandEventModel
from demand_kernel.services.base import BaseService
from demand_kernel.services.sequence_service import SequenceService

logger = get_logger("services.event_log")


def _payload(data: Mapping[str, Any] | None) -> dict[str, Any] | None:
    # Detached, JSON-safe copy
    if data is None:
        return None
    return json.loads(json.dumps(dict(data), default=str))


class EventLogService(BaseService):

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)
        self._sequences = SequenceService(session)

    def append(
        self,
        demand_id: UUID,
        actor_id: UUID | None,
        action: ActionCode | str,
        description: str | None = None,
        before: Mapping[str, Any] | None = None,
        after: Mapping[str, Any] | None = None,
        actor_name: str | None = None,
    ) -> EventRecord:
        action = parse_action(action)
        self._load_demand(demand_id)

        seq = self._sequences.next_value(SequenceService.event_sequence(demand_id))
        model = DemandEventModel(
            demand_id=demand_id,
            seq=seq,
            actor_id=actor_id,
            actor_name=actor_name,
            action=action.value,
            description=description,
            before=_payload(before),
            after=_payload(after),
            created_at=self.clock.now_utc(),
        )
        self.session.add(model)
        self.session.flush()

        logger.info(
            "event_appended",
            extra={
                "event_id": str(model.id),
                "event_demand_id": str(demand_id),
                "event_action": action.value,
                "seq": seq,
            },
        )
        return model.to_dto()
