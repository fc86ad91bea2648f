"""
Module: demand_kernel.selectors.demand_selector
Responsibility: Read access to demands, plus the validator inputs derived
    from them (phase count, allowed targets).
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select

from demand_kernel.domain.demand import DemandRecord
from demand_kernel.domain.lifecycle import DemandStatus
from demand_kernel.domain.policy import LifecyclePolicy
from demand_kernel.domain.transitions import DemandState, allowed_targets
from demand_kernel.exceptions import DemandNotFoundError
from demand_kernel.models.demand import DemandModel
from demand_kernel.models.phase import PhaseModel
from demand_kernel.selectors.base import BaseSelector


class DemandSelector(BaseSelector):

    def find(self, demand_id: UUID) -> DemandRecord | None:
        model = self.session.get(DemandModel, demand_id)
        return model.to_dto() if model is not None else None

    def get(self, demand_id: UUID) -> DemandRecord:
        """Raises DemandNotFoundError when the demand does not exist."""
        record = self.find(demand_id)
        if record is None:
            raise DemandNotFoundError(str(demand_id))
        return record

    def phase_count(self, demand_id: UUID) -> int:
        return self.session.scalar(
            select(func.count())
            .select_from(PhaseModel)
            .where(PhaseModel.demand_id == demand_id)
        ) or 0

    def state(self, demand_id: UUID) -> DemandState:
        return self.get(demand_id).state(self.phase_count(demand_id))

    def allowed_targets(
        self,
        demand_id: UUID,
        policy: LifecyclePolicy | None = None,
    ) -> tuple[DemandStatus, ...]:
        return allowed_targets(self.state(demand_id), policy)

    def list_demands(
        self,
        company: str | None = None,
        status: DemandStatus | None = None,
    ) -> tuple[DemandRecord, ...]:
        stmt = select(DemandModel).order_by(DemandModel.code)
        if company is not None:
            stmt = stmt.where(DemandModel.company == company)
        if status is not None:
            stmt = stmt.where(DemandModel.status == DemandStatus(status).value)
        return tuple(m.to_dto() for m in self.session.scalars(stmt))
