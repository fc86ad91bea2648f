"""
BaseService -- common constructor for kernel services.

Responsibility:
    Every write service receives the caller's SQLAlchemy ``Session`` and an
    injectable ``Clock``.  Services ``flush()`` and never ``commit()`` or
    ``rollback()``; the caller owns the transaction, so a multi-step request
    (decision + transition + cascade) commits or rolls back as one unit.
"""

from abc import ABC

from sqlalchemy.orm import Session

from demand_kernel.domain.clock import Clock, SystemClock
from demand_kernel.exceptions import DemandNotFoundError
from demand_kernel.models.demand import DemandModel


class BaseService(ABC):
    """
    Guarantees:
        - The service never commits or rolls back the session.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()

    def _load_demand(self, demand_id) -> DemandModel:
        model = self.session.get(DemandModel, demand_id)
        if model is None:
            raise DemandNotFoundError(str(demand_id))
        return model
