"""
Tests for ORM-level append-only enforcement (db/immutability.py).

Covers:
- Demand events cannot be updated or deleted through the ORM
- Demands cannot be hard-deleted
- Listener registration is idempotent and reversible
"""

import pytest
from sqlalchemy import event, select

from demand_kernel.db.immutability import (
    _check_event_update,
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from demand_kernel.exceptions import ImmutabilityViolationError
from demand_kernel.models.demand import DemandModel
from demand_kernel.models.event import DemandEventModel


def first_event(session, demand_id):
    return session.scalars(
        select(DemandEventModel).where(DemandEventModel.demand_id == demand_id)
    ).first()


class TestEventImmutability:

    def test_event_update_is_blocked(self, session, make_demand, captured_logs):
        demand = make_demand()
        row = first_event(session, demand.id)

        row.description = "rewritten history"
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()

        assert exc_info.value.entity_type == "DemandEvent"
        assert any(r["message"] == "immutability_violation_blocked" for r in captured_logs())

    def test_event_delete_is_blocked(self, session, make_demand):
        demand = make_demand()
        session.delete(first_event(session, demand.id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestDemandImmutability:

    def test_demand_delete_is_blocked(self, session, make_demand):
        demand = make_demand()
        session.delete(session.get(DemandModel, demand.id))
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.code == "IMMUTABILITY_VIOLATION"

    def test_demand_update_is_allowed(self, session, make_demand):
        demand = make_demand()
        model = session.get(DemandModel, demand.id)
        model.notes = "still mutable"
        session.flush()


class TestRegistration:

    def test_register_is_idempotent(self):
        register_immutability_listeners()
        register_immutability_listeners()
        assert event.contains(DemandEventModel, "before_update", _check_event_update)

    def test_unregister_and_restore(self):
        unregister_immutability_listeners()
        try:
            assert not event.contains(DemandEventModel, "before_update", _check_event_update)
        finally:
            register_immutability_listeners()
        assert event.contains(DemandEventModel, "before_update", _check_event_update)
