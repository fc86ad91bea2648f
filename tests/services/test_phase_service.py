"""
Tests for PhaseService and the technical review lock it creates.
"""

from uuid import uuid4

import pytest

from demand_kernel.domain.events import ActionCode
from demand_kernel.domain.lifecycle import DemandStatus
from demand_kernel.exceptions import DemandNotFoundError, TransitionNotAllowedError
from demand_kernel.selectors.demand_selector import DemandSelector


class TestAddPhase:

    def test_phases_are_numbered_in_order(self, session, make_demand, phase_service, test_actor_id):
        demand = make_demand(status=DemandStatus.AWAITING_TECHNICAL_REVIEW)

        first, event = phase_service.add_phase(demand.id, test_actor_id, "Discovery")
        second, _ = phase_service.add_phase(
            demand.id, test_actor_id, "Build", estimated_hours="80",
        )

        assert (first.number, second.number) == (1, 2)
        assert second.execution_order == 2
        assert str(second.estimated_hours) == "80"
        assert event.action == ActionCode.ADD_PHASE
        assert event.after["name"] == "Discovery"
        assert DemandSelector(session).phase_count(demand.id) == 2

    def test_unknown_demand(self, phase_service, test_actor_id):
        with pytest.raises(DemandNotFoundError):
            phase_service.add_phase(uuid4(), test_actor_id, "Discovery")


class TestReviewLock:

    def test_first_phase_locks_technical_review(
        self, session, make_demand, phase_service, transition_service, test_actor_id,
    ):
        demand = make_demand(status=DemandStatus.AWAITING_TECHNICAL_REVIEW)
        assert DemandStatus.APPROVED_BY_PM in DemandSelector(session).allowed_targets(demand.id)

        phase_service.add_phase(demand.id, test_actor_id, "Discovery")

        assert DemandSelector(session).allowed_targets(demand.id) == ()
        with pytest.raises(TransitionNotAllowedError):
            transition_service.transition(
                demand.id, DemandStatus.APPROVED_BY_PM, test_actor_id, confirmed=True,
            )
