"""
Tests for EventLogService and EventSelector -- the append-only history.

Covers:
- append(): validation of action codes and demand existence, per-demand seq
- Payloads are detached JSON-safe copies
- list_for_demand(): action/category filters, time window, ordering
"""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from demand_kernel.domain.events import ActionCode, HistoryCategory
from demand_kernel.exceptions import DemandNotFoundError, InvalidActionCodeError
from demand_kernel.selectors.event_selector import EventSelector


class TestAppend:

    def test_sequence_is_per_demand(self, make_demand, event_log_service, test_actor_id):
        first = make_demand()
        second = make_demand()

        a = event_log_service.append(first.id, test_actor_id, ActionCode.REQUEST_INPUT)
        b = event_log_service.append(first.id, test_actor_id, "log_daily_update")
        c = event_log_service.append(second.id, test_actor_id, ActionCode.REQUEST_INPUT)

        # seq 1 is each demand's create event
        assert (a.seq, b.seq, c.seq) == (2, 3, 2)

    def test_unknown_action_is_rejected(self, session, make_demand, event_log_service):
        demand = make_demand()
        with pytest.raises(InvalidActionCodeError):
            event_log_service.append(demand.id, None, "teleport")
        assert EventSelector(session).count_for_demand(demand.id) == 1

    def test_unknown_demand_is_rejected(self, event_log_service):
        with pytest.raises(DemandNotFoundError):
            event_log_service.append(uuid4(), None, ActionCode.EDIT)

    def test_payload_is_a_json_safe_copy(self, make_demand, event_log_service):
        demand = make_demand()
        after = {"estimated_cost": Decimal("10.50"), "owner_id": uuid4()}

        event = event_log_service.append(demand.id, None, ActionCode.EDIT, after=after)
        after["estimated_cost"] = Decimal("99")

        assert event.after["estimated_cost"] == "10.50"
        assert isinstance(event.after["owner_id"], str)


class TestEventSelector:

    def test_filters_and_ordering(
        self, session, make_demand, event_log_service, deterministic_clock, test_actor_id,
    ):
        demand = make_demand()
        start = deterministic_clock.now_utc()
        deterministic_clock.advance(60)
        event_log_service.append(demand.id, test_actor_id, ActionCode.ADD_PHASE)
        deterministic_clock.advance(60)
        event_log_service.append(demand.id, test_actor_id, ActionCode.CHANGE_STATUS)
        deterministic_clock.advance(60)
        event_log_service.append(demand.id, test_actor_id, ActionCode.SEND_NOTIFICATION)

        selector = EventSelector(session)
        assert [e.action for e in selector.list_for_demand(demand.id)] == [
            ActionCode.SEND_NOTIFICATION,
            ActionCode.CHANGE_STATUS,
            ActionCode.ADD_PHASE,
            ActionCode.CREATE,
        ]
        assert [e.action for e in selector.list_for_demand(
            demand.id, categories=[HistoryCategory.PHASE, HistoryCategory.STATUS],
            newest_first=False,
        )] == [ActionCode.ADD_PHASE, ActionCode.CHANGE_STATUS]
        window = selector.list_for_demand(
            demand.id,
            since=start + timedelta(seconds=60),
            until=start + timedelta(seconds=120),
        )
        assert [e.action for e in window] == [ActionCode.CHANGE_STATUS, ActionCode.ADD_PHASE]

    def test_disjoint_action_and_category_filters_return_nothing(
        self, session, make_demand,
    ):
        demand = make_demand()
        assert EventSelector(session).list_for_demand(
            demand.id, actions=[ActionCode.CREATE], categories=[HistoryCategory.PHASE],
        ) == ()

    def test_unknown_demand_has_no_events(self, session):
        assert EventSelector(session).list_for_demand(uuid4()) == ()
        assert EventSelector(session).count_for_demand(uuid4()) == 0
