"""
Tests for approval reconciliation (domain/reconciliation.py).

Covers:
- Merge of events, records and roster into one entry per level/approver
- Status rank dominance over timestamps
- Equal-rank tie-break on timestamps (missing timestamp = earliest)
- Roster: synthetic pending entries, display-name backfill, inactive members
- Ordering: level, then newest first, then display name
- Property: output is deterministic and keyed uniquely
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

from hypothesis import given, strategies as st

from demand_kernel.domain.approval import (
    ApprovalLevel,
    ApprovalRecord,
    ApprovalStatus,
    EntrySource,
    RosterMember,
    approval_key,
)
from demand_kernel.domain.events import ActionCode, EventRecord
from demand_kernel.domain.reconciliation import (
    group_by_level,
    reconcile_approvals,
    status_rank,
)

T0 = datetime(2025, 11, 3, 9, 0, tzinfo=timezone.utc)
DEMAND_ID = uuid4()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def make_event(action, actor_id, at, *, name=None, reason=None, seq=0):
    after = {"rejection_reason": reason} if reason else None
    return EventRecord(
        id=uuid4(),
        demand_id=DEMAND_ID,
        actor_id=actor_id,
        action=action,
        description=f"{action.value} by {name}",
        created_at=at,
        after=after,
        actor_name=name,
        seq=seq,
    )


def make_record(level, approver_id, status, *, created=None, updated=None, name=None):
    return ApprovalRecord(
        demand_id=DEMAND_ID,
        level=level,
        approver_id=approver_id,
        status=status,
        created_at=created,
        updated_at=updated,
        approver_name=name,
    )


def by_key(entries):
    return {e.key: e for e in entries}


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestMerge:

    def test_event_and_record_for_same_approver_collapse(self):
        """An approve event and a newer approved record give one entry."""
        manager = uuid4()
        entries = reconcile_approvals(
            [make_event(ActionCode.APPROVE_MANAGER, manager, T0, name="Ana")],
            [make_record(ApprovalLevel.MANAGER, manager, "approved",
                         created=T0, updated=T0 + timedelta(minutes=5))],
            [],
        )
        assert len(entries) == 1
        entry = entries[0]
        assert entry.status == ApprovalStatus.APPROVED.value
        assert entry.source == EntrySource.RECORD
        # Record wins the tie on rank by being newer; the name came only from the event
        assert entry.display_name is None

    def test_pending_record_does_not_override_decided_event(self):
        """Rank beats recency: a newer pending row loses to an approval."""
        member = uuid4()
        entries = reconcile_approvals(
            [make_event(ActionCode.APPROVE_COMMITTEE, member, T0, name="Bruno")],
            [make_record(ApprovalLevel.COMMITTEE, member, "pending",
                         created=T0 + timedelta(days=1))],
            [],
        )
        assert [e.status for e in entries] == ["approved"]
        assert entries[0].source == EntrySource.EVENT

    def test_decided_record_overrides_pending_even_when_older(self):
        member = uuid4()
        entries = reconcile_approvals(
            [],
            [
                make_record(ApprovalLevel.COMMITTEE, member, "pending",
                            created=T0 + timedelta(days=2)),
                make_record(ApprovalLevel.COMMITTEE, member, "rejected", created=T0),
            ],
            [],
        )
        assert entries[0].status == "rejected"

    def test_later_decision_wins_on_equal_rank(self):
        """Approve then reject by the same approver: the rejection stands."""
        tech = uuid4()
        entries = reconcile_approvals(
            [
                make_event(ActionCode.APPROVE_TECHNICAL, tech, T0),
                make_event(ActionCode.REJECT_TECHNICAL, tech, T0 + timedelta(hours=1),
                           reason="Estimate missing"),
            ],
            [],
            [],
        )
        assert len(entries) == 1
        assert entries[0].status == "rejected"
        assert entries[0].rejection_reason == "Estimate missing"

    def test_missing_timestamp_counts_as_earliest(self):
        """A timestamped entry replaces an untimestamped one of equal rank."""
        manager = uuid4()
        entries = reconcile_approvals(
            [],
            [
                make_record(ApprovalLevel.MANAGER, manager, "approved", created=T0),
                make_record(ApprovalLevel.MANAGER, manager, "rejected"),
            ],
            [],
        )
        assert entries[0].status == "approved"

    def test_unknown_status_ranks_lowest(self):
        member = uuid4()
        assert status_rank("withdrawn") == 0
        entries = reconcile_approvals(
            [],
            [
                make_record(ApprovalLevel.COMMITTEE, member, "pending", created=T0),
                make_record(ApprovalLevel.COMMITTEE, member, "withdrawn",
                            created=T0 + timedelta(hours=1)),
            ],
            [],
        )
        assert entries[0].status == "pending"

    def test_non_approval_events_are_ignored(self):
        entries = reconcile_approvals(
            [make_event(ActionCode.CHANGE_STATUS, uuid4(), T0)], [], [],
        )
        assert entries == ()

    def test_record_without_approver_uses_global_key(self):
        entries = reconcile_approvals(
            [], [make_record(ApprovalLevel.MANAGER, None, "approved", created=T0)], [],
        )
        assert entries[0].key == "manager-global"
        assert approval_key(ApprovalLevel.MANAGER, None) == "manager-global"


class TestRoster:

    def test_roster_members_without_entries_become_pending(self):
        """Scenario: one committee vote cast, two members still pending."""
        voted, carla, davi = uuid4(), uuid4(), uuid4()
        entries = reconcile_approvals(
            [make_event(ActionCode.APPROVE_COMMITTEE, voted, T0, name="Bruno")],
            [],
            [
                RosterMember(voted, "Bruno"),
                RosterMember(davi, "davi"),
                RosterMember(carla, "Carla"),
            ],
        )
        keyed = by_key(entries)
        assert len(entries) == 3
        assert keyed[approval_key(ApprovalLevel.COMMITTEE, voted)].status == "approved"
        pending = [e for e in entries if e.status == "pending"]
        assert {e.source for e in pending} == {EntrySource.ROSTER}
        # Untimestamped entries sort after timestamped ones, by name ignoring case
        assert [e.display_name for e in entries] == ["Bruno", "Carla", "davi"]

    def test_event_vote_and_pending_record(self):
        """Roster {A, B}; A approved by event, B pending in the record store."""
        a, b = uuid4(), uuid4()
        entries = reconcile_approvals(
            [make_event(ActionCode.APPROVE_COMMITTEE, a, T0)],
            [make_record(ApprovalLevel.COMMITTEE, b, "pending", created=T0)],
            [RosterMember(a, "A"), RosterMember(b, "B")],
        )
        assert [(e.level, e.display_name, e.status) for e in entries] == [
            (ApprovalLevel.COMMITTEE, "A", "approved"),
            (ApprovalLevel.COMMITTEE, "B", "pending"),
        ]

    def test_reject_then_approve_converges_to_approval(self):
        manager = uuid4()
        entries = reconcile_approvals(
            [
                make_event(ActionCode.REJECT_MANAGER, manager, T0, reason="Budget"),
                make_event(ActionCode.APPROVE_MANAGER, manager, T0 + timedelta(days=1)),
            ],
            [],
            [],
        )
        assert [e.status for e in entries] == ["approved"]
        assert entries[0].rejection_reason is None

    def test_roster_backfills_missing_name_only(self):
        """Roster never changes a status, only fills a missing display name."""
        member = uuid4()
        entries = reconcile_approvals(
            [],
            [make_record(ApprovalLevel.COMMITTEE, member, "rejected", created=T0)],
            [RosterMember(member, "Elisa")],
        )
        assert entries[0].status == "rejected"
        assert entries[0].display_name == "Elisa"
        assert entries[0].source == EntrySource.RECORD

    def test_roster_does_not_overwrite_existing_name(self):
        member = uuid4()
        entries = reconcile_approvals(
            [make_event(ActionCode.APPROVE_COMMITTEE, member, T0, name="Fabio S.")],
            [],
            [RosterMember(member, "Fabio")],
        )
        assert entries[0].display_name == "Fabio S."

    def test_inactive_members_are_skipped(self):
        entries = reconcile_approvals([], [], [RosterMember(uuid4(), "Gil", active=False)])
        assert entries == ()

    def test_roster_only_view(self):
        """No events or records: the view is the pending roster."""
        entries = reconcile_approvals([], [], [RosterMember(uuid4(), "Hugo")])
        assert [(e.level, e.status) for e in entries] == [
            (ApprovalLevel.COMMITTEE, "pending"),
        ]


class TestOrdering:

    def test_levels_then_newest_first(self):
        manager, tech, c1, c2 = uuid4(), uuid4(), uuid4(), uuid4()
        entries = reconcile_approvals(
            [
                make_event(ActionCode.APPROVE_TECHNICAL, tech, T0 + timedelta(hours=3)),
                make_event(ActionCode.APPROVE_COMMITTEE, c1, T0 + timedelta(hours=1)),
                make_event(ActionCode.APPROVE_COMMITTEE, c2, T0 + timedelta(hours=2)),
                make_event(ActionCode.APPROVE_MANAGER, manager, T0),
            ],
            [],
            [],
        )
        assert [e.approver_id for e in entries] == [manager, c2, c1, tech]

    def test_group_by_level_keeps_order(self):
        c1, c2 = uuid4(), uuid4()
        grouped = group_by_level(reconcile_approvals(
            [
                make_event(ActionCode.APPROVE_COMMITTEE, c1, T0),
                make_event(ActionCode.REJECT_COMMITTEE, c2, T0 + timedelta(hours=1)),
            ],
            [],
            [],
        ))
        assert grouped[ApprovalLevel.MANAGER] == []
        assert [e.approver_id for e in grouped[ApprovalLevel.COMMITTEE]] == [c2, c1]


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------

APPROVERS = [uuid4() for _ in range(4)]

_record_strategy = st.builds(
    make_record,
    level=st.sampled_from(list(ApprovalLevel)),
    approver_id=st.sampled_from(APPROVERS),
    status=st.sampled_from(["pending", "approved", "rejected", "unknown"]),
    created=st.one_of(st.none(), st.integers(0, 100).map(lambda m: T0 + timedelta(minutes=m))),
)

_event_strategy = st.builds(
    make_event,
    action=st.sampled_from([
        ActionCode.APPROVE_MANAGER,
        ActionCode.REJECT_MANAGER,
        ActionCode.APPROVE_COMMITTEE,
        ActionCode.REJECT_COMMITTEE,
        ActionCode.APPROVE_TECHNICAL,
        ActionCode.REJECT_TECHNICAL,
    ]),
    actor_id=st.sampled_from(APPROVERS),
    at=st.integers(0, 100).map(lambda m: T0 + timedelta(minutes=m)),
)


class TestProperties:

    @given(
        events=st.lists(_event_strategy, max_size=8),
        records=st.lists(_record_strategy, max_size=8),
        roster_size=st.integers(0, 4),
    )
    def test_reconciliation_is_deterministic_and_unique(self, events, records, roster_size):
        """Same inputs give the same view; no key appears twice."""
        roster = [RosterMember(a, f"Member {i}") for i, a in enumerate(APPROVERS[:roster_size])]
        first = reconcile_approvals(events, records, roster)
        second = reconcile_approvals(list(events), list(records), list(roster))
        assert first == second
        assert len({e.key for e in first}) == len(first)

    @given(records=st.lists(_record_strategy, min_size=1, max_size=8))
    def test_final_status_has_maximal_rank(self, records):
        """Each key ends with the highest rank seen for it."""
        entries = by_key(reconcile_approvals([], records, []))
        for record in records:
            key = approval_key(record.level, record.approver_id)
            assert status_rank(entries[key].status) >= status_rank(record.status)
