"""
Module: demand_kernel.selectors.version_selector
Responsibility: Numbered scope-version history of a demand.
"""

from __future__ import annotations

from uuid import UUID

from demand_kernel.domain.events import FieldChange, diff_snapshots
from demand_kernel.domain.versioning import VersionSnapshot, number_versions
from demand_kernel.selectors.base import BaseSelector
from demand_kernel.selectors.demand_selector import DemandSelector
from demand_kernel.selectors.event_selector import EventSelector


class VersionSelector(BaseSelector):

    def versions(self, demand_id: UUID) -> tuple[VersionSnapshot, ...]:
        """Scope versions newest first; the first one is the current version."""
        demand = DemandSelector(self.session).get(demand_id)
        events = EventSelector(self.session).scope_changes(demand_id)
        return number_versions(events, demand.version)

    def changes_in(self, demand_id: UUID, version: int) -> tuple[FieldChange, ...]:
        """Fields the scope change that produced ``version`` modified."""
        for snapshot in self.versions(demand_id):
            if snapshot.version == version:
                return diff_snapshots(snapshot.previous, snapshot.snapshot)
        return ()
