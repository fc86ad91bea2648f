"""Read-only query selectors returning domain DTOs."""

from demand_kernel.selectors.approval_selector import ApprovalSelector
from demand_kernel.selectors.demand_selector import DemandSelector
from demand_kernel.selectors.event_selector import EventSelector
from demand_kernel.selectors.roster_selector import SqlRosterProvider
from demand_kernel.selectors.version_selector import VersionSelector

__all__ = [
    "ApprovalSelector",
    "DemandSelector",
    "EventSelector",
    "SqlRosterProvider",
    "VersionSelector",
]
