"""ORM models for the demand kernel."""

from demand_kernel.models.approval import ApprovalRecordModel
from demand_kernel.models.demand import DemandModel
from demand_kernel.models.event import DemandEventModel
from demand_kernel.models.phase import PhaseModel
from demand_kernel.models.roster import CommitteeMemberModel, SquadMemberModel
from demand_kernel.models.sequence import SequenceCounter

__all__ = [
    "ApprovalRecordModel",
    "CommitteeMemberModel",
    "DemandEventModel",
    "DemandModel",
    "PhaseModel",
    "SequenceCounter",
    "SquadMemberModel",
]
