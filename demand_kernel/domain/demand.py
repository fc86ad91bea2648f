"""
Demand value object (``demand_kernel.domain.demand``).

``DemandRecord`` is the read-only DTO returned by selectors and services.
``snapshot()`` renders the JSON-safe field map stored in event before/after
payloads and scope-change versions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from demand_kernel.domain.lifecycle import DemandStatus, Priority
from demand_kernel.domain.transitions import DemandState
from demand_kernel.exceptions import InvalidFieldError, MissingRegulatoryFieldsError

# Fields a scope change or an edit may touch.
EDITABLE_FIELDS: frozenset[str] = frozenset({
    "title",
    "description",
    "notes",
    "checklist",
    "priority",
    "classification",
    "department",
    "squad",
    "regulatory",
    "regulatory_deadline",
    "estimated_hours",
    "estimated_cost",
    "expected_roi",
})

SNAPSHOT_FIELDS: tuple[str, ...] = (
    "code",
    "code_base",
    "status",
    "version",
    "title",
    "description",
    "notes",
    "checklist",
    "priority",
    "classification",
    "company",
    "department",
    "squad",
    "regulatory",
    "regulatory_deadline",
    "estimated_hours",
    "estimated_cost",
    "expected_roi",
    "requester_id",
    "owner_id",
)


def json_safe(value: Any) -> Any:
    """Render a field value the way it is stored in event payloads."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (DemandStatus, Priority)):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    return str(value)


@dataclass(frozen=True)
class DemandRecord:
    id: UUID
    code: str
    code_base: str
    status: DemandStatus
    priority: Priority
    company: str
    requester_id: UUID
    version: int = 1
    title: str | None = None
    description: str | None = None
    notes: str | None = None
    checklist: str | None = None
    classification: str | None = None
    department: str | None = None
    squad: str | None = None
    owner_id: UUID | None = None
    regulatory: bool = False
    regulatory_deadline: date | None = None
    estimated_hours: Decimal | None = None
    estimated_cost: Decimal | None = None
    expected_roi: Decimal | None = None
    technical_approval: bool = False
    committee_approval_percent: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def snapshot(self) -> dict[str, Any]:
        return {name: json_safe(getattr(self, name)) for name in SNAPSHOT_FIELDS}

    def state(self, phase_count: int = 0) -> DemandState:
        return DemandState(
            status=self.status,
            priority=self.priority,
            company=self.company,
            regulatory=self.regulatory,
            regulatory_deadline=self.regulatory_deadline,
            squad=self.squad,
            technical_approval=self.technical_approval,
            committee_approval_percent=self.committee_approval_percent,
            phase_count=phase_count,
        )


_DECIMAL_FIELDS = frozenset({"estimated_hours", "estimated_cost", "expected_roi"})
_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off", ""})


def _parse_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise ValueError(f"expected a boolean, got {value!r}")


def coerce_field(name: str, value: Any) -> Any:
    """
    Normalize an incoming field change to its stored form.

    Raises InvalidFieldError for fields outside EDITABLE_FIELDS or values
    that cannot be parsed.
    """
    if name not in EDITABLE_FIELDS:
        raise InvalidFieldError(name, "not an editable demand field")
    if value is None:
        if name == "priority":
            raise InvalidFieldError(name, "priority cannot be cleared")
        if name == "regulatory":
            return False
        return None
    try:
        if name == "priority":
            return Priority(value).value
        if name == "regulatory":
            return _parse_flag(value)
        if name == "regulatory_deadline":
            if isinstance(value, datetime):
                return value.date()
            if isinstance(value, date):
                return value
            text = str(value).strip()
            return date.fromisoformat(text) if text else None
        if name in _DECIMAL_FIELDS:
            return Decimal(str(value))
    except (ValueError, ArithmeticError) as exc:
        raise InvalidFieldError(name, str(exc)) from exc
    return value


def check_regulatory_fields(
    regulatory: bool,
    deadline: date | None,
    demand_id: UUID | None = None,
) -> None:
    """A regulatory demand must carry its deadline."""
    if regulatory and deadline is None:
        raise MissingRegulatoryFieldsError(
            str(demand_id) if demand_id is not None else None,
            "a regulatory demand needs a regulatory deadline",
        )
