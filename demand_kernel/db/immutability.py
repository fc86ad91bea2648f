"""
ORM-level append-only enforcement.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity            | Rule                           | Consequence of breaking it
------------------|--------------------------------|----------------------------------
DemandEventModel  | never UPDATE, never DELETE     | approval view and versions drift
DemandModel       | never DELETE (archive instead) | events lose their parent

SQLAlchemy fires ``before_update``/``before_delete`` mapper events during
``session.flush()``, before any SQL is sent.  The listeners below raise
ImmutabilityViolationError there, so the statement never reaches the database
and the caller's transaction is left to roll back.

Core-level ``UPDATE``/``DELETE`` statements bypass mapper events; the kernel
only issues Core UPDATEs against ``demands`` (compare-and-swap on status and
version), never against ``demand_events``.

===============================================================================
USAGE
===============================================================================

    from demand_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()   # idempotent; init_engine_from_url calls it

Tests that need to corrupt history on purpose call
``unregister_immutability_listeners()`` and re-register afterwards.
"""

from sqlalchemy import event

from demand_kernel.exceptions import ImmutabilityViolationError
from demand_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _blocked(entity_type: str, entity_id, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _check_event_update(mapper, connection, target):
    _blocked(
        "DemandEvent", target.id, "UPDATE",
        "Demand events are append-only and cannot be modified",
    )


def _check_event_delete(mapper, connection, target):
    _blocked(
        "DemandEvent", target.id, "DELETE",
        "Demand events are append-only and cannot be deleted",
    )


def _check_demand_delete(mapper, connection, target):
    _blocked(
        "Demand", target.id, "DELETE",
        "Demands are never hard-deleted; archive them instead",
    )


def _listeners():
    from demand_kernel.models.demand import DemandModel
    from demand_kernel.models.event import DemandEventModel

    return (
        (DemandEventModel, "before_update", _check_event_update),
        (DemandEventModel, "before_delete", _check_event_delete),
        (DemandModel, "before_delete", _check_demand_delete),
    )


def register_immutability_listeners() -> None:
    """Install the listeners.  Safe to call more than once."""
    for target, identifier, fn in _listeners():
        if not event.contains(target, identifier, fn):
            event.listen(target, identifier, fn)


def unregister_immutability_listeners() -> None:
    """Remove the listeners.  TESTS ONLY."""
    for target, identifier, fn in _listeners():
        if event.contains(target, identifier, fn):
            event.remove(target, identifier, fn)
