"""Status enums, allowed-transition tables and the service/order cascade rule.

Everything here is pure: no database, no I/O. The workflow layer calls these
helpers from every mutation site so the rules live in one place.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from app.errors import InvalidTransitionError, ValidationError


class ServiceStatus(str, Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    WAITING_PARTS = "waiting_parts"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PartOrderStatus(str, Enum):
    PENDING = "pending"
    RECEIVED = "received"
    ALLOCATED = "allocated"
    DISPATCHED = "dispatched"
    INSTALLED = "installed"


class Urgency(str, Enum):
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


SERVICE_TRANSITIONS: dict[ServiceStatus, frozenset[ServiceStatus]] = {
    ServiceStatus.PENDING: frozenset({
        ServiceStatus.SCHEDULED, ServiceStatus.ASSIGNED,
        ServiceStatus.WAITING_PARTS, ServiceStatus.CANCELLED,
    }),
    ServiceStatus.SCHEDULED: frozenset({
        ServiceStatus.PENDING, ServiceStatus.ASSIGNED,
        ServiceStatus.WAITING_PARTS, ServiceStatus.CANCELLED,
    }),
    ServiceStatus.ASSIGNED: frozenset({
        ServiceStatus.IN_PROGRESS, ServiceStatus.WAITING_PARTS,
        ServiceStatus.COMPLETED, ServiceStatus.CANCELLED,
    }),
    ServiceStatus.IN_PROGRESS: frozenset({
        ServiceStatus.WAITING_PARTS, ServiceStatus.COMPLETED, ServiceStatus.CANCELLED,
    }),
    ServiceStatus.WAITING_PARTS: frozenset({
        ServiceStatus.ASSIGNED, ServiceStatus.PENDING,
        ServiceStatus.IN_PROGRESS, ServiceStatus.CANCELLED,
    }),
    ServiceStatus.COMPLETED: frozenset(),
    ServiceStatus.CANCELLED: frozenset(),
}

# Strictly one step forward.
PART_ORDER_SEQUENCE: tuple[PartOrderStatus, ...] = (
    PartOrderStatus.PENDING,
    PartOrderStatus.RECEIVED,
    PartOrderStatus.ALLOCATED,
    PartOrderStatus.DISPATCHED,
    PartOrderStatus.INSTALLED,
)

PART_ORDER_TRANSITIONS: dict[PartOrderStatus, frozenset[PartOrderStatus]] = {
    status: frozenset(PART_ORDER_SEQUENCE[i + 1:i + 2])
    for i, status in enumerate(PART_ORDER_SEQUENCE)
}

TERMINAL_SERVICE_STATUSES = frozenset({ServiceStatus.COMPLETED, ServiceStatus.CANCELLED})

# An order blocks its service until the part has physically arrived.
OPEN_ORDER_STATUSES = frozenset({PartOrderStatus.PENDING})

ACTIVE_ORDER_STATUSES = frozenset({
    PartOrderStatus.PENDING, PartOrderStatus.RECEIVED,
    PartOrderStatus.ALLOCATED, PartOrderStatus.DISPATCHED,
})


def parse_service_status(value: str) -> ServiceStatus:
    try:
        return ServiceStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in ServiceStatus)
        raise ValidationError(f"Invalid service status '{value}'. Expected one of: {allowed}")


def parse_order_status(value: str) -> PartOrderStatus:
    try:
        return PartOrderStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in PartOrderStatus)
        raise ValidationError(f"Invalid spare part order status '{value}'. Expected one of: {allowed}")


def is_terminal(status: ServiceStatus | str) -> bool:
    return ServiceStatus(status) in TERMINAL_SERVICE_STATUSES


def check_service_transition(service_id: int | None, current: str, target: str) -> None:
    """Raise InvalidTransitionError unless current -> target is in the table.

    Re-applying the current status is treated as a no-op and always passes.
    """
    src, dst = ServiceStatus(current), ServiceStatus(target)
    if src == dst:
        return
    allowed = SERVICE_TRANSITIONS[src]
    if dst not in allowed:
        raise InvalidTransitionError(
            "Service", service_id, src.value, dst.value, sorted(s.value for s in allowed),
        )


def check_order_transition(order_id: int | None, current: str, target: str) -> None:
    src, dst = PartOrderStatus(current), PartOrderStatus(target)
    if src == dst:
        return
    allowed = PART_ORDER_TRANSITIONS[src]
    if dst not in allowed:
        raise InvalidTransitionError(
            "Spare part order", order_id, src.value, dst.value, [s.value for s in allowed],
        )


def next_service_status(
    current: ServiceStatus | str,
    technician_id: int | None,
    order_statuses: Iterable[PartOrderStatus | str],
    allow_park: bool = True,
) -> ServiceStatus:
    """Decide what a service's status should be given its spare part orders.

    Terminal services never move. Any open order parks the service in
    waiting_parts; once nothing is open a parked service goes back to
    assigned, or to pending when nobody has been assigned yet.

    With ``allow_park=False`` the result never newly enters waiting_parts.
    Forward order moves pass it so a service an admin released by hand
    stays released until a part is requested or an order is sent back.
    """
    current = ServiceStatus(current)
    if current in TERMINAL_SERVICE_STATUSES:
        return current

    has_open = any(PartOrderStatus(s) in OPEN_ORDER_STATUSES for s in order_statuses)
    if has_open:
        if not allow_park and current != ServiceStatus.WAITING_PARTS:
            return current
        return ServiceStatus.WAITING_PARTS

    if current == ServiceStatus.WAITING_PARTS:
        return ServiceStatus.ASSIGNED if technician_id is not None else ServiceStatus.PENDING

    return current
