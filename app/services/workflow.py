"""Service and spare part order workflow.

Each public coroutine is one unit of work: it loads the rows it needs, applies
the rules from ``status_rules``, stages the order row, the service row and the
activity log entries, and commits once. Any failure rolls the whole unit back,
so an order can never move without its service following.

Order mutations lock the order row and then its parent service row before
reading sibling orders, so two orders of one service settling at the same
time are decided one after the other.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.db import crud
from app.errors import (
    ConcurrentUpdateError, InsufficientStockError, InvalidTransitionError,
    NotFoundError, ValidationError,
)
from app.models import AvailablePart, PartAllocation, Service, SparePartOrder, Technician
from app.models.base import utcnow
from app.services.status_rules import (
    PartOrderStatus, ServiceStatus, Urgency, SERVICE_TRANSITIONS,
    check_order_transition, check_service_transition, is_terminal,
    next_service_status, parse_order_status, parse_service_status,
    OPEN_ORDER_STATUSES,
)

logger = logging.getLogger(__name__)

_ORDER_TIMESTAMPS = {
    PartOrderStatus.RECEIVED: "received_at",
    PartOrderStatus.ALLOCATED: "allocated_at",
    PartOrderStatus.DISPATCHED: "dispatched_at",
    PartOrderStatus.INSTALLED: "installed_at",
}

_RECEIVED_ONLY_FIELDS = ("actual_cost", "supplier_name", "warehouse_location")

_RELEASE_STATUSES = frozenset({ServiceStatus.ASSIGNED, ServiceStatus.IN_PROGRESS, ServiceStatus.PENDING})


@dataclass
class OrderChange:
    """Outcome of an order mutation, used by callers to decide on notifications."""

    order: SparePartOrder
    service: Service
    order_changed: bool
    previous_service_status: str
    stock: AvailablePart | None = None

    @property
    def service_changed(self) -> bool:
        return self.service.status != self.previous_service_status


@asynccontextmanager
async def _unit_of_work(db: AsyncSession):
    try:
        yield
        await db.commit()
    except StaleDataError as e:
        await db.rollback()
        raise ConcurrentUpdateError("Record was modified by another request, reload and retry") from e
    except Exception:
        await db.rollback()
        raise


# ── Lookups ──────────────────────────────────────────────

async def _load_service(db: AsyncSession, service_id: int, for_update: bool = False) -> Service:
    service = await crud.get_service(db, service_id, for_update=for_update)
    if not service:
        raise NotFoundError("Service not found")
    return service


async def _load_order(db: AsyncSession, order_id: int, for_update: bool = False) -> SparePartOrder:
    order = await crud.get_spare_part_order(db, order_id, for_update=for_update)
    if not order:
        raise NotFoundError("Spare part order not found")
    return order


async def _load_active_technician(db: AsyncSession, technician_id: int) -> Technician:
    tech = await crud.get_technician(db, technician_id)
    if not tech:
        raise NotFoundError("Technician not found")
    if not tech.is_active:
        raise ValidationError(f"Technician {technician_id} is not active")
    return tech


# ── Validation ───────────────────────────────────────────

def _validate_cost(value: float | None, field: str = "actual_cost") -> None:
    if value is not None and value < 0:
        raise ValidationError(f"{field} must not be negative")


def _validate_part_details(part_name: str, quantity: int, urgency: str) -> None:
    if not part_name or not part_name.strip():
        raise ValidationError("partName is required")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError("quantity must be a whole number of at least 1")
    try:
        Urgency(urgency)
    except ValueError:
        allowed = ", ".join(u.value for u in Urgency)
        raise ValidationError(f"Invalid urgency '{urgency}'. Expected one of: {allowed}")


# ── Status helpers ───────────────────────────────────────

def _set_service_status(db: AsyncSession, service: Service, target: ServiceStatus, reason: str = "") -> bool:
    """Apply a checked service transition and record it. Returns False on no-op."""
    check_service_transition(service.id, service.status, target)
    if service.status == target.value:
        return False
    previous = service.status
    service.status = target.value
    crud.add_activity(
        db, "service_status", service_id=service.id,
        technician_id=service.technician_id,
        from_status=previous, to_status=target.value, description=reason,
    )
    logger.info("Service %s: %s -> %s %s", service.id, previous, target.value, reason)
    return True


async def _cascade_service_status(
    db: AsyncSession, service: Service, reason: str, allow_park: bool = False,
) -> None:
    orders = await crud.list_orders_for_service(db, service.id)
    target = next_service_status(
        service.status, service.technician_id, [o.status for o in orders], allow_park=allow_park,
    )
    _set_service_status(db, service, target, reason)


def _advance_order(
    db: AsyncSession, order: SparePartOrder, target: PartOrderStatus,
    enforce: bool = True, description: str = "", technician_id: int | None = None,
) -> bool:
    """Move an order to target. Re-applying the current status is a no-op."""
    if order.status == target.value:
        return False
    if enforce:
        check_order_transition(order.id, order.status, target)
    previous = order.status
    order.status = target.value
    stamp = _ORDER_TIMESTAMPS.get(target)
    if stamp:
        setattr(order, stamp, utcnow())
    crud.add_activity(
        db, target.value, order_id=order.id, service_id=order.service_id,
        technician_id=technician_id, from_status=previous, to_status=target.value,
        description=description or order.part_name,
    )
    logger.info("Spare part order %s: %s -> %s", order.id, previous, target.value)
    return True


# ── Service lifecycle ────────────────────────────────────

async def create_service(
    db: AsyncSession, client_id: int, appliance_id: int, description: str,
    scheduled_date: datetime | None = None,
) -> Service:
    """Client intake: open a new service for an existing client appliance."""
    if not description or not description.strip():
        raise ValidationError("description is required")
    client = await crud.get_client(db, client_id)
    if not client:
        raise NotFoundError("Client not found")
    appliance = await crud.get_appliance(db, appliance_id)
    if not appliance:
        raise NotFoundError("Appliance not found")
    if appliance.client_id != client_id:
        raise ValidationError(f"Appliance {appliance_id} does not belong to client {client_id}")

    status = ServiceStatus.SCHEDULED if scheduled_date else ServiceStatus.PENDING
    service = await crud.create_service(
        db, client_id=client_id, appliance_id=appliance_id,
        description=description.strip(), status=status.value, scheduled_date=scheduled_date,
    )
    logger.info("Service %s created for client %s (%s)", service.id, client_id, status.value)
    return service


async def schedule_service(db: AsyncSession, service_id: int, scheduled_date: datetime) -> Service:
    async with _unit_of_work(db):
        service = await _load_service(db, service_id)
        _set_service_status(db, service, ServiceStatus.SCHEDULED, "scheduled")
        service.scheduled_date = scheduled_date
    return service


async def assign_technician(db: AsyncSession, service_id: int, technician_id: int) -> Service:
    """Assign (or re-assign) a technician.

    Closed services are rejected. A pending or scheduled service becomes
    assigned; any other open status is kept so that re-assigning a technician
    does not un-park a service that is waiting for parts.
    """
    async with _unit_of_work(db):
        service = await _load_service(db, service_id)
        if is_terminal(service.status):
            raise InvalidTransitionError(
                "Service", service.id, service.status, ServiceStatus.ASSIGNED.value, [],
            )
        tech = await _load_active_technician(db, technician_id)
        previous_tech = service.technician_id
        service.technician_id = tech.id
        if service.status in (ServiceStatus.PENDING.value, ServiceStatus.SCHEDULED.value):
            _set_service_status(db, service, ServiceStatus.ASSIGNED, f"technician {tech.id} assigned")
        logger.info("Service %s: technician %s -> %s", service.id, previous_tech, tech.id)
    return service


async def start_service(db: AsyncSession, service_id: int) -> Service:
    async with _unit_of_work(db):
        service = await _load_service(db, service_id)
        _set_service_status(db, service, ServiceStatus.IN_PROGRESS, "work started")
    return service


async def complete_service(
    db: AsyncSession, service_id: int, notes: str | None = None, cost: float | None = None,
) -> Service:
    _validate_cost(cost, "cost")
    async with _unit_of_work(db):
        service = await _load_service(db, service_id)
        changed = _set_service_status(db, service, ServiceStatus.COMPLETED, "work finished")
        if changed:
            service.completed_date = utcnow()
        if notes is not None:
            service.technician_notes = notes
        if cost is not None:
            service.cost = cost
    return service


async def cancel_service(db: AsyncSession, service_id: int, reason: str = "") -> Service:
    """Cancel a service. Cancelled is the terminal soft delete; rows are kept."""
    async with _unit_of_work(db):
        service = await _load_service(db, service_id)
        _set_service_status(db, service, ServiceStatus.CANCELLED, reason or "cancelled")
    return service


async def return_from_waiting(
    db: AsyncSession, service_id: int, new_status: str, admin_notes: str = "",
) -> Service:
    """Manually release a service parked in waiting_parts.

    The release holds even while orders are still pending: later forward
    moves on those orders do not park the service again.
    """
    target = parse_service_status(new_status)
    async with _unit_of_work(db):
        service = await _load_service(db, service_id, for_update=True)
        if service.status != ServiceStatus.WAITING_PARTS.value:
            raise InvalidTransitionError(
                "Service", service.id, service.status, target.value,
                sorted(s.value for s in SERVICE_TRANSITIONS[ServiceStatus(service.status)]),
            )
        if target not in _RELEASE_STATUSES:
            allowed = ", ".join(sorted(s.value for s in _RELEASE_STATUSES))
            raise ValidationError(f"A waiting service can only be returned to: {allowed}")
        if target != ServiceStatus.PENDING and service.technician_id is None:
            raise ValidationError("Service has no technician; return it to pending or assign one first")
        _set_service_status(db, service, target, admin_notes or "released by admin")
        if admin_notes:
            service.technician_notes = "\n".join(filter(None, [service.technician_notes, admin_notes]))
        orders = await crud.list_orders_for_service(db, service.id)
        still_open = [o.id for o in orders if o.status in OPEN_ORDER_STATUSES]
        if still_open:
            logger.info("Service %s released with orders still pending: %s", service.id, still_open)
    return service


# ── Spare parts ──────────────────────────────────────────

async def _stock_received_part(db: AsyncSession, order: SparePartOrder) -> AvailablePart:
    """Put a received order on the shelf, once. Later calls only sync the metadata."""
    stock = await crud.get_stock_for_order(db, order.id, for_update=True)
    if stock is None:
        stock = await crud.add_available_part(
            db, order.part_name, order.quantity,
            part_number=order.part_number, unit_cost=order.actual_cost,
            supplier_name=order.supplier_name, location=order.warehouse_location,
            source_order_id=order.id, service_id=order.service_id,
        )
        crud.add_activity(
            db, "stock_added", order_id=order.id, service_id=order.service_id,
            description=f"{order.quantity} x {order.part_name} into stock",
        )
        return stock
    if order.actual_cost is not None:
        stock.unit_cost = order.actual_cost
    if order.supplier_name is not None:
        stock.supplier_name = order.supplier_name
    if order.warehouse_location is not None:
        stock.location = order.warehouse_location
    return stock


async def request_spare_part(
    db: AsyncSession, service_id: int, part_name: str, *,
    part_number: str = "", quantity: int = 1, description: str = "",
    urgency: str = Urgency.NORMAL.value, requested_by: int | None = None,
) -> OrderChange:
    """Create a pending order and park the service in waiting_parts."""
    _validate_part_details(part_name, quantity, urgency)
    async with _unit_of_work(db):
        service = await _load_service(db, service_id, for_update=True)
        if is_terminal(service.status):
            raise InvalidTransitionError(
                "Service", service.id, service.status, ServiceStatus.WAITING_PARTS.value, [],
            )
        if requested_by is not None:
            await _load_active_technician(db, requested_by)
        previous = service.status
        order = await crud.add_spare_part_order(
            db, service_id=service.id, part_name=part_name.strip(),
            part_number=part_number, quantity=quantity, description=description,
            urgency=urgency, requested_by_technician_id=requested_by,
        )
        crud.add_activity(
            db, "requested", order_id=order.id, service_id=service.id,
            technician_id=requested_by, to_status=order.status,
            description=f"{quantity} x {order.part_name}",
        )
        await _cascade_service_status(db, service, f"part requested (order {order.id})", allow_park=True)
    logger.info("Spare part order %s requested for service %s: %s", order.id, service.id, order.part_name)
    return OrderChange(order=order, service=service, order_changed=True, previous_service_status=previous)


async def update_spare_part_order(
    db: AsyncSession, order_id: int, new_status: str, *,
    actual_cost: float | None = None, supplier_name: str | None = None,
    warehouse_location: str | None = None, admin_notes: str | None = None,
    enforce_transitions: bool = True,
) -> OrderChange:
    """Admin edit: set an order's status plus optional receiving metadata."""
    target = parse_order_status(new_status)
    _validate_cost(actual_cost)
    metadata = {
        "actual_cost": actual_cost,
        "supplier_name": supplier_name,
        "warehouse_location": warehouse_location,
    }
    if target == PartOrderStatus.PENDING and any(metadata[f] is not None for f in _RECEIVED_ONLY_FIELDS):
        raise ValidationError("actualCost, supplierName and warehouseLocation can only be set once the part is received")

    async with _unit_of_work(db):
        order = await _load_order(db, order_id, for_update=True)
        service = await _load_service(db, order.service_id, for_update=True)
        previous = service.status
        changed = _advance_order(db, order, target, enforce=enforce_transitions, description=admin_notes or "")
        for field, value in metadata.items():
            if value is not None:
                setattr(order, field, value)
        if admin_notes is not None:
            order.admin_notes = admin_notes
        stock = None
        if target == PartOrderStatus.RECEIVED:
            stock = await _stock_received_part(db, order)
        # Sending an order back to pending is the one order edit that may park the service again
        await _cascade_service_status(
            db, service, f"order {order.id} {order.status}",
            allow_park=changed and target == PartOrderStatus.PENDING,
        )
    return OrderChange(
        order=order, service=service, order_changed=changed, previous_service_status=previous, stock=stock,
    )


async def receive_order(
    db: AsyncSession, order_id: int, cost: float | None = None,
    supplier: str | None = None, location: str | None = None, notes: str | None = None,
) -> OrderChange:
    """Record that the part arrived and put it into stock. Safe to call twice on the same order."""
    _validate_cost(cost)
    async with _unit_of_work(db):
        order = await _load_order(db, order_id, for_update=True)
        service = await _load_service(db, order.service_id, for_update=True)
        previous = service.status
        changed = _advance_order(db, order, PartOrderStatus.RECEIVED, description=notes or "")
        if cost is not None:
            order.actual_cost = cost
        if supplier is not None:
            order.supplier_name = supplier
        if location is not None:
            order.warehouse_location = location
        if notes:
            order.admin_notes = notes
        stock = await _stock_received_part(db, order)
        await _cascade_service_status(db, service, f"order {order.id} received")
    return OrderChange(
        order=order, service=service, order_changed=changed, previous_service_status=previous, stock=stock,
    )


async def allocate_order(
    db: AsyncSession, order_id: int, service_id: int | None, technician_id: int,
) -> OrderChange:
    """Hand a received part to the technician working the owning service.

    The order's quantity is taken out of the stock it was received into.
    """
    async with _unit_of_work(db):
        order = await _load_order(db, order_id, for_update=True)
        if service_id is not None and service_id != order.service_id:
            raise ValidationError(f"Order {order.id} belongs to service {order.service_id}, not {service_id}")
        service = await _load_service(db, order.service_id, for_update=True)
        tech = await _load_active_technician(db, technician_id)
        previous = service.status
        changed = _advance_order(
            db, order, PartOrderStatus.ALLOCATED,
            description=f"allocated to technician {tech.id}", technician_id=tech.id,
        )
        stock = await crud.get_stock_for_order(db, order.id, for_update=True)
        if changed:
            if stock is None or stock.quantity < order.quantity:
                on_hand = stock.quantity if stock else 0
                raise InsufficientStockError(
                    f"Order {order.id} needs {order.quantity} x {order.part_name}, {on_hand} in stock"
                )
            stock.quantity -= order.quantity
            crud.add_part_allocation(
                db, stock.id, tech.id, order.quantity,
                service_id=order.service_id, order_id=order.id,
            )
        order.allocated_technician_id = tech.id
        await _cascade_service_status(db, service, f"order {order.id} allocated")
    return OrderChange(
        order=order, service=service, order_changed=changed, previous_service_status=previous, stock=stock,
    )


async def dispatch_order(db: AsyncSession, order_id: int, notes: str = "") -> OrderChange:
    async with _unit_of_work(db):
        order = await _load_order(db, order_id, for_update=True)
        service = await _load_service(db, order.service_id, for_update=True)
        previous = service.status
        changed = _advance_order(
            db, order, PartOrderStatus.DISPATCHED, description=notes,
            technician_id=order.allocated_technician_id,
        )
        if notes:
            order.dispatch_notes = notes
        await _cascade_service_status(db, service, f"order {order.id} dispatched")
    return OrderChange(order=order, service=service, order_changed=changed, previous_service_status=previous)


async def install_order(db: AsyncSession, order_id: int, notes: str = "") -> OrderChange:
    async with _unit_of_work(db):
        order = await _load_order(db, order_id, for_update=True)
        service = await _load_service(db, order.service_id, for_update=True)
        previous = service.status
        changed = _advance_order(
            db, order, PartOrderStatus.INSTALLED, description=notes,
            technician_id=order.allocated_technician_id,
        )
        if notes:
            order.installation_notes = notes
        await _cascade_service_status(db, service, f"order {order.id} installed")
    return OrderChange(order=order, service=service, order_changed=changed, previous_service_status=previous)


async def list_waiting_services(db: AsyncSession) -> list[tuple[Service, list[SparePartOrder]]]:
    """Services parked in waiting_parts, each with its not-yet-installed orders."""
    services = await crud.list_services(db, status=ServiceStatus.WAITING_PARTS.value)
    parked = []
    for service in services:
        orders = await crud.list_orders_for_service(db, service.id)
        parked.append((service, [o for o in orders if o.status != PartOrderStatus.INSTALLED.value]))
    return parked


# ── Warehouse stock ──────────────────────────────────────

async def _load_stock(db: AsyncSession, part_id: int, for_update: bool = False) -> AvailablePart:
    part = await crud.get_available_part(db, part_id, for_update=for_update)
    if not part:
        raise NotFoundError("Available part not found")
    return part


async def add_stock(
    db: AsyncSession, part_name: str, quantity: int, *,
    part_number: str = "", unit_cost: float | None = None,
    supplier_name: str | None = None, location: str | None = None, notes: str = "",
) -> AvailablePart:
    """Put parts on the shelf that did not come through a spare part order."""
    if not part_name or not part_name.strip():
        raise ValidationError("partName is required")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        raise ValidationError("quantity must be a whole number, not negative")
    _validate_cost(unit_cost, "unit_cost")
    async with _unit_of_work(db):
        part = await crud.add_available_part(
            db, part_name.strip(), quantity, part_number=part_number, unit_cost=unit_cost,
            supplier_name=supplier_name, location=location, notes=notes,
        )
        crud.add_activity(db, "stock_added", description=f"{quantity} x {part.part_name} added by hand")
    return part


async def allocate_stock(
    db: AsyncSession, part_id: int, technician_id: int, quantity: int,
    service_id: int | None = None, notes: str = "",
) -> tuple[PartAllocation, AvailablePart]:
    """Hand part of a stock row to a technician, optionally for a service."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError("allocatedQuantity must be a whole number of at least 1")
    async with _unit_of_work(db):
        part = await _load_stock(db, part_id, for_update=True)
        tech = await _load_active_technician(db, technician_id)
        if service_id is not None:
            service = await _load_service(db, service_id)
            if is_terminal(service.status):
                raise ValidationError(f"Service {service.id} is {service.status}")
        if quantity > part.quantity:
            raise InsufficientStockError(
                f"Only {part.quantity} x {part.part_name} in stock, {quantity} requested"
            )
        part.quantity -= quantity
        allocation = crud.add_part_allocation(
            db, part.id, tech.id, quantity,
            service_id=service_id, order_id=part.source_order_id, notes=notes,
        )
        crud.add_activity(
            db, "stock_allocated", order_id=part.source_order_id, service_id=service_id,
            technician_id=tech.id, description=f"{quantity} x {part.part_name}, {part.quantity} left",
        )
    logger.info("Stock %s: %d allocated to technician %s, %d left", part.id, quantity, tech.id, part.quantity)
    return allocation, part


async def adjust_stock(db: AsyncSession, part_id: int, quantity_change: int, reason: str = "") -> AvailablePart:
    """Correct the on-hand quantity by a signed delta. Stock never goes below zero."""
    if isinstance(quantity_change, bool) or not isinstance(quantity_change, int):
        raise ValidationError("quantityChange must be a whole number")
    async with _unit_of_work(db):
        part = await _load_stock(db, part_id, for_update=True)
        new_quantity = part.quantity + quantity_change
        if new_quantity < 0:
            raise ValidationError(
                f"Cannot remove {-quantity_change} x {part.part_name}, only {part.quantity} in stock"
            )
        previous = part.quantity
        part.quantity = new_quantity
        crud.add_activity(
            db, "stock_adjusted", order_id=part.source_order_id, service_id=part.service_id,
            description=reason or f"{part.part_name}: {previous} -> {new_quantity}",
        )
    return part
