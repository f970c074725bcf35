"""CRUD operations for the service / spare part models.

Functions that create or update a single standalone row commit. Helpers used
inside a workflow transaction (``add_*``) only flush, so the caller decides
when the unit of work is committed.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import (
    Client, Appliance, Technician, Service, SparePartOrder,
    AvailablePart, PartAllocation, PartsActivityLog,
)


# ── Client ───────────────────────────────────────────────

async def create_client(
    db: AsyncSession, full_name: str, phone: str,
    email: str = "", address: str = "", city: str = "",
) -> Client:
    client = Client(full_name=full_name, phone=phone, email=email, address=address, city=city)
    db.add(client)
    await db.commit()
    await db.refresh(client)
    return client


async def get_client(db: AsyncSession, client_id: int) -> Client | None:
    return await db.get(Client, client_id)


async def list_clients(db: AsyncSession) -> list[Client]:
    result = await db.execute(select(Client).order_by(Client.full_name))
    return list(result.scalars().all())


# ── Appliance ────────────────────────────────────────────

async def create_appliance(
    db: AsyncSession, client_id: int, category: str,
    manufacturer: str = "", model: str = "", serial_number: str = "",
) -> Appliance:
    appliance = Appliance(
        client_id=client_id, category=category, manufacturer=manufacturer,
        model=model, serial_number=serial_number,
    )
    db.add(appliance)
    await db.commit()
    await db.refresh(appliance)
    return appliance


async def get_appliance(db: AsyncSession, appliance_id: int) -> Appliance | None:
    return await db.get(Appliance, appliance_id)


async def list_appliances_for_client(db: AsyncSession, client_id: int) -> list[Appliance]:
    result = await db.execute(
        select(Appliance).where(Appliance.client_id == client_id).order_by(Appliance.id)
    )
    return list(result.scalars().all())


# ── Technician ───────────────────────────────────────────

async def create_technician(
    db: AsyncSession, full_name: str, phone: str = "",
    email: str = "", specialization: str = "",
) -> Technician:
    tech = Technician(full_name=full_name, phone=phone, email=email, specialization=specialization)
    db.add(tech)
    await db.commit()
    await db.refresh(tech)
    return tech


async def get_technician(db: AsyncSession, tech_id: int) -> Technician | None:
    return await db.get(Technician, tech_id)


async def list_technicians(db: AsyncSession, active_only: bool = True) -> list[Technician]:
    q = select(Technician).order_by(Technician.full_name)
    if active_only:
        q = q.where(Technician.is_active == True)
    result = await db.execute(q)
    return list(result.scalars().all())


async def update_technician(db: AsyncSession, tech: Technician, **kwargs) -> Technician:
    for k, v in kwargs.items():
        if v is not None:
            setattr(tech, k, v)
    await db.commit()
    await db.refresh(tech)
    return tech


# ── Service ──────────────────────────────────────────────

async def create_service(
    db: AsyncSession, client_id: int, appliance_id: int, description: str,
    status: str = "pending", scheduled_date: datetime | None = None,
) -> Service:
    service = Service(
        client_id=client_id, appliance_id=appliance_id, description=description,
        status=status, scheduled_date=scheduled_date,
    )
    db.add(service)
    await db.commit()
    await db.refresh(service)
    return service


async def get_service(db: AsyncSession, service_id: int, for_update: bool = False) -> Service | None:
    """Load a service. ``for_update`` takes a row lock and re-reads the row."""
    if for_update:
        return await db.get(Service, service_id, with_for_update=True, populate_existing=True)
    return await db.get(Service, service_id)


async def list_services(db: AsyncSession, status: str | None = None) -> list[Service]:
    q = select(Service).order_by(Service.created_at.desc(), Service.id.desc())
    if status:
        q = q.where(Service.status == status)
    result = await db.execute(q)
    return list(result.scalars().all())


async def list_services_for_technician(db: AsyncSession, technician_id: int) -> list[Service]:
    result = await db.execute(
        select(Service)
        .where(Service.technician_id == technician_id)
        .order_by(Service.id)
    )
    return list(result.scalars().all())


# ── SparePartOrder ───────────────────────────────────────

async def add_spare_part_order(
    db: AsyncSession, service_id: int, part_name: str,
    part_number: str = "", quantity: int = 1, description: str = "",
    urgency: str = "normal", requested_by_technician_id: int | None = None,
) -> SparePartOrder:
    """Stage a new pending order. Flushes (to get an id) but does not commit."""
    order = SparePartOrder(
        service_id=service_id, part_name=part_name, part_number=part_number,
        quantity=quantity, description=description, urgency=urgency,
        requested_by_technician_id=requested_by_technician_id,
        status="pending",
    )
    db.add(order)
    await db.flush()
    return order


async def get_spare_part_order(
    db: AsyncSession, order_id: int, for_update: bool = False,
) -> SparePartOrder | None:
    if for_update:
        return await db.get(SparePartOrder, order_id, with_for_update=True, populate_existing=True)
    return await db.get(SparePartOrder, order_id)


async def list_orders_for_service(db: AsyncSession, service_id: int) -> list[SparePartOrder]:
    result = await db.execute(
        select(SparePartOrder)
        .where(SparePartOrder.service_id == service_id)
        .order_by(SparePartOrder.id)
    )
    return list(result.scalars().all())


async def list_orders_by_status(db: AsyncSession, status: str) -> list[SparePartOrder]:
    result = await db.execute(
        select(SparePartOrder)
        .where(SparePartOrder.status == status)
        .order_by(SparePartOrder.created_at, SparePartOrder.id)
    )
    return list(result.scalars().all())


async def list_orders_for_technician(db: AsyncSession, technician_id: int) -> list[SparePartOrder]:
    """Orders a technician asked for or has been handed."""
    result = await db.execute(
        select(SparePartOrder)
        .where(
            (SparePartOrder.requested_by_technician_id == technician_id)
            | (SparePartOrder.allocated_technician_id == technician_id)
        )
        .order_by(SparePartOrder.id)
    )
    return list(result.scalars().all())


# ── AvailablePart (warehouse stock) ──────────────────────

async def add_available_part(
    db: AsyncSession, part_name: str, quantity: int, *,
    part_number: str = "", unit_cost: float | None = None,
    supplier_name: str | None = None, location: str | None = None,
    notes: str = "", source_order_id: int | None = None,
    service_id: int | None = None,
) -> AvailablePart:
    """Stage a stock row. Flushes (to get an id) but does not commit."""
    part = AvailablePart(
        part_name=part_name, part_number=part_number, quantity=quantity,
        unit_cost=unit_cost, supplier_name=supplier_name, location=location,
        notes=notes, source_order_id=source_order_id, service_id=service_id,
    )
    db.add(part)
    await db.flush()
    return part


async def get_available_part(
    db: AsyncSession, part_id: int, for_update: bool = False,
) -> AvailablePart | None:
    if for_update:
        return await db.get(AvailablePart, part_id, with_for_update=True, populate_existing=True)
    return await db.get(AvailablePart, part_id)


async def get_stock_for_order(
    db: AsyncSession, order_id: int, for_update: bool = False,
) -> AvailablePart | None:
    q = select(AvailablePart).where(AvailablePart.source_order_id == order_id)
    if for_update:
        q = q.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(q)
    return result.scalar_one_or_none()


async def list_available_parts(db: AsyncSession, in_stock_only: bool = False) -> list[AvailablePart]:
    q = select(AvailablePart).order_by(AvailablePart.part_name, AvailablePart.id)
    if in_stock_only:
        q = q.where(AvailablePart.quantity > 0)
    result = await db.execute(q)
    return list(result.scalars().all())


def add_part_allocation(
    db: AsyncSession, available_part_id: int, technician_id: int, allocated_quantity: int, *,
    service_id: int | None = None, order_id: int | None = None, notes: str = "",
) -> PartAllocation:
    allocation = PartAllocation(
        available_part_id=available_part_id, technician_id=technician_id,
        allocated_quantity=allocated_quantity, service_id=service_id,
        order_id=order_id, notes=notes,
    )
    db.add(allocation)
    return allocation


async def list_part_allocations(
    db: AsyncSession, service_id: int | None = None, technician_id: int | None = None,
) -> list[PartAllocation]:
    q = select(PartAllocation)
    if service_id is not None:
        q = q.where(PartAllocation.service_id == service_id)
    if technician_id is not None:
        q = q.where(PartAllocation.technician_id == technician_id)
    result = await db.execute(q.order_by(PartAllocation.id))
    return list(result.scalars().all())


# ── PartsActivityLog ─────────────────────────────────────

def add_activity(
    db: AsyncSession, action: str, *,
    order_id: int | None = None, service_id: int | None = None,
    technician_id: int | None = None, from_status: str | None = None,
    to_status: str | None = None, description: str = "",
) -> PartsActivityLog:
    """Stage an activity row in the current transaction."""
    entry = PartsActivityLog(
        action=action, order_id=order_id, service_id=service_id,
        technician_id=technician_id, from_status=from_status,
        to_status=to_status, description=description,
    )
    db.add(entry)
    return entry


async def list_activity(
    db: AsyncSession, order_id: int | None = None,
    service_id: int | None = None, limit: int = 200,
) -> list[PartsActivityLog]:
    q = select(PartsActivityLog)
    if order_id is not None:
        q = q.where(PartsActivityLog.order_id == order_id)
    if service_id is not None:
        q = q.where(PartsActivityLog.service_id == service_id)
    q = q.order_by(PartsActivityLog.id.desc()).limit(limit)
    result = await db.execute(q)
    return list(result.scalars().all())
