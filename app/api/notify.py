"""Queue notifications for workflow outcomes.

Rows are read here, inside the request, and only plain values are handed to
the background task so it never touches a closed session.
"""

from __future__ import annotations

from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import crud
from app.models import Service
from app.services import notifications
from app.services.workflow import OrderChange


async def queue_part_arrived(background: BackgroundTasks, db: AsyncSession, change: OrderChange) -> None:
    """SMS the technician when a received part released their service."""
    service = change.service
    if not (change.order_changed and change.order.status == "received" and change.service_changed):
        return
    if service.technician_id is None:
        return
    tech = await crud.get_technician(db, service.technician_id)
    if tech and tech.phone:
        background.add_task(
            notifications.notify_part_received,
            tech.phone, tech.full_name, service.id, change.order.part_name,
        )


async def queue_technician_assigned(background: BackgroundTasks, db: AsyncSession, service: Service) -> None:
    tech = await crud.get_technician(db, service.technician_id)
    if tech and tech.phone:
        background.add_task(
            notifications.notify_technician_assigned,
            tech.phone, tech.full_name, service.id, service.description,
        )


async def queue_client_status(background: BackgroundTasks, db: AsyncSession, service: Service) -> None:
    client = await crud.get_client(db, service.client_id)
    if client and client.email:
        background.add_task(
            notifications.notify_status_change,
            client.email, client.full_name, service.id, service.status,
        )
