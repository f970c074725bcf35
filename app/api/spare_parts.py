"""Spare part order API: technician requests and admin order management."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.notify import queue_part_arrived
from app.config import Settings
from app.db import crud
from app.dependencies import get_db, get_settings_dep
from app.schemas import (
    SparePartRequest, SparePartOrderUpdate, SparePartOrderRead, OrderChangeRead, MarkReceived,
)
from app.services import notifications, workflow
from app.services.status_rules import parse_order_status
from app.services.workflow import OrderChange

router = APIRouter(tags=["spare_parts"])


def order_change_response(change: OrderChange) -> dict:
    return {
        "order": change.order,
        "service": change.service,
        "service_status_changed": change.service_changed,
        "available_part": change.stock,
    }


@router.post("/api/spare-parts/request", response_model=OrderChangeRead, status_code=201)
async def request_spare_part(
    body: SparePartRequest,
    background: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    change = await workflow.request_spare_part(
        db, body.service_id, body.part_name,
        part_number=body.part_number, quantity=body.quantity,
        description=body.description, urgency=body.urgency,
        requested_by=body.technician_id,
    )
    order = change.order
    background.add_task(
        notifications.notify_part_requested,
        change.service.id, order.id, order.part_name, order.quantity, order.urgency,
    )
    return order_change_response(change)


@router.get("/api/admin/spare-parts/pending", response_model=list[SparePartOrderRead])
async def list_pending_orders(db: AsyncSession = Depends(get_db)):
    return await crud.list_orders_by_status(db, "pending")


@router.get("/api/admin/spare-parts/status/{status}", response_model=list[SparePartOrderRead])
async def list_orders_by_status(status: str, db: AsyncSession = Depends(get_db)):
    return await crud.list_orders_by_status(db, parse_order_status(status).value)


@router.get("/api/admin/spare-parts/{order_id}", response_model=SparePartOrderRead)
async def get_order(order_id: int, db: AsyncSession = Depends(get_db)):
    order = await crud.get_spare_part_order(db, order_id)
    if not order:
        raise HTTPException(404, "Spare part order not found")
    return order


@router.put("/api/admin/spare-parts/{order_id}/update", response_model=OrderChangeRead)
async def update_order(
    order_id: int,
    body: SparePartOrderUpdate,
    background: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
):
    change = await workflow.update_spare_part_order(
        db, order_id, body.status,
        actual_cost=body.actual_cost, supplier_name=body.supplier_name,
        warehouse_location=body.warehouse_location, admin_notes=body.admin_notes,
        enforce_transitions=settings.workflow.enforce_order_transitions,
    )
    await queue_part_arrived(background, db, change)
    return order_change_response(change)


@router.post("/api/admin/spare-parts/{order_id}/mark-received", response_model=OrderChangeRead)
async def mark_received(
    order_id: int,
    body: MarkReceived,
    background: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    """Receive an order and move it into warehouse stock in one step."""
    change = await workflow.receive_order(
        db, order_id, cost=body.actual_cost, supplier=body.supplier_name,
        location=body.location, notes=body.notes,
    )
    await queue_part_arrived(background, db, change)
    return order_change_response(change)
