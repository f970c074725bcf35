"""Four-stage parts inventory API: receive, allocate, dispatch, install."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.notify import queue_part_arrived
from app.api.spare_parts import order_change_response
from app.dependencies import get_db
from app.schemas import ReceivePart, AllocatePart, PartNotes, OrderChangeRead
from app.services import workflow

router = APIRouter(prefix="/api/admin/parts-inventory", tags=["parts_inventory"])


@router.post("/receive/{order_id}", response_model=OrderChangeRead)
async def receive_part(
    order_id: int,
    body: ReceivePart,
    background: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    change = await workflow.receive_order(
        db, order_id, cost=body.actual_cost,
        supplier=body.supplier_name, location=body.warehouse_location,
    )
    await queue_part_arrived(background, db, change)
    return order_change_response(change)


@router.post("/{order_id}/allocate", response_model=OrderChangeRead)
async def allocate_part(order_id: int, body: AllocatePart, db: AsyncSession = Depends(get_db)):
    change = await workflow.allocate_order(db, order_id, body.service_id, body.technician_id)
    return order_change_response(change)


@router.post("/{order_id}/dispatch", response_model=OrderChangeRead)
async def dispatch_part(order_id: int, body: PartNotes, db: AsyncSession = Depends(get_db)):
    change = await workflow.dispatch_order(db, order_id, body.notes)
    return order_change_response(change)


@router.post("/{order_id}/install", response_model=OrderChangeRead)
async def install_part(order_id: int, body: PartNotes, db: AsyncSession = Depends(get_db)):
    change = await workflow.install_order(db, order_id, body.notes)
    return order_change_response(change)
