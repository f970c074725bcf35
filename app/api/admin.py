"""Admin dashboard API: parked services and parts history."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import crud
from app.dependencies import get_db
from app.schemas import (
    WaitingServiceRead, ServiceRead, ReturnFromWaiting,
    SparePartOrderRead, PartsActivityRead,
)
from app.services import workflow

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/services/waiting-for-parts", response_model=list[WaitingServiceRead])
async def list_waiting_services(db: AsyncSession = Depends(get_db)):
    parked = await workflow.list_waiting_services(db)
    return [
        WaitingServiceRead(
            **ServiceRead.model_validate(service).model_dump(),
            open_orders=[SparePartOrderRead.model_validate(o) for o in orders],
        )
        for service, orders in parked
    ]


@router.put("/services/{service_id}/return-from-waiting", response_model=ServiceRead)
async def return_from_waiting(
    service_id: int,
    body: ReturnFromWaiting,
    db: AsyncSession = Depends(get_db),
):
    return await workflow.return_from_waiting(db, service_id, body.new_status, body.admin_notes)


@router.get("/parts-activity-log", response_model=list[PartsActivityRead])
async def parts_activity_log(
    order_id: int | None = Query(default=None, alias="orderId"),
    service_id: int | None = Query(default=None, alias="serviceId"),
    limit: int = Query(default=200, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
):
    return await crud.list_activity(db, order_id=order_id, service_id=service_id, limit=limit)
