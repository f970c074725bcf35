"""Service API: intake, scheduling, technician assignment, completion."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.notify import queue_client_status, queue_technician_assigned
from app.db import crud
from app.dependencies import get_db
from app.schemas import (
    ServiceCreate, ServiceRead, ServiceDetail, AssignTechnician,
    ScheduleService, CompleteService, CancelService, SparePartOrderRead,
)
from app.services import workflow
from app.services.status_rules import parse_service_status

router = APIRouter(tags=["services"])


async def _status_before(db: AsyncSession, service_id: int) -> str | None:
    service = await crud.get_service(db, service_id)
    return service.status if service else None


def service_detail(service, orders) -> ServiceDetail:
    base = ServiceRead.model_validate(service).model_dump()
    return ServiceDetail(
        **base, spare_part_orders=[SparePartOrderRead.model_validate(o) for o in orders],
    )


@router.post("/api/services", response_model=ServiceRead, status_code=201)
async def create_service(body: ServiceCreate, db: AsyncSession = Depends(get_db)):
    return await workflow.create_service(
        db, client_id=body.client_id, appliance_id=body.appliance_id,
        description=body.description, scheduled_date=body.scheduled_date,
    )


@router.get("/api/services", response_model=list[ServiceRead])
async def list_services(
    status: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    if status:
        parse_service_status(status)
    return await crud.list_services(db, status=status)


@router.get("/api/services/{service_id}", response_model=ServiceDetail)
async def get_service(service_id: int, db: AsyncSession = Depends(get_db)):
    service = await crud.get_service(db, service_id)
    if not service:
        raise HTTPException(404, "Service not found")
    orders = await crud.list_orders_for_service(db, service_id)
    return service_detail(service, orders)


# The /admin path is the older admin-panel URL for the same action.
@router.put("/api/services/{service_id}/assign-technician", response_model=ServiceRead)
@router.put("/admin/services/{service_id}/assign-technician", response_model=ServiceRead, include_in_schema=False)
async def assign_technician(
    service_id: int,
    body: AssignTechnician,
    background: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    service = await workflow.assign_technician(db, service_id, body.technician_id)
    await queue_technician_assigned(background, db, service)
    return service


@router.put("/api/services/{service_id}/schedule", response_model=ServiceRead)
async def schedule_service(service_id: int, body: ScheduleService, db: AsyncSession = Depends(get_db)):
    return await workflow.schedule_service(db, service_id, body.scheduled_date)


@router.put("/api/services/{service_id}/start", response_model=ServiceRead)
async def start_service(service_id: int, db: AsyncSession = Depends(get_db)):
    return await workflow.start_service(db, service_id)


@router.put("/api/services/{service_id}/complete", response_model=ServiceRead)
async def complete_service(
    service_id: int,
    body: CompleteService,
    background: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    previous = await _status_before(db, service_id)
    service = await workflow.complete_service(
        db, service_id, notes=body.technician_notes, cost=body.cost,
    )
    if service.status != previous:
        await queue_client_status(background, db, service)
    return service


@router.put("/api/services/{service_id}/cancel", response_model=ServiceRead)
async def cancel_service(
    service_id: int,
    body: CancelService,
    background: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    previous = await _status_before(db, service_id)
    service = await workflow.cancel_service(db, service_id, reason=body.reason)
    if service.status != previous:
        await queue_client_status(background, db, service)
    return service
