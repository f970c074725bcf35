"""Warehouse stock API: list, add, hand out and correct available parts."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import crud
from app.dependencies import get_db
from app.schemas import (
    AvailablePartCreate, AvailablePartRead, AllocateStock, StockAdjustment,
    PartAllocationRead, StockAllocationRead,
)
from app.services import workflow

router = APIRouter(prefix="/api/admin", tags=["available_parts"])


@router.get("/available-parts", response_model=list[AvailablePartRead])
async def list_available_parts(
    in_stock: bool = Query(default=False, alias="inStock"),
    db: AsyncSession = Depends(get_db),
):
    return await crud.list_available_parts(db, in_stock_only=in_stock)


@router.post("/available-parts", response_model=AvailablePartRead, status_code=201)
async def add_available_part(body: AvailablePartCreate, db: AsyncSession = Depends(get_db)):
    return await workflow.add_stock(
        db, body.part_name, body.quantity,
        part_number=body.part_number, unit_cost=body.unit_cost,
        supplier_name=body.supplier_name, location=body.location, notes=body.notes,
    )


@router.get("/available-parts/{part_id}", response_model=AvailablePartRead)
async def get_available_part(part_id: int, db: AsyncSession = Depends(get_db)):
    part = await crud.get_available_part(db, part_id)
    if not part:
        raise HTTPException(404, "Available part not found")
    return part


@router.post("/available-parts/{part_id}/allocate", response_model=StockAllocationRead, status_code=201)
async def allocate_available_part(part_id: int, body: AllocateStock, db: AsyncSession = Depends(get_db)):
    allocation, part = await workflow.allocate_stock(
        db, part_id, body.technician_id, body.allocated_quantity,
        service_id=body.service_id, notes=body.allocation_notes,
    )
    return {"allocation": allocation, "remaining_quantity": part.quantity}


@router.patch("/available-parts/{part_id}/quantity", response_model=AvailablePartRead)
async def adjust_available_part_quantity(part_id: int, body: StockAdjustment, db: AsyncSession = Depends(get_db)):
    return await workflow.adjust_stock(db, part_id, body.quantity_change, body.reason)


@router.get("/parts-allocations", response_model=list[PartAllocationRead])
async def list_part_allocations(
    service_id: int | None = Query(default=None, alias="serviceId"),
    technician_id: int | None = Query(default=None, alias="technicianId"),
    db: AsyncSession = Depends(get_db),
):
    return await crud.list_part_allocations(db, service_id=service_id, technician_id=technician_id)
