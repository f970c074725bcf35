"""Technician management API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import crud
from app.dependencies import get_db
from app.schemas import TechnicianCreate, TechnicianRead, ServiceRead, SparePartOrderRead

router = APIRouter(prefix="/api", tags=["technicians"])


@router.get("/technicians", response_model=list[TechnicianRead])
async def list_technicians(db: AsyncSession = Depends(get_db)):
    return await crud.list_technicians(db, active_only=True)


@router.post("/technicians", response_model=TechnicianRead, status_code=201)
async def create_technician(body: TechnicianCreate, db: AsyncSession = Depends(get_db)):
    name = body.full_name.strip()
    if not name:
        raise HTTPException(400, "fullName is required")
    return await crud.create_technician(
        db, full_name=name, phone=body.phone, email=body.email,
        specialization=body.specialization,
    )


@router.delete("/technicians/{tech_id}")
async def deactivate_technician(tech_id: int, db: AsyncSession = Depends(get_db)):
    tech = await crud.get_technician(db, tech_id)
    if not tech:
        raise HTTPException(404, "Technician not found")

    tech = await crud.update_technician(db, tech, is_active=False)
    return {"ok": True, "id": tech.id}


@router.get("/technicians/{tech_id}/services", response_model=list[ServiceRead])
async def list_technician_services(tech_id: int, db: AsyncSession = Depends(get_db)):
    if not await crud.get_technician(db, tech_id):
        raise HTTPException(404, "Technician not found")
    return await crud.list_services_for_technician(db, tech_id)


@router.get("/technician/{tech_id}/spare-parts", response_model=list[SparePartOrderRead])
async def list_technician_spare_parts(tech_id: int, db: AsyncSession = Depends(get_db)):
    if not await crud.get_technician(db, tech_id):
        raise HTTPException(404, "Technician not found")
    return await crud.list_orders_for_technician(db, tech_id)
