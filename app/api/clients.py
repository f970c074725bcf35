"""Client intake API: clients and their appliances."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import crud
from app.dependencies import get_db
from app.schemas import ClientCreate, ClientRead, ApplianceCreate, ApplianceRead

router = APIRouter(prefix="/api", tags=["clients"])


@router.post("/clients", response_model=ClientRead, status_code=201)
async def create_client(body: ClientCreate, db: AsyncSession = Depends(get_db)):
    if not body.full_name.strip() or not body.phone.strip():
        raise HTTPException(400, "fullName and phone are required")
    return await crud.create_client(
        db, full_name=body.full_name.strip(), phone=body.phone.strip(),
        email=body.email, address=body.address, city=body.city,
    )


@router.get("/clients", response_model=list[ClientRead])
async def list_clients(db: AsyncSession = Depends(get_db)):
    return await crud.list_clients(db)


@router.get("/clients/{client_id}", response_model=ClientRead)
async def get_client(client_id: int, db: AsyncSession = Depends(get_db)):
    client = await crud.get_client(db, client_id)
    if not client:
        raise HTTPException(404, "Client not found")
    return client


@router.get("/clients/{client_id}/appliances", response_model=list[ApplianceRead])
async def list_client_appliances(client_id: int, db: AsyncSession = Depends(get_db)):
    if not await crud.get_client(db, client_id):
        raise HTTPException(404, "Client not found")
    return await crud.list_appliances_for_client(db, client_id)


@router.post("/appliances", response_model=ApplianceRead, status_code=201)
async def create_appliance(body: ApplianceCreate, db: AsyncSession = Depends(get_db)):
    if not body.category.strip():
        raise HTTPException(400, "category is required")
    if not await crud.get_client(db, body.client_id):
        raise HTTPException(404, "Client not found")
    return await crud.create_appliance(
        db, client_id=body.client_id, category=body.category.strip(),
        manufacturer=body.manufacturer, model=body.model, serial_number=body.serial_number,
    )
