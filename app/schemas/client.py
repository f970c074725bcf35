from __future__ import annotations
from datetime import datetime
from app.schemas.common import CamelModel


class ClientCreate(CamelModel):
    full_name: str
    phone: str
    email: str = ""
    address: str = ""
    city: str = ""


class ClientRead(CamelModel):
    id: int
    full_name: str
    phone: str
    email: str = ""
    address: str = ""
    city: str = ""
    created_at: datetime


class ApplianceCreate(CamelModel):
    client_id: int
    category: str
    manufacturer: str = ""
    model: str = ""
    serial_number: str = ""


class ApplianceRead(CamelModel):
    id: int
    client_id: int
    category: str
    manufacturer: str = ""
    model: str = ""
    serial_number: str = ""
    created_at: datetime
