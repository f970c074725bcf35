from __future__ import annotations
from datetime import datetime
from app.schemas.common import CamelModel


class TechnicianCreate(CamelModel):
    full_name: str
    phone: str = ""
    email: str = ""
    specialization: str = ""


class TechnicianRead(CamelModel):
    id: int
    full_name: str
    phone: str = ""
    email: str = ""
    specialization: str = ""
    is_active: bool = True
    created_at: datetime
