from __future__ import annotations
from datetime import datetime
from app.schemas.common import CamelModel
from app.schemas.spare_part import AvailablePartRead, SparePartOrderRead


class ServiceCreate(CamelModel):
    client_id: int
    appliance_id: int
    description: str
    scheduled_date: datetime | None = None


class ServiceRead(CamelModel):
    id: int
    client_id: int
    appliance_id: int
    technician_id: int | None = None
    description: str
    status: str
    technician_notes: str = ""
    cost: float | None = None
    created_at: datetime
    scheduled_date: datetime | None = None
    completed_date: datetime | None = None


class ServiceDetail(ServiceRead):
    spare_part_orders: list[SparePartOrderRead] = []


class WaitingServiceRead(ServiceRead):
    open_orders: list[SparePartOrderRead] = []


class AssignTechnician(CamelModel):
    technician_id: int


class ScheduleService(CamelModel):
    scheduled_date: datetime


class CompleteService(CamelModel):
    technician_notes: str | None = None
    cost: float | None = None


class CancelService(CamelModel):
    reason: str = ""


class ReturnFromWaiting(CamelModel):
    new_status: str = "assigned"
    admin_notes: str = ""


class OrderChangeRead(CamelModel):
    order: SparePartOrderRead
    service: ServiceRead
    service_status_changed: bool
    available_part: AvailablePartRead | None = None
