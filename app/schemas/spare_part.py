from __future__ import annotations
from datetime import datetime
from app.schemas.common import CamelModel


class SparePartRequest(CamelModel):
    service_id: int
    part_name: str
    part_number: str = ""
    quantity: int = 1
    description: str = ""
    urgency: str = "normal"  # normal | high | urgent
    technician_id: int | None = None


class SparePartOrderUpdate(CamelModel):
    status: str
    actual_cost: float | None = None
    supplier_name: str | None = None
    warehouse_location: str | None = None
    admin_notes: str | None = None


class ReceivePart(CamelModel):
    actual_cost: float | None = None
    supplier_name: str | None = None
    warehouse_location: str | None = None


class AllocatePart(CamelModel):
    technician_id: int
    service_id: int | None = None


class PartNotes(CamelModel):
    notes: str = ""


class SparePartOrderRead(CamelModel):
    id: int
    service_id: int
    status: str
    part_name: str
    part_number: str = ""
    quantity: int
    description: str = ""
    urgency: str
    requested_by_technician_id: int | None = None
    actual_cost: float | None = None
    supplier_name: str | None = None
    warehouse_location: str | None = None
    admin_notes: str = ""
    allocated_technician_id: int | None = None
    dispatch_notes: str = ""
    installation_notes: str = ""
    created_at: datetime
    received_at: datetime | None = None
    allocated_at: datetime | None = None
    dispatched_at: datetime | None = None
    installed_at: datetime | None = None


class PartsActivityRead(CamelModel):
    id: int
    order_id: int | None = None
    service_id: int | None = None
    technician_id: int | None = None
    action: str
    from_status: str | None = None
    to_status: str | None = None
    description: str = ""
    created_at: datetime


class MarkReceived(CamelModel):
    actual_cost: float | None = None
    supplier_name: str | None = None
    location: str | None = None
    notes: str | None = None


class AvailablePartCreate(CamelModel):
    part_name: str
    quantity: int = 0
    part_number: str = ""
    unit_cost: float | None = None
    supplier_name: str | None = None
    location: str | None = None
    notes: str = ""


class AvailablePartRead(CamelModel):
    id: int
    part_name: str
    part_number: str = ""
    quantity: int
    unit_cost: float | None = None
    supplier_name: str | None = None
    location: str | None = None
    notes: str = ""
    source_order_id: int | None = None
    service_id: int | None = None
    created_at: datetime


class AllocateStock(CamelModel):
    technician_id: int
    allocated_quantity: int
    service_id: int | None = None
    allocation_notes: str = ""


class StockAdjustment(CamelModel):
    quantity_change: int
    reason: str = ""


class PartAllocationRead(CamelModel):
    id: int
    available_part_id: int
    technician_id: int
    service_id: int | None = None
    order_id: int | None = None
    allocated_quantity: int
    notes: str = ""
    created_at: datetime


class StockAllocationRead(CamelModel):
    allocation: PartAllocationRead
    remaining_quantity: int
