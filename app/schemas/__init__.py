"""Pydantic request/response schemas."""

from app.schemas.client import ClientCreate, ClientRead, ApplianceCreate, ApplianceRead
from app.schemas.technician import TechnicianCreate, TechnicianRead
from app.schemas.spare_part import (
    SparePartRequest, SparePartOrderUpdate, ReceivePart, AllocatePart, PartNotes,
    SparePartOrderRead, PartsActivityRead,
    MarkReceived, AvailablePartCreate, AvailablePartRead, AllocateStock,
    StockAdjustment, PartAllocationRead, StockAllocationRead,
)
from app.schemas.service import (
    ServiceCreate, ServiceRead, ServiceDetail, WaitingServiceRead,
    AssignTechnician, ScheduleService, CompleteService, CancelService,
    ReturnFromWaiting, OrderChangeRead,
)

__all__ = [
    "ClientCreate", "ClientRead", "ApplianceCreate", "ApplianceRead",
    "TechnicianCreate", "TechnicianRead",
    "SparePartRequest", "SparePartOrderUpdate", "ReceivePart", "AllocatePart", "PartNotes",
    "SparePartOrderRead", "PartsActivityRead",
    "MarkReceived", "AvailablePartCreate", "AvailablePartRead", "AllocateStock",
    "StockAdjustment", "PartAllocationRead", "StockAllocationRead",
    "ServiceCreate", "ServiceRead", "ServiceDetail", "WaitingServiceRead",
    "AssignTechnician", "ScheduleService", "CompleteService", "CancelService",
    "ReturnFromWaiting", "OrderChangeRead",
]
