"""SQLAlchemy ORM models."""

from app.models.base import Base
from app.models.client import Client
from app.models.appliance import Appliance
from app.models.technician import Technician
from app.models.service import Service
from app.models.spare_part_order import SparePartOrder
from app.models.available_part import AvailablePart
from app.models.part_allocation import PartAllocation
from app.models.parts_activity import PartsActivityLog

__all__ = [
    "Base", "Client", "Appliance", "Technician",
    "Service", "SparePartOrder", "AvailablePart", "PartAllocation", "PartsActivityLog",
]
