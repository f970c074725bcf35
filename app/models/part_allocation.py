"""A quantity of stock handed to a technician."""

from __future__ import annotations

from sqlalchemy import Integer, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, IdMixin


class PartAllocation(Base, IdMixin):
    __tablename__ = "part_allocations"

    available_part_id: Mapped[int] = mapped_column(Integer, ForeignKey("available_parts.id"), index=True)
    technician_id: Mapped[int] = mapped_column(Integer, ForeignKey("technicians.id"), index=True)
    service_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("services.id"), nullable=True, default=None, index=True
    )
    order_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("spare_part_orders.id"), nullable=True, default=None
    )
    allocated_quantity: Mapped[int] = mapped_column(Integer)
    notes: Mapped[str] = mapped_column(Text, default="")
