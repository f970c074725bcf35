"""Spare part order model: a physical part requested for one service."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Integer, Float, Text, ForeignKey, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, IdMixin


class SparePartOrder(Base, IdMixin):
    __tablename__ = "spare_part_orders"

    service_id: Mapped[int] = mapped_column(Integer, ForeignKey("services.id"), index=True)
    # pending | received | allocated | dispatched | installed
    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)
    part_name: Mapped[str] = mapped_column(String(200))
    part_number: Mapped[str] = mapped_column(String(100), default="")
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    description: Mapped[str] = mapped_column(Text, default="")
    urgency: Mapped[str] = mapped_column(String(20), default="normal")  # normal | high | urgent
    requested_by_technician_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("technicians.id"), nullable=True, default=None
    )

    # Populated once the part has been received
    actual_cost: Mapped[float | None] = mapped_column(Float, nullable=True, default=None)
    supplier_name: Mapped[str | None] = mapped_column(String(200), nullable=True, default=None)
    warehouse_location: Mapped[str | None] = mapped_column(String(200), nullable=True, default=None)
    admin_notes: Mapped[str] = mapped_column(Text, default="")

    allocated_technician_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("technicians.id"), nullable=True, default=None
    )
    dispatch_notes: Mapped[str] = mapped_column(Text, default="")
    installation_notes: Mapped[str] = mapped_column(Text, default="")

    received_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)
    allocated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)
    dispatched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)
    installed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    service = relationship("Service", back_populates="spare_part_orders")

    __mapper_args__ = {"version_id_col": version}
