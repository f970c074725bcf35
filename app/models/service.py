"""Service model: one appliance-repair job and its lifecycle status."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Integer, Float, Text, ForeignKey, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, IdMixin


class Service(Base, IdMixin):
    __tablename__ = "services"

    client_id: Mapped[int] = mapped_column(Integer, ForeignKey("clients.id"))
    appliance_id: Mapped[int] = mapped_column(Integer, ForeignKey("appliances.id"))
    technician_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("technicians.id"), nullable=True, default=None
    )
    description: Mapped[str] = mapped_column(Text)
    # pending | scheduled | assigned | in_progress | waiting_parts | completed | cancelled
    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)
    technician_notes: Mapped[str] = mapped_column(Text, default="")
    cost: Mapped[float | None] = mapped_column(Float, nullable=True, default=None)
    scheduled_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)
    completed_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    spare_part_orders = relationship(
        "SparePartOrder", back_populates="service", order_by="SparePartOrder.id",
    )
    technician = relationship("Technician")
    client = relationship("Client")
    appliance = relationship("Appliance")

    __mapper_args__ = {"version_id_col": version}
