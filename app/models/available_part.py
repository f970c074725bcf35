"""Warehouse stock: parts on the shelf, whether received for an order or added by hand."""

from __future__ import annotations

from sqlalchemy import String, Integer, Float, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, IdMixin


class AvailablePart(Base, IdMixin):
    __tablename__ = "available_parts"

    part_name: Mapped[str] = mapped_column(String(200))
    part_number: Mapped[str] = mapped_column(String(100), default="")
    quantity: Mapped[int] = mapped_column(Integer, default=0)
    unit_cost: Mapped[float | None] = mapped_column(Float, nullable=True, default=None)
    supplier_name: Mapped[str | None] = mapped_column(String(200), nullable=True, default=None)
    location: Mapped[str | None] = mapped_column(String(200), nullable=True, default=None)
    notes: Mapped[str] = mapped_column(Text, default="")

    # Set when the stock came from receiving a spare part order; at most one row per order.
    source_order_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("spare_part_orders.id"), nullable=True, default=None, unique=True
    )
    service_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("services.id"), nullable=True, default=None
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
