"""Append-only history of spare part order and cascade transitions."""

from __future__ import annotations

from sqlalchemy import String, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, IdMixin


class PartsActivityLog(Base, IdMixin):
    __tablename__ = "parts_activity_log"

    # Plain integers: history rows outlive any row they point at.
    order_id: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None, index=True)
    service_id: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None, index=True)
    technician_id: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)
    action: Mapped[str] = mapped_column(String(40))  # requested | received | ... | service_status | stock_*
    from_status: Mapped[str | None] = mapped_column(String(20), nullable=True, default=None)
    to_status: Mapped[str | None] = mapped_column(String(20), nullable=True, default=None)
    description: Mapped[str] = mapped_column(Text, default="")
