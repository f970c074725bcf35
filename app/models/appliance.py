"""Appliance model: a client's machine that gets serviced."""

from __future__ import annotations

from sqlalchemy import String, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, IdMixin


class Appliance(Base, IdMixin):
    __tablename__ = "appliances"

    client_id: Mapped[int] = mapped_column(Integer, ForeignKey("clients.id"))
    category: Mapped[str] = mapped_column(String(100))  # washing machine, fridge, ...
    manufacturer: Mapped[str] = mapped_column(String(100), default="")
    model: Mapped[str] = mapped_column(String(100), default="")
    serial_number: Mapped[str] = mapped_column(String(100), default="")

    client = relationship("Client", back_populates="appliances")
