"""
Module: travel_kernel.models.sequence
Responsibility: counter rows behind request-number allocation.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One row per sequence name (``TO-2025``, ``SM-2025``, ...).
    - ``current_value`` only grows; it is incremented under a row lock.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from travel_kernel.db.base import Base


class RequestNumberCounter(Base):
    """Last number handed out for one request-number series."""

    __tablename__ = "request_number_counters"

    name: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

    def __repr__(self) -> str:
        return f"<RequestNumberCounter {self.name}={self.current_value}>"
