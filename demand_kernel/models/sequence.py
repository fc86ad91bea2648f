"""
Module: demand_kernel.models.sequence
Responsibility: Named counter rows backing demand code allocation.

One row per sequence name (``demand_code:<COMPANY>:<MMYYYY>``).  The counter
row is locked and incremented; codes are never derived from max()+1.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from demand_kernel.db.base import Base


class SequenceCounter(Base):
    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(80), nullable=False, unique=True)
    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<SequenceCounter {self.name}={self.current_value}>"
