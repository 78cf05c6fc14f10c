"""
Module: construction_kernel.models.payment
Responsibility: Payments made to a team for an assignment.
Architecture position: Kernel > Models.

Payments belong to the assignment they pay for.  They are never copied when
a unit is cloned.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from construction_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from construction_kernel.models.team_assignment import TeamAssignment


class Payment(TrackedBase):
    __tablename__ = "payments"

    __table_args__ = (Index("idx_payment_assignment", "team_assignment_id"),)

    team_assignment_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("team_assignments.id", ondelete="CASCADE"),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    payment_date: Mapped[date] = mapped_column(Date, nullable=False)

    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)

    team_assignment: Mapped[TeamAssignment] = relationship(back_populates="payments")

    def __repr__(self) -> str:
        return f"<Payment {self.amount} on {self.payment_date}>"
