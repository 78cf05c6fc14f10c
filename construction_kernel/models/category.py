"""
Module: construction_kernel.models.category
Responsibility: ORM persistence for work categories (foundation, masonry,
    electricity ...) scheduled on a unit.
Architecture position: Kernel > Models.

Invariants enforced:
    - end_date > start_date (checked by HierarchyService before insert).
    - ``order`` is a positive integer defining execution sequence; it is
      not unique.
    Deleting a category deletes its team assignments.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from construction_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from construction_kernel.models.team_assignment import TeamAssignment
    from construction_kernel.models.unit import Unit


class Category(TrackedBase):
    __tablename__ = "categories"

    __table_args__ = (
        Index("idx_category_unit", "unit_id"),
        Index("idx_category_dates", "start_date", "end_date"),
    )

    unit_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("units.id", ondelete="CASCADE"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    order: Mapped[int] = mapped_column("order_sequence", Integer, nullable=False)

    progress: Mapped[float] = mapped_column(default=0.0, nullable=False)

    # Tie-breaker for categories sharing the same order
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    unit: Mapped[Unit] = relationship(back_populates="categories")

    team_assignments: Mapped[list[TeamAssignment]] = relationship(
        back_populates="category",
        cascade="all, delete-orphan",
        order_by="TeamAssignment.position",
    )

    def __repr__(self) -> str:
        return f"<Category {self.name} #{self.order} {self.start_date}..{self.end_date}>"
