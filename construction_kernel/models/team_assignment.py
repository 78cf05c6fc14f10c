"""
Module: construction_kernel.models.team_assignment
Responsibility: ORM persistence for a team's assignment to a category
    (historically "CategoryTeam"): status, progress, reception and payment
    flags, notes and the ordered task list.
Architecture position: Kernel > Models.

Invariants enforced:
    PROGRESS_BOUNDS -- progress is clamped to [0, 100] before it is stored.
    ``team_id`` is a weak reference: teams have their own lifecycle and are
    never deleted with, or because of, an assignment.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from construction_kernel.db.base import TrackedBase, UUIDString
from construction_kernel.domain.dtos import AssignmentStatus

if TYPE_CHECKING:
    from construction_kernel.models.category import Category
    from construction_kernel.models.payment import Payment


class TeamAssignment(TrackedBase):
    __tablename__ = "team_assignments"

    __table_args__ = (
        Index("idx_assignment_category", "category_id"),
        Index("idx_assignment_team", "team_id"),
        Index("idx_assignment_status", "status"),
    )

    category_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Weak reference, no foreign key
    team_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        default=AssignmentStatus.NOT_STARTED.value,
        nullable=False,
    )

    progress: Mapped[float] = mapped_column(default=0.0, nullable=False)

    reception_status: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    payment_status: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)

    # Ordered task names
    tasks: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    category: Mapped[Category] = relationship(back_populates="team_assignments")

    payments: Mapped[list[Payment]] = relationship(
        back_populates="team_assignment",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<TeamAssignment team={self.team_id} {self.status} {self.progress:.1f}%>"
