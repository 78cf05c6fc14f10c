"""
Module: construction_kernel.models.unit
Responsibility: ORM persistence for units (villa, apartment, commercial lot)
    inside a project.
Architecture position: Kernel > Models.

Invariants enforced:
    PROGRESS_BOUNDS, EMPTY_LEVEL_IS_ZERO.
    Deleting a unit deletes its categories (and their assignments).
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from construction_kernel.db.base import TrackedBase, UUIDString
from construction_kernel.domain.dtos import ProgressSource

if TYPE_CHECKING:
    from construction_kernel.models.category import Category
    from construction_kernel.models.project import Project


class Unit(TrackedBase):
    __tablename__ = "units"

    __table_args__ = (Index("idx_unit_project", "project_id"),)

    project_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # villa | apartment | commercial
    unit_type: Mapped[str] = mapped_column(String(20), nullable=False)

    floor: Mapped[int | None] = mapped_column(Integer, nullable=True)

    area: Mapped[float | None] = mapped_column(nullable=True)

    progress: Mapped[float] = mapped_column(default=0.0, nullable=False)

    progress_source: Mapped[str] = mapped_column(
        String(10),
        default=ProgressSource.DERIVED.value,
        nullable=False,
    )

    # Creation order within the project
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    project: Mapped[Project] = relationship(back_populates="units")

    categories: Mapped[list[Category]] = relationship(
        back_populates="unit",
        cascade="all, delete-orphan",
        order_by="(Category.order, Category.position)",
    )

    def __repr__(self) -> str:
        return f"<Unit {self.name} ({self.unit_type}) {self.progress:.1f}%>"
