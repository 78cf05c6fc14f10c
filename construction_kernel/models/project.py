"""
Module: construction_kernel.models.project
Responsibility: ORM persistence for construction projects, the root of the
    Project -> Unit -> Category -> TeamAssignment hierarchy.
Architecture position: Kernel > Models.  May import from db/base.py and
    sibling models for relationships.

Invariants enforced:
    PROGRESS_BOUNDS     -- progress within [0, 100].
    EMPTY_LEVEL_IS_ZERO -- a project with no units has progress 0.
    Deleting a project deletes its units (and their subtrees).
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Date, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from construction_kernel.db.base import TrackedBase, UUIDString
from construction_kernel.domain.dtos import ProgressSource, ProjectStatus

if TYPE_CHECKING:
    from construction_kernel.models.unit import Unit


class Project(TrackedBase):
    """
    A construction project.

    Contract:
        ``progress`` is the mean of its units' progress, recomputed by
        ProgressService on every cascade.  A manual override sets
        ``progress_source`` to "manual" until the next cascade overwrites it.
    """

    __tablename__ = "projects"

    __table_args__ = (
        Index("idx_project_company", "company_id"),
        Index("idx_project_status", "status"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    location: Mapped[str | None] = mapped_column(String(200), nullable=True)

    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default=ProjectStatus.PLANNING.value,
        nullable=False,
    )

    progress: Mapped[float] = mapped_column(default=0.0, nullable=False)

    progress_source: Mapped[str] = mapped_column(
        String(10),
        default=ProgressSource.DERIVED.value,
        nullable=False,
    )

    # Owning company; projects are scanned per company for alerts
    company_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    units: Mapped[list[Unit]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="Unit.position",
    )

    def __repr__(self) -> str:
        return f"<Project {self.name}: {self.status} {self.progress:.1f}%>"
