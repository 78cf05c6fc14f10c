"""
Module: construction_kernel.models.template
Responsibility: ORM persistence for unit templates -- reusable, date-free
    sets of categories with durations and team assignments.
Architecture position: Kernel > Models.

Invariants enforced:
    - Templates hold relative durations only, never dates.
    - duration_days and order are positive integers (TemplateService).
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from construction_kernel.db.base import TrackedBase, UUIDString


class Template(TrackedBase):
    __tablename__ = "templates"

    __table_args__ = (Index("idx_template_company", "company_id"),)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    description: Mapped[str] = mapped_column(Text, default="", nullable=False)

    unit_type: Mapped[str] = mapped_column(String(20), nullable=False)

    company_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    categories: Mapped[list[TemplateCategory]] = relationship(
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="(TemplateCategory.order, TemplateCategory.position)",
    )


class TemplateCategory(TrackedBase):
    __tablename__ = "template_categories"

    template_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("templates.id", ondelete="CASCADE"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    order: Mapped[int] = mapped_column("order_sequence", Integer, nullable=False)

    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)

    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    template: Mapped[Template] = relationship(back_populates="categories")

    team_assignments: Mapped[list[TemplateTeamAssignment]] = relationship(
        back_populates="template_category",
        cascade="all, delete-orphan",
        order_by="TemplateTeamAssignment.position",
    )


class TemplateTeamAssignment(TrackedBase):
    __tablename__ = "template_team_assignments"

    template_category_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("template_categories.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Weak reference, resolved at application time
    team_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    tasks: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)

    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    template_category: Mapped[TemplateCategory] = relationship(
        back_populates="team_assignments"
    )
