"""
Module: construction_kernel.models.team
Responsibility: ORM persistence for teams (subcontractor crews).
Architecture position: Kernel > Models.

Teams have an independent lifecycle.  Assignments and template entries refer
to them by id only, so deleting or deactivating a team never touches the
hierarchy.
"""

from uuid import UUID

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from construction_kernel.db.base import TrackedBase, UUIDString


class Team(TrackedBase):
    __tablename__ = "teams"

    __table_args__ = (Index("idx_team_company", "company_id"),)

    company_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    specialty: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Display color, e.g. "#3B82F6"
    color: Mapped[str | None] = mapped_column(String(20), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Team {self.name}{'' if self.is_active else ' (inactive)'}>"
