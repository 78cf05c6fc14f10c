"""
Module: construction_kernel.selectors.team_directory
Responsibility: Resolve team references for the template applicator and the
    unit cloner, and list a company's teams.
Architecture position: Kernel > Selectors.  Read-only.

Teams are shared and referenced by id only.  A reference that no longer
resolves is a per-item warning for batch operations and an error for
single-entity operations; callers decide which.
"""

from uuid import UUID

from sqlalchemy import select

from construction_kernel.domain.dtos import TeamInfo
from construction_kernel.exceptions import TeamNotFoundError
from construction_kernel.models.team import Team
from construction_kernel.selectors.base import BaseSelector


class TeamDirectory(BaseSelector[Team]):
    def resolve_team(self, team_id: UUID) -> TeamInfo:
        """
        Raises:
            TeamNotFoundError: No team has this id.
        """
        team = self.session.get(Team, team_id)
        if team is None:
            raise TeamNotFoundError(team_id)
        return TeamInfo.from_model(team)

    def list_teams(
        self,
        company_id: UUID | None = None,
        active_only: bool = False,
    ) -> list[TeamInfo]:
        stmt = select(Team)
        if company_id is not None:
            stmt = stmt.where(Team.company_id == company_id)
        if active_only:
            stmt = stmt.where(Team.is_active.is_(True))
        stmt = stmt.order_by(Team.name, Team.id)
        return [TeamInfo.from_model(t) for t in self.session.scalars(stmt)]
