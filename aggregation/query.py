from dataclasses import dataclass
from typing import Optional

from .schemas import QueryKind, QueryParams
from .sports import SPORTS, SportPaths
from .teams import TeamIdentity


@dataclass(frozen=True)
class ResolvedQuery:
    """A query with defaults applied and the team looked up."""

    kind: QueryKind
    params: QueryParams
    team: Optional[TeamIdentity] = None

    @property
    def sport(self) -> str:
        return self.params.sport

    @property
    def sport_paths(self) -> SportPaths:
        return SPORTS[self.params.sport]

    @property
    def team_name(self) -> str:
        if self.team is not None:
            return self.team.school
        return self.params.team or ""
