from typing import Any, Dict, Optional

import requests

from .http import HttpUpstreamClient

ESPN_BASE_URL = "https://site.api.espn.com/apis/site/v2/sports"


class EspnClient(HttpUpstreamClient):
    """Live-score provider. Public endpoints, no API key."""

    def __init__(
        self,
        config: Dict[str, Any],
        session: Optional[requests.Session] = None,
    ):
        super().__init__(
            "espn",
            config.get("espn_base_url", ESPN_BASE_URL),
            config,
            session=session,
        )

    async def team_schedule(self, sport_path: str, team_id: str) -> Any:
        return await self.get_json(f"{sport_path}/teams/{team_id}/schedule")

    async def scoreboard(self, sport_path: str, date: str) -> Any:
        return await self.get_json(f"{sport_path}/scoreboard", params={"dates": date})

    async def rankings(self, sport_path: str) -> Any:
        return await self.get_json(f"{sport_path}/rankings")

    async def summary(self, sport_path: str, event_id: str) -> Any:
        return await self.get_json(f"{sport_path}/summary", params={"event": event_id})
