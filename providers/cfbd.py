from typing import Any, Dict, Optional

import requests

from .http import HttpUpstreamClient

CFBD_BASE_URL = "https://api.collegefootballdata.com"


class CfbdClient(HttpUpstreamClient):
    """Advanced-analytics provider (CollegeFootballData). Bearer-token auth."""

    def __init__(
        self,
        config: Dict[str, Any],
        session: Optional[requests.Session] = None,
    ):
        api_key = config.get("cfbd_api_key")
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else None
        super().__init__(
            "cfbd",
            config.get("cfbd_base_url", CFBD_BASE_URL),
            config,
            headers=headers,
            session=session,
        )

    async def advanced_season_stats(self, team: str, year: int) -> Any:
        return await self.get_json("stats/season/advanced", params={"year": year, "team": team})

    async def season_stats(self, team: str, year: int) -> Any:
        return await self.get_json("stats/season", params={"year": year, "team": team})

    async def records(self, team: str, year: int) -> Any:
        return await self.get_json("records", params={"year": year, "team": team})

    async def betting_lines(self, team: str, year: int) -> Any:
        return await self.get_json("lines", params={"year": year, "team": team})

    async def game_team_stats(self, team: str, year: int) -> Any:
        return await self.get_json("games/teams", params={"year": year, "team": team})

    async def game_player_stats(self, team: str, year: int) -> Any:
        return await self.get_json("games/players", params={"year": year, "team": team})
