from typing import Any, Dict, Optional

import requests

from .http import HttpUpstreamClient

NCAA_BASE_URL = "https://ncaa-api.henrygd.me"


class NcaaClient(HttpUpstreamClient):
    """Multi-division provider: scoreboards and polls for every NCAA division."""

    def __init__(
        self,
        config: Dict[str, Any],
        session: Optional[requests.Session] = None,
    ):
        super().__init__(
            "ncaa",
            config.get("ncaa_base_url", NCAA_BASE_URL),
            config,
            session=session,
        )

    async def scoreboard(self, sport_path: str, division: str, date: str) -> Any:
        # date is YYYYMMDD
        year, month, day = date[:4], date[4:6], date[6:]
        return await self.get_json(
            f"scoreboard/{sport_path}/{division}/{year}/{month}/{day}/all-conf"
        )

    async def rankings(self, sport_path: str, division: str, poll: str) -> Any:
        return await self.get_json(f"rankings/{sport_path}/{division}/{poll}")
