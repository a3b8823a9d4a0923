import asyncio
import time

import pytest
import requests

from aggregation.errors import UpstreamError
from providers.cfbd import CfbdClient
from providers.espn import EspnClient
from providers.http import RateLimiter
from providers.ncaa import NcaaClient

CONFIG = {
    "espn_base_url": "https://espn.test/sports/",
    "cfbd_base_url": "https://cfbd.test",
    "cfbd_api_key": "secret",
    "ncaa_base_url": "https://ncaa.test",
    "timeout": 3.0,
    "user_agent": "gateway-tests",
    "rate_limit_requests": 100,
    "rate_limit_window": 60,
}


class FakeResponse:
    def __init__(self, status_code=200, payload=None, body_is_json=True):
        self.status_code = status_code
        self.payload = payload
        self.body_is_json = body_is_json

    def json(self):
        if not self.body_is_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.headers = {}
        self.response = response
        self.error = error
        self.requests = []
        self.closed = False

    def get(self, url, params=None, timeout=None):
        self.requests.append({"url": url, "params": params, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response

    def close(self):
        self.closed = True


def test_espn_schedule_request():
    session = FakeSession(FakeResponse(payload={"events": []}))
    client = EspnClient(CONFIG, session=session)

    payload = asyncio.run(client.team_schedule("football/college-football", "201"))

    assert payload == {"events": []}
    assert session.requests == [
        {
            "url": "https://espn.test/sports/football/college-football/teams/201/schedule",
            "params": None,
            "timeout": 3.0,
        }
    ]
    assert session.headers["User-Agent"] == "gateway-tests"


def test_espn_scoreboard_passes_date():
    session = FakeSession(FakeResponse(payload={"events": []}))
    client = EspnClient(CONFIG, session=session)

    asyncio.run(client.scoreboard("football/college-football", "20240907"))

    assert session.requests[0]["params"] == {"dates": "20240907"}


def test_cfbd_sends_bearer_token():
    session = FakeSession(FakeResponse(payload=[]))
    client = CfbdClient(CONFIG, session=session)

    asyncio.run(client.records("Oklahoma", 2024))

    assert session.headers["Authorization"] == "Bearer secret"
    assert session.requests[0]["url"] == "https://cfbd.test/records"
    assert session.requests[0]["params"] == {"year": 2024, "team": "Oklahoma"}


def test_cfbd_without_key_sends_no_auth_header():
    session = FakeSession(FakeResponse(payload=[]))
    CfbdClient({**CONFIG, "cfbd_api_key": None}, session=session)
    assert "Authorization" not in session.headers


def test_ncaa_scoreboard_path():
    session = FakeSession(FakeResponse(payload={"games": []}))
    client = NcaaClient(CONFIG, session=session)

    asyncio.run(client.scoreboard("football", "fcs", "20240907"))

    assert session.requests[0]["url"] == "https://ncaa.test/scoreboard/football/fcs/2024/09/07/all-conf"


@pytest.mark.parametrize("status_code", [404, 429, 500, 503])
def test_non_success_status_is_upstream_error(status_code):
    client = EspnClient(CONFIG, session=FakeSession(FakeResponse(status_code=status_code)))

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(client.rankings("football/college-football"))

    assert exc_info.value.status_code == status_code
    assert exc_info.value.provider == "espn"
    assert exc_info.value.url.endswith("/rankings")


def test_network_failure_is_upstream_error():
    session = FakeSession(error=requests.exceptions.ConnectTimeout("timed out"))
    client = NcaaClient(CONFIG, session=session)

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(client.rankings("football", "fcs", "associated-press"))

    assert exc_info.value.status_code is None
    assert "timed out" in exc_info.value.message


def test_unreadable_body_is_upstream_error():
    client = EspnClient(CONFIG, session=FakeSession(FakeResponse(body_is_json=False)))

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(client.rankings("football/college-football"))

    assert exc_info.value.status_code == 200


def test_close_releases_session():
    session = FakeSession()
    EspnClient(CONFIG, session=session).close()
    assert session.closed


def test_rate_limiter_allows_requests_within_window():
    limiter = RateLimiter(max_requests=3, time_window=60)

    async def acquire_three():
        for _ in range(3):
            await limiter.acquire()

    asyncio.run(acquire_three())
    assert len(limiter.requests) == 3


def test_rate_limiter_waits_when_window_is_full():
    limiter = RateLimiter(max_requests=1, time_window=0.05)

    async def acquire_twice():
        await limiter.acquire()
        await limiter.acquire()

    start = time.monotonic()
    asyncio.run(acquire_twice())

    assert time.monotonic() - start >= 0.05
    assert len(limiter.requests) == 1


def test_espn_summary_passes_event():
    session = FakeSession(FakeResponse(payload={"boxscore": {}}))
    client = EspnClient(CONFIG, session=session)

    asyncio.run(client.summary("football/college-football", "401628374"))

    assert session.requests[0]["url"] == "https://espn.test/sports/football/college-football/summary"
    assert session.requests[0]["params"] == {"event": "401628374"}


def test_cfbd_game_by_game_paths():
    session = FakeSession(FakeResponse(payload=[]))
    client = CfbdClient(CONFIG, session=session)

    asyncio.run(client.game_team_stats("Oklahoma", 2024))
    asyncio.run(client.game_player_stats("Oklahoma", 2024))

    assert [request["url"] for request in session.requests] == [
        "https://cfbd.test/games/teams",
        "https://cfbd.test/games/players",
    ]
