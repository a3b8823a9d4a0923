import asyncio

import pytest

from aggregation.aggregator import Aggregator
from aggregation.errors import (
    InvalidQueryError,
    NormalizationError,
    NotFoundError,
    UpstreamError,
)
from aggregation.fingerprint import fingerprint
from aggregation.schemas import BoxScore, Game, GameStatus, ScheduleList, StatBlock
from payloads import cfbd_player_game, espn_event, espn_schedule, espn_summary, ncaa_game


def run(aggregator, kind, params=None):
    return asyncio.run(aggregator.query(kind, params))


def cache_key(aggregator, kind, params):
    resolved = aggregator.resolve(kind, params)
    return fingerprint(resolved.kind, resolved.params)


def live_schedule():
    return espn_schedule(
        espn_event("post", "2024-08-31T18:00Z", home_score="51", away_score="3", completed=True, event_id="400"),
        espn_event("in", "2024-09-07T18:00Z", home_score="24", away_score="17", event_id="401"),
    )


# Current game


def test_live_game_is_served_from_cache_within_a_minute(aggregator, clients, clock):
    clients["espn"].respond(live_schedule())

    first = run(aggregator, "current-game", {"team": "oklahoma"})
    assert isinstance(first, Game)
    assert first.status == GameStatus.LIVE
    assert (first.home_score, first.away_score) == (24, 17)

    clock.advance(10)
    second = run(aggregator, "current-game", {"team": "oklahoma"})

    assert second is first
    assert len(clients["espn"].calls) == 1
    assert clients["espn"].calls[0] == ("team_schedule", "football/college-football", "201")


def test_live_game_refetched_after_ttl(aggregator, clients, clock):
    clients["espn"].respond(live_schedule())

    run(aggregator, "current-game", {"team": "oklahoma"})
    clock.advance(61)
    run(aggregator, "current-game", {"team": "oklahoma"})

    assert len(clients["espn"].calls) == 2


def test_most_recent_final_game_within_lookback(aggregator, clients):
    clients["espn"].respond(
        espn_schedule(
            espn_event("post", "2024-09-01T18:00Z", home_score="10", away_score="3", completed=True, event_id="399"),
            espn_event("post", "2024-09-05T18:00Z", home_score="51", away_score="3", completed=True, event_id="400"),
            espn_event("pre", "2024-09-14T18:00Z", event_id="402"),
        )
    )
    params = {"team": "oklahoma"}

    game = run(aggregator, "current-game", params)

    assert game.game_id == "400"
    assert game.status == GameStatus.FINAL
    entry = aggregator.caches["espn"].get_entry(cache_key(aggregator, "current-game", params))
    assert entry.ttl_ms == 86400 * 1000


def test_no_recent_game_is_not_found_and_not_cached(aggregator, clients):
    clients["espn"].respond(
        espn_schedule(
            espn_event("post", "2024-08-01T18:00Z", home_score="10", away_score="3", completed=True),
            espn_event("pre", "2024-09-14T18:00Z"),
        )
    )

    with pytest.raises(NotFoundError) as exc_info:
        run(aggregator, "current-game", {"team": "oklahoma"})

    assert "last 7 days" in exc_info.value.message
    assert len(aggregator.caches["espn"]) == 0


def test_postponed_game_does_not_break_current_game(aggregator, clients):
    clients["espn"].respond(
        espn_schedule(
            espn_event("post", "2024-09-05T18:00Z", home_score="51", away_score="3", completed=True, event_id="400"),
            espn_event("post", "2024-09-06T18:00Z", event_id="401", status_name="STATUS_POSTPONED"),
        )
    )

    game = run(aggregator, "current-game", {"team": "oklahoma"})

    assert game.game_id == "400"
    assert game.status == GameStatus.FINAL


# Schedule


def test_schedule_without_future_games_is_not_found(aggregator, clients):
    clients["espn"].respond(
        espn_schedule(espn_event("post", "2024-08-31T18:00Z", home_score="51", away_score="3", completed=True))
    )

    with pytest.raises(NotFoundError) as exc_info:
        run(aggregator, "schedule", {"team": "texas"})

    assert exc_info.value.message == "No upcoming games found for Texas"
    assert len(aggregator.caches["espn"]) == 0


def test_schedule_keeps_upcoming_games_up_to_limit(clients, clock):
    aggregator = Aggregator(clients, now=clock.now, schedule_limit=2)
    clients["espn"].respond(
        espn_schedule(
            espn_event("post", "2024-08-31T18:00Z", home_score="51", away_score="3", completed=True, event_id="1"),
            espn_event("pre", "2024-09-14T18:00Z", event_id="2"),
            espn_event("pre", "2024-09-21T18:00Z", event_id="3"),
            espn_event("pre", "2024-09-28T18:00Z", event_id="4"),
        )
    )

    schedule = run(aggregator, "schedule", {"team": "Sooners"})

    assert isinstance(schedule, ScheduleList)
    assert [game.game_id for game in schedule.games] == ["2", "3"]


# Cache keys and invalidation


def test_equivalent_requests_share_one_entry(aggregator, clients):
    clients["espn"].respond(live_schedule())

    run(aggregator, "current-game", {"team": "  Oklahoma "})
    run(aggregator, "current-game", {"sport": "Football", "team": "oklahoma"})

    assert len(clients["espn"].calls) == 1
    assert len(aggregator.caches["espn"]) == 1


def test_team_aliases_share_one_entry(aggregator, clients):
    clients["espn"].respond(live_schedule())

    run(aggregator, "current-game", {"team": "OU"})
    run(aggregator, "current-game", {"team": "Sooners"})
    run(aggregator, "current-game", {"team": "Oklahoma"})

    assert len(clients["espn"].calls) == 1
    assert cache_key(aggregator, "current-game", {"team": "OU"}) == "current-game?sport=football&team=oklahoma"


def test_ampersand_spacing_resolves_to_one_school(aggregator):
    assert cache_key(aggregator, "records", {"team": "Texas A & M"}) == cache_key(
        aggregator, "records", {"team": "texas a&m"}
    )


def test_clear_all_forces_refetch(aggregator, clients):
    clients["espn"].respond(live_schedule())

    run(aggregator, "current-game", {"team": "oklahoma"})
    cleared = aggregator.clear_all()
    run(aggregator, "current-game", {"team": "oklahoma"})

    assert cleared == {"espn": 1, "cfbd": 0, "ncaa": 0}
    assert len(clients["espn"].calls) == 2


def test_idle_scoreboard_cached_for_fifteen_minutes(aggregator, clients, clock):
    clients["espn"].respond({"events": [espn_event("pre", "2024-09-07T23:00Z")]})

    run(aggregator, "scoreboard", {})
    clock.advance(899)
    run(aggregator, "scoreboard", {})
    assert len(clients["espn"].calls) == 1

    clock.advance(2)
    run(aggregator, "scoreboard", {})
    assert len(clients["espn"].calls) == 2
    assert clients["espn"].calls[0] == ("scoreboard", "football/college-football", "20240907")


def test_live_scoreboard_cached_for_a_minute(aggregator, clients, clock):
    clients["espn"].respond(
        {
            "events": [
                espn_event("pre", "2024-09-07T23:00Z"),
                espn_event("in", "2024-09-07T18:00Z", home_score="7", away_score="0"),
            ]
        }
    )

    run(aggregator, "scoreboard", {"date": "2024-09-07"})
    clock.advance(61)
    run(aggregator, "scoreboard", {"date": "2024-09-07"})

    assert len(clients["espn"].calls) == 2


# Failures never populate the cache


def test_normalization_error_does_not_poison_cache(aggregator, clients):
    broken = live_schedule()
    broken["events"][1]["competitions"][0]["competitors"] = []
    clients["espn"].respond(broken, live_schedule())

    with pytest.raises(NormalizationError) as exc_info:
        run(aggregator, "current-game", {"team": "oklahoma"})
    assert exc_info.value.provider == "espn"
    assert len(aggregator.caches["espn"]) == 0

    game = run(aggregator, "current-game", {"team": "oklahoma"})
    assert game.status == GameStatus.LIVE
    assert len(clients["espn"].calls) == 2


def test_upstream_error_propagates(aggregator, clients):
    clients["cfbd"].respond(UpstreamError("cfbd returned status 503", provider="cfbd", status_code=503))

    with pytest.raises(UpstreamError) as exc_info:
        run(aggregator, "records", {"team": "oklahoma", "year": 2023})

    assert exc_info.value.status_code == 503
    assert len(aggregator.caches["cfbd"]) == 0


# Analytics provider


def test_analytics_uses_school_name_and_current_year(aggregator, clients):
    clients["cfbd"].respond(
        [{"season": 2024, "team": "Oklahoma", "offense": {"ppa": 0.2}, "defense": {"ppa": 0.1}}]
    )

    block = run(aggregator, "analytics", {"team": "sooners"})

    assert isinstance(block, StatBlock)
    assert block.metrics["offense_ppa"] == 0.2
    assert clients["cfbd"].calls == [("advanced_season_stats", "Oklahoma", 2024)]


def test_unknown_team_falls_back_to_raw_name_for_analytics(aggregator, clients):
    clients["cfbd"].respond([{"year": 2023, "team": "sam houston", "total": {"games": 12, "wins": 3}}])

    run(aggregator, "records", {"team": "Sam Houston", "year": 2023})

    assert clients["cfbd"].calls == [("records", "sam houston", 2023)]


def test_empty_analytics_is_not_found(aggregator, clients):
    clients["cfbd"].respond([])

    with pytest.raises(NotFoundError):
        run(aggregator, "betting", {"team": "oklahoma", "year": 2023})
    assert len(aggregator.caches["cfbd"]) == 0


def test_player_totals_fetch_game_player_stats(aggregator, clients):
    clients["cfbd"].respond([cfbd_player_game(1, "20/30", "212", "44")])

    block = run(aggregator, "player-totals", {"team": "OU", "year": 2024})

    assert block.players[0].stats["yds"] == 212
    assert clients["cfbd"].calls == [("game_player_stats", "Oklahoma", 2024)]


# Box scores


def test_finished_box_score_cached_for_a_day(aggregator, clients):
    clients["espn"].respond(espn_summary())
    params = {"event": "401628374"}

    box = run(aggregator, "player-box-score", params)

    assert isinstance(box, BoxScore)
    assert clients["espn"].calls == [("summary", "football/college-football", "401628374")]
    entry = aggregator.caches["espn"].get_entry(cache_key(aggregator, "player-box-score", params))
    assert entry.ttl_ms == 86400 * 1000


def test_live_box_score_cached_for_a_minute(aggregator, clients, clock):
    clients["espn"].respond(espn_summary(state="in", completed=False))

    run(aggregator, "player-box-score", {"event": "401628374"})
    clock.advance(61)
    run(aggregator, "player-box-score", {"event": "401628374"})

    assert len(clients["espn"].calls) == 2


def test_box_score_without_players_is_not_found(aggregator, clients):
    clients["espn"].respond(espn_summary(state="pre", completed=False, with_players=False))

    with pytest.raises(NotFoundError):
        run(aggregator, "player-box-score", {"event": "401628374"})
    assert len(aggregator.caches["espn"]) == 0


# Multi-division provider


def test_multi_division_scoreboard_defaults(aggregator, clients):
    clients["ncaa"].respond({"games": [ncaa_game("final", "28", "21")]})

    board = run(aggregator, "multi-division-scoreboard", {"division": "FCS"})

    assert board.division == "fcs"
    assert board.games[0].away.rank == 3
    assert clients["ncaa"].calls == [("scoreboard", "football", "fcs", "20240907")]


def test_multi_division_rankings_default_poll(aggregator, clients):
    clients["ncaa"].respond({"title": "AP Top 25", "data": [{"RANK": "1", "SCHOOL": "Georgia (62)"}]})

    ranking = run(aggregator, "multi-division-rankings", {})

    assert ranking.entries[0].first_place_votes == 62
    assert clients["ncaa"].calls == [("rankings", "football", "fbs", "associated-press")]


def test_domains_keep_separate_caches(aggregator, clients):
    clients["ncaa"].respond({"games": [ncaa_game("final", "28", "21")]})
    clients["espn"].respond({"events": [espn_event("pre", "2024-09-07T23:00Z")]})

    run(aggregator, "multi-division-scoreboard", {})
    run(aggregator, "scoreboard", {})

    assert len(aggregator.caches["ncaa"]) == 1
    assert len(aggregator.caches["espn"]) == 1


# Request validation


def test_unknown_team_is_not_found_before_fetch(aggregator, clients):
    with pytest.raises(NotFoundError) as exc_info:
        run(aggregator, "current-game", {"team": "Hogwarts"})

    assert exc_info.value.message == 'Team "hogwarts" not found'
    assert clients["espn"].calls == []


@pytest.mark.parametrize(
    "kind,params",
    [
        ("box-score", {}),
        ("current-game", {}),
        ("current-game", {"team": "oklahoma", "colour": "red"}),
        ("scoreboard", {"date": "next tuesday"}),
        ("scoreboard", {"sport": "curling"}),
        ("analytics", {"team": "kansas", "sport": "mens-basketball"}),
        ("records", {"team": "oklahoma", "year": 1700}),
        ("player-box-score", {}),
        ("player-box-score", {"event": "last-night"}),
        ("player-totals", {"team": "kansas", "sport": "baseball"}),
    ],
)
def test_invalid_queries_are_rejected(aggregator, clients, kind, params):
    with pytest.raises(InvalidQueryError):
        run(aggregator, kind, params)
    assert all(client.calls == [] for client in clients.values())


def test_sport_alias_resolves(aggregator, clients):
    clients["espn"].respond({"rankings": [{"name": "AP Top 25", "type": "ap", "ranks": [{"current": 1, "team": {"nickname": "UConn"}}]}]})

    run(aggregator, "rankings", {"sport": "Basketball"})

    assert clients["espn"].calls == [("rankings", "basketball/mens-college-basketball")]


# In-flight dedupe


class SlowClient:
    name = "ncaa"

    def __init__(self, payload):
        self.payload = payload
        self.calls = 0

    async def scoreboard(self, sport_path, division, date):
        self.calls += 1
        await asyncio.sleep(0.01)
        return self.payload


async def query_twice(aggregator):
    return await asyncio.gather(
        aggregator.query("multi-division-scoreboard", {}),
        aggregator.query("multi-division-scoreboard", {}),
    )


def test_concurrent_misses_share_one_fetch_when_deduped(clients, clock):
    slow = SlowClient({"games": [ncaa_game("final", "28", "21")]})
    clients["ncaa"] = slow
    aggregator = Aggregator(clients, now=clock.now, dedupe_inflight=True)

    first, second = asyncio.run(query_twice(aggregator))

    assert slow.calls == 1
    assert first is second
    assert aggregator._inflight == {}


def test_concurrent_misses_fetch_independently_by_default(clients, clock):
    slow = SlowClient({"games": [ncaa_game("final", "28", "21")]})
    clients["ncaa"] = slow
    aggregator = Aggregator(clients, now=clock.now)

    first, second = asyncio.run(query_twice(aggregator))

    assert slow.calls == 2
    assert first == second
