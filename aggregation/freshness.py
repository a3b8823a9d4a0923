"""Freshness classes and their TTLs.

Classification depends only on the canonical result; it never looks at the
clock. A scoreboard is classified after scanning every game because a single
live game shortens the TTL of the whole list.
"""

from enum import Enum

from .logging_config import audit_log
from .schemas import (
    BoxScore,
    Game,
    GameList,
    GameStatus,
    QueryKind,
    RankingList,
    ScheduleList,
    StatBlock,
)


class FreshnessClass(str, Enum):
    LIVE = "LIVE"
    UPCOMING = "UPCOMING"
    COMPLETED = "COMPLETED"
    SCHEDULE = "SCHEDULE"
    RANKINGS = "RANKINGS"
    ANALYTICS = "ANALYTICS"
    MULTI_DIVISION = "MULTI_DIVISION"


TTL_SECONDS = {
    FreshnessClass.LIVE: 60,
    FreshnessClass.UPCOMING: 6 * 60 * 60,
    FreshnessClass.COMPLETED: 24 * 60 * 60,
    FreshnessClass.SCHEDULE: 24 * 60 * 60,
    FreshnessClass.RANKINGS: 24 * 60 * 60,
    FreshnessClass.ANALYTICS: 6 * 60 * 60,
    FreshnessClass.MULTI_DIVISION: 5 * 60,
}

# Scoreboard variant of MULTI_DIVISION
SCOREBOARD_LIVE_TTL = 60
SCOREBOARD_IDLE_TTL = 15 * 60

_GAME_CLASSES = {
    GameStatus.LIVE: FreshnessClass.LIVE,
    GameStatus.FINAL: FreshnessClass.COMPLETED,
    GameStatus.SCHEDULED: FreshnessClass.UPCOMING,
}


def has_live_game(games) -> bool:
    return any(game.status == GameStatus.LIVE for game in games)


def classify(kind: QueryKind, result) -> FreshnessClass:
    """Map a canonical result to its freshness class."""
    if isinstance(result, Game):
        freshness = _GAME_CLASSES[result.status]
    elif isinstance(result, BoxScore):
        # Without a status the summary may still be changing
        freshness = _GAME_CLASSES.get(result.status, FreshnessClass.LIVE)
    elif isinstance(result, GameList):
        freshness = FreshnessClass.MULTI_DIVISION
    elif isinstance(result, RankingList):
        freshness = FreshnessClass.RANKINGS
    elif isinstance(result, ScheduleList):
        freshness = FreshnessClass.SCHEDULE
    elif isinstance(result, StatBlock):
        freshness = FreshnessClass.ANALYTICS
    else:
        raise TypeError(f"Cannot classify {type(result).__name__} for {kind.value}")

    audit_log(
        level="DEBUG",
        stage="freshness",
        kind=kind.value,
        freshness_class=freshness.value,
    )
    return freshness


def ttl_seconds(freshness: FreshnessClass, result) -> int:
    """TTL for a classified result, applying the scoreboard rule to game lists."""
    if freshness == FreshnessClass.MULTI_DIVISION and isinstance(result, GameList):
        return SCOREBOARD_LIVE_TTL if has_live_game(result.games) else SCOREBOARD_IDLE_TTL
    return TTL_SECONDS[freshness]


def ttl_ms(kind: QueryKind, result) -> int:
    return ttl_seconds(classify(kind, result), result) * 1000
