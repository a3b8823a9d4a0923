"""Kind-specific selection applied to a normalized result before caching.

Selection is where a well-formed but empty answer becomes NotFoundError.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from .errors import NotFoundError
from .query import ResolvedQuery
from .schemas import (
    BoxScore,
    Game,
    GameList,
    GameStatus,
    RankingList,
    ScheduleList,
    StatBlock,
)


def parse_time(value: Optional[str]) -> Optional[datetime]:
    """ISO-8601 timestamp to an aware datetime; None when absent or unreadable."""
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def current_game(schedule: ScheduleList, query: ResolvedQuery, now: datetime, lookback_days: int) -> Game:
    """The in-progress game, else the most recent final game inside the lookback window."""
    for game in schedule.games:
        if game.status == GameStatus.LIVE:
            return game

    window_start = now - timedelta(days=lookback_days)
    recent = []
    for game in schedule.games:
        if game.status != GameStatus.FINAL:
            continue
        started = parse_time(game.start_time)
        if started is not None and window_start <= started <= now:
            recent.append((started, game))

    if not recent:
        raise NotFoundError(
            f"No recent game found for {query.team_name} in the last {lookback_days} days",
            {"team": query.team_name, "games_in_schedule": len(schedule.games)},
        )
    recent.sort(key=lambda item: item[0], reverse=True)
    return recent[0][1]


def upcoming_games(schedule: ScheduleList, query: ResolvedQuery, now: datetime, limit: int) -> ScheduleList:
    upcoming = []
    for game in schedule.games:
        started = parse_time(game.start_time)
        if started is not None and started >= now:
            upcoming.append(game)

    if not upcoming:
        raise NotFoundError(
            f"No upcoming games found for {query.team_name}",
            {"team": query.team_name},
        )
    return schedule.model_copy(update={"games": tuple(upcoming[:limit])})


def non_empty_games(games: GameList, query: ResolvedQuery) -> GameList:
    if not games.games:
        raise NotFoundError(
            f"No games found for {query.params.date}",
            {"date": query.params.date, "division": query.params.division},
        )
    return games


def non_empty_rankings(rankings: RankingList, query: ResolvedQuery) -> RankingList:
    if not rankings.entries:
        raise NotFoundError(
            f"No {query.params.poll} rankings available",
            {"poll": query.params.poll, "division": query.params.division},
        )
    return rankings


def non_empty_stats(block: StatBlock, query: ResolvedQuery) -> StatBlock:
    if not (block.metrics or block.lines or block.games or block.players):
        raise NotFoundError(
            f"No {block.category} data for {query.team_name} in {query.params.year}",
            {"team": query.team_name, "year": query.params.year},
        )
    return block


def non_empty_box_score(box_score: BoxScore, query: ResolvedQuery) -> BoxScore:
    if not any(team.players for team in box_score.teams):
        raise NotFoundError(
            f"No player box score available for event {query.params.event}",
            {"event": query.params.event, "status": box_score.status},
        )
    return box_score
