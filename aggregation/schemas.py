import re
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class QueryKind(str, Enum):
    CURRENT_GAME = "current-game"
    SCHEDULE = "schedule"
    SCOREBOARD = "scoreboard"
    RANKINGS = "rankings"
    ANALYTICS = "analytics"
    RECORDS = "records"
    BETTING = "betting"
    SEASON_STATS = "season-stats"
    GAME_TEAM_STATS = "game-team-stats"
    GAME_PLAYER_STATS = "game-player-stats"
    PLAYER_TOTALS = "player-totals"
    PLAYER_BOX_SCORE = "player-box-score"
    MULTI_DIVISION_SCOREBOARD = "multi-division-scoreboard"
    MULTI_DIVISION_RANKINGS = "multi-division-rankings"


class GameStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    LIVE = "LIVE"
    FINAL = "FINAL"


_WHITESPACE = re.compile(r"\s+")


def clean_text(value: Any) -> Optional[str]:
    """Trim, collapse inner whitespace and lower-case a parameter value."""
    if value is None:
        return None
    text = _WHITESPACE.sub(" ", str(value)).strip().lower()
    return text or None


# Inbound request


class QueryParams(BaseModel):
    model_config = ConfigDict(extra="forbid")

    team: Optional[str] = None
    sport: Optional[str] = None
    year: Optional[int] = Field(default=None, ge=1869, le=2100)
    date: Optional[str] = None
    division: Optional[str] = None
    poll: Optional[str] = None
    event: Optional[str] = None

    @field_validator("team", "sport", "division", "poll", mode="before")
    @classmethod
    def _clean(cls, value: Any) -> Optional[str]:
        return clean_text(value)

    @field_validator("date", mode="before")
    @classmethod
    def _compact_date(cls, value: Any) -> Optional[str]:
        text = clean_text(value)
        if text is None:
            return None
        digits = text.replace("-", "").replace("/", "")
        if len(digits) != 8 or not digits.isdigit():
            raise ValueError("date must be YYYY-MM-DD or YYYYMMDD")
        return digits

    @field_validator("event", mode="before")
    @classmethod
    def _event_id(cls, value: Any) -> Optional[str]:
        text = clean_text(value)
        if text is not None and not text.isdigit():
            raise ValueError("event must be a numeric provider event id")
        return text


class QueryExecuteRequest(BaseModel):
    kind: str
    params: Dict[str, Any] = Field(default_factory=dict)
    requestId: Optional[str] = None


# Canonical entities


class CanonicalModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class TeamRef(CanonicalModel):
    name: str
    abbreviation: Optional[str] = None
    team_id: Optional[str] = None
    rank: Optional[int] = None
    record: Optional[str] = None


class Game(CanonicalModel):
    kind: Literal["game"] = "game"
    game_id: Optional[str] = None
    name: Optional[str] = None
    start_time: Optional[str] = None
    status: GameStatus
    status_detail: Optional[str] = None
    period: Optional[int] = None
    clock: Optional[str] = None
    home: TeamRef
    away: TeamRef
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    venue: Optional[str] = None
    broadcast: Optional[str] = None
    spread: Optional[str] = None
    over_under: Optional[float] = None
    division: Optional[str] = None


class GameList(CanonicalModel):
    kind: Literal["game_list"] = "game_list"
    sport: str
    date: Optional[str] = None
    division: Optional[str] = None
    games: Tuple[Game, ...] = ()


class ScheduleList(CanonicalModel):
    kind: Literal["schedule_list"] = "schedule_list"
    team: str
    sport: str
    games: Tuple[Game, ...] = ()


class RankingEntry(CanonicalModel):
    rank: int
    team: TeamRef
    previous_rank: Optional[int] = None
    record: Optional[str] = None
    points: Optional[float] = None
    first_place_votes: Optional[int] = None


class RankingList(CanonicalModel):
    kind: Literal["ranking_list"] = "ranking_list"
    sport: str
    poll: str
    division: Optional[str] = None
    week: Optional[int] = None
    season: Optional[int] = None
    entries: Tuple[RankingEntry, ...] = ()


class BettingLine(CanonicalModel):
    game_id: Optional[str] = None
    week: Optional[int] = None
    home: str
    away: str
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    provider: str
    spread: Optional[float] = None
    formatted_spread: Optional[str] = None
    over_under: Optional[float] = None
    home_moneyline: Optional[int] = None
    away_moneyline: Optional[int] = None


class TeamGameStats(CanonicalModel):
    game_id: Optional[str] = None
    team: str
    opponent: Optional[str] = None
    home_away: Optional[str] = None
    points: Optional[int] = None
    metrics: Dict[str, Optional[float]] = Field(default_factory=dict)


class PlayerStatLine(CanonicalModel):
    """One player's numbers in one stat category, for a game or a season."""

    player_id: Optional[str] = None
    name: str
    team: Optional[str] = None
    category: str
    game_id: Optional[str] = None
    position: Optional[str] = None
    jersey: Optional[str] = None
    games: Optional[int] = None
    stats: Dict[str, Optional[float]] = Field(default_factory=dict)
    display: Dict[str, Optional[str]] = Field(default_factory=dict)


class StatBlock(CanonicalModel):
    kind: Literal["stat_block"] = "stat_block"
    team: str
    year: int
    category: Literal[
        "analytics",
        "records",
        "betting",
        "season-stats",
        "game-team-stats",
        "game-player-stats",
        "player-totals",
    ]
    conference: Optional[str] = None
    metrics: Dict[str, Optional[float]] = Field(default_factory=dict)
    lines: Tuple[BettingLine, ...] = ()
    games: Tuple[TeamGameStats, ...] = ()
    players: Tuple[PlayerStatLine, ...] = ()


class BoxScoreTeam(CanonicalModel):
    team: TeamRef
    players: Tuple[PlayerStatLine, ...] = ()


class BoxScore(CanonicalModel):
    kind: Literal["box_score"] = "box_score"
    game_id: str
    sport: str
    status: Optional[GameStatus] = None
    status_detail: Optional[str] = None
    teams: Tuple[BoxScoreTeam, ...] = ()


CanonicalResult = Annotated[
    Union[Game, GameList, ScheduleList, RankingList, StatBlock, BoxScore],
    Field(discriminator="kind"),
]
