import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from .base import Normalizer, optional_str
from .status import ncaa_status
from aggregation.query import ResolvedQuery
from aggregation.schemas import (
    Game,
    GameList,
    QueryKind,
    RankingEntry,
    RankingList,
    TeamRef,
)

_LEADING_INT = re.compile(r"(\d+)")
# "Georgia (62)" -> name, first-place votes
_SCHOOL_VOTES = re.compile(r"^(?P<name>.*?)\s*\((?P<votes>\d+)\)\s*$")


class NcaaNormalizer(Normalizer):
    """Multi-division provider payloads: scoreboards and polls for any division."""

    provider = "ncaa"

    def __init__(self):
        super().__init__()
        self.handlers = {
            QueryKind.MULTI_DIVISION_SCOREBOARD: self.scoreboard,
            QueryKind.MULTI_DIVISION_RANKINGS: self.rankings,
        }

    def scoreboard(self, raw: Any, query: ResolvedQuery) -> GameList:
        division = query.params.division
        games = []
        for wrapper in self.list_of(raw, "games"):
            game = wrapper.get("game") if isinstance(wrapper, dict) else None
            if not isinstance(game, dict):
                raise self.fail("Scoreboard entry has no game object", "games.game")
            games.append(self.game(game, division))
        return GameList(
            sport=query.sport,
            date=query.params.date,
            division=division,
            games=tuple(games),
        )

    def game(self, game: Dict[str, Any], division: Optional[str]) -> Game:
        status = ncaa_status(self.require(game, "gameState", "game"))
        home = self.require_dict(game, "home", "game")
        away = self.require_dict(game, "away", "game")
        home_score, away_score = self.scores(status, home.get("score"), away.get("score"))

        home_ref = self.team_ref(home, "home")
        away_ref = self.team_ref(away, "away")
        return Game(
            game_id=optional_str(game.get("gameID")),
            name=f"{away_ref.name} at {home_ref.name}",
            start_time=self.start_time(game.get("startTimeEpoch")),
            status=status,
            status_detail=optional_str(game.get("finalMessage") or game.get("currentPeriod")),
            period=self.period(game.get("currentPeriod")),
            clock=optional_str(game.get("contestClock")),
            home=home_ref,
            away=away_ref,
            home_score=home_score,
            away_score=away_score,
            broadcast=optional_str(game.get("network")),
            division=division,
        )

    def team_ref(self, side: Dict[str, Any], label: str) -> TeamRef:
        names = self.require_dict(side, "names", label)
        name = optional_str(names.get("short")) or optional_str(names.get("full"))
        if name is None:
            raise self.fail(f"{label} team has no name", f"{label}.names.short")
        record = optional_str(side.get("description"))
        if record:
            record = record.strip("()") or None
        return TeamRef(
            name=name,
            abbreviation=optional_str(names.get("char6")),
            team_id=optional_str(names.get("seo")),
            rank=self.integer(side.get("rank"), f"{label}.rank"),
            record=record,
        )

    def start_time(self, epoch: Any) -> Optional[str]:
        seconds = self.integer(epoch, "startTimeEpoch")
        if seconds is None:
            return None
        return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()

    @staticmethod
    def period(value: Any) -> Optional[int]:
        # "2ND", "4th", "FINAL", ""
        match = _LEADING_INT.match(str(value or ""))
        return int(match.group(1)) if match else None

    def rankings(self, raw: Any, query: ResolvedQuery) -> RankingList:
        rows = self.list_of(raw, "data")
        entries = tuple(self.ranking_entry(row) for row in rows)
        return RankingList(
            sport=query.sport,
            poll=optional_str(raw.get("title")) or query.params.poll,
            division=query.params.division,
            entries=entries,
        )

    def ranking_entry(self, row: Any) -> RankingEntry:
        if not isinstance(row, dict):
            raise self.fail("Ranking row is not an object", "data")
        # Column headers are upper-case and vary between polls
        columns = {str(key).upper(): value for key, value in row.items()}

        rank = self.rank_value(columns.get("RANK"))
        if rank is None:
            raise self.fail("Ranking row has no rank", "data.RANK")

        school_key = next((key for key in columns if key.startswith("SCHOOL")), None)
        name, votes = self.school(columns.get(school_key) if school_key else None)
        return RankingEntry(
            rank=rank,
            team=TeamRef(name=name, rank=rank),
            previous_rank=self.rank_value(columns.get("PREVIOUS")),
            record=optional_str(columns.get("RECORD")),
            points=self.number(columns.get("POINTS"), "data.POINTS"),
            first_place_votes=votes,
        )

    @staticmethod
    def rank_value(value: Any) -> Optional[int]:
        # Ties come through as "T-5", unranked as "NR"
        match = _LEADING_INT.search(str(value or ""))
        return int(match.group(1)) if match else None

    def school(self, value: Any) -> Tuple[str, Optional[int]]:
        text = optional_str(value)
        if text is None:
            raise self.fail("Ranking row has no school", "data.SCHOOL")
        match = _SCHOOL_VOTES.match(text)
        if match:
            return match.group("name"), int(match.group("votes"))
        return text, None
