from typing import Any, Dict, List, Optional, Tuple

from .base import Normalizer, first, optional_str, stat_label
from .status import espn_status
from aggregation.query import ResolvedQuery
from aggregation.schemas import (
    BoxScore,
    BoxScoreTeam,
    Game,
    GameList,
    GameStatus,
    PlayerStatLine,
    QueryKind,
    RankingEntry,
    RankingList,
    ScheduleList,
    TeamRef,
)

# ESPN uses 99 for "not ranked" in curatedRank
UNRANKED = 99


class EspnNormalizer(Normalizer):
    """Live-score provider payloads: team schedules, scoreboards, polls and box scores."""

    provider = "espn"

    def __init__(self):
        super().__init__()
        self.handlers = {
            QueryKind.CURRENT_GAME: self.schedule,
            QueryKind.SCHEDULE: self.schedule,
            QueryKind.SCOREBOARD: self.scoreboard,
            QueryKind.RANKINGS: self.rankings,
            QueryKind.PLAYER_BOX_SCORE: self.box_score,
        }

    def schedule(self, raw: Any, query: ResolvedQuery) -> ScheduleList:
        team = raw.get("team") if isinstance(raw, dict) else None
        team_name = optional_str(team.get("displayName")) if isinstance(team, dict) else None
        games = tuple(self.game(event) for event in self.list_of(raw, "events"))
        return ScheduleList(
            team=team_name or query.team_name,
            sport=query.sport,
            games=games,
        )

    def scoreboard(self, raw: Any, query: ResolvedQuery) -> GameList:
        games = tuple(self.game(event) for event in self.list_of(raw, "events"))
        return GameList(sport=query.sport, date=query.params.date, games=games)

    def rankings(self, raw: Any, query: ResolvedQuery) -> RankingList:
        polls = self.list_of(raw, "rankings")
        requested = query.params.poll
        poll = self.select_poll(polls, requested)
        if poll is None:
            return RankingList(sport=query.sport, poll=requested)

        occurrence = poll.get("occurrence")
        if not isinstance(occurrence, dict):
            occurrence = {}
        season = poll.get("season")
        if not isinstance(season, dict):
            season = {}
        entries = tuple(
            self.ranking_entry(rank) for rank in self.list_of(poll, "ranks")
        )
        return RankingList(
            sport=query.sport,
            poll=optional_str(poll.get("name")) or requested,
            week=self.integer(occurrence.get("value"), "occurrence.value"),
            season=self.integer(season.get("year"), "season.year"),
            entries=entries,
        )

    @staticmethod
    def select_poll(polls: List[Any], requested: str) -> Optional[Dict[str, Any]]:
        """Poll whose type or name matches the request, else the first one."""
        candidates = [poll for poll in polls if isinstance(poll, dict)]
        if not candidates:
            return None
        for poll in candidates:
            if (poll.get("type") or "").lower() == requested:
                return poll
        for poll in candidates:
            names = f"{poll.get('name') or ''} {poll.get('shortName') or ''}".lower()
            if requested in names:
                return poll
        return candidates[0]

    def ranking_entry(self, rank: Any) -> RankingEntry:
        current = self.integer(self.require(rank, "current", "ranks"), "ranks.current")
        team = self.require_dict(rank, "team", "ranks")
        previous = self.integer(rank.get("previous"), "ranks.previous")
        return RankingEntry(
            rank=current,
            team=TeamRef(
                name=self.ranked_team_name(team),
                abbreviation=optional_str(team.get("abbreviation")),
                team_id=optional_str(team.get("id")),
                rank=current,
            ),
            previous_rank=previous or None,
            record=optional_str(rank.get("recordSummary")),
            points=self.number(rank.get("points"), "ranks.points"),
            first_place_votes=self.integer(rank.get("firstPlaceVotes"), "ranks.firstPlaceVotes"),
        )

    def ranked_team_name(self, team: Dict[str, Any]) -> str:
        name = optional_str(team.get("displayName")) or optional_str(team.get("nickname"))
        if name is None and team.get("location"):
            name = optional_str(f"{team.get('location')} {team.get('name') or ''}")
        if name is None:
            raise self.fail("Ranked team has no name", "ranks.team")
        return name

    def game(self, event: Any) -> Game:
        competition = first(self.require(event, "competitions", "events"))
        if not isinstance(competition, dict):
            raise self.fail("Event has no competition", "events.competitions")

        status_block = competition.get("status") or event.get("status")
        if not isinstance(status_block, dict):
            raise self.fail("Event has no status", "competitions.status")
        status_type = self.require_dict(status_block, "type", "status")
        status = espn_status(
            status_type.get("state"),
            status_type.get("name"),
            status_type.get("completed"),
        )

        competitors = self.list_of(competition, "competitors")
        home = self.competitor(competitors, "home")
        away = self.competitor(competitors, "away")
        home_score, away_score = self.scores(status, home.get("score"), away.get("score"))

        odds = first(competition.get("odds")) or {}
        return Game(
            game_id=optional_str(event.get("id")),
            name=optional_str(event.get("name")),
            start_time=optional_str(competition.get("date") or event.get("date")),
            status=status,
            status_detail=optional_str(
                status_type.get("shortDetail")
                or status_type.get("detail")
                or status_type.get("description")
            ),
            period=self.integer(status_block.get("period"), "status.period") or None,
            clock=optional_str(status_block.get("displayClock")),
            home=self.team_ref(home),
            away=self.team_ref(away),
            home_score=home_score,
            away_score=away_score,
            venue=optional_str((competition.get("venue") or {}).get("fullName")),
            broadcast=self.broadcast(competition),
            spread=optional_str(odds.get("details")),
            over_under=self.number(odds.get("overUnder"), "odds.overUnder"),
        )

    def competitor(self, competitors: List[Any], side: str) -> Dict[str, Any]:
        for competitor in competitors:
            if isinstance(competitor, dict) and competitor.get("homeAway") == side:
                return competitor
        raise self.fail(f"Event has no {side} competitor", "competitors")

    def team_ref(self, competitor: Dict[str, Any]) -> TeamRef:
        team = self.require_dict(competitor, "team", "competitors")
        name = optional_str(team.get("displayName")) or optional_str(team.get("name"))
        if name is None:
            raise self.fail("Competitor has no team name", "competitors.team.displayName")

        record = None
        records = competitor.get("records") or competitor.get("record")
        summary = first(records)
        if isinstance(summary, dict):
            record = optional_str(summary.get("summary") or summary.get("displayValue"))

        rank = None
        curated = competitor.get("curatedRank")
        if isinstance(curated, dict):
            rank = self.integer(curated.get("current"), "curatedRank.current")
            if rank == UNRANKED:
                rank = None

        return TeamRef(
            name=name,
            abbreviation=optional_str(team.get("abbreviation")),
            team_id=optional_str(team.get("id")),
            rank=rank,
            record=record,
        )

    @staticmethod
    def broadcast(competition: Dict[str, Any]) -> Optional[str]:
        entry = first(competition.get("broadcasts"))
        if not isinstance(entry, dict):
            return None
        names = entry.get("names")
        if isinstance(names, list) and names:
            return optional_str(names[0])
        media = entry.get("media")
        if isinstance(media, dict):
            return optional_str(media.get("shortName"))
        return None

    # Game summaries

    def box_score(self, raw: Any, query: ResolvedQuery) -> BoxScore:
        boxscore = self.require_dict(raw, "boxscore")
        game_id = query.params.event
        teams = tuple(
            self.box_score_team(block, game_id) for block in self.list_of(boxscore, "players")
        )
        status, detail = self.summary_status(raw)
        return BoxScore(
            game_id=game_id,
            sport=query.sport,
            status=status,
            status_detail=detail,
            teams=teams,
        )

    def summary_status(self, raw: Dict[str, Any]) -> Tuple[Optional[GameStatus], Optional[str]]:
        header = raw.get("header")
        competition = first(header.get("competitions")) if isinstance(header, dict) else None
        status_block = competition.get("status") if isinstance(competition, dict) else None
        if not isinstance(status_block, dict):
            return None, None
        status_type = self.require_dict(status_block, "type", "header.status")
        status = espn_status(
            status_type.get("state"),
            status_type.get("name"),
            status_type.get("completed"),
        )
        return status, optional_str(status_type.get("shortDetail") or status_type.get("detail"))

    def box_score_team(self, block: Any, game_id: Optional[str]) -> BoxScoreTeam:
        if not isinstance(block, dict):
            raise self.fail("Box score team entry is not an object", "boxscore.players")
        team = self.team_ref(block)
        players: List[PlayerStatLine] = []
        for group in self.list_of(block, "statistics"):
            category = None
            if isinstance(group, dict):
                category = optional_str(group.get("name")) or optional_str(group.get("displayName"))
            if category is None:
                raise self.fail("Box score stat group has no name", "boxscore.players.statistics")
            labels = [str(label) for label in self.list_of(group, "labels")]
            for row in self.list_of(group, "athletes"):
                players.append(self.athlete_line(row, category, labels, team.name, game_id))
        return BoxScoreTeam(team=team, players=tuple(players))

    def athlete_line(
        self,
        row: Any,
        category: str,
        labels: List[str],
        team_name: str,
        game_id: Optional[str],
    ) -> PlayerStatLine:
        athlete = self.require_dict(row, "athlete", "athletes")
        name = self.require(athlete, "displayName", "athlete")
        cells = row.get("stats") or []
        if not isinstance(cells, list):
            raise self.fail("Athlete stats are not a list", "athletes.stats")

        stats: Dict[str, Optional[float]] = {}
        display: Dict[str, Optional[str]] = {}
        for index, label in enumerate(labels):
            cell = cells[index] if index < len(cells) else None
            key, pair = stat_label(label)
            display[label] = optional_str(cell)
            stats.update(self.stat_values(key, cell, f"{category}.{label}", pair))

        position = athlete.get("position")
        if isinstance(position, dict):
            position = position.get("abbreviation") or position.get("displayName")
        return PlayerStatLine(
            player_id=optional_str(athlete.get("id")),
            name=str(name),
            team=team_name,
            category=category,
            game_id=game_id,
            position=optional_str(position),
            jersey=optional_str(athlete.get("jersey")),
            stats=stats,
            display=display,
        )
