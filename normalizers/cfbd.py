from typing import Any, Dict, List, Optional, Tuple

from .base import Normalizer, optional_str, snake_case, stat_label
from aggregation.query import ResolvedQuery
from aggregation.schemas import (
    BettingLine,
    PlayerStatLine,
    QueryKind,
    StatBlock,
    TeamGameStats,
)

# Advanced season stats kept per side of the ball
ADVANCED_METRICS = {
    "plays": "plays",
    "drives": "drives",
    "ppa": "ppa",
    "totalPPA": "total_ppa",
    "successRate": "success_rate",
    "explosiveness": "explosiveness",
    "powerSuccess": "power_success",
    "stuffRate": "stuff_rate",
    "lineYards": "line_yards",
    "secondLevelYards": "second_level_yards",
    "openFieldYards": "open_field_yards",
    "pointsPerOpportunity": "points_per_opportunity",
}

RECORD_GROUPS = {
    "total": "total",
    "conferenceGames": "conference",
    "homeGames": "home",
    "awayGames": "away",
}

RECORD_FIELDS = ("games", "wins", "losses", "ties")

# Combined "made-attempted" team stat cells
TEAM_STAT_PAIRS = {
    "completionAttempts": ("completions", "pass_attempts"),
    "thirdDownEff": ("third_down_conversions", "third_down_attempts"),
    "fourthDownEff": ("fourth_down_conversions", "fourth_down_attempts"),
    "totalPenaltiesYards": ("penalties", "penalty_yards"),
}

# Per-game rates that do not add up across a season
AVERAGED_STATS = {"avg", "pct", "qbr", "ypa", "ypc", "ypr"}
MAX_STATS = {"long"}


class CfbdNormalizer(Normalizer):
    """Analytics provider payloads. Every kind yields a StatBlock."""

    provider = "cfbd"

    def __init__(self):
        super().__init__()
        self.handlers = {
            QueryKind.ANALYTICS: self.analytics,
            QueryKind.RECORDS: self.records,
            QueryKind.BETTING: self.betting,
            QueryKind.SEASON_STATS: self.season_stats,
            QueryKind.GAME_TEAM_STATS: self.game_team_stats,
            QueryKind.GAME_PLAYER_STATS: self.game_player_stats,
            QueryKind.PLAYER_TOTALS: self.player_totals,
        }

    def rows(self, raw: Any) -> List[Dict[str, Any]]:
        if not isinstance(raw, list):
            raise self.fail("Expected a list of rows at payload root")
        return [row for row in raw if isinstance(row, dict)]

    def team_row(self, raw: Any, query: ResolvedQuery) -> Optional[Dict[str, Any]]:
        """The row for the requested team; the provider filters by team already."""
        rows = self.rows(raw)
        wanted = query.team_name.lower()
        for row in rows:
            if str(row.get("team", "")).lower() == wanted:
                return row
        return rows[0] if rows else None

    def empty(self, query: ResolvedQuery, category: str) -> StatBlock:
        return StatBlock(team=query.team_name, year=query.params.year, category=category)

    def analytics(self, raw: Any, query: ResolvedQuery) -> StatBlock:
        row = self.team_row(raw, query)
        if row is None:
            return self.empty(query, "analytics")

        team = str(self.require(row, "team"))
        sides = {side: row.get(side) for side in ("offense", "defense")}
        if not any(isinstance(block, dict) for block in sides.values()):
            raise self.fail("Advanced stats row has neither offense nor defense", "offense")

        metrics: Dict[str, Optional[float]] = {}
        for side, block in sides.items():
            if not isinstance(block, dict):
                continue
            for source, target in ADVANCED_METRICS.items():
                metrics[f"{side}_{target}"] = self.number(block.get(source), f"{side}.{source}")
            havoc = block.get("havoc")
            if isinstance(havoc, dict):
                metrics[f"{side}_havoc"] = self.number(havoc.get("total"), f"{side}.havoc.total")

        return StatBlock(
            team=team,
            year=self.integer(row.get("season"), "season") or query.params.year,
            category="analytics",
            conference=optional_str(row.get("conference")),
            metrics=metrics,
        )

    def records(self, raw: Any, query: ResolvedQuery) -> StatBlock:
        row = self.team_row(raw, query)
        if row is None:
            return self.empty(query, "records")

        team = str(self.require(row, "team"))
        self.require_dict(row, "total")
        metrics: Dict[str, Optional[float]] = {}
        for source, prefix in RECORD_GROUPS.items():
            group = row.get(source)
            if not isinstance(group, dict):
                continue
            for field in RECORD_FIELDS:
                metrics[f"{prefix}_{field}"] = self.number(group.get(field), f"{source}.{field}")
        if "expectedWins" in row:
            metrics["expected_wins"] = self.number(row.get("expectedWins"), "expectedWins")

        return StatBlock(
            team=team,
            year=self.integer(row.get("year"), "year") or query.params.year,
            category="records",
            conference=optional_str(row.get("conference")),
            metrics=metrics,
        )

    def season_stats(self, raw: Any, query: ResolvedQuery) -> StatBlock:
        rows = self.rows(raw)
        if not rows:
            return self.empty(query, "season-stats")

        metrics: Dict[str, Optional[float]] = {}
        for row in rows:
            name = self.require(row, "statName")
            metrics[snake_case(str(name))] = self.number(row.get("statValue"), f"statValue[{name}]")

        first_row = rows[0]
        return StatBlock(
            team=optional_str(first_row.get("team")) or query.team_name,
            year=self.integer(first_row.get("season"), "season") or query.params.year,
            category="season-stats",
            conference=optional_str(first_row.get("conference")),
            metrics=metrics,
        )

    def betting(self, raw: Any, query: ResolvedQuery) -> StatBlock:
        lines: List[BettingLine] = []
        for game in self.rows(raw):
            home = str(self.require(game, "homeTeam"))
            away = str(self.require(game, "awayTeam"))
            for line in self.list_of(game, "lines"):
                lines.append(
                    BettingLine(
                        game_id=optional_str(game.get("id")),
                        week=self.integer(game.get("week"), "week"),
                        home=home,
                        away=away,
                        home_score=self.integer(game.get("homeScore"), "homeScore"),
                        away_score=self.integer(game.get("awayScore"), "awayScore"),
                        provider=str(self.require(line, "provider", "lines")),
                        spread=self.number(line.get("spread"), "lines.spread"),
                        formatted_spread=optional_str(line.get("formattedSpread")),
                        over_under=self.number(line.get("overUnder"), "lines.overUnder"),
                        home_moneyline=self.integer(line.get("homeMoneyline"), "lines.homeMoneyline"),
                        away_moneyline=self.integer(line.get("awayMoneyline"), "lines.awayMoneyline"),
                    )
                )

        spreads = [line.spread for line in lines if line.spread is not None]
        metrics = {
            "games": float(len({(line.game_id, line.home, line.away) for line in lines})),
            "lines": float(len(lines)),
            "average_spread": round(sum(spreads) / len(spreads), 2) if spreads else None,
        }
        return StatBlock(
            team=query.team_name,
            year=query.params.year,
            category="betting",
            metrics=metrics if lines else {},
            lines=tuple(lines),
        )

    # Game-by-game box scores

    @staticmethod
    def school_name(entry: Dict[str, Any]) -> Optional[str]:
        # "school" in older payloads, "team" in newer ones
        return optional_str(entry.get("team") or entry.get("school"))

    def sides(self, game: Dict[str, Any], query: ResolvedQuery) -> Tuple[Optional[Dict[str, Any]], Optional[Dict[str, Any]]]:
        """The requested team's entry in a game and its opponent's."""
        entries = [entry for entry in self.list_of(game, "teams") if isinstance(entry, dict)]
        wanted = query.team_name.lower()
        ours = next(
            (entry for entry in entries if (self.school_name(entry) or "").lower() == wanted),
            None,
        )
        opponent = next((entry for entry in entries if entry is not ours), None)
        return ours, opponent

    def game_team_stats(self, raw: Any, query: ResolvedQuery) -> StatBlock:
        games: List[TeamGameStats] = []
        for game in self.rows(raw):
            ours, opponent = self.sides(game, query)
            if ours is None:
                continue
            metrics: Dict[str, Optional[float]] = {}
            for stat in self.list_of(ours, "stats"):
                category = str(self.require(stat, "category", "teams.stats"))
                key = snake_case(category)
                pair = TEAM_STAT_PAIRS.get(category, (f"{key}_made", f"{key}_attempts"))
                metrics.update(self.stat_values(key, stat.get("stat"), f"stats.{category}", pair))
            games.append(
                TeamGameStats(
                    game_id=optional_str(game.get("id")),
                    team=self.school_name(ours) or query.team_name,
                    opponent=self.school_name(opponent) if opponent else None,
                    home_away=optional_str(ours.get("homeAway")),
                    points=self.integer(ours.get("points"), "teams.points"),
                    metrics=metrics,
                )
            )

        return StatBlock(
            team=query.team_name,
            year=query.params.year,
            category="game-team-stats",
            metrics={"games": float(len(games))} if games else {},
            games=tuple(games),
        )

    def player_lines(self, raw: Any, query: ResolvedQuery) -> List[PlayerStatLine]:
        """One line per player, stat category and game for the requested team."""
        lines: List[PlayerStatLine] = []
        for game in self.rows(raw):
            ours, _ = self.sides(game, query)
            if ours is None:
                continue
            school = self.school_name(ours)
            game_id = optional_str(game.get("id"))
            for category in self.list_of(ours, "categories"):
                category_name = str(self.require(category, "name", "teams.categories"))
                athletes: Dict[str, Dict[str, Any]] = {}
                for stat_type in self.list_of(category, "types"):
                    label = str(self.require(stat_type, "name", "categories.types"))
                    key, pair = stat_label(label)
                    for athlete in self.list_of(stat_type, "athletes"):
                        name = str(self.require(athlete, "name", "types.athletes"))
                        athlete_id = optional_str(athlete.get("id"))
                        entry = athletes.setdefault(
                            athlete_id or name,
                            {"id": athlete_id, "name": name, "stats": {}, "display": {}},
                        )
                        cell = athlete.get("stat")
                        entry["display"][label] = optional_str(cell)
                        entry["stats"].update(
                            self.stat_values(key, cell, f"{category_name}.{label}", pair)
                        )
                for entry in athletes.values():
                    lines.append(
                        PlayerStatLine(
                            player_id=entry["id"],
                            name=entry["name"],
                            team=school,
                            category=category_name,
                            game_id=game_id,
                            stats=entry["stats"],
                            display=entry["display"],
                        )
                    )
        return lines

    @staticmethod
    def player_metrics(lines: List[PlayerStatLine]) -> Dict[str, Optional[float]]:
        if not lines:
            return {}
        return {
            "games": float(len({line.game_id for line in lines})),
            "players": float(len({line.player_id or line.name for line in lines})),
        }

    def game_player_stats(self, raw: Any, query: ResolvedQuery) -> StatBlock:
        lines = self.player_lines(raw, query)
        return StatBlock(
            team=query.team_name,
            year=query.params.year,
            category="game-player-stats",
            metrics=self.player_metrics(lines),
            players=tuple(lines),
        )

    def player_totals(self, raw: Any, query: ResolvedQuery) -> StatBlock:
        lines = self.player_lines(raw, query)
        totals: Dict[Tuple[str, str], Dict[str, Any]] = {}
        for line in lines:
            total = totals.setdefault(
                (line.player_id or line.name, line.category),
                {"line": line, "games": set(), "stats": {}},
            )
            total["games"].add(line.game_id)
            stats = total["stats"]
            for name, value in line.stats.items():
                if value is None or name in AVERAGED_STATS:
                    continue
                current = stats.get(name)
                if name in MAX_STATS:
                    stats[name] = value if current is None else max(current, value)
                else:
                    stats[name] = (current or 0.0) + value

        players = tuple(
            PlayerStatLine(
                player_id=total["line"].player_id,
                name=total["line"].name,
                team=total["line"].team,
                category=total["line"].category,
                games=len(total["games"]),
                stats=total["stats"],
            )
            for total in totals.values()
        )
        return StatBlock(
            team=query.team_name,
            year=query.params.year,
            category="player-totals",
            metrics=self.player_metrics(lines),
            players=players,
        )
