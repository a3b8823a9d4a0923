import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from pydantic import ValidationError

from .cache import CacheStore
from .errors import InvalidQueryError, NormalizationError, NotFoundError
from .fingerprint import fingerprint
from .freshness import classify, ttl_seconds
from .logging_config import audit_log
from .query import ResolvedQuery
from .schemas import QueryKind, QueryParams
from .selection import (
    current_game,
    non_empty_box_score,
    non_empty_games,
    non_empty_rankings,
    non_empty_stats,
    upcoming_games,
)
from .sports import SPORTS, resolve_sport
from .teams import TeamDirectory
from normalizers.base import Normalizer
from normalizers.cfbd import CfbdNormalizer
from normalizers.espn import EspnNormalizer
from normalizers.ncaa import NcaaNormalizer

DOMAINS = ("espn", "cfbd", "ncaa")


@dataclass(frozen=True)
class Operation:
    domain: str
    params: Tuple[str, ...]
    required: Tuple[str, ...] = ()
    football_only: bool = False


OPERATIONS: Dict[QueryKind, Operation] = {
    QueryKind.CURRENT_GAME: Operation("espn", ("team", "sport"), ("team",)),
    QueryKind.SCHEDULE: Operation("espn", ("team", "sport"), ("team",)),
    QueryKind.SCOREBOARD: Operation("espn", ("sport", "date")),
    QueryKind.RANKINGS: Operation("espn", ("sport", "poll")),
    QueryKind.ANALYTICS: Operation("cfbd", ("team", "year"), ("team",), football_only=True),
    QueryKind.RECORDS: Operation("cfbd", ("team", "year"), ("team",), football_only=True),
    QueryKind.BETTING: Operation("cfbd", ("team", "year"), ("team",), football_only=True),
    QueryKind.SEASON_STATS: Operation("cfbd", ("team", "year"), ("team",), football_only=True),
    QueryKind.GAME_TEAM_STATS: Operation("cfbd", ("team", "year"), ("team",), football_only=True),
    QueryKind.GAME_PLAYER_STATS: Operation("cfbd", ("team", "year"), ("team",), football_only=True),
    QueryKind.PLAYER_TOTALS: Operation("cfbd", ("team", "year"), ("team",), football_only=True),
    QueryKind.PLAYER_BOX_SCORE: Operation("espn", ("sport", "event"), ("event",)),
    QueryKind.MULTI_DIVISION_SCOREBOARD: Operation("ncaa", ("sport", "division", "date")),
    QueryKind.MULTI_DIVISION_RANKINGS: Operation("ncaa", ("sport", "division", "poll")),
}

DEFAULT_POLLS = {
    "espn": "ap",
    "ncaa": "associated-press",
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Aggregator:
    """Single entry point: cache lookup, fetch, normalize, select, classify, store.

    Each provider domain owns one CacheStore. Errors from the clients and the
    normalizers surface unchanged; nothing is stored unless the whole
    pipeline succeeded.
    """

    def __init__(
        self,
        clients: Dict[str, Any],
        caches: Optional[Dict[str, CacheStore]] = None,
        teams: Optional[TeamDirectory] = None,
        normalizers: Optional[Dict[str, Normalizer]] = None,
        now: Callable[[], datetime] = utc_now,
        lookback_days: int = 7,
        schedule_limit: int = 5,
        dedupe_inflight: bool = False,
    ):
        self.clients = clients
        self.caches = caches or {domain: CacheStore(domain) for domain in DOMAINS}
        self.teams = teams or TeamDirectory()
        self.normalizers = normalizers or {
            "espn": EspnNormalizer(),
            "cfbd": CfbdNormalizer(),
            "ncaa": NcaaNormalizer(),
        }
        self.now = now
        self.lookback_days = lookback_days
        self.schedule_limit = schedule_limit
        self.dedupe_inflight = dedupe_inflight
        self._inflight: Dict[str, asyncio.Future] = {}

        self.fetchers: Dict[QueryKind, Callable[[ResolvedQuery], Awaitable[Any]]] = {
            QueryKind.CURRENT_GAME: lambda q: self.clients["espn"].team_schedule(
                q.sport_paths.espn, q.team.espn_id
            ),
            QueryKind.SCHEDULE: lambda q: self.clients["espn"].team_schedule(
                q.sport_paths.espn, q.team.espn_id
            ),
            QueryKind.SCOREBOARD: lambda q: self.clients["espn"].scoreboard(
                q.sport_paths.espn, q.params.date
            ),
            QueryKind.RANKINGS: lambda q: self.clients["espn"].rankings(q.sport_paths.espn),
            QueryKind.ANALYTICS: lambda q: self.clients["cfbd"].advanced_season_stats(
                q.team_name, q.params.year
            ),
            QueryKind.RECORDS: lambda q: self.clients["cfbd"].records(q.team_name, q.params.year),
            QueryKind.BETTING: lambda q: self.clients["cfbd"].betting_lines(
                q.team_name, q.params.year
            ),
            QueryKind.SEASON_STATS: lambda q: self.clients["cfbd"].season_stats(
                q.team_name, q.params.year
            ),
            QueryKind.GAME_TEAM_STATS: lambda q: self.clients["cfbd"].game_team_stats(
                q.team_name, q.params.year
            ),
            QueryKind.GAME_PLAYER_STATS: lambda q: self.clients["cfbd"].game_player_stats(
                q.team_name, q.params.year
            ),
            QueryKind.PLAYER_TOTALS: lambda q: self.clients["cfbd"].game_player_stats(
                q.team_name, q.params.year
            ),
            QueryKind.PLAYER_BOX_SCORE: lambda q: self.clients["espn"].summary(
                q.sport_paths.espn, q.params.event
            ),
            QueryKind.MULTI_DIVISION_SCOREBOARD: lambda q: self.clients["ncaa"].scoreboard(
                q.sport_paths.ncaa, q.params.division, q.params.date
            ),
            QueryKind.MULTI_DIVISION_RANKINGS: lambda q: self.clients["ncaa"].rankings(
                q.sport_paths.ncaa, q.params.division, q.params.poll
            ),
        }

        self.selectors: Dict[QueryKind, Callable[[Any, ResolvedQuery], Any]] = {
            QueryKind.CURRENT_GAME: lambda result, q: current_game(
                result, q, self.now(), self.lookback_days
            ),
            QueryKind.SCHEDULE: lambda result, q: upcoming_games(
                result, q, self.now(), self.schedule_limit
            ),
            QueryKind.SCOREBOARD: non_empty_games,
            QueryKind.RANKINGS: non_empty_rankings,
            QueryKind.ANALYTICS: non_empty_stats,
            QueryKind.RECORDS: non_empty_stats,
            QueryKind.BETTING: non_empty_stats,
            QueryKind.SEASON_STATS: non_empty_stats,
            QueryKind.GAME_TEAM_STATS: non_empty_stats,
            QueryKind.GAME_PLAYER_STATS: non_empty_stats,
            QueryKind.PLAYER_TOTALS: non_empty_stats,
            QueryKind.PLAYER_BOX_SCORE: non_empty_box_score,
            QueryKind.MULTI_DIVISION_SCOREBOARD: non_empty_games,
            QueryKind.MULTI_DIVISION_RANKINGS: non_empty_rankings,
        }

    # Request resolution

    def resolve(self, kind: Any, params: Optional[Dict[str, Any]] = None) -> ResolvedQuery:
        """Validate the query and apply defaults so equivalent requests share a key."""
        try:
            kind = QueryKind(kind)
        except ValueError:
            audit_log(stage="validation", outcome="fail", reason=f"Unknown query kind: {kind}")
            raise InvalidQueryError(
                f"Unknown query kind: {kind}",
                {"valid_kinds": [k.value for k in QueryKind]},
            )

        operation = OPERATIONS[kind]
        try:
            validated = QueryParams(**(params or {}))
        except ValidationError as e:
            validation_errors = [
                {
                    "field": ".".join(str(loc) for loc in error["loc"]),
                    "message": error["msg"],
                    "type": error["type"],
                }
                for error in e.errors()
            ]
            audit_log(
                stage="validation",
                outcome="fail",
                kind=kind.value,
                reason="Parameter validation failed",
                errors=validation_errors,
            )
            raise InvalidQueryError(
                "Parameter validation failed",
                {"validation_errors": validation_errors},
            )

        for name in operation.required:
            if getattr(validated, name) is None:
                raise InvalidQueryError(f"{kind.value} requires '{name}'", {"missing": name})

        sport = resolve_sport(validated.sport)
        if sport is None:
            raise InvalidQueryError(
                f"Unsupported sport: {validated.sport}",
                {"valid_sports": sorted(SPORTS)},
            )
        if operation.football_only and sport != "football":
            raise InvalidQueryError(f"{kind.value} is only available for football")

        today = self.now()
        values = {"sport": sport}
        for name in operation.params:
            value = getattr(validated, name)
            if value is None:
                if name == "date":
                    value = today.strftime("%Y%m%d")
                elif name == "year":
                    value = today.year
                elif name == "division":
                    value = SPORTS[sport].default_division
                elif name == "poll":
                    value = DEFAULT_POLLS[operation.domain]
            if name != "sport":
                values[name] = value
        resolved_params = QueryParams(**values)

        team = None
        if resolved_params.team is not None:
            team = self.teams.resolve(resolved_params.team)
            if team is None and operation.domain == "espn":
                raise NotFoundError(
                    f'Team "{resolved_params.team}" not found',
                    {"team": resolved_params.team},
                )
            if team is not None:
                # Aliases of one school share a cache entry
                resolved_params = resolved_params.model_copy(update={"team": team.key})

        audit_log(stage="validation", outcome="pass", kind=kind.value)
        return ResolvedQuery(kind=kind, params=resolved_params, team=team)

    # Query pipeline

    async def query(self, kind: Any, params: Optional[Dict[str, Any]] = None):
        resolved = self.resolve(kind, params)
        key = fingerprint(resolved.kind, resolved.params)
        domain = OPERATIONS[resolved.kind].domain
        cache = self.caches[domain]

        cached = cache.get_if_fresh(key)
        if cached is not None:
            audit_log(stage="cache_lookup", outcome="hit", domain=domain, fingerprint=key)
            return cached
        audit_log(stage="cache_lookup", outcome="miss", domain=domain, fingerprint=key)

        if not self.dedupe_inflight:
            return await self._refresh(resolved, key, cache)

        pending = self._inflight.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._refresh(resolved, key, cache))
            self._inflight[key] = pending
            pending.add_done_callback(lambda _: self._inflight.pop(key, None))
        else:
            audit_log(stage="inflight_join", domain=domain, fingerprint=key)
        return await pending

    async def _refresh(self, resolved: ResolvedQuery, key: str, cache: CacheStore):
        kind = resolved.kind
        domain = cache.domain

        raw = await self.fetchers[kind](resolved)

        try:
            normalized = self.normalizers[domain].normalize(kind, raw, resolved)
        except NormalizationError as e:
            audit_log(
                level="ERROR",
                stage="normalization",
                outcome="error",
                error_class="contract",
                kind=kind.value,
                provider=e.provider,
                field=e.field,
                reason=e.message,
            )
            raise
        audit_log(stage="normalization", outcome="success", kind=kind.value, provider=domain)

        try:
            result = self.selectors[kind](normalized, resolved)
        except NotFoundError as e:
            audit_log(stage="selection", outcome="not_found", kind=kind.value, reason=e.message)
            raise

        freshness = classify(kind, result)
        ttl = ttl_seconds(freshness, result)
        cache.set(key, result, ttl * 1000)
        audit_log(
            stage="cache_store",
            domain=domain,
            fingerprint=key,
            freshness_class=freshness.value,
            ttl_seconds=ttl,
        )
        return result

    # Operator surface

    def clear_all(self) -> Dict[str, int]:
        """Clear every provider cache. Returns entries dropped per domain."""
        cleared = {domain: cache.clear() for domain, cache in self.caches.items()}
        audit_log(stage="cache_clear", cleared=cleared)
        return cleared

    def cache_stats(self) -> Dict[str, Any]:
        return {domain: cache.stats() for domain, cache in self.caches.items()}

    def get_operation_info(self) -> Dict[str, Any]:
        """Supported kinds with their parameters and provider domain."""
        operations = {}
        for kind, operation in OPERATIONS.items():
            operations[kind.value] = {
                "provider": operation.domain,
                "params": list(operation.params),
                "required": list(operation.required),
                "football_only": operation.football_only,
            }
        return {
            "operations": operations,
            "params_schema": QueryParams.model_json_schema(),
        }

    def close(self) -> None:
        for client in self.clients.values():
            client.close()
