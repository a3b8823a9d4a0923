"""Provider status vocabularies mapped onto GameStatus."""

from typing import Any, Optional

from aggregation.errors import NormalizationError
from aggregation.schemas import GameStatus

ESPN_STATES = {
    "pre": GameStatus.SCHEDULED,
    "in": GameStatus.LIVE,
    "post": GameStatus.FINAL,
}

# status.type.name wins over the short state: postponed and canceled games
# come through as state "post" without ever being played.
ESPN_TYPE_NAMES = {
    "STATUS_SCHEDULED": GameStatus.SCHEDULED,
    "STATUS_POSTPONED": GameStatus.SCHEDULED,
    "STATUS_CANCELED": GameStatus.SCHEDULED,
    "STATUS_CANCELLED": GameStatus.SCHEDULED,
    "STATUS_SUSPENDED": GameStatus.SCHEDULED,
    "STATUS_DELAYED": GameStatus.SCHEDULED,
    "STATUS_IN_PROGRESS": GameStatus.LIVE,
    "STATUS_HALFTIME": GameStatus.LIVE,
    "STATUS_END_PERIOD": GameStatus.LIVE,
    "STATUS_RAIN_DELAY": GameStatus.LIVE,
    "STATUS_FINAL": GameStatus.FINAL,
    "STATUS_FINAL_OVERTIME": GameStatus.FINAL,
    "STATUS_FULL_TIME": GameStatus.FINAL,
}

NCAA_STATES = {
    "pre": GameStatus.SCHEDULED,
    "scheduled": GameStatus.SCHEDULED,
    "postponed": GameStatus.SCHEDULED,
    "canceled": GameStatus.SCHEDULED,
    "cancelled": GameStatus.SCHEDULED,
    "live": GameStatus.LIVE,
    "in": GameStatus.LIVE,
    "final": GameStatus.FINAL,
    "post": GameStatus.FINAL,
}


def espn_status(state: Optional[str], type_name: Optional[str] = None, completed: Any = None) -> GameStatus:
    if completed is True:
        return GameStatus.FINAL
    status = ESPN_TYPE_NAMES.get((type_name or "").upper())
    if status is None:
        status = ESPN_STATES.get((state or "").lower())
        # "post" counts as final only with completed set; otherwise the game never happened
        if status == GameStatus.FINAL:
            status = GameStatus.SCHEDULED
    if status is None:
        raise NormalizationError(
            f"Unknown ESPN game state: {state or type_name!r}",
            provider="espn",
            field="status.type",
        )
    return status


def ncaa_status(state: Optional[str]) -> GameStatus:
    status = NCAA_STATES.get((state or "").strip().lower())
    if status is None:
        raise NormalizationError(f"Unknown NCAA game state: {state!r}", provider="ncaa", field="gameState")
    return status
