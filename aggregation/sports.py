from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class SportPaths:
    espn: str
    ncaa: str
    default_division: str
    name: str


SPORTS: Dict[str, SportPaths] = {
    "football": SportPaths(
        espn="football/college-football",
        ncaa="football",
        default_division="fbs",
        name="Football",
    ),
    "mens-basketball": SportPaths(
        espn="basketball/mens-college-basketball",
        ncaa="basketball-men",
        default_division="d1",
        name="Men's Basketball",
    ),
    "womens-basketball": SportPaths(
        espn="basketball/womens-college-basketball",
        ncaa="basketball-women",
        default_division="d1",
        name="Women's Basketball",
    ),
    "baseball": SportPaths(
        espn="baseball/college-baseball",
        ncaa="baseball",
        default_division="d1",
        name="Baseball",
    ),
    "softball": SportPaths(
        espn="softball/college-softball",
        ncaa="softball",
        default_division="d1",
        name="Softball",
    ),
}

SPORT_ALIASES = {
    "basketball": "mens-basketball",
    "mens basketball": "mens-basketball",
    "womens basketball": "womens-basketball",
    "cfb": "football",
}

DEFAULT_SPORT = "football"


def resolve_sport(sport: Optional[str]) -> Optional[str]:
    """Canonical sport key, or None for sports we do not route."""
    if not sport:
        return DEFAULT_SPORT
    key = SPORT_ALIASES.get(sport, sport)
    return key if key in SPORTS else None
