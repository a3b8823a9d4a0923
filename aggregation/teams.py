import re
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple


@dataclass(frozen=True)
class TeamIdentity:
    school: str  # analytics provider school name
    espn_id: str

    @property
    def key(self) -> str:
        """Stable lookup form of the school, shared by all of its aliases."""
        return normalize_team_name(self.school)


_PUNCTUATION = re.compile(r"[^a-z0-9 ]+")
# "A & M" and "A&M" read the same
_AMPERSAND = re.compile(r"\s*&\s*")
_SEPARATORS = re.compile(r"[\s\-_]+")


def normalize_team_name(name: str) -> str:
    """Case-insensitive, punctuation-free form used for lookups."""
    text = _AMPERSAND.sub("", name.lower())
    text = _SEPARATORS.sub(" ", text)
    text = _PUNCTUATION.sub("", text)
    return " ".join(text.split())


# (school, ESPN id, aliases)
DEFAULT_TEAMS: Tuple[Tuple[str, str, Tuple[str, ...]], ...] = (
    # Big 12
    ("Oklahoma", "201", ("ou", "sooners")),
    ("Texas", "251", ("ut", "longhorns")),
    ("Oklahoma State", "197", ("okstate", "cowboys")),
    ("Texas Tech", "2641", ("ttu", "red raiders")),
    ("Baylor", "239", ("bears",)),
    ("TCU", "2628", ("horned frogs",)),
    ("Kansas", "2305", ("ku", "jayhawks")),
    ("Kansas State", "2306", ("ksu", "k state")),
    ("Iowa State", "66", ("cyclones",)),
    ("West Virginia", "277", ("wvu", "mountaineers")),
    ("BYU", "252", ("cougars",)),
    ("Utah", "254", ("utes",)),
    ("Colorado", "38", ("buffaloes",)),
    ("Arizona", "12", ()),
    ("Arizona State", "9", ("asu", "sun devils")),
    # SEC
    ("Alabama", "333", ("bama", "crimson tide")),
    ("Georgia", "61", ("uga",)),
    ("LSU", "99", ()),
    ("Tennessee", "2633", ("vols", "volunteers")),
    ("Florida", "57", ("gators",)),
    ("Auburn", "2", ()),
    ("Texas A&M", "245", ("tamu", "aggies")),
    ("Ole Miss", "145", ("mississippi", "rebels")),
    ("Mississippi State", "344", ("msu",)),
    ("Arkansas", "8", ("razorbacks",)),
    ("Missouri", "142", ("mizzou",)),
    ("South Carolina", "2579", ("gamecocks",)),
    ("Kentucky", "96", ()),
    ("Vanderbilt", "238", ("vandy", "commodores")),
    # Big Ten
    ("Ohio State", "194", ("buckeyes",)),
    ("Michigan", "130", ("wolverines",)),
    ("Penn State", "213", ("psu", "nittany lions")),
    ("Wisconsin", "275", ("badgers",)),
    ("Iowa", "2294", ("hawkeyes",)),
    ("Nebraska", "158", ("huskers",)),
    ("Oregon", "2483", ("ducks",)),
    ("USC", "30", ("trojans",)),
    ("UCLA", "26", ("bruins",)),
    ("Washington", "264", ("huskies",)),
    # ACC and independents
    ("Clemson", "228", ()),
    ("Miami", "2390", ("hurricanes",)),
    ("Florida State", "52", ("fsu", "seminoles")),
    ("North Carolina", "153", ("unc", "tar heels")),
    ("Notre Dame", "87", ("fighting irish",)),
)


class TeamDirectory:
    """Static lookup from a free-form team name to provider identifiers."""

    def __init__(self, teams: Iterable[Tuple[str, str, Tuple[str, ...]]] = DEFAULT_TEAMS):
        self._index: Dict[str, TeamIdentity] = {}
        for school, espn_id, aliases in teams:
            identity = TeamIdentity(school=school, espn_id=espn_id)
            for name in (school, *aliases):
                self._index[normalize_team_name(name)] = identity

    def resolve(self, name: Optional[str]) -> Optional[TeamIdentity]:
        if not name:
            return None
        return self._index.get(normalize_team_name(name))

    def __len__(self) -> int:
        return len(self._index)
