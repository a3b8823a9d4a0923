import re
from abc import ABC
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from aggregation.errors import NormalizationError
from aggregation.query import ResolvedQuery
from aggregation.schemas import GameStatus, QueryKind

_NUMBER = re.compile(r"^-?\d+(\.\d+)?$")
_MADE_ATTEMPTED = re.compile(r"^(\d+)\s*[/-]\s*(\d+)$")
_CLOCK = re.compile(r"^(\d+):(\d{2})$")
_BLANK_CELLS = ("", "-", "--")


class Normalizer(ABC):
    """
    Turns one provider's raw payloads into canonical results.
    Subclasses register one handler per query kind they serve.
    """

    provider: str = "upstream"

    def __init__(self):
        self.handlers: Dict[QueryKind, Callable[[Any, ResolvedQuery], Any]] = {}

    def supports(self, kind: QueryKind) -> bool:
        return kind in self.handlers

    def normalize(self, kind: QueryKind, raw: Any, query: ResolvedQuery):
        handler = self.handlers.get(kind)
        if handler is None:
            raise NormalizationError(f"{self.provider} cannot normalize {kind.value}", provider=self.provider)
        try:
            return handler(raw, query)
        except ValidationError as e:
            # A canonical model rejected a value the payload carried
            errors = "; ".join(error["msg"] for error in e.errors())
            raise self.fail(f"{self.provider} payload did not fit {kind.value}: {errors}") from e

    # Field helpers

    def fail(self, message: str, field: Optional[str] = None) -> NormalizationError:
        return NormalizationError(message, provider=self.provider, field=field)

    def require(self, mapping: Any, key: str, path: str = "") -> Any:
        field = f"{path}.{key}" if path else key
        if not isinstance(mapping, dict):
            raise self.fail(f"Expected an object at {path or 'payload root'}", field)
        value = mapping.get(key)
        if value is None or value == "":
            raise self.fail(f"Missing required field {field}", field)
        return value

    def require_dict(self, mapping: Any, key: str, path: str = "") -> Dict[str, Any]:
        value = self.require(mapping, key, path)
        if not isinstance(value, dict):
            raise self.fail(f"Expected an object at {path}.{key}", key)
        return value

    def list_of(self, mapping: Any, key: str) -> List[Any]:
        """Optional list field; a missing key reads as empty."""
        if not isinstance(mapping, dict):
            raise self.fail("Expected an object at payload root")
        value = mapping.get(key)
        if value is None:
            return []
        if not isinstance(value, list):
            raise self.fail(f"Expected a list at {key}", key)
        return value

    def number(self, value: Any, field: str) -> Optional[float]:
        """Numeric value or None when absent; non-numeric text is a contract break."""
        if value is None or value == "":
            return None
        if isinstance(value, bool):
            raise self.fail(f"Expected a number at {field}", field)
        if isinstance(value, (int, float)):
            return float(value)
        text = str(value).strip()
        if _NUMBER.match(text):
            return float(text)
        raise self.fail(f"Expected a number at {field}, got {value!r}", field)

    def integer(self, value: Any, field: str) -> Optional[int]:
        number = self.number(value, field)
        return None if number is None else int(number)

    def score(self, value: Any, field: str) -> Optional[int]:
        # ESPN schedule payloads wrap scores in {"value": .., "displayValue": ..}
        if isinstance(value, dict):
            value = value.get("value", value.get("displayValue"))
        return self.integer(value, field)

    def stat_values(self, key: str, value: Any, field: str, pair: Tuple[str, str]) -> Dict[str, Optional[float]]:
        """Box-score cell to numbers.

        Made/attempted cells ("10/18", "3-12") split into the two pair keys,
        clock cells ("31:27") become seconds, dashes read as absent.
        """
        text = "" if value is None else str(value).strip()
        if text in _BLANK_CELLS:
            return {key: None}
        match = _MADE_ATTEMPTED.match(text)
        if match:
            return {pair[0]: float(match.group(1)), pair[1]: float(match.group(2))}
        match = _CLOCK.match(text)
        if match:
            return {key: float(int(match.group(1)) * 60 + int(match.group(2)))}
        return {key: self.number(text, field)}

    def scores(self, status: GameStatus, home: Any, away: Any) -> Tuple[Optional[int], Optional[int]]:
        """Scores for a game in the given status.

        Scheduled games report no score. Live games may lack one and stay
        absent. A final game without both scores is rejected.
        """
        if status == GameStatus.SCHEDULED:
            return None, None
        home_score = self.score(home, "home.score")
        away_score = self.score(away, "away.score")
        if status == GameStatus.FINAL and (home_score is None or away_score is None):
            raise self.fail("Final game is missing a score", "score")
        return home_score, away_score


def optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def first(items: Any) -> Any:
    if isinstance(items, list) and items:
        return items[0]
    return None


_CAMEL = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def snake_case(name: str) -> str:
    return _CAMEL.sub("_", name).replace(" ", "_").lower()


def stat_label(label: str) -> Tuple[str, Tuple[str, str]]:
    """Key and made/attempted pair for a box-score column label.

    "C/ATT" -> ("c_att", ("c", "att")); "FG" -> ("fg", ("fg_made", "fg_attempts")).
    """
    key = label.strip().lower().replace("/", "_").replace(" ", "_")
    parts = [part for part in label.strip().lower().split("/") if part]
    if len(parts) == 2:
        return key, (parts[0], parts[1])
    return key, (f"{key}_made", f"{key}_attempts")
