from typing import Any, Dict, Union

from .schemas import QueryKind, QueryParams


def fingerprint(kind: Union[QueryKind, str], params: Union[QueryParams, Dict[str, Any]]) -> str:
    """Deterministic cache key for a query.

    Values are cleaned by QueryParams (trimmed, whitespace-collapsed,
    lower-cased), absent values are dropped and keys are sorted, so ordering
    and casing of the inbound parameters never change the key.
    """
    kind = QueryKind(kind)
    if not isinstance(params, QueryParams):
        params = QueryParams(**params)

    values = params.model_dump(exclude_none=True)
    parts = [f"{key}={values[key]}" for key in sorted(values)]
    return f"{kind.value}?{'&'.join(parts)}"
