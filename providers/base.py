from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class UpstreamClient(ABC):
    """
    Provider-agnostic fetch interface.
    Concrete clients issue exactly one GET per call and return the parsed JSON
    body untouched; shaping happens in the normalizers.
    """

    name: str = "upstream"

    @abstractmethod
    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Returns the decoded JSON body or raises UpstreamError."""
        pass

    def close(self) -> None:
        pass
