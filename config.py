import os
from typing import Dict, Any


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration with environment variable support."""

    def __init__(self):
        # Upstream providers
        self.espn_base_url = os.getenv(
            "ESPN_BASE_URL", "https://site.api.espn.com/apis/site/v2/sports"
        )
        self.cfbd_base_url = os.getenv("CFBD_BASE_URL", "https://api.collegefootballdata.com")
        self.cfbd_api_key = os.getenv("CFBD_API_KEY")
        self.ncaa_base_url = os.getenv("NCAA_BASE_URL", "https://ncaa-api.henrygd.me")
        self.upstream_timeout = float(os.getenv("UPSTREAM_TIMEOUT", "10.0"))
        self.user_agent = os.getenv("USER_AGENT", "college-sports-gateway/1.0")

        # Rate limiting configuration (per provider client)
        self.rate_limit_requests = int(os.getenv("RATE_LIMIT_REQUESTS", "30"))
        self.rate_limit_window = int(os.getenv("RATE_LIMIT_WINDOW", "60"))

        # Aggregator behaviour
        self.dedupe_inflight = _flag("DEDUPE_INFLIGHT")
        self.current_game_lookback_days = int(os.getenv("CURRENT_GAME_LOOKBACK_DAYS", "7"))
        self.schedule_limit = int(os.getenv("SCHEDULE_LIMIT", "5"))

        # Logging configuration
        self.log_level = os.getenv("LOG_LEVEL", "INFO")

        # Server configuration
        self.host = os.getenv("HOST", "0.0.0.0")
        self.port = int(os.getenv("PORT", "8000"))

    def get_provider_config(self) -> Dict[str, Any]:
        """Get configuration shared by the upstream clients."""
        return {
            "espn_base_url": self.espn_base_url,
            "cfbd_base_url": self.cfbd_base_url,
            "cfbd_api_key": self.cfbd_api_key,
            "ncaa_base_url": self.ncaa_base_url,
            "timeout": self.upstream_timeout,
            "user_agent": self.user_agent,
            "rate_limit_requests": self.rate_limit_requests,
            "rate_limit_window": self.rate_limit_window,
        }

    def __repr__(self) -> str:
        return (
            f"Config(espn={self.espn_base_url}, cfbd={self.cfbd_base_url}, "
            f"cfbd_api_key={'set' if self.cfbd_api_key else 'unset'}, "
            f"ncaa={self.ncaa_base_url}, dedupe_inflight={self.dedupe_inflight}, "
            f"host={self.host}, port={self.port})"
        )


config = Config()
