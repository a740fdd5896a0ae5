"""Configuration for the portal search MCP server."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass
class SearchConfig:
    """Configuration for the in-memory search pipeline."""
    debounce_ms: int = 300  # Quiet period before a search re-runs
    preview_length: int = 150  # Chars of article body used when no excerpt
    result_limit: int = 20  # Default cap on results returned by tools

    @classmethod
    def from_env(cls) -> "SearchConfig":
        """Create config from environment variables."""
        return cls(
            debounce_ms=int(os.environ.get("PORTAL_SEARCH_DEBOUNCE_MS", "300")),
            preview_length=int(os.environ.get("PORTAL_PREVIEW_LENGTH", "150")),
            result_limit=int(os.environ.get("PORTAL_SEARCH_LIMIT", "20")),
        )


@dataclass
class ReconnectConfig:
    """Exponential backoff policy for the notifications channel."""
    initial_delay: float = 1.0  # Seconds before the first retry
    factor: float = 2.0
    max_delay: float = 30.0
    max_attempts: int = 5

    @classmethod
    def from_env(cls) -> "ReconnectConfig":
        """Create config from environment variables."""
        return cls(
            initial_delay=float(os.environ.get("PORTAL_RECONNECT_INITIAL", "1.0")),
            factor=float(os.environ.get("PORTAL_RECONNECT_FACTOR", "2.0")),
            max_delay=float(os.environ.get("PORTAL_RECONNECT_MAX_DELAY", "30.0")),
            max_attempts=int(os.environ.get("PORTAL_RECONNECT_ATTEMPTS", "5")),
        )

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based)."""
        delay = self.initial_delay * (self.factor ** (attempt - 1))
        return min(delay, self.max_delay)


@dataclass
class Config:
    """Main configuration for the portal search MCP server."""
    search: SearchConfig = field(default_factory=SearchConfig.from_env)
    reconnect: ReconnectConfig = field(default_factory=ReconnectConfig.from_env)
    api_base_url: str = "http://localhost:5000"
    request_timeout: float = 30.0  # Seconds
    state_db_path: Optional[Path] = None  # None = use default
    notifications_url: Optional[str] = None  # None = channel disabled

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment variables."""
        db_path_str = os.environ.get("PORTAL_STATE_DB")
        db_path = Path(db_path_str) if db_path_str else None

        return cls(
            search=SearchConfig.from_env(),
            reconnect=ReconnectConfig.from_env(),
            api_base_url=os.environ.get("PORTAL_API_URL", "http://localhost:5000").rstrip("/"),
            request_timeout=float(os.environ.get("PORTAL_TIMEOUT", "30.0")),
            state_db_path=db_path,
            notifications_url=os.environ.get("PORTAL_NOTIFICATIONS_URL") or None,
        )


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global config instance.

    Returns:
        Config loaded from environment
    """
    global _config

    if _config is None:
        _config = Config.from_env()

    return _config
