"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All tunables in one dataclass. Values come from, highest priority first:

    1. Command-line flags        python -m hermes --port 8000
    2. Environment variables     HERMES_PORT=8000 python -m hermes
    3. The defaults below

``validate()`` runs when the server is constructed, so a bad setting fails
at startup rather than on the first request.

=============================================================================
"""

from dataclasses import dataclass
from typing import Optional
import os


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass
class ServerConfig:
    """Configuration for the feed server."""

    # Network
    host: str = "localhost"
    port: int = 3000
    backlog: int = 128
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0          # read timeout for a first request

    # HTTP
    keep_alive: bool = True
    keep_alive_timeout: float = 5.0          # idle time between requests
    max_request_size: int = 1024 * 1024      # posts are short

    # Threading
    min_workers: int = 4
    max_workers: int = 16
    queue_size: int = 100

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"                 # "text" or "json"

    # Application
    server_name: str = "Hermes/1.0"
    seed: bool = True                        # start with the launch posts

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Build a configuration from ``HERMES_*`` environment variables.

        =====================================================================
        HERMES_HOST        bind address        (default: localhost)
        HERMES_PORT        listen port         (default: 3000)
        HERMES_WORKERS     max worker threads  (default: 16)
        HERMES_TIMEOUT     read timeout, secs  (default: 30)
        HERMES_LOG_LEVEL   logging level       (default: INFO)
        HERMES_LOG_FORMAT  text | json         (default: text)
        HERMES_SEED        seed the feed       (default: true)
        =====================================================================

        Raises:
            ValueError: If a numeric or boolean variable cannot be parsed.
        """
        defaults = cls()
        max_workers = int(os.getenv("HERMES_WORKERS", str(defaults.max_workers)))
        return cls(
            host=os.getenv("HERMES_HOST", defaults.host),
            port=int(os.getenv("HERMES_PORT", str(defaults.port))),
            min_workers=min(defaults.min_workers, max_workers),
            max_workers=max_workers,
            timeout=float(os.getenv("HERMES_TIMEOUT", str(defaults.timeout))),
            log_level=os.getenv("HERMES_LOG_LEVEL", defaults.log_level).upper(),
            log_format=os.getenv("HERMES_LOG_FORMAT", defaults.log_format).lower(),
            seed=_parse_bool(os.getenv("HERMES_SEED"), defaults.seed),
        )

    def validate(self) -> None:
        """
        Raises:
            ValueError: On the first setting that is out of range.
        """
        # Port 0 asks the OS for any free port.
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")
