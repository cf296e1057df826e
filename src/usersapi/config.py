"""
=============================================================================
SERVICE CONFIGURATION
=============================================================================

Every tunable of the user service lives in one dataclass. Values come from
three places, later ones winning:

    1. Defaults below        - fine for local development
    2. Environment variables - ServerConfig.from_env()
    3. Command line flags    - applied by __main__ on top of from_env()

Configuration is validated once at startup (HTTPServer.__init__) so a bad
port or worker count fails immediately instead of on the first request.

=============================================================================
"""

import os
from dataclasses import dataclass


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the user service.

    Development:
        ServerConfig(database=":memory:", log_level="DEBUG")

    Production:
        ServerConfig(host="0.0.0.0", port=80, database="/var/lib/users.db",
                     max_workers=32)
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    port: int = 8080

    backlog: int = 128
    """Pending connections the kernel queues before refusing new ones."""

    buffer_size: int = 8192
    """Bytes read per recv() call."""

    timeout: float = 30.0
    """Seconds to wait for the first request on a new connection."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    """Idle seconds before a kept-alive connection is closed."""

    max_request_size: int = 1024 * 1024  # 1 MB; user payloads are tiny

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16
    queue_size: int = 100
    """Connections waiting for a worker before the server answers 503."""

    # ─────────────────────────────────────────────────────────────────────
    # STORAGE
    # ─────────────────────────────────────────────────────────────────────

    database: str = "users.db"
    """SQLite file path; ":memory:" keeps everything in process."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_format: str = "text"
    """Access log format: "text" (Apache style) or "json"."""

    server_name: str = "usersapi/1.0"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Build a configuration from environment variables.

            USERSAPI_HOST        bind address           (127.0.0.1)
            USERSAPI_PORT        port                   (8080)
            USERSAPI_WORKERS     max worker threads     (16)
            USERSAPI_TIMEOUT     request timeout, secs  (30)
            USERSAPI_DATABASE    SQLite path            (users.db)
            USERSAPI_LOG_LEVEL   logging level          (INFO)
            USERSAPI_LOG_FORMAT  text or json           (text)

        Raises:
            ValueError: If a numeric variable does not parse.
        """
        max_workers = int(os.getenv("USERSAPI_WORKERS", "16"))
        return cls(
            host=os.getenv("USERSAPI_HOST", "127.0.0.1"),
            port=int(os.getenv("USERSAPI_PORT", "8080")),
            min_workers=min(cls.min_workers, max(max_workers, 1)),
            max_workers=max_workers,
            timeout=float(os.getenv("USERSAPI_TIMEOUT", "30")),
            database=os.getenv("USERSAPI_DATABASE", "users.db"),
            log_level=os.getenv("USERSAPI_LOG_LEVEL", "INFO"),
            log_format=os.getenv("USERSAPI_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Fail fast on impossible settings.

        Raises:
            ValueError: Describing the first invalid field found.
        """
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 1-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if not self.database:
            raise ValueError("database must not be empty")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Invalid log_format: {self.log_format}. Use 'text' or 'json'.")
