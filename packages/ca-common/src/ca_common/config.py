"""
Environment-based configuration management for CareAlert.

Uses pydantic-settings to load configuration values from environment
variables and .env files. The relay, listener and dashboard services all
import their settings from this module.

All environment variables are prefixed with ``CA_`` to avoid collisions.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from ``CA_``-prefixed environment variables.

    Attributes:
        host: Bind address for the relay.
        port: Bind port for the relay.
        allowed_origins: Origins allowed for cross-origin HTTP access.
        ring_capacity: Maximum number of alerts kept in memory.
        init_replay: Number of recent alerts replayed to a new connection.
        snapshot_size: Number of recent alerts returned by ``GET /logs``.
        send_timeout_ms: Per-frame send deadline; slower connections are dropped.
        production: Production-mode flag; disables ``DELETE /logs``.
        admin_token: When set, re-enables ``DELETE /logs`` in production
            for requests carrying a matching ``X-Admin-Token`` header.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_json: Render log lines as JSON (``False`` = console renderer).
        relay_url: WebSocket URL clients connect to.
        reconnect_attempts: Reconnect attempts before giving up.
        reconnect_delay_ms: Fixed delay between reconnect attempts.
        language: Language hint passed to the capture source.
        capture_backend: Capture backend identifier for the listener.
    """

    model_config = SettingsConfigDict(
        env_prefix="CA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Relay ──
    host: str = Field(default="0.0.0.0", description="Relay bind address.")
    port: int = Field(default=4000, ge=1, le=65535, description="Relay bind port.")
    allowed_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Origins allowed for cross-origin access.",
    )

    # ── History ──
    ring_capacity: int = Field(default=100, ge=1, description="Alert history capacity.")
    init_replay: int = Field(
        default=10,
        ge=0,
        description="Alerts replayed to a newly connected client.",
    )
    snapshot_size: int = Field(default=50, ge=0, description="Alerts returned by GET /logs.")
    send_timeout_ms: int = Field(
        default=5000,
        ge=1,
        description="Per-frame send deadline before a connection is dropped.",
    )

    # ── Mode ──
    production: bool = Field(default=False, description="Production-mode flag.")
    admin_token: str = Field(default="", description="Token required to clear logs in production.")

    # ── Logging ──
    log_level: str = Field(default="INFO", description="Logging level.")
    log_json: bool = Field(default=True, description="Render logs as JSON.")

    # ── Clients ──
    relay_url: str = Field(
        default="ws://localhost:4000/ws",
        description="Relay WebSocket URL.",
    )
    reconnect_attempts: int = Field(default=5, ge=1, description="Reconnect attempt cap.")
    reconnect_delay_ms: int = Field(
        default=1000,
        ge=0,
        description="Delay between reconnect attempts in milliseconds.",
    )

    # ── Capture ──
    language: str = Field(default="th-TH", description="Capture language hint.")
    capture_backend: str = Field(default="stdin", description="Capture backend identifier.")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached application settings singleton.

    Returns:
        The global ``Settings`` instance.
    """
    return Settings()
