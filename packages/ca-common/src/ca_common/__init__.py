"""
ca-common: Shared library for CareAlert.

Provides common data models, configuration management, structured logging,
the error taxonomy, timers and the relay connection manager used by the
relay, listener and dashboard services.
"""

from ca_common.config import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
