"""Messaging utilities for CareAlert (relay connection management)."""

from ca_common.messaging.connection import ConnectionManager

__all__ = ["ConnectionManager"]
