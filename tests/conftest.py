"""Shared pytest fixtures for integration tests.

Integration tests run the relay app in-process through ``TestClient`` and
connect real listener and dashboard components to it.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from ca_common.config import Settings
from relay.main import create_app


@pytest.fixture()
def relay_settings() -> Settings:
    """Development-mode relay settings independent of the host environment."""
    env = {k: v for k, v in os.environ.items() if not k.startswith("CA_")}
    with patch.dict(os.environ, env, clear=True):
        return Settings(_env_file=None, log_json=False)


@pytest.fixture()
def relay(relay_settings: Settings) -> Iterator[TestClient]:
    with TestClient(create_app(relay_settings)) as client:
        yield client
