"""
CORS middleware configuration for the CareAlert relay.

Only the configured origins may call the HTTP inspection endpoints from a
browser; requests without an ``Origin`` header are unaffected.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware


def add_cors(app: FastAPI, allowed_origins: list[str]) -> None:
    """Attach CORS middleware restricted to *allowed_origins*."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )
