"""HTTP and WebSocket routers for the CareAlert relay."""
