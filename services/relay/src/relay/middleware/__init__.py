"""HTTP middleware for the CareAlert relay."""
