"""CareAlert caregiver dashboard: a headless observer of the relay feed."""
