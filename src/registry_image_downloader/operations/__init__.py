"""Image download orchestration."""
