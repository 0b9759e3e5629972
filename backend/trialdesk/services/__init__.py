"""Service layer for the trial booking engine."""
