"""
API v1 Routes

Versioned API endpoints under /api/v1.
"""

from . import availability, follow_ups, health, lifecycle, payments, trials

__all__ = [
    "availability",
    "follow_ups",
    "health",
    "lifecycle",
    "payments",
    "trials",
]
