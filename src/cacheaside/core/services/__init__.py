"""Domain services for cacheaside."""

from cacheaside.core.services.coalescing_cache import (
    CoalescingCache,
    Loader,
    SideEffect,
)
from cacheaside.core.services.inflight import InFlightTracker

__all__ = [
    "CoalescingCache",
    "InFlightTracker",
    "Loader",
    "SideEffect",
]
