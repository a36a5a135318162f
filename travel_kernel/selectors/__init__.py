"""Selectors for the travel kernel (read side)."""

from travel_kernel.selectors.request_selector import RequestSelector

__all__ = [
    "RequestSelector",
]
