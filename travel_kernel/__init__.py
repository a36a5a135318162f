"""
Travel Kernel - approval routing for travel orders and seminar requests.

Provides:
- Deterministic stage pipelines derived from request facts
- A validated approve / reject / return state machine
- Optimistic-concurrency writes (at most one approval per stage)
- Post-commit notification events for the next approver
"""

__version__ = "0.1.0"
