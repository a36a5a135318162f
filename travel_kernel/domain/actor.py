"""
Actor role claims (``travel_kernel.domain.actor``).

Pure value object describing who is acting.  Callers resolve the user's
profile flags (head, HR, VP, ...) before calling the engine; the engine
never consults session state or looks users up.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class ActorRoleClaims:
    """Pre-resolved role flags for the acting user.

    ``department_id`` is the department the user heads (or belongs to);
    ``email`` is matched against the comptroller allow-list.
    """

    user_id: UUID
    is_head: bool = False
    is_admin: bool = False
    is_comptroller: bool = False
    is_hr: bool = False
    is_vp: bool = False
    is_president: bool = False
    is_exec: bool = False
    department_id: UUID | None = None
    email: str | None = None
