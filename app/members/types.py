from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class MemberRole(str, Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    DIRECTOR = "DIRECTOR"
    SECRETARY = "SECRETARY"
    TREASURER = "TREASURER"
    COUNSELOR = "COUNSELOR"
    INSTRUCTOR = "INSTRUCTOR"
    PATHFINDER = "PATHFINDER"
    PARENT = "PARENT"
    REGIONAL = "REGIONAL"
    MASTER = "MASTER"


@dataclass(slots=True)
class MemberDraft:
    name: str
    email: str
    role: str = MemberRole.PATHFINDER.value
    club_id: UUID | None = None
    is_active: bool = True
