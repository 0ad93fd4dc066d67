"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - CarnetId, MemberId wrap str; never pass bare strings for ids in domain logic
    - All valid states encoded as Enums, no raw string matching
    - Enum values are the persisted/wire values (Spanish labels used by the club)

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

CarnetId = NewType("CarnetId", str)
MemberId = NewType("MemberId", str)


# ─── Enums ───────────────────────────────────────────────────────

class CarnetKind(str, Enum):
    """Individual carnets hold only the Holder; households hold 1-5 members."""
    INDIVIDUAL = "Individual"
    HOUSEHOLD = "Familiar"


class CarnetStatus(str, Enum):
    """One-way lifecycle: ACTIVE -> DEACTIVATED (baja). No reactivation."""
    ACTIVE = "Activo"
    DEACTIVATED = "Baja"


class MemberRole(str, Enum):
    """Member condition inside a carnet. Exactly one HOLDER per carnet."""
    HOLDER = "Titular"
    RELATIVE_1 = "Familiar 1"
    RELATIVE_2 = "Familiar 2"
    RELATIVE_3 = "Familiar 3"
    ADHERENT_RELATIVE = "Familiar Adherente"


class StatusFilter(str, Enum):
    """Status selector of the query engine (values match the UI selector)."""
    ACTIVE_ONLY = "activos"
    DEACTIVATED_ONLY = "bajas"
    ALL = "todos"


# Order in which non-holder roles are offered when a member is added
RELATIVE_ROLE_ORDER: tuple[MemberRole, ...] = (
    MemberRole.RELATIVE_1,
    MemberRole.RELATIVE_2,
    MemberRole.RELATIVE_3,
    MemberRole.ADHERENT_RELATIVE,
)

MAX_HOUSEHOLD_MEMBERS: int = 5
