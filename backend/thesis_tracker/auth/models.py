"""Actor context and token schemas."""
from typing import Optional

from pydantic import BaseModel, ConfigDict

from ..exceptions import Unauthorized
from ..models.enums import UserRole

STAFF_ROLES = frozenset({
    UserRole.supervisor,
    UserRole.evaluation_committee,
    UserRole.fyp_committee,
    UserRole.admin,
})
REVIEWER_ROLES = frozenset({UserRole.supervisor, UserRole.evaluation_committee, UserRole.admin})
GRADER_ROLES = frozenset({UserRole.evaluation_committee, UserRole.admin})
DEADLINE_ROLES = frozenset({UserRole.fyp_committee, UserRole.admin})
REPORT_ROLES = GRADER_ROLES | DEADLINE_ROLES
SWEEP_ROLES = frozenset({
    UserRole.evaluation_committee,
    UserRole.fyp_committee,
    UserRole.admin,
    UserRole.system,
})


class ActorContext(BaseModel):
    """Server-verified identity of whoever is calling the engine."""
    actor_id: int
    role: UserRole

    model_config = ConfigDict(frozen=True)

    @classmethod
    def system(cls) -> "ActorContext":
        return cls(actor_id=0, role=UserRole.system)

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    def require(self, allowed, action: str) -> None:
        """Raise ``Unauthorized`` unless this actor's role is in ``allowed``."""
        if self.role not in allowed:
            raise Unauthorized(f"Role '{self.role.value}' may not {action}")

    def require_self_or_staff(self, student_id: int, action: str) -> None:
        if self.is_staff:
            return
        if self.role == UserRole.student and self.actor_id == student_id:
            return
        raise Unauthorized(f"Actor {self.actor_id} may not {action} for student {student_id}")


class TokenData(BaseModel):
    actor_id: Optional[int] = None
    role: Optional[str] = None
