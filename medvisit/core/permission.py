from pydantic import BaseModel, ConfigDict

from medvisit.core.errors import AuthorizationError
from medvisit.models.user import Role


class Principal(BaseModel):
    """Authenticated caller as seen by the services."""

    model_config = ConfigDict(frozen=True)

    subject_id: int
    role: Role
    doctor_id: int | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def owns_doctor(self, doctor_id: int) -> bool:
        return self.role == Role.DOCTOR and self.doctor_id == doctor_id


def ensure_role(principal: Principal, *allowed: Role) -> None:
    if principal.role not in allowed:
        raise AuthorizationError("Role not allowed for this operation", role=principal.role)


def own_doctor_id(principal: Principal) -> int:
    """Doctor profile id of a DOCTOR principal."""
    ensure_role(principal, Role.DOCTOR)
    if principal.doctor_id is None:
        raise AuthorizationError("Doctor account has no doctor profile")
    return principal.doctor_id
