from __future__ import annotations

from dataclasses import dataclass, field

from .enums import Capability, Role
from .exceptions import AuthorizationError, ValidationError

ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.ADMIN: frozenset(Capability),
    Role.HR_MANAGER: frozenset(
        {
            Capability.RECORD_ATTENDANCE,
            Capability.MANAGE_ATTENDANCE,
            Capability.REQUEST_LEAVE,
            Capability.DECIDE_LEAVE,
            Capability.COMPUTE_PAYROLL,
            Capability.APPROVE_PAYROLL,
            Capability.VIEW_REPORTS,
        }
    ),
    Role.ACCOUNTANT: frozenset(
        {
            Capability.RECORD_ATTENDANCE,
            Capability.REQUEST_LEAVE,
            Capability.COMPUTE_PAYROLL,
            Capability.PAY_PAYROLL,
            Capability.VIEW_REPORTS,
        }
    ),
    Role.STAFF: frozenset({Capability.RECORD_ATTENDANCE, Capability.REQUEST_LEAVE}),
}


@dataclass(frozen=True)
class Actor:
    """Authenticated caller, already authorized by the identity collaborator.

    The engine trusts this descriptor and only checks the capabilities it
    carries; it never looks up roles or permissions on its own.
    """

    actor_id: str
    role: Role
    capabilities: frozenset[Capability] = field(default_factory=frozenset)

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def require(self, capability: Capability) -> None:
        if capability not in self.capabilities:
            raise AuthorizationError(f"Actor {self.actor_id} is not allowed to {capability.value}")


def actor_for(actor_id: str, role: Role | str) -> Actor:
    """Build an Actor with the capabilities granted to its role."""
    actor_id = (actor_id or "").strip()
    if not actor_id:
        raise AuthorizationError("Missing actor identity")
    try:
        role = Role(role)
    except ValueError:
        raise ValidationError(f"Unknown role: {role}")
    return Actor(actor_id=actor_id, role=role, capabilities=ROLE_CAPABILITIES[role])
