"""Capability gating for salary operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from academy_payroll.errors import PermissionDeniedError

logger = logging.getLogger(__name__)


class Capability(str, Enum):
    VIEW = "view"
    VIEW_SALARIES = "view_salaries"
    CALCULATE = "calculate"
    EDIT = "edit"
    APPROVE = "approve"
    PAY = "pay"
    REJECT = "reject"
    MANAGE_RATES = "manage_rates"


class Role(str, Enum):
    ADMIN = "ADMIN"
    FINANCIST = "FINANCIST"
    TEACHER = "TEACHER"


ROLE_CAPABILITIES: dict[str, frozenset[Capability]] = {
    Role.ADMIN: frozenset(Capability),
    Role.FINANCIST: frozenset(Capability),
    Role.TEACHER: frozenset({Capability.VIEW}),
}


@dataclass(frozen=True)
class Actor:
    """Identity and capabilities passed into every salary operation."""

    actor_id: UUID | None
    roles: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def with_roles(cls, actor_id: UUID | None, *roles: str) -> Actor:
        return cls(actor_id=actor_id, roles=frozenset(r.upper() for r in roles))

    @property
    def capabilities(self) -> frozenset[Capability]:
        caps: set[Capability] = set()
        for role in self.roles:
            caps |= ROLE_CAPABILITIES.get(role, frozenset())
        return frozenset(caps)

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def require(self, capability: Capability) -> None:
        """Raise PermissionDeniedError unless the actor holds the capability."""
        if not self.can(capability):
            logger.warning(
                "Permission denied: actor=%s roles=%s capability=%s",
                self.actor_id,
                sorted(self.roles),
                capability.value,
            )
            raise PermissionDeniedError(self.actor_id, capability.value)
