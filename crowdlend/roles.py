"""
roles.py - Capability substrate

Named roles granted to participants, with a delegation table stating which
role may grant (and revoke) which other role:

    ADMIN    grants ADMIN and SPONSOR
    SPONSOR  grants CHAMPION

The table is data, not a class hierarchy, so a deployment can pass its own.
"""

from __future__ import annotations
from typing import Dict, Mapping, Optional, Set

from .core import Role, AuthorizationError


DEFAULT_DELEGATION: Dict[Role, Role] = {
    Role.ADMIN: Role.ADMIN,
    Role.SPONSOR: Role.ADMIN,
    Role.CHAMPION: Role.SPONSOR,
}


class RoleRegistry:
    """
    In-memory implementation of the AuthorizationPort.

    Example:
        roles = RoleRegistry(admin="root")
        roles.grant("root", Role.SPONSOR, "acme")
        roles.grant("acme", Role.CHAMPION, "alice")
        roles.has_role(Role.CHAMPION, "alice")   # True
    """

    def __init__(self, admin: str, delegation: Optional[Mapping[Role, Role]] = None):
        if not admin or not admin.strip():
            raise ValueError("admin cannot be empty")
        self._members: Dict[Role, Set[str]] = {role: set() for role in Role}
        self._delegation: Dict[Role, Role] = dict(delegation or DEFAULT_DELEGATION)
        self._members[Role.ADMIN].add(admin)

    def admin_role_of(self, role: Role) -> Role:
        """Role whose holders may grant and revoke ``role``."""
        return self._delegation[role]

    def has_role(self, role: Role, participant: str) -> bool:
        return participant in self._members[role]

    def members(self, role: Role) -> Set[str]:
        return set(self._members[role])

    def grant(self, granter: str, role: Role, participant: str) -> None:
        """
        Grant ``role`` to ``participant``.

        Raises:
            AuthorizationError: If granter does not hold the delegating role
            ValueError: If participant is empty
        """
        if not participant or not participant.strip():
            raise ValueError("participant cannot be empty")
        self._require_delegate(granter, role)
        self._members[role].add(participant)

    def revoke(self, granter: str, role: Role, participant: str) -> None:
        self._require_delegate(granter, role)
        self._members[role].discard(participant)

    def _require_delegate(self, granter: str, role: Role) -> None:
        required = self.admin_role_of(role)
        if not self.has_role(required, granter):
            raise AuthorizationError(
                f"{granter} lacks {required.value} and cannot manage {role.value}"
            )
