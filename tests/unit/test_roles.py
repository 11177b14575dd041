"""
Unit tests for the RoleRegistry capability substrate.
"""

import pytest

from crowdlend import RoleRegistry, Role, AuthorizationError, AuthorizationPort


@pytest.fixture
def registry():
    return RoleRegistry(admin="root")


class TestDelegation:

    def test_admin_holds_admin(self, registry):
        assert registry.has_role(Role.ADMIN, "root")
        assert registry.members(Role.ADMIN) == {"root"}

    def test_admin_grants_sponsor(self, registry):
        registry.grant("root", Role.SPONSOR, "acme")
        assert registry.has_role(Role.SPONSOR, "acme")

    def test_sponsor_grants_champion(self, registry):
        registry.grant("root", Role.SPONSOR, "acme")
        registry.grant("acme", Role.CHAMPION, "alice")
        assert registry.has_role(Role.CHAMPION, "alice")

    def test_admin_cannot_grant_champion_directly(self, registry):
        with pytest.raises(AuthorizationError):
            registry.grant("root", Role.CHAMPION, "alice")

    def test_outsider_cannot_grant(self, registry):
        with pytest.raises(AuthorizationError):
            registry.grant("mallory", Role.SPONSOR, "mallory")
        assert not registry.has_role(Role.SPONSOR, "mallory")

    def test_revoke(self, registry):
        registry.grant("root", Role.SPONSOR, "acme")
        registry.revoke("root", Role.SPONSOR, "acme")
        assert not registry.has_role(Role.SPONSOR, "acme")

    def test_revoke_requires_delegate(self, registry):
        registry.grant("root", Role.SPONSOR, "acme")
        with pytest.raises(AuthorizationError):
            registry.revoke("acme", Role.SPONSOR, "acme")

    def test_admin_role_of(self, registry):
        assert registry.admin_role_of(Role.CHAMPION) == Role.SPONSOR
        assert registry.admin_role_of(Role.SPONSOR) == Role.ADMIN

    def test_custom_delegation(self):
        registry = RoleRegistry("root", delegation={
            Role.ADMIN: Role.ADMIN, Role.SPONSOR: Role.ADMIN, Role.CHAMPION: Role.ADMIN,
        })
        registry.grant("root", Role.CHAMPION, "alice")
        assert registry.has_role(Role.CHAMPION, "alice")


class TestValidation:

    def test_empty_admin_rejected(self):
        with pytest.raises(ValueError):
            RoleRegistry(admin="")

    def test_empty_participant_rejected(self, registry):
        with pytest.raises(ValueError):
            registry.grant("root", Role.SPONSOR, " ")

    def test_satisfies_port(self, registry):
        assert isinstance(registry, AuthorizationPort)
