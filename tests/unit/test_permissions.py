"""Tests for role and permission checks."""

import pytest

from planmoni_admin.auth.dependencies import CurrentAdmin
from planmoni_admin.auth.permissions import (
    MANAGE,
    VIEW,
    check_super_admin,
    fetch_user_roles,
    has_admin_role,
    has_any_permission,
    has_permission,
    is_dashboard_admin,
)
from tests.conftest import FakeSupabase

PERMS = [
    {"id": "p1", "name": "View users", "resource": "users", "action": "view"},
    {"id": "p2", "name": "Manage banners", "resource": "banners", "action": "manage"},
]


class TestHasPermission:
    def test_matching_resource_and_action(self) -> None:
        assert has_permission(PERMS, "users", VIEW)

    def test_wrong_action(self) -> None:
        assert not has_permission(PERMS, "users", MANAGE)

    def test_resource_only(self) -> None:
        assert has_permission(PERMS, "banners")

    def test_unknown_resource(self) -> None:
        assert not has_permission(PERMS, "kyc", VIEW)

    def test_any_of_several(self) -> None:
        assert has_any_permission(PERMS, [("kyc", VIEW), ("banners", MANAGE)])

    def test_none_of_several(self) -> None:
        assert not has_any_permission(PERMS, [("kyc", VIEW), ("users", MANAGE)])


class TestHasAdminRole:
    def test_default_dashboard_roles(self) -> None:
        assert has_admin_role([{"role_name": "Moderator", "is_active": True}])

    def test_inactive_role_ignored(self) -> None:
        assert not has_admin_role([{"role_name": "Admin", "is_active": False}])

    def test_unrelated_role(self) -> None:
        assert not has_admin_role([{"role_name": "Customer", "is_active": True}])

    def test_explicit_allow_list(self) -> None:
        roles = [{"role_name": "Admin", "is_active": True}]
        assert not has_admin_role(roles, allowed=("Super Admin",))


class TestCurrentAdmin:
    def test_super_admin_bypasses_checks(self) -> None:
        admin = CurrentAdmin(id="a", email=None, access_token="t", is_super_admin=True)
        assert admin.is_dashboard_admin
        assert admin.can("anything", MANAGE)

    def test_super_admin_role_name_alone_grants_nothing_extra(self) -> None:
        admin = CurrentAdmin(id="a", email=None, access_token="t", roles=[{"role_name": "Super Admin", "is_active": True}])
        assert not admin.is_super_admin
        assert not admin.can("users", MANAGE)

    def test_regular_admin_needs_permission(self) -> None:
        admin = CurrentAdmin(
            id="a",
            email=None,
            access_token="t",
            roles=[{"role_name": "Admin", "is_active": True}],
            permissions=PERMS,
        )
        assert not admin.is_super_admin
        assert admin.is_dashboard_admin
        assert admin.can("users", VIEW)
        assert not admin.can("users", MANAGE)

    def test_profile_flag_makes_dashboard_admin(self) -> None:
        admin = CurrentAdmin(id="a", email=None, access_token="t", is_admin_flag=True)
        assert admin.is_dashboard_admin
        assert not admin.can("users", VIEW)


class TestLookups:
    @pytest.mark.asyncio
    async def test_roles_empty_when_rpc_fails(self) -> None:
        assert await fetch_user_roles(FakeSupabase(), "u1") == []

    @pytest.mark.asyncio
    async def test_dashboard_admin_by_profile_flag(self) -> None:
        db = FakeSupabase()
        db.tables["profiles"] = [{"id": "u1", "is_admin": True}]
        assert await is_dashboard_admin(db, "u1")

    @pytest.mark.asyncio
    async def test_dashboard_admin_by_role(self) -> None:
        db = FakeSupabase()
        db.tables["profiles"] = [{"id": "u1", "is_admin": False}]
        db.rpc_results["get_user_roles"] = [{"role_name": "Admin", "is_active": True}]
        assert await is_dashboard_admin(db, "u1")

    @pytest.mark.asyncio
    async def test_regular_user_is_not_admin(self) -> None:
        db = FakeSupabase()
        db.tables["profiles"] = [{"id": "u1", "is_admin": False}]
        db.rpc_results["get_user_roles"] = []
        assert not await is_dashboard_admin(db, "u1")

    @pytest.mark.asyncio
    async def test_super_admin_check_runs_as_caller(self) -> None:
        db = FakeSupabase()
        db.rpc_results["is_super_admin"] = True
        assert await check_super_admin(db.as_user("caller-token"))
        assert db.user_rpcs == [("is_super_admin", "caller-token")]

    @pytest.mark.asyncio
    async def test_super_admin_check_false_when_rpc_fails(self) -> None:
        assert not await check_super_admin(FakeSupabase().as_user("t"))
