"""
Unit tests for the permission evaluator.
"""

import pytest

from storefront.errors import PermissionDeniedError
from storefront.permissions import authorize_roles, check_permission, is_allowed, require_owner
from storefront.security import Principal

OWNER = "64b7f0c2a1b2c3d4e5f60718"
OTHER = "64b7f0c2a1b2c3d4e5f60719"


def principal(user_id, role="user"):
    return Principal(user_id=user_id, name="Someone", role=role)


class TestCheckPermission:

    @pytest.mark.parametrize("user_id,role,owner,expected", [
        (OWNER, "user", OWNER, True),
        (OTHER, "user", OWNER, False),
        (OTHER, "admin", OWNER, True),
        (OWNER, "admin", OWNER, True),
    ])
    def test_truth_table(self, user_id, role, owner, expected):
        p = principal(user_id, role)
        assert is_allowed(p, owner) is expected
        if expected:
            assert check_permission(p, owner) is None
        else:
            with pytest.raises(PermissionDeniedError):
                check_permission(p, owner)

    def test_owner_id_may_be_non_string(self):
        from bson import ObjectId
        assert is_allowed(principal(OWNER), ObjectId(OWNER))


class TestRequireOwner:

    def test_owner_passes(self):
        require_owner(principal(OWNER), OWNER)

    def test_admin_gets_no_bypass(self):
        with pytest.raises(PermissionDeniedError) as exc:
            require_owner(principal(OTHER, "admin"), OWNER, "update")
        assert "update" in exc.value.message


class TestAuthorizeRoles:

    def test_listed_role_returns_principal(self):
        p = principal(OWNER, "admin")
        assert authorize_roles("admin")(current_user=p) is p

    def test_unlisted_role_is_denied(self):
        with pytest.raises(PermissionDeniedError):
            authorize_roles("admin")(current_user=principal(OWNER))
