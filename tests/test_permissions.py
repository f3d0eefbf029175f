import pytest

from permissions import ROLE_PERMISSIONS, STATEMENTS, Role, all_permissions, parse_role, role_has_permission


@pytest.mark.parametrize(
    "role,resource,action,expected",
    [
        ("super", "system", "settings", True),
        ("admin", "system", "settings", False),
        ("admin", "analytics", "export", True),
        ("moderator", "analytics", "view", True),
        ("moderator", "analytics", "export", False),
        ("moderator", "cms", "publish", False),
        ("user", "system", "dashboard", True),
        ("user", "analytics", "view", False),
        ("ghost", "analytics", "view", False),
        (None, "analytics", "view", False),
    ],
)
def test_role_has_permission(role, resource, action, expected):
    assert role_has_permission(role, resource, action) is expected


def test_role_strings_are_normalised():
    assert parse_role(" Admin ") is Role.ADMIN
    assert role_has_permission(Role.ADMIN, "cms", "publish")


def test_super_holds_every_statement():
    for resource, actions in STATEMENTS.items():
        for action in actions:
            assert role_has_permission("super", resource, action)


def test_lower_roles_are_subsets():
    assert ROLE_PERMISSIONS[Role.MODERATOR] <= ROLE_PERMISSIONS[Role.SUPER]
    assert ROLE_PERMISSIONS[Role.ADMIN] <= ROLE_PERMISSIONS[Role.SUPER]


def test_all_permissions_groups():
    by_key = {(p["resource"], p["action"]): p for p in all_permissions()}
    assert by_key[("user", "set-role")]["displayName"] == "Set Role User"
    assert by_key[("email", "send")]["group"] == "messaging"
    assert len(by_key) == sum(len(a) for a in STATEMENTS.values())
