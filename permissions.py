"""
permissions.py

Role-based access control as plain data:
- Role enum
- ROLE_PERMISSIONS: role -> frozenset of "resource:action" strings
- ROLE_METADATA / PERMISSION_CATEGORIES for the admin UI

Checks go through role_has_permission(), a pure function with no DB access.
"""

from enum import Enum
from typing import Dict, FrozenSet, List, Optional


class Role(str, Enum):
    SUPER = "super"
    ADMIN = "admin"
    MODERATOR = "moderator"
    USER = "user"


# =====================================================================
# SECTION: STATEMENTS
# Every resource and the actions it supports.
# =====================================================================

STATEMENTS: Dict[str, List[str]] = {
    "user": [
        "create",
        "list",
        "view",
        "update",
        "delete",
        "ban",
        "unban",
        "set-role",
        "set-password",
        "impersonate",
    ],
    "session": ["list", "revoke", "revoke-all"],
    "role": ["create", "list", "view", "update", "delete"],
    "permission": ["list", "view"],
    "cms": ["create", "list", "view", "update", "delete", "publish"],
    "analytics": ["view", "export"],
    "system": ["dashboard", "settings", "logs"],
    "feedback": ["list", "view", "update", "delete"],
    "notification": ["send", "list"],
    "email": ["send"],
}


def _grant(statements: Dict[str, List[str]]) -> FrozenSet[str]:
    return frozenset(f"{resource}:{action}" for resource, actions in statements.items() for action in actions)


_ALL = _grant(STATEMENTS)


# =====================================================================
# SECTION: ROLE TABLE
# =====================================================================

ROLE_PERMISSIONS: Dict[Role, FrozenSet[str]] = {
    # Super admin holds every permission, cannot be modified or assigned
    Role.SUPER: _ALL,
    # Admin: everything except system settings and the sensitive user actions
    Role.ADMIN: _grant({
        "user": ["create", "list", "view", "update", "delete", "ban", "unban", "set-role"],
        "session": ["list", "revoke", "revoke-all"],
        "role": ["list", "view"],
        "permission": ["list", "view"],
        "cms": ["create", "list", "view", "update", "delete", "publish"],
        "analytics": ["view", "export"],
        "system": ["dashboard", "logs"],
        "feedback": ["list", "view", "update", "delete"],
        "notification": ["send", "list"],
        "email": ["send"],
    }),
    Role.MODERATOR: _grant({
        "user": ["list", "view", "ban", "unban"],
        "session": ["list"],
        "cms": ["list", "view", "update"],
        "analytics": ["view"],
        "system": ["dashboard"],
        "feedback": ["list", "view", "update"],
    }),
    Role.USER: _grant({
        "system": ["dashboard"],
    }),
}


ROLE_METADATA: Dict[Role, Dict[str, object]] = {
    Role.SUPER: {
        "name": "Super Admin",
        "description": "Full access to all features including system settings",
        "color": "#DC2626",
        "isSystem": True,
    },
    Role.ADMIN: {
        "name": "Administrator",
        "description": "Full access to user and content management",
        "color": "#F97316",
        "isSystem": True,
    },
    Role.MODERATOR: {
        "name": "Moderator",
        "description": "Content moderation and user management",
        "color": "#8B5CF6",
        "isSystem": True,
    },
    Role.USER: {
        "name": "User",
        "description": "Basic access to dashboard",
        "color": "#3B82F6",
        "isSystem": True,
    },
}


PERMISSION_CATEGORIES: Dict[str, Dict[str, object]] = {
    "user_management": {
        "name": "User Management",
        "description": "Manage users, sessions, and roles",
        "resources": ["user", "session"],
    },
    "role_management": {
        "name": "Role & Permission Management",
        "description": "Manage roles and permissions",
        "resources": ["role", "permission"],
    },
    "content_management": {
        "name": "Content Management",
        "description": "Manage CMS pages and content",
        "resources": ["cms"],
    },
    "analytics": {
        "name": "Analytics",
        "description": "View and export analytics data",
        "resources": ["analytics"],
    },
    "system": {
        "name": "System",
        "description": "System administration",
        "resources": ["system"],
    },
    "feedback": {
        "name": "Feedback",
        "description": "Manage user feedback",
        "resources": ["feedback"],
    },
    "messaging": {
        "name": "Messaging",
        "description": "Send notifications and emails to users",
        "resources": ["notification", "email"],
    },
}


# =====================================================================
# SECTION: CHECKS
# =====================================================================

def parse_role(value: Optional[str]) -> Optional[Role]:
    if not value:
        return None
    try:
        return Role(str(value).strip().lower())
    except ValueError:
        return None


def role_has_permission(role, resource: str, action: str) -> bool:
    """True when `role` (Role or its string value) may perform resource:action."""
    if not isinstance(role, Role):
        role = parse_role(role)
    if role is None:
        return False
    return f"{resource}:{action}" in ROLE_PERMISSIONS.get(role, frozenset())


def permissions_for(role: Role) -> List[str]:
    return sorted(ROLE_PERMISSIONS.get(role, frozenset()))


def all_permissions() -> List[Dict[str, str]]:
    """Flat list of every permission with its UI group."""
    group_of = {}
    for group_key, category in PERMISSION_CATEGORIES.items():
        for resource in category["resources"]:
            group_of[resource] = group_key

    out = []
    for resource, actions in STATEMENTS.items():
        for action in actions:
            out.append({
                "resource": resource,
                "action": action,
                "displayName": f"{action.replace('-', ' ').title()} {resource.title()}",
                "group": group_of.get(resource, "other"),
            })
    return out
