"""routers/roles.py - Read-only view of the static role and permission table."""

from fastapi import APIRouter, Depends, HTTPException, Query

from auth import get_current_user, require_permission
from models import User
from permissions import (
    PERMISSION_CATEGORIES,
    ROLE_METADATA,
    Role,
    all_permissions,
    parse_role,
    permissions_for,
    role_has_permission,
)

router = APIRouter(prefix="/admin/roles")


def role_out(role: Role) -> dict:
    meta = ROLE_METADATA[role]
    perms = permissions_for(role)
    return {
        "id": role.value,
        "name": role.value,
        "displayName": meta["name"],
        "description": meta["description"],
        "color": meta["color"],
        "isSystem": meta["isSystem"],
        "permissions": perms,
        "permissionCount": len(perms),
    }


@router.get("")
def list_roles(user: User = Depends(require_permission("role", "list"))):
    return {"roles": [role_out(r) for r in Role]}


# Literal paths before /{role_name}
@router.get("/permissions")
def list_permissions(user: User = Depends(require_permission("permission", "list"))):
    return {"permissions": all_permissions(), "categories": PERMISSION_CATEGORIES}


@router.get("/check")
def check_permission(
    role: str = Query(...),
    resource: str = Query(...),
    action: str = Query(...),
    user: User = Depends(require_permission("permission", "view")),
):
    if parse_role(role) is None:
        raise HTTPException(status_code=404, detail="Role not found")
    return {"role": role, "resource": resource, "action": action, "allowed": role_has_permission(role, resource, action)}


@router.get("/me/permissions")
def my_permissions(user: User = Depends(get_current_user)):
    role = parse_role(user.role) or Role.USER
    return {
        "userId": user.id,
        "role": role.value,
        "roleDisplayName": ROLE_METADATA[role]["name"],
        "permissions": permissions_for(role),
    }


@router.get("/{role_name}")
def get_role(role_name: str, user: User = Depends(require_permission("role", "view"))):
    role = parse_role(role_name)
    if role is None:
        raise HTTPException(status_code=404, detail="Role not found")
    return role_out(role)
