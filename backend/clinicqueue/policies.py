"""Single role check for every scheduling route.

Callers are authenticated upstream and forward their role in the ``X-Role`` header.
"""

from typing import Optional

from fastapi import Header, HTTPException, status

from .domain import Role

STAFF = {Role.DOCTOR, Role.ASSISTANT}
EVERYONE = {Role.DOCTOR, Role.ASSISTANT, Role.ADMIN}

OPERATION_ROLES = {
    "read": EVERYONE,
    "register": STAFF,
    "arrive": STAFF,
    "cancel": STAFF,
    "update_status": STAFF,
    "complete": {Role.DOCTOR},
    "toggle_availability": {Role.DOCTOR},
    "reconcile": EVERYONE,
}


def parse_role(raw: Optional[str]) -> Role:
    if not raw:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing role")
    try:
        return Role(raw.strip().upper())
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown role")


def authorize(role: Role, operation: str) -> Role:
    if role not in OPERATION_ROLES[operation]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Role {role.value} may not {operation.replace('_', ' ')}",
        )
    return role


def allow(operation: str):
    def dependency(x_role: Optional[str] = Header(default=None, alias="X-Role")) -> Role:
        return authorize(parse_role(x_role), operation)

    return dependency
