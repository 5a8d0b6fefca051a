"""
Authorization rules, one per endpoint.

Role checks run as a dependency before the handler (``require``). Ownership
checks need the resource owner, so handlers call ``check_owner`` once the
row is loaded.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends

from errors import Forbidden, Unauthenticated
from security import load_auth_user

NO_OWNERSHIP = "none"
OWNER = "owner"
OWNER_OR_ADMIN = "owner_or_admin"


@dataclass(frozen=True)
class Rule:
    authenticated: bool = True
    admin_only: bool = False
    ownership: str = NO_OWNERSHIP
    message: str = "Forbidden"


POLICIES = {
    "address:list": Rule(),
    "address:create": Rule(),
    "product:create": Rule(admin_only=True, message="Unauthorized access, only admins can create products"),
    "product:update": Rule(admin_only=True, message="Unauthorized access, only admins can update products"),
    "product:patch": Rule(admin_only=True, message="Unauthorized access, only admins can patch products"),
    "product:delete": Rule(admin_only=True, message="Unauthorized access, only admins can delete products"),
    "order:create": Rule(),
    "order:list": Rule(ownership=OWNER_OR_ADMIN, message="Unauthorized, you can only view your own orders"),
    "order:cancel": Rule(ownership=OWNER, message="Unauthorized, you can only cancel your own orders"),
    "order:update_status": Rule(admin_only=True, message="Unauthorized, only admins can update order status"),
}


def authorize(user, rule: Rule):
    if rule.authenticated and user is None:
        raise Unauthenticated()
    if rule.admin_only and not user.is_admin:
        raise Forbidden(rule.message)
    return user


def check_owner(user, rule: Rule, owner_id: Optional[int]) -> None:
    if rule.ownership == NO_OWNERSHIP:
        return
    if rule.ownership == OWNER_OR_ADMIN and user.is_admin:
        return
    if owner_id != user.id:
        raise Forbidden(rule.message)


def require(name: str):
    """Dependency returning the caller once the named rule's role checks pass."""
    rule = POLICIES[name]

    def dependency(user=Depends(load_auth_user)):
        return authorize(user, rule)

    dependency.__name__ = f"require_{name.replace(':', '_')}"
    return dependency
