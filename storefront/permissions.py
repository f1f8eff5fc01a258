"""
Permission evaluator.

Admins may act on any resource; everyone else only on resources they own.
Denials are raised as ``PermissionDeniedError`` so the caller's request is
aborted before any mutation and answered exactly once by the error handler.
"""

import logging
from typing import Callable

from fastapi import Depends

from storefront.errors import PermissionDeniedError
from storefront.security import Principal, get_current_user

logger = logging.getLogger("storefront.permissions")


def is_allowed(principal: Principal, resource_owner_id: str) -> bool:
    if principal.role == "admin":
        return True
    return principal.user_id == str(resource_owner_id)


def check_permission(principal: Principal, resource_owner_id: str) -> None:
    if not is_allowed(principal, resource_owner_id):
        logger.warning("Permission denied: user %s on resource owned by %s", principal.user_id, resource_owner_id)
        raise PermissionDeniedError("Not authorized to access this resource")


def require_owner(principal: Principal, resource_owner_id: str, action: str = "modify") -> None:
    """Ownership-only check: the role grants no bypass here."""
    if principal.user_id != str(resource_owner_id):
        logger.warning("Ownership check failed: user %s on resource owned by %s", principal.user_id, resource_owner_id)
        raise PermissionDeniedError(f"You are not allowed to {action} this resource")


def authorize_roles(*roles: str) -> Callable[..., Principal]:
    def _dependency(current_user: Principal = Depends(get_current_user)) -> Principal:
        if current_user.role not in roles:
            raise PermissionDeniedError("Not authorized to this route")
        return current_user

    return _dependency
