"""Push-permission gate.

The permission is queried on every mutating invocation: the event that
triggered a run says nothing about what its sender may do right now.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from .errors import TransportError
from .models import AuthorizationDecision

__all__ = ["AuthorizationGate", "PermissionSource", "WRITE_PERMISSIONS"]

logger = logging.getLogger(__name__)

WRITE_PERMISSIONS = frozenset({"admin", "maintain", "write"})


class PermissionSource(Protocol):
    def get_permission(self, repository: str, username: str) -> dict[str, Any]: ...


class AuthorizationGate:
    """Decide whether an identity may push to a repository. Fails closed."""

    def __init__(self, source: PermissionSource) -> None:
        self.source = source

    def authorize(self, identity: str, repository: str) -> AuthorizationDecision:
        try:
            payload = self.source.get_permission(repository, identity)
        except TransportError as exc:
            logger.warning("Permission query for %s on %s failed: %s", identity, repository, exc)
            return AuthorizationDecision(identity, repository, can_push=False, reason=str(exc))

        try:
            can_push = _can_push(payload)
        except (TypeError, ValueError) as exc:
            logger.warning("Unparsable permission payload for %s: %s", identity, exc)
            return AuthorizationDecision(identity, repository, can_push=False, reason=f"unparsable response: {exc}")

        logger.info("%s %s push to %s", identity, "may" if can_push else "may not", repository)
        reason = None if can_push else f"permission is {payload.get('permission', 'unknown')!r}"
        return AuthorizationDecision(identity, repository, can_push=can_push, reason=reason)


def _can_push(payload: Any) -> bool:
    if not isinstance(payload, dict):
        raise TypeError("permission payload is not an object")

    user = payload.get("user")
    permissions = user.get("permissions") if isinstance(user, dict) else None
    if isinstance(permissions, dict) and "push" in permissions:
        push = permissions["push"]
        if not isinstance(push, bool):
            raise ValueError(f"push flag is {push!r}, expected a boolean")
        return push

    permission = payload.get("permission")
    if not isinstance(permission, str):
        raise ValueError("permission field missing")
    return permission.strip().lower() in WRITE_PERMISSIONS
