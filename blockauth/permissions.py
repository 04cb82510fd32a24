"""Authentication and role gates for protected routes.

Two stages, applied per route:

1. ``authenticate``: bearer token from the Authorization header must verify and
   name a stored user, otherwise ``AuthError`` (401).
2. ``check_role``: the role claim must be in the route's allow-list, otherwise
   ``ForbiddenError`` (403).

Both are plain functions so the serverless adapter reuses them; the FastAPI
dependencies below attach the decoded claims to ``request.state.identity``.
"""
from typing import Iterable, NamedTuple, Optional

from fastapi import Depends, Header, Request

from . import models
from .auth import decode_access_token
from .errors import AuthError, ForbiddenError
from .stores import Store, get_store


class Identity(NamedTuple):
    user: models.User
    claims: dict

    @property
    def role(self) -> str:
        return self.claims.get("role")


def bearer_token(authorization: Optional[str]) -> str:
    parts = (authorization or "").split(None, 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthError("Authentication required")
    return parts[1].strip()


def authenticate(store: Store, authorization: Optional[str]) -> Identity:
    claims = decode_access_token(bearer_token(authorization))
    user = store.get_user(claims["sub"])
    if user is None:
        raise AuthError("Invalid token")
    return Identity(user=user, claims=claims)


def check_role(identity: Identity, allowed: Iterable[str]) -> Identity:
    if identity.role not in allowed:
        raise ForbiddenError("Access denied")
    return identity


def require_auth(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    store: Store = Depends(get_store),
) -> Identity:
    identity = authenticate(store, authorization)
    request.state.identity = identity
    return identity


def require_role(*roles: str):
    def dependency(identity: Identity = Depends(require_auth)) -> Identity:
        return check_role(identity, roles)

    return dependency
