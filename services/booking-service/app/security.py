import json
from dataclasses import dataclass, field

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from . import config

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    user_id: str
    roles: list[str] = field(default_factory=list)
    chef_id: str | None = None


def _principal(sub, roles, chef_id=None) -> Principal:
    roles = [str(r).lower() for r in (roles or []) if r]
    if chef_id is None and "chef" in roles:
        # chef accounts are keyed by their catalog id
        chef_id = str(sub)
    return Principal(user_id=str(sub), roles=roles, chef_id=chef_id)


def _roles_header(raw: str | None) -> list:
    if not raw:
        return []
    try:
        roles = json.loads(raw)
    except ValueError:
        return [r.strip() for r in raw.split(",")]
    return roles if isinstance(roles, list) else []


def get_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    """
    Resolve the caller. Requests routed through the API gateway carry the
    already-verified X-User-Sub / X-User-Roles headers; direct callers must
    present a bearer token signed with JWT_SECRET.
    """
    sub = request.headers.get("X-User-Sub")
    if sub:
        return _principal(sub, _roles_header(request.headers.get("X-User-Roles")))

    token = None
    if creds and creds.scheme.lower() == "bearer":
        token = creds.credentials

    if not token or not config.JWT_SECRET:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )

    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    if not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has no subject",
        )
    return _principal(payload["sub"], payload.get("roles"), payload.get("chef_id"))
