"""FastAPI dependencies for operator auth and organization resolution."""

from typing import Annotated, Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from taller_inbox.core.auth import ADMIN_ROLE, decode_access_token
from taller_inbox.core.tenant_context import set_organization_context

security = HTTPBearer()


async def get_current_claims(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> dict[str, Any]:
    """Get verified claims from the bearer token.

    Raises:
        HTTPException: If the token is invalid or expired
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload


async def require_organization(
    claims: Annotated[dict[str, Any], Depends(get_current_claims)],
) -> int:
    """Get the caller's organization id from the ``org`` claim.

    Also binds it to the request's log context.
    """
    try:
        organization_id = int(claims.get("org"))
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Token is not bound to an organization",
        )
    set_organization_context(organization_id)
    return organization_id


async def require_admin(
    claims: Annotated[dict[str, Any], Depends(get_current_claims)],
) -> dict[str, Any]:
    """Require the ``admin`` role.

    Raises:
        HTTPException: If the caller is not an admin
    """
    if claims.get("role") != ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return claims
