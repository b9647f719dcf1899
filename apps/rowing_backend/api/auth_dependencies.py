"""
Authentication dependencies for FastAPI routes.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from rowing_backend.services import auth_service

security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """
    Dependency to get the current authenticated athlete from the bearer token.

    Args:
        credentials: HTTP Bearer token credentials

    Returns:
        Dict with "athlete_id" and "name"

    Raises:
        HTTPException: If the token is invalid or has no athlete_id
    """
    token = credentials.credentials

    # Verify token
    payload = auth_service.verify_token(token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    athlete_id = payload.get("athlete_id")
    if athlete_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return {"athlete_id": athlete_id, "name": payload.get("name")}


async def require_user(user: dict = Depends(get_current_user)) -> dict:
    """Require any authenticated athlete."""
    return user
