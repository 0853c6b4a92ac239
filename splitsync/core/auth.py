from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .settings import config_settings

# auto_error is off so that an unconfigured fake server stays open
bearer_scheme = HTTPBearer(auto_error=False)


def require_auth_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
):
    """
    Dependency function that requires a Bearer token listed in
    ``config_settings.TOKENS``.

    When no tokens are configured every request is accepted, which is how the
    fake server runs in local development.
    """
    if not config_settings.TOKENS:
        return None

    token = credentials.credentials if credentials else None
    if not token or token not in config_settings.TOKENS:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return token
