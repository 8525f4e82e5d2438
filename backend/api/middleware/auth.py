"""
Bearer token authentication.

Access tokens are issued by the identity provider. They are resolved to a
user id through the provider's /userinfo endpoint (cached by the user
service), so no signing secret is needed here.
"""

from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from modules.users.interfaces import IUserService
from shared.exceptions import AuthenticationError
from shared.models import AuthenticatedUser

from ..dependencies import get_user_service

# Bearer token extractor
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    users: IUserService = Depends(get_user_service),
) -> AuthenticatedUser:
    """
    Dependency that requires authentication.

    Use this for endpoints that require a signed-in user.

    Usage:
        @router.get("/protected")
        async def protected_route(user: AuthenticatedUser = Depends(get_current_user)):
            return {"user_id": user.id}

    Raises:
        AuthenticationError: If the token is missing or not accepted
    """
    if credentials is None:
        raise AuthenticationError("Missing authorization header")

    user_id = await users.get_user_id_for_token(credentials.credentials)
    return AuthenticatedUser(id=user_id)


# Type alias for cleaner route definitions
RequireAuth = Depends(get_current_user)
