"""Request-scoped caller identity."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ...core.exceptions import AuthenticationError
from ...core.logging import set_tenant_id
from .jwt_service import read_access_token
from .schemas import AuthenticatedUser

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> AuthenticatedUser:
    """Resolve the caller from the bearer token.

    The identity provider is trusted; nothing is looked up in the database.
    The caller's tenant is bound to the logging context for the rest of the
    request.
    """
    if credentials is None:
        raise AuthenticationError()
    user = read_access_token(credentials.credentials)
    set_tenant_id(user.tenant_id)
    return user


CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
