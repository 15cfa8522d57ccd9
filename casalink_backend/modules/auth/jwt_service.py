"""Bearer tokens from the identity provider.

The backend only verifies these; ``create_access_token`` mints them for
local development and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

import jwt

from ...config import settings
from ...core.exceptions import AuthenticationError
from .models import RoleSlug
from .schemas import AuthenticatedUser

DEV_TOKEN_LIFETIME = timedelta(minutes=30)
REQUIRED_CLAIMS = ["sub", "tenant_id", "email", "role", "exp"]


def create_access_token(
    user_id: UUID,
    tenant_id: UUID,
    email: str,
    role_slug: str,
    lifetime: timedelta = DEV_TOKEN_LIFETIME,
) -> str:
    issued = datetime.now(timezone.utc)
    claims: dict[str, Any] = {
        "sub": str(user_id),
        "tenant_id": str(tenant_id),
        "email": email,
        "role": role_slug,
        "typ": "access",
        "iat": issued,
        "exp": issued + lifetime,
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def read_access_token(token: str) -> AuthenticatedUser:
    """Verify a bearer token and build the caller it describes.

    Raises:
        AuthenticationError: bad signature, expired, or missing/ill-typed claims
    """
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError("Access token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError("Access token is invalid") from exc

    if claims.get("typ") != "access":
        raise AuthenticationError("Not an access token")

    try:
        return AuthenticatedUser(
            user_id=UUID(claims["sub"]),
            tenant_id=UUID(claims["tenant_id"]),
            email=claims["email"],
            role_slug=RoleSlug(claims["role"]),
        )
    except ValueError as exc:
        raise AuthenticationError("Access token claims are malformed") from exc
