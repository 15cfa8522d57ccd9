"""QR token issuing and verification.

A token is an HS256 JWS with claims ``rid`` (request id), ``tid`` (tenant
id), ``exp`` (valid_until, epoch seconds), ``nonce`` and ``typ``. Each
tenant signs with its own key, derived as
HMAC-SHA256(qr_signing_secret, tenant_id). Only the current secret is
accepted.
"""

import hashlib
import hmac
import secrets
from datetime import datetime, timezone
from uuid import UUID

import jwt
from pydantic import BaseModel

from ...core.exceptions import TokenExpiredError, TokenInvalidError

TOKEN_TYPE = "visitor"
REQUIRED_CLAIMS = ["rid", "tid", "exp", "nonce", "typ"]


class QrTokenClaims(BaseModel):
    request_id: UUID
    tenant_id: UUID
    valid_until: datetime
    nonce: str


class QrTokenCodec:
    """Signs and verifies visitor QR tokens."""

    algorithm = "HS256"

    def __init__(self, signing_secret: str):
        if not signing_secret:
            raise ValueError("QR signing secret must not be empty")
        self._secret = signing_secret.encode()

    def tenant_key(self, tenant_id: UUID) -> bytes:
        return hmac.new(self._secret, str(tenant_id).encode(), hashlib.sha256).digest()

    def issue(self, request_id: UUID, tenant_id: UUID, valid_until: datetime) -> str:
        """Sign a token for one request, embedding its expiry."""
        payload = {
            "rid": str(request_id),
            "tid": str(tenant_id),
            "exp": int(valid_until.timestamp()),
            "nonce": secrets.token_urlsafe(16),
            "typ": TOKEN_TYPE,
        }
        return jwt.encode(payload, self.tenant_key(tenant_id), algorithm=self.algorithm)

    def verify(self, token: str, now: datetime) -> QrTokenClaims:
        """Check the signature, then the embedded expiry.

        No store lookup is needed to reject a forged or lapsed token.

        Raises:
            TokenInvalidError: If the token is malformed or its signature
                does not match the tenant key
            TokenExpiredError: If ``now`` is at or past the embedded expiry
        """
        try:
            unverified = jwt.decode(token, options={"verify_signature": False})
            tenant_id = UUID(str(unverified["tid"]))
        except (jwt.InvalidTokenError, KeyError, ValueError):
            raise TokenInvalidError("QR token is malformed") from None

        try:
            payload = jwt.decode(
                token,
                self.tenant_key(tenant_id),
                algorithms=[self.algorithm],
                options={"verify_exp": False, "require": REQUIRED_CLAIMS},
            )
        except jwt.InvalidTokenError:
            raise TokenInvalidError() from None

        if payload.get("typ") != TOKEN_TYPE:
            raise TokenInvalidError("Token is not a visitor QR token")

        try:
            claims = QrTokenClaims(
                request_id=UUID(str(payload["rid"])),
                tenant_id=tenant_id,
                valid_until=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
                nonce=str(payload["nonce"]),
            )
        except (TypeError, ValueError):
            raise TokenInvalidError("QR token claims are malformed") from None

        if now >= claims.valid_until:
            raise TokenExpiredError()
        return claims
