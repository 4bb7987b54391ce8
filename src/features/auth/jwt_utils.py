"""JWT utilities for authentication."""

import json
import logging
from datetime import timedelta
from typing import Any

import jwt
from jwt.exceptions import DecodeError, ExpiredSignatureError, InvalidSignatureError, InvalidTokenError, PyJWTError
from jwt.utils import base64url_decode, base64url_encode
from pydantic import BaseModel, ValidationError

from src.config.settings import Settings
from src.database.base import utc_now

from .exceptions import (
    InvalidSignatureException,
    MalformedTokenException,
    TokenExpiredException,
    TokenIssuanceError,
)

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"


def _has_readable_claims(token: str) -> bool:
    """Whether the header and payload segments decode to JSON objects."""
    segments = token.split(".")
    if len(segments) != 3:
        return False
    try:
        header = json.loads(base64url_decode(segments[0]))
        payload = json.loads(base64url_decode(segments[1]))
    except ValueError:
        return False
    return isinstance(header, dict) and isinstance(payload, dict)


def _is_canonical_signature(token: str) -> bool:
    """Whether the signature segment is the one exact base64url encoding of its bytes.

    Lenient base64 decoding ignores stray characters and unused trailing
    bits, so two different segments can decode to the same signature.
    """
    signature = token.rsplit(".", 1)[-1]
    try:
        raw = base64url_decode(signature)
    except ValueError:
        return False
    return base64url_encode(raw).decode("ascii") == signature


class Identity(BaseModel):
    """Who a verified access token speaks for."""

    user_id: int
    username: str
    is_admin: bool = False


class IdentityClaims(BaseModel):
    """Claims carried by an access token. Rebuilt on every verification, never stored."""

    sub: str
    user_id: int
    is_admin: bool
    exp: int
    iat: int | None = None
    type: str = ACCESS_TOKEN_TYPE

    @property
    def identity(self) -> Identity:
        return Identity(user_id=self.user_id, username=self.sub, is_admin=self.is_admin)


class TokenIssuer:
    """Signs and verifies short-lived access tokens with a shared secret.

    Holds only read-only configuration, so one instance can serve any number
    of concurrent requests.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", access_ttl: timedelta = timedelta(hours=1)):
        self._secret = secret
        self._algorithm = algorithm
        self.access_ttl = access_ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(
            secret=settings.secret_key,
            algorithm=settings.jwt_algorithm,
            access_ttl=timedelta(hours=settings.access_token_expire_hours),
        )

    @property
    def expires_in(self) -> int:
        """Access token lifetime in seconds."""
        return int(self.access_ttl.total_seconds())

    def issue(self, identity: Identity, expires_delta: timedelta | None = None) -> str:
        """Create a signed access token.

        Args:
            identity: Account identity to encode in the token
            expires_delta: Optional lifetime override

        Returns:
            Encoded JWT token string

        Raises:
            TokenIssuanceError: If the token cannot be signed

        """
        issued_at = int(utc_now().timestamp())
        lifetime = expires_delta if expires_delta is not None else self.access_ttl

        claims: dict[str, Any] = {
            "sub": identity.username,
            "user_id": identity.user_id,
            "is_admin": identity.is_admin,
            "iat": issued_at,
            "exp": issued_at + int(lifetime.total_seconds()),
            "type": ACCESS_TOKEN_TYPE,
        }

        try:
            return jwt.encode(claims, self._secret, algorithm=self._algorithm)
        except (PyJWTError, NotImplementedError, TypeError, ValueError) as err:
            logger.exception(f"Failed to sign access token for {identity.username}")
            raise TokenIssuanceError("Failed to create token") from err

    def decode_claims(self, token: str) -> IdentityClaims:
        """Decode a token, checking signature first and expiry second.

        No leeway: a token is rejected from its expiry second onwards. When the
        header and payload are readable, any fault in the signature segment is
        reported as a signature mismatch, whatever PyJWT calls it.

        Raises:
            InvalidSignatureException: If the signature does not match
            TokenExpiredException: If the token has expired
            MalformedTokenException: For anything else that fails to decode

        """
        signed_claims = _has_readable_claims(token)
        if signed_claims and not _is_canonical_signature(token):
            raise InvalidSignatureException()

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "sub", "user_id"]},
                leeway=0,
            )
        except InvalidSignatureError as err:
            raise InvalidSignatureException() from err
        except ExpiredSignatureError as err:
            raise TokenExpiredException() from err
        except DecodeError as err:
            if signed_claims:
                raise InvalidSignatureException() from err
            raise MalformedTokenException() from err
        except InvalidTokenError as err:
            raise MalformedTokenException() from err

        try:
            claims = IdentityClaims.model_validate(payload)
        except ValidationError as err:
            raise MalformedTokenException() from err

        if claims.type != ACCESS_TOKEN_TYPE:
            raise MalformedTokenException()

        return claims

    def verify(self, token: str) -> Identity:
        """Verify a token and return the identity it carries."""
        return self.decode_claims(token).identity
