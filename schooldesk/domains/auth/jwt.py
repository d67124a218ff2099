# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""JWT identity tokens.

SchoolDesk does not run a login flow; tokens are issued by the identity
provider (or by the seed script for local development) and carry the user
ID, email and single role consumed by the RBAC gate.

Example:
    >>> from schooldesk.core.config import get_settings
    >>> jwt_manager = JWTManager(get_settings().jwt)
    >>> token = jwt_manager.create_access_token(user_id="user-123", role="teacher")
    >>> jwt_manager.decode_token(token).role
    'teacher'
"""

import logging
import secrets
from datetime import timedelta
from typing import Literal

from jose import ExpiredSignatureError, JWTError as JoseJWTError, jwt
from pydantic import BaseModel

from schooldesk.core.config.settings import JWTSettings
from schooldesk.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class TokenPayload(BaseModel):
    """JWT token payload structure.

    Attributes:
        sub: Subject (user ID).
        type: Token type.
        role: Role string.
        email: User's email address.
        exp: Expiration timestamp.
        iat: Issued at timestamp.
        jti: JWT ID for token tracking.
    """

    sub: str
    type: Literal["access"] = "access"
    role: str | None = None
    email: str | None = None
    exp: int
    iat: int
    jti: str


class JWTError(Exception):
    """Base exception for JWT operations."""

    pass


class TokenExpiredError(JWTError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(JWTError):
    """Raised when a token is invalid."""

    pass


class JWTManager:
    """JWT token creation and validation manager.

    Attributes:
        _settings: JWT configuration settings.
    """

    def __init__(self, settings: JWTSettings) -> None:
        """Initialize the JWT manager.

        Args:
            settings: JWT configuration settings.
        """
        self._settings = settings

    def create_access_token(
        self,
        user_id: str,
        role: str,
        email: str | None = None,
    ) -> str:
        """Create an access token.

        Args:
            user_id: User identifier.
            role: Role string.
            email: User's email address.

        Returns:
            JWT access token string.
        """
        now = utc_now()
        exp = now + timedelta(minutes=self._settings.access_token_expire_minutes)

        payload = {
            "sub": str(user_id),
            "type": "access",
            "role": role,
            "email": email,
            "exp": int(exp.timestamp()),
            "iat": int(now.timestamp()),
            "jti": secrets.token_urlsafe(16),
        }
        return jwt.encode(
            payload,
            self._settings.secret_key.get_secret_value(),
            algorithm=self._settings.algorithm,
        )

    def decode_token(self, token: str) -> TokenPayload:
        """Decode and validate an access token.

        Args:
            token: JWT token string.

        Returns:
            TokenPayload with decoded claims.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is invalid or not an access token.
        """
        try:
            payload = jwt.decode(
                token,
                self._settings.secret_key.get_secret_value(),
                algorithms=[self._settings.algorithm],
            )
        except ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except JoseJWTError as e:
            logger.debug("Token validation failed: %s", str(e))
            raise InvalidTokenError(f"Invalid token: {e}") from e

        if payload.get("type") != "access":
            raise InvalidTokenError(f"Expected access token, got {payload.get('type')}")

        try:
            return TokenPayload(
                sub=payload["sub"],
                type=payload["type"],
                role=payload.get("role"),
                email=payload.get("email"),
                exp=payload["exp"],
                iat=payload["iat"],
                jti=payload["jti"],
            )
        except KeyError as e:
            raise InvalidTokenError(f"Missing claim: {e}") from e
