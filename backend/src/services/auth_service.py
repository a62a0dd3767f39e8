"""Shared-password authentication and session token management."""

import base64
import binascii
import os
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_PASSWORD_BYTES = 72


class AuthenticationError(Exception):
    """Authentication error."""

    pass


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password for use as ADMIN_PASSWORD_HASH.

    Returns the bcrypt hash base64-encoded, so it survives being pasted into
    environment files that mangle ``$``.
    """
    hashed = bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds))
    return base64.b64encode(hashed).decode("ascii")


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_PASSWORD_BYTES]


class AuthService:
    """Checks the operator password and issues dashboard session tokens."""

    # JWT settings
    JWT_ALGORITHM = "HS256"
    SESSION_EXPIRATION_HOURS = 24
    TOKEN_TYPE = "session"

    def __init__(
        self,
        password_hash: str | None = None,
        jwt_secret: str | None = None,
    ):
        """Initialize auth service.

        Args:
            password_hash: Base64-encoded bcrypt hash of the shared password
            jwt_secret: Secret for signing session tokens
        """
        self.password_hash = (
            password_hash
            if password_hash is not None
            else os.environ.get("ADMIN_PASSWORD_HASH")
        )
        self.jwt_secret = jwt_secret or os.environ.get(
            "JWT_SECRET_KEY", "dev-secret-change-in-prod"
        )

    @property
    def is_configured(self) -> bool:
        """Whether a password hash is available to check against."""
        return bool(self.password_hash)

    def verify_password(self, password: str) -> bool:
        """Check a password against the configured hash.

        Raises:
            ValueError: If no hash is configured or it is not a valid
                base64-encoded bcrypt hash
        """
        if not self.password_hash:
            raise ValueError("ADMIN_PASSWORD_HASH is not configured")
        try:
            stored_hash = base64.b64decode(self.password_hash, validate=True)
        except binascii.Error as e:
            raise ValueError(f"ADMIN_PASSWORD_HASH is not valid base64: {str(e)}")
        return bcrypt.checkpw(_password_bytes(password), stored_hash)

    # ============================================
    # Session tokens
    # ============================================

    def create_session_token(self) -> str:
        """Create a signed session token for the operator."""
        now = datetime.now(UTC)
        payload = {
            "authenticated": True,
            "type": self.TOKEN_TYPE,
            "iat": now,
            "exp": now + timedelta(hours=self.SESSION_EXPIRATION_HOURS),
        }
        return jwt.encode(payload, self.jwt_secret, algorithm=self.JWT_ALGORITHM)

    def verify_session_token(self, token: str) -> dict[str, Any]:
        """Verify a session token.

        Returns:
            The token claims

        Raises:
            AuthenticationError: If the token is invalid or expired
        """
        try:
            payload = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=[self.JWT_ALGORITHM],
                options={"verify_exp": True},
            )
        except ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except JWTError as e:
            raise AuthenticationError(f"Invalid token: {str(e)}")

        if payload.get("type") != self.TOKEN_TYPE:
            raise AuthenticationError("Invalid token type")
        if payload.get("authenticated") is not True:
            raise AuthenticationError("Token is not authenticated")

        return payload
