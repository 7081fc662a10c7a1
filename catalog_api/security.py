"""
Credential hashing and bearer token handling.

- bcrypt password hashing with a fixed work factor
- HS256 JWTs carrying the subject id and role, with an embedded expiry
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
import structlog
from pydantic import BaseModel

from catalog.models import MAX_PASSWORD_BYTES, Role

logger = structlog.get_logger(__name__)


class TokenClaims(BaseModel):
    """Decoded, verified token payload."""
    subject_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMINISTRATOR


class PasswordHasher:
    """Salted bcrypt hashing of user secrets."""

    def __init__(self, rounds: int = 10):
        self.rounds = rounds

    def hash_secret(self, plaintext: str) -> str:
        """
        Hash a plain-text secret with a fresh salt.

        Args:
            plaintext: Secret to hash (at most 72 bytes once encoded)

        Returns:
            bcrypt hash string
        """
        secret = plaintext.encode("utf-8")
        if len(secret) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Secret must be at most {MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(secret, bcrypt.gensalt(rounds=self.rounds)).decode("ascii")

    def verify_secret(self, plaintext: str, hashed: str) -> bool:
        """
        Check a plain-text secret against a stored hash.

        Returns:
            True on match, False on mismatch

        Raises:
            ValueError: The stored hash is malformed
        """
        secret = plaintext.encode("utf-8")
        if len(secret) > MAX_PASSWORD_BYTES:
            return False
        return bcrypt.checkpw(secret, hashed.encode("ascii"))


class TokenService:
    """Issues and verifies signed, expiring bearer tokens."""

    def __init__(self, secret_key: str, expire_minutes: int = 60 * 24, algorithm: str = "HS256"):
        if not secret_key:
            raise ValueError("Token signing key must not be empty")
        self.secret_key = secret_key
        self.expiry = timedelta(minutes=expire_minutes)
        self.algorithm = algorithm

    def issue_token(self, subject_id: str, role: Role = Role.STANDARD) -> str:
        """
        Generate a signed token.

        Token structure:
            {"sub": "<user id>", "role": "standard", "iat": ..., "exp": ...}
        """
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(subject_id),
            "role": Role(role).value,
            "iat": now,
            "exp": now + self.expiry,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> Optional[TokenClaims]:
        """
        Validate and decode a token.

        Returns:
            TokenClaims if valid, None on bad signature, malformed payload or expiry
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp"]},
            )
            return TokenClaims(subject_id=payload["sub"], role=payload.get("role", Role.STANDARD))

        except jwt.ExpiredSignatureError:
            logger.info("Rejected expired token")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning("Rejected invalid token", error=str(e))
            return None
        except ValueError as e:
            # Signature was fine but the claims did not fit TokenClaims
            logger.warning("Rejected token with malformed claims", error=str(e))
            return None
