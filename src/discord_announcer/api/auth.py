"""
Admin authentication for the web panel.

A single shared admin password is exchanged for an HMAC-signed JWT with a
limited lifetime. Every protected route verifies the bearer token on its
own; signature and expiry failures are reported identically.
"""

import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt
from aiohttp.web import Request

from discord_announcer.config import AuthConfig
from discord_announcer.utils.exceptions import AuthError
from discord_announcer.utils.logging import get_logger

ALGORITHM = "HS256"


class TokenAuthority:
    """
    Checks the admin password and issues / verifies session tokens.

    Attributes:
        config: Authentication configuration
        ttl: Token lifetime
    """

    def __init__(self, config: AuthConfig) -> None:
        self.config = config
        self.logger = get_logger(__name__)
        self.ttl = timedelta(hours=config.token_ttl_hours)

        if config.jwt_secret:
            self._secret = config.jwt_secret
        else:
            self._secret = secrets.token_urlsafe(32)
            self.logger.warning("No JWT secret configured; generated one for this process, "
                                "sessions will not survive a restart")

    def check_password(self, candidate: str) -> bool:
        """
        Compare a login password against the configured credential.

        The bcrypt hash wins when both a hash and a plaintext password are set.
        """
        if self.config.admin_password_hash:
            try:
                return bcrypt.checkpw(candidate.encode("utf-8"),
                                      self.config.admin_password_hash.encode("utf-8"))
            except ValueError:
                self.logger.error("Configured admin password hash is not a valid bcrypt hash")
                return False
        return hmac.compare_digest(candidate.encode("utf-8"),
                                   self.config.admin_password.encode("utf-8"))

    def issue_token(self, now: Optional[datetime] = None) -> str:
        """
        Issue a signed session token.

        Args:
            now: Issue time, defaults to the current time

        Returns:
            Encoded JWT
        """
        now = now or datetime.now(timezone.utc)
        payload = {
            "admin": True,
            "loginTime": now.isoformat(),
            "iat": now,
            "exp": now + self.ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify_token(self, token: str) -> Dict[str, Any]:
        """
        Verify a session token's signature and expiry.

        Returns:
            The token claims

        Raises:
            AuthError: 403 for any invalid or expired token
        """
        try:
            return jwt.decode(token, self._secret, algorithms=[ALGORITHM])
        except jwt.InvalidTokenError as e:
            self.logger.info("Rejected session token", reason=type(e).__name__)
            raise AuthError("Invalid or expired token", status=403)

    def authenticate(self, request: Request) -> Dict[str, Any]:
        """
        Verify the bearer token of a request.

        Raises:
            AuthError: 401 without a token, 403 for a rejected token
        """
        auth_header = request.headers.get("Authorization", "")
        parts = auth_header.split(" ")
        if len(parts) < 2 or not parts[1]:
            raise AuthError("Access token required", status=401)
        return self.verify_token(parts[1])
