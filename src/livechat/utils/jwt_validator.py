"""Signed-token verification.

Tokens are issued by the account service sharing ``JWT_SECRET``; this
module only checks them. Required claims: ``sub`` (user id), ``username``
and ``role``.
"""

import logging
from typing import Dict

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError

from src.livechat.chat.exceptions import AuthenticationError
from src.livechat.models.chat import CurrentUser

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ("sub", "username", "role")


class JWTValidator:
    def __init__(self, secret: str, algorithm: str = "HS256"):
        if not secret:
            raise ValueError("JWT_SECRET must be set")
        self.secret = secret
        self.algorithm = algorithm

    def decode(self, token: str) -> Dict:
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"verify_aud": False},
            )
        except ExpiredSignatureError:
            logger.warning("JWT expired")
            raise AuthenticationError("Token has expired")
        except JWTError as e:
            logger.warning(f"JWT verification failed: {e}")
            raise AuthenticationError("Invalid authentication token")

        missing = [claim for claim in REQUIRED_CLAIMS if claim not in payload]
        if missing:
            raise AuthenticationError(
                f"Missing required claims: {', '.join(missing)}"
            )
        return payload

    def verify(self, token: str) -> CurrentUser:
        """Verify a token and return the user it identifies."""
        if not token:
            raise AuthenticationError("Missing authentication token")
        payload = self.decode(token)
        try:
            return CurrentUser(
                id=str(payload["sub"]),
                username=payload["username"],
                role=payload["role"],
                email=payload.get("email"),
            )
        except ValidationError:
            raise AuthenticationError("Invalid user role")
