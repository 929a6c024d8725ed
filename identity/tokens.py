"""JWT issuance and validation for the users service."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from jose import JWTError, jwt

from .config import Settings
from .errors import ConfigurationError, InvalidTokenError
from .models import RoleEnum, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedToken:
    access_token: str
    expires_in: int


@dataclass(frozen=True)
class TokenClaims:
    user_id: uuid.UUID
    role: RoleEnum
    issuer: str
    audience: str
    issued_at: datetime
    expires_at: datetime


class TokenIssuer:
    """Mints and validates signed bearer tokens.

    The signing secret, issuer and audience come from the ``Settings`` passed in;
    the issuer never reads the environment on its own. A missing secret is a
    startup failure, not a request-time one.
    """

    def __init__(self, settings: Settings) -> None:
        secret = (settings.jwt_secret_key or "").strip()
        if not secret:
            raise ConfigurationError("JWT_SECRET_KEY is not defined in the environment.")
        self._secret = secret
        self._algorithm = settings.jwt_algorithm
        self.issuer = settings.identity_issuer
        self.audience = settings.identity_audience
        self.lifetime = timedelta(minutes=settings.access_token_expire_minutes)
        self.clock_skew = timedelta(minutes=settings.clock_skew_minutes)

    def issue(self, user: User, now: datetime | None = None) -> IssuedToken:
        issued_at = now or datetime.now(timezone.utc)
        claims: Dict[str, Any] = {
            "sub": str(user.id),
            "role": RoleEnum(user.role).value,
            "name": user.name,
            "iss": self.issuer,
            "aud": self.audience,
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
        }
        token = jwt.encode(claims, self._secret, algorithm=self._algorithm)
        logger.info("Issued token for user %s (role=%s)", user.id, claims["role"])
        return IssuedToken(access_token=token, expires_in=int(self.lifetime.total_seconds()))

    def decode(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={"require_sub": True, "require_exp": True, "leeway": int(self.clock_skew.total_seconds())},
            )
            return TokenClaims(
                user_id=uuid.UUID(payload["sub"]),
                role=RoleEnum(payload["role"]),
                issuer=payload["iss"],
                audience=payload["aud"],
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (JWTError, KeyError, ValueError) as exc:
            raise InvalidTokenError("Could not validate credentials") from exc
