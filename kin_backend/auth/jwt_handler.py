import logging
from datetime import datetime, timedelta, timezone

import jwt

from kin_backend.auth.passwords import PasswordHasher
from kin_backend.core.config import Settings
from kin_backend.core.errors import CodeMismatch, TokenInvalid

logger = logging.getLogger(__name__)

PURPOSE_VERIFY = "verify"
PURPOSE_RESET = "reset"
PURPOSE_ACCESS = "access"


def create_token(
    claims: dict,
    secret: str,
    expires_minutes: int,
    algorithm: str = "HS256",
    now: datetime | None = None,
) -> str:
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        **claims,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_token(token: str, secret: str, algorithm: str, purpose: str) -> dict:
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": ["exp", "iat"]},
        )
    except jwt.PyJWTError as exc:
        logger.debug("Rejected %s token: %s", purpose, exc)
        raise TokenInvalid() from exc

    if payload.get("purpose") != purpose:
        logger.debug("Rejected token issued for %r, expected %r", payload.get("purpose"), purpose)
        raise TokenInvalid()
    return payload


class TokenService:
    """Issues and verifies the purpose-scoped tokens handed out as cookies."""

    def __init__(self, settings: Settings, hasher: PasswordHasher):
        self.algorithm = settings.jwt_algorithm
        self.hasher = hasher
        self._secrets = {
            PURPOSE_VERIFY: settings.jwt_verify_secret,
            PURPOSE_RESET: settings.password_reset_secret,
            PURPOSE_ACCESS: settings.jwt_login_secret,
        }
        self._ttl_minutes = {
            PURPOSE_VERIFY: settings.jwt_verify_expire_minutes,
            PURPOSE_RESET: settings.password_reset_expire_minutes,
            PURPOSE_ACCESS: settings.jwt_login_expire_minutes,
        }

    def max_age(self, purpose: str) -> int:
        return self._ttl_minutes[purpose] * 60

    def issue(self, purpose: str, claims: dict, now: datetime | None = None) -> str:
        return create_token(
            {**claims, "purpose": purpose},
            self._secrets[purpose],
            self._ttl_minutes[purpose],
            algorithm=self.algorithm,
            now=now,
        )

    def issue_code_token(
        self,
        purpose: str,
        email: str,
        version: int,
        now: datetime | None = None,
    ) -> tuple[str, str]:
        """Mint a token carrying the hash of a fresh code; return ``(token, code)``."""
        code, code_hash = self.hasher.random_code()
        token = self.issue(purpose, {"email": email, "code": code_hash, "ver": version}, now=now)
        return token, code

    def issue_access_token(self, user_id: int, email: str, now: datetime | None = None) -> str:
        return self.issue(PURPOSE_ACCESS, {"sub": str(user_id), "email": email}, now=now)

    def verify(self, token: str | None, purpose: str) -> dict:
        if not token:
            raise TokenInvalid("Token not found.")
        return decode_token(token, self._secrets[purpose], self.algorithm, purpose)

    def check_code(self, claims: dict, code: str) -> None:
        if not self.hasher.verify(code, claims.get("code")):
            raise CodeMismatch()
