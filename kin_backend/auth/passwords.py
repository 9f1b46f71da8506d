"""Password and one-time code hashing.

Both passwords and the short codes mailed to users go through the same salted,
deliberately slow ``pbkdf2_sha256`` context. The round count comes from
``Settings.password_hash_rounds`` so it can be tuned per deployment.
"""

import secrets

from passlib.context import CryptContext

from kin_backend.core.config import Settings

CODE_ALPHABET = "0123456789"


class PasswordHasher:
    def __init__(self, settings: Settings):
        self._context = CryptContext(
            schemes=["pbkdf2_sha256"],
            deprecated="auto",
            pbkdf2_sha256__default_rounds=settings.password_hash_rounds,
        )
        self.code_length = settings.code_length

    def hash(self, secret: str) -> str:
        return self._context.hash(secret)

    def verify(self, secret: str | None, hashed: str | None) -> bool:
        if not secret or not hashed:
            return False
        try:
            return self._context.verify(secret, hashed)
        except ValueError:
            # unknown or corrupt hash format
            return False

    def random_code(self, length: int | None = None) -> tuple[str, str]:
        """Return a fresh numeric code and its hash."""
        length = length or self.code_length
        code = "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))
        return code, self.hash(code)
