import os
from dataclasses import dataclass, field

from dotenv import load_dotenv


DEFAULT_SECRET = "change-me"


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
    if not value:
        return default
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, built once at startup and passed around."""

    app_env: str = "development"
    database_url: str = "sqlite:///./kin.db"
    cors_whitelist: tuple[str, ...] = ("http://localhost:3000",)

    jwt_algorithm: str = "HS256"
    jwt_verify_secret: str = DEFAULT_SECRET
    jwt_verify_expire_minutes: int = 5
    jwt_login_secret: str = DEFAULT_SECRET
    jwt_login_expire_minutes: int = 60 * 24 * 15
    password_reset_secret: str = DEFAULT_SECRET
    password_reset_expire_minutes: int = 5

    cookie_secure: bool = True
    cookie_samesite: str = "none"

    password_hash_rounds: int = 29000
    code_length: int = 4

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = field(default="", repr=False)
    smtp_from: str = ""
    mail_suppress: bool = False

    rate_limit_enabled: bool = True

    upload_dir: str = "./public/images"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        env = os.getenv
        return cls(
            app_env=env("APP_ENV", "development"),
            database_url=env("DATABASE_URL", "sqlite:///./kin.db"),
            cors_whitelist=_get_list(env("WHITE_LIST"), ("http://localhost:3000",)),
            jwt_algorithm=env("JWT_ALGORITHM", "HS256"),
            jwt_verify_secret=env("JWT_VERIFY_SECRET_KEY", DEFAULT_SECRET),
            jwt_verify_expire_minutes=int(env("JWT_VERIFY_EXPIRE_MINUTES", "5")),
            jwt_login_secret=env("JWT_LOGIN_SECRET_KEY", DEFAULT_SECRET),
            jwt_login_expire_minutes=int(env("JWT_LOGIN_EXPIRE_MINUTES", str(60 * 24 * 15))),
            password_reset_secret=env("PASSWORD_RESET_KEY", DEFAULT_SECRET),
            password_reset_expire_minutes=int(env("PASSWORD_RESET_EXPIRE_MINUTES", "5")),
            cookie_secure=_get_bool(env("COOKIE_SECURE"), default=True),
            cookie_samesite=env("COOKIE_SAMESITE", "none").lower(),
            password_hash_rounds=int(env("PASSWORD_HASH_ROUNDS", "29000")),
            code_length=int(env("CODE_LENGTH", "4")),
            smtp_host=env("SMTP_HOST", ""),
            smtp_port=int(env("SMTP_PORT", "587")),
            smtp_user=env("SMTP_USER", ""),
            smtp_password=env("SMTP_PASS", ""),
            smtp_from=env("SMTP_FROM", env("SMTP_USER", "")),
            mail_suppress=_get_bool(env("MAIL_SUPPRESS"), default=False),
            rate_limit_enabled=_get_bool(env("RATE_LIMIT_ENABLED"), default=True),
            upload_dir=env("UPLOAD_DIR", "./public/images"),
            log_level=env("LOG_LEVEL", "INFO").upper(),
        )


def validate_runtime_config(settings: Settings) -> None:
    if settings.app_env.lower() != "production":
        return
    secrets = {
        "JWT_VERIFY_SECRET_KEY": settings.jwt_verify_secret,
        "JWT_LOGIN_SECRET_KEY": settings.jwt_login_secret,
        "PASSWORD_RESET_KEY": settings.password_reset_secret,
    }
    for name, value in secrets.items():
        if value == DEFAULT_SECRET:
            raise RuntimeError(f"{name} must be set in production.")


settings = Settings.from_env()
