from fastapi import Response

from kin_backend.core.config import Settings

VERIFY_COOKIE = "verifyToken"
RESET_COOKIE = "passwordResetToken"
ACCESS_COOKIE = "accessToken"


def set_token_cookie(
    response: Response,
    name: str,
    token: str,
    max_age: int,
    settings: Settings,
    http_only: bool = True,
) -> None:
    response.set_cookie(
        key=name,
        value=token,
        max_age=max_age,
        httponly=http_only,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
    )


def clear_token_cookie(response: Response, name: str, settings: Settings, http_only: bool = True) -> None:
    response.delete_cookie(
        key=name,
        httponly=http_only,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
    )
