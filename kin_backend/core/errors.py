"""Error taxonomy shared by the services and the HTTP layer."""

from fastapi import status


class AppError(Exception):
    """Base error carrying an HTTP status and a message safe to show users."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request."


class AlreadyActive(ValidationFailed):
    default_message = "Your account is already active. Please login."


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Couldn't find any data!"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Already exists."


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized."


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You don't have permission to access this resource."


class TokenInvalid(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Token expired or invalid. Please try again."


class CodeMismatch(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid code. Please try again."


class EmailDeliveryFailed(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Couldn't send email. Please try again later."
