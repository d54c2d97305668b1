class WorkoutAppError(Exception):
    """Base error. ``status_code`` is what the API answers with."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotConfiguredError(WorkoutAppError):
    status_code = 503


class ConfigError(WorkoutAppError):
    status_code = 400


class AuthError(WorkoutAppError):
    status_code = 401


class DataAccessError(WorkoutAppError):
    status_code = 502


class AvatarUploadError(WorkoutAppError):
    status_code = 502


def backend_message(exc: Exception | None, fallback: str) -> str:
    """Best human-readable message from a Supabase/postgrest/storage error."""
    if exc is None:
        return fallback
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(exc) or fallback
