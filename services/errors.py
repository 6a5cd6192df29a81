class LeagueError(Exception):
    """Base class for errors the HTTP layer renders as ``{"error": message}``."""

    status_code = 500
    message = "Something went wrong. Please try again."

    def __init__(self, message=None, details=None):
        super().__init__(message or self.message)
        if message:
            self.message = message
        self.details = details


class ValidationError(LeagueError):
    status_code = 400
    message = "Invalid request"


class AlreadyExistsError(ValidationError):
    status_code = 409
    message = "Already exists"


class NotFoundError(LeagueError):
    status_code = 404
    message = "Not found"


class NoActiveSeasonError(NotFoundError):
    message = "No active season"


class EmptyScheduleError(LeagueError):
    # Callers treat this as a no-op rather than a failure
    status_code = 200
    message = "No matching dates found in the season date range"


class AuthenticationError(LeagueError):
    status_code = 401
    message = "Authentication required"


class PermissionDeniedError(LeagueError):
    status_code = 403
    message = "Forbidden"


class ConflictError(LeagueError):
    status_code = 409
    message = "The tee sheet changed while we were saving. Please try again."


class UpstreamError(LeagueError):
    status_code = 503
    message = "Service temporarily unavailable. Please try again."
