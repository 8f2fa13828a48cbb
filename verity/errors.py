"""
Error taxonomy for the VerityAI backend.

Every error a route can hand back to a client derives from VerityError and
carries its HTTP status. The FastAPI handlers in main.py render them as
{"success": false, "error": message}.
"""


class VerityError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(VerityError):
    status_code = 400
    default_message = "Invalid request"


class ConflictError(VerityError):
    status_code = 400
    default_message = "Resource already exists"


class AuthError(VerityError):
    status_code = 401
    default_message = "Invalid credentials"


class NotFoundError(VerityError):
    status_code = 404
    default_message = "Not found"


class MalformedResponseError(VerityError):
    """Provider reply did not match the expected JSON shape."""
    default_message = "Malformed response from AI provider"


class DetectionFailedError(VerityError):
    default_message = "Failed to analyze media. Please try again."


class UpstreamError(VerityError):
    default_message = "Upstream service error"


class NewsFeedError(VerityError):
    """NewsAPI answered but reported a failure of its own."""
    status_code = 400
    default_message = "Failed to fetch news"


class PersistenceError(VerityError):
    default_message = "Database operation failed"
