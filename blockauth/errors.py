"""Error taxonomy shared by the HTTP API and the serverless adapter.

Every error carries the HTTP status it maps to, and renders to the client as
``{"message": ...}``.
"""


class BlockAuthError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_body(self) -> dict:
        return {"message": self.message}


class ValidationError(BlockAuthError):
    status_code = 400
    default_message = "Invalid request"


class AuthError(BlockAuthError):
    status_code = 401
    default_message = "Invalid credentials"


class ForbiddenError(BlockAuthError):
    status_code = 403
    default_message = "Access denied"


class NotFoundError(BlockAuthError):
    status_code = 404
    default_message = "Not found"


class ConflictError(BlockAuthError):
    status_code = 409
    default_message = "Already exists"


class RateLimitError(BlockAuthError):
    status_code = 429
    default_message = "Too many requests, please try again later"


class InternalError(BlockAuthError):
    status_code = 500
