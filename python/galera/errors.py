"""API error definitions.

All API errors are defined here with their corresponding HTTP status codes.
Services raise these; the entry layer turns them into the error envelope.
"""

from enum import Enum


class ApiErrorCode(str, Enum):
    """Standardized error codes for the API.

    Format: E_CATEGORY_NAME
    """

    # Authentication errors (401)
    E_UNAUTHENTICATED = "E_UNAUTHENTICATED"
    E_INVALID_CREDENTIALS = "E_INVALID_CREDENTIALS"
    E_WRONG_PASSWORD = "E_WRONG_PASSWORD"
    E_NO_PASSWORD_SET = "E_NO_PASSWORD_SET"
    E_INVALID_TOKEN = "E_INVALID_TOKEN"
    E_TOKEN_EXPIRED = "E_TOKEN_EXPIRED"
    E_TOKEN_REVOKED = "E_TOKEN_REVOKED"

    # Authorization errors (403)
    E_FORBIDDEN = "E_FORBIDDEN"

    # Not found errors (404)
    E_NOT_FOUND = "E_NOT_FOUND"
    E_USER_NOT_FOUND = "E_USER_NOT_FOUND"
    E_FOLDER_NOT_FOUND = "E_FOLDER_NOT_FOUND"
    E_MEDIA_NOT_FOUND = "E_MEDIA_NOT_FOUND"
    E_ALBUM_NOT_FOUND = "E_ALBUM_NOT_FOUND"
    E_INVITE_NOT_FOUND = "E_INVITE_NOT_FOUND"
    E_SHARE_LINK_NOT_FOUND = "E_SHARE_LINK_NOT_FOUND"

    # Conflict errors (409)
    E_CONFLICT = "E_CONFLICT"
    E_USERNAME_TAKEN = "E_USERNAME_TAKEN"
    E_EMAIL_TAKEN = "E_EMAIL_TAKEN"
    E_INVITE_ALREADY_EXISTS = "E_INVITE_ALREADY_EXISTS"
    E_FOLDER_NAME_TAKEN = "E_FOLDER_NAME_TAKEN"
    E_CYCLE_REJECTED = "E_CYCLE_REJECTED"

    # Validation errors (400)
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_NAME_INVALID = "E_NAME_INVALID"
    E_USERNAME_INVALID = "E_USERNAME_INVALID"
    E_EMAIL_INVALID = "E_EMAIL_INVALID"
    E_PASSWORD_INVALID = "E_PASSWORD_INVALID"
    E_EXPIRATION_INVALID = "E_EXPIRATION_INVALID"
    E_OWNER_MISMATCH = "E_OWNER_MISMATCH"
    E_FOLDER_TOO_DEEP = "E_FOLDER_TOO_DEEP"

    # Server errors
    E_RETRY_EXHAUSTED = "E_RETRY_EXHAUSTED"  # 503
    E_STORAGE_ERROR = "E_STORAGE_ERROR"  # 500
    E_INTERNAL = "E_INTERNAL"  # 500


# Error code to HTTP status mapping
ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.E_UNAUTHENTICATED: 401,
    ApiErrorCode.E_INVALID_CREDENTIALS: 401,
    ApiErrorCode.E_WRONG_PASSWORD: 401,
    ApiErrorCode.E_NO_PASSWORD_SET: 401,
    ApiErrorCode.E_INVALID_TOKEN: 401,
    ApiErrorCode.E_TOKEN_EXPIRED: 401,
    ApiErrorCode.E_TOKEN_REVOKED: 401,
    ApiErrorCode.E_FORBIDDEN: 403,
    ApiErrorCode.E_NOT_FOUND: 404,
    ApiErrorCode.E_USER_NOT_FOUND: 404,
    ApiErrorCode.E_FOLDER_NOT_FOUND: 404,
    ApiErrorCode.E_MEDIA_NOT_FOUND: 404,
    ApiErrorCode.E_ALBUM_NOT_FOUND: 404,
    ApiErrorCode.E_INVITE_NOT_FOUND: 404,
    ApiErrorCode.E_SHARE_LINK_NOT_FOUND: 404,
    ApiErrorCode.E_CONFLICT: 409,
    ApiErrorCode.E_USERNAME_TAKEN: 409,
    ApiErrorCode.E_EMAIL_TAKEN: 409,
    ApiErrorCode.E_INVITE_ALREADY_EXISTS: 409,
    ApiErrorCode.E_FOLDER_NAME_TAKEN: 409,
    ApiErrorCode.E_CYCLE_REJECTED: 409,
    ApiErrorCode.E_INVALID_REQUEST: 400,
    ApiErrorCode.E_NAME_INVALID: 400,
    ApiErrorCode.E_USERNAME_INVALID: 400,
    ApiErrorCode.E_EMAIL_INVALID: 400,
    ApiErrorCode.E_PASSWORD_INVALID: 400,
    ApiErrorCode.E_EXPIRATION_INVALID: 400,
    ApiErrorCode.E_OWNER_MISMATCH: 400,
    ApiErrorCode.E_FOLDER_TOO_DEEP: 400,
    ApiErrorCode.E_RETRY_EXHAUSTED: 503,
    ApiErrorCode.E_STORAGE_ERROR: 500,
    ApiErrorCode.E_INTERNAL: 500,
}


class ApiError(Exception):
    """Base exception for API errors.

    Attributes:
        code: The error code enum value
        message: Human-readable error message
        status_code: HTTP status code (derived from code)
    """

    def __init__(self, code: ApiErrorCode, message: str):
        self.code = code
        self.message = message
        self.status_code = ERROR_CODE_TO_STATUS.get(code, 500)
        super().__init__(message)


class NotFoundError(ApiError):
    """Resource not found, or not visible to the actor (masked)."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_NOT_FOUND, message: str = "Not found"):
        super().__init__(code, message)


class ForbiddenError(ApiError):
    """Resolved permission is visible but insufficient for the operation."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_FORBIDDEN, message: str = "Forbidden"):
        super().__init__(code, message)


class UnauthenticatedError(ApiError):
    """No usable authentication was presented."""

    def __init__(
        self,
        code: ApiErrorCode = ApiErrorCode.E_UNAUTHENTICATED,
        message: str = "Authentication required",
    ):
        super().__init__(code, message)


class InvalidCredentialError(ApiError):
    """Password login failed (wrong password, no password set, ...)."""

    def __init__(
        self,
        code: ApiErrorCode = ApiErrorCode.E_INVALID_CREDENTIALS,
        message: str = "Invalid credentials",
    ):
        super().__init__(code, message)


class InvalidTokenError(ApiError):
    """Refresh token is absent or no longer usable."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_INVALID_TOKEN, message: str = "Invalid token"
    ):
        super().__init__(code, message)


class ExpiredError(ApiError):
    """Credential is past its expiration time."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_TOKEN_EXPIRED, message: str = "Token has expired"
    ):
        super().__init__(code, message)


class RevokedError(ApiError):
    """Credential was revoked (its parent refresh token no longer exists)."""

    def __init__(
        self,
        code: ApiErrorCode = ApiErrorCode.E_TOKEN_REVOKED,
        message: str = "Token has been revoked",
    ):
        super().__init__(code, message)


class ConflictError(ApiError):
    """Unique-constraint collision."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_CONFLICT, message: str = "Conflict"):
        super().__init__(code, message)


class CycleRejectedError(ApiError):
    """Folder reparent would make a folder its own ancestor."""

    def __init__(
        self,
        code: ApiErrorCode = ApiErrorCode.E_CYCLE_REJECTED,
        message: str = "Folder cannot be moved into its own subtree",
    ):
        super().__init__(code, message)


class RetryExhaustedError(ApiError):
    """Bounded optimistic retry (slug generation) ran out of attempts."""

    def __init__(
        self,
        code: ApiErrorCode = ApiErrorCode.E_RETRY_EXHAUSTED,
        message: str = "Could not allocate a unique identifier, try again",
    ):
        super().__init__(code, message)


class InvalidRequestError(ApiError):
    """Invalid request error."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_INVALID_REQUEST, message: str = "Invalid request"
    ):
        super().__init__(code, message)
