"""Domain error classes.

Every failure the services can report is a distinct exception class tagged
with an ErrorKind. Callers branch on the class (or on ``kind``), never on
the message text. The HTTP layer maps each error to its status code through
the ``status_code`` attribute.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Machine-readable error codes returned in the error envelope."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_EMAIL = "INVALID_EMAIL"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    NOT_FOUND = "NOT_FOUND"
    INVALID_FIELDS = "INVALID_FIELDS"
    NO_CHANGE = "NO_CHANGE"
    AUTH_REQUIRED = "AUTH_REQUIRED"
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    UNVERIFIED = "UNVERIFIED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    INVALID_TOKEN = "INVALID_TOKEN"
    EXPIRED_TOKEN = "EXPIRED_TOKEN"
    UNSUPPORTED_TYPE = "UNSUPPORTED_TYPE"
    ATTACHMENT_EXISTS = "ATTACHMENT_EXISTS"
    STORE_ERROR = "STORE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class APIError(Exception):
    """Base class for domain errors.

    Attributes:
        kind: Tagged error kind.
        message: Human-readable error message.
        status_code: HTTP status code the boundary should return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)

    @property
    def code(self) -> str:
        """Error code string for the response envelope."""
        return self.kind.value


class ValidationError(APIError):
    """Field validation failed (400)."""

    def __init__(self, message: str, details: list[dict] | None = None) -> None:
        super().__init__(ErrorKind.VALIDATION_ERROR, message, 400, details)


class InvalidEmailError(APIError):
    """Email address is not syntactically valid (400)."""

    def __init__(self, email: str) -> None:
        super().__init__(
            ErrorKind.INVALID_EMAIL,
            "Invalid email address",
            400,
            details=[{"field": "email", "value": email}],
        )


class AlreadyExistsError(APIError):
    """An account with this email already exists (400)."""

    def __init__(self, message: str = "User already exists") -> None:
        super().__init__(ErrorKind.ALREADY_EXISTS, message, 400)


class NotFoundError(APIError):
    """Resource not found (404)."""

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(ErrorKind.NOT_FOUND, message, 404)


class InvalidFieldsError(APIError):
    """Update payload contains fields that may not be changed (400).

    Attributes:
        fields: Offending keys, in the order they appeared in the payload.
    """

    def __init__(self, fields: list[str]) -> None:
        self.fields = fields
        super().__init__(
            ErrorKind.INVALID_FIELDS,
            f"Invalid fields: {', '.join(fields)}",
            400,
            details=[{"field": name, "error": "NOT_UPDATABLE"} for name in fields],
        )


class NoChangeError(APIError):
    """Raised only at the HTTP boundary when an update changed nothing (400)."""

    def __init__(self) -> None:
        super().__init__(ErrorKind.NO_CHANGE, "No changes detected", 400)


class AuthRequiredError(APIError):
    """Credentials absent or malformed (401)."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(ErrorKind.AUTH_REQUIRED, message, 401)


class AccountNotFoundError(APIError):
    """Credentials name an email with no account (404)."""

    def __init__(self) -> None:
        super().__init__(ErrorKind.ACCOUNT_NOT_FOUND, "User not found", 404)


class UnverifiedError(APIError):
    """Account email has not been verified yet (403)."""

    def __init__(self) -> None:
        super().__init__(
            ErrorKind.UNVERIFIED,
            "Please verify your email address to access this resource.",
            403,
        )


class InvalidCredentialsError(APIError):
    """Password does not match (401)."""

    def __init__(self) -> None:
        super().__init__(ErrorKind.INVALID_CREDENTIALS, "Invalid credentials", 401)


class InvalidTokenError(APIError):
    """Verification token unknown or already consumed (400)."""

    def __init__(self) -> None:
        super().__init__(
            ErrorKind.INVALID_TOKEN, "Invalid or expired verification token.", 400
        )


class ExpiredTokenError(APIError):
    """Verification token found but past its expiry (400)."""

    def __init__(self) -> None:
        super().__init__(
            ErrorKind.EXPIRED_TOKEN, "Verification token has expired.", 400
        )


class UnsupportedTypeError(APIError):
    """Uploaded file has a content type that is not accepted (400)."""

    def __init__(self, content_type: str | None) -> None:
        super().__init__(
            ErrorKind.UNSUPPORTED_TYPE,
            "Unsupported file type",
            400,
            details=[{"field": "profilePic", "content_type": content_type}],
        )


class AttachmentExistsError(APIError):
    """Upload rejected because a profile picture already exists (400).

    Only raised when replacing existing attachments is disabled.
    """

    def __init__(self) -> None:
        super().__init__(
            ErrorKind.ATTACHMENT_EXISTS,
            "Profile picture already exists. Please delete the existing "
            "picture before uploading a new one.",
            400,
        )


class StoreError(APIError):
    """A backing store operation failed (500).

    Terminal for the current operation; the core never retries.
    """

    def __init__(self, message: str = "Storage operation failed") -> None:
        super().__init__(ErrorKind.STORE_ERROR, message, 500)
