"""Error taxonomy and HTTP status mapping."""

from enum import Enum

ADC_HELP_URL = "https://developers.google.com/accounts/docs/application-default-credentials"

PERMISSION_DENIED_MESSAGE = "Permission denied on remote repository (or it may not exist)."
NO_CREDENTIALS_MESSAGE = (
    "The request had no credentials because the application default credentials "
    f"are not available. See {ADC_HELP_URL} for more information."
)
NOT_FOUND_MESSAGE = "The remote resource does not exist."
SERVER_ERROR_MESSAGE = "Received an error from the remote server."
SEND_FAILED_MESSAGE = "Failed to send request to remote server."


class WagonError(Exception):
    """Base class for all Artifact Wagon errors."""

    pass


class WagonConnectionError(WagonError):
    """Error opening a connection to the remote repository."""

    pass


class ConfigurationError(WagonConnectionError):
    """The configured repository locator is malformed."""

    pass


class TransferError(WagonError):
    """Error transferring an artifact."""

    def __init__(self, message: str, status_code: int | None = None, url: str | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.url = url


class AuthorizationError(TransferError):
    """The remote repository denied access (HTTP 401/403)."""

    pass


class ResourceNotFoundError(TransferError):
    """The remote artifact does not exist (HTTP 404)."""

    pass


class TransferFailedError(TransferError):
    """Any other transfer failure, with or without an HTTP response."""

    pass


class ErrorKind(str, Enum):
    """Error kinds a transfer failure maps to."""

    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    SERVER_ERROR = "server_error"
    SEND_FAILED = "send_failed"


_ERROR_CLASSES: dict[ErrorKind, type[TransferError]] = {
    ErrorKind.AUTHORIZATION: AuthorizationError,
    ErrorKind.NOT_FOUND: ResourceNotFoundError,
    ErrorKind.SERVER_ERROR: TransferFailedError,
    ErrorKind.SEND_FAILED: TransferFailedError,
}


def map_status(status_code: int | None) -> ErrorKind:
    """Map an HTTP status code (None when no response arrived) to an error kind."""
    if status_code is None:
        return ErrorKind.SEND_FAILED
    if status_code in (401, 403):
        return ErrorKind.AUTHORIZATION
    if status_code == 404:
        return ErrorKind.NOT_FOUND
    return ErrorKind.SERVER_ERROR


def error_message(kind: ErrorKind, has_credentials: bool) -> str:
    """Build the user-facing message for an error kind."""
    if kind == ErrorKind.AUTHORIZATION:
        if has_credentials:
            return PERMISSION_DENIED_MESSAGE
        return f"{PERMISSION_DENIED_MESSAGE} {NO_CREDENTIALS_MESSAGE}"
    if kind == ErrorKind.NOT_FOUND:
        return NOT_FOUND_MESSAGE
    if kind == ErrorKind.SERVER_ERROR:
        return SERVER_ERROR_MESSAGE
    return SEND_FAILED_MESSAGE


def error_for_status(
    status_code: int | None,
    has_credentials: bool,
    url: str | None = None,
) -> TransferError:
    """Build the domain error for a failed request.

    Args:
        status_code: HTTP status of the response, or None if the request
            failed before any response was received
        has_credentials: Whether ambient credentials were found at connect
            time; only changes the authorization message
        url: Target URL, kept on the error for diagnostics

    Returns:
        An AuthorizationError, ResourceNotFoundError or TransferFailedError
    """
    kind = map_status(status_code)
    error_cls = _ERROR_CLASSES[kind]
    return error_cls(error_message(kind, has_credentials), status_code=status_code, url=url)
