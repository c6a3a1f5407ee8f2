"""
Error taxonomy shared by the store, the services and the HTTP layer.

Every error carries a short, non-technical ``message`` that is safe to show
to end users, and the HTTP status the API responds with.
"""


class BrokerError(Exception):
    """Base class for all access-code broker errors."""
    status_code = 500
    message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidFormat(BrokerError):
    """The submitted code is not a well-formed access code."""
    status_code = 400
    message = "Invalid code format"


class NotFound(BrokerError):
    """The code is well-formed but no file is registered under it."""
    status_code = 404
    message = "Invalid code or the file does not exist."


class DuplicateKey(BrokerError):
    """The code is already held by a valid reference. Internal only."""
    status_code = 409
    message = "Code already in use"


class RegistrationFailed(BrokerError):
    """No unique code could be allocated within the retry bound."""
    status_code = 500
    message = "Failed to upload file. Please try again."


class StoreUnavailable(BrokerError):
    """The persistence layer failed or timed out."""
    status_code = 503
    message = "The service is temporarily unavailable. Please try again."
