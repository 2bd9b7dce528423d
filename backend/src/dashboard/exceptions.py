"""Exceptions raised by the dashboard core and its collaborators."""


class AuthRequiredError(Exception):
    """Raised when an operation needs a signed-in user and there is none."""

    def __init__(self, message: str = "Sign-in required") -> None:
        super().__init__(message)


class PersistenceError(Exception):
    """
    Raised when a call to the persistence gateway fails.

    Covers network errors, permission errors and server errors alike. The
    store catches these and reports them; they never escape a store operation.
    """

    def __init__(
        self,
        operation: str,
        message: str,
        status_code: int | None = None,
    ) -> None:
        self.operation = operation
        self.status_code = status_code
        super().__init__(f"{operation} failed: {message}")


class SubscriptionError(Exception):
    """Raised when the change stream cannot be established or drops."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
