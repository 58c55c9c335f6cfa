class ResultsError(Exception):
    """Base class for errors raised by the results core."""


class NotFound(ResultsError):
    pass


class InvalidState(ResultsError):
    pass


class IncompleteAggregate(ResultsError):
    """The attempt has no marks, so it has no Pass/Fail outcome yet."""


class InvalidMarks(ResultsError, ValueError):
    pass


class StoreUnavailable(ResultsError):
    """The fingerprint store timed out or refused the request."""

    def __init__(self, message, retryable=True):
        super().__init__(message)
        self.retryable = retryable
