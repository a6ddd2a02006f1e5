"""Error taxonomy for prequel operations.

Validation-style mismatches derive from PrequelError and carry the HTTP status
the resource router answers with:

    PrequelError (500)
    ├── QueryError     (400) - settings could not be translated
    ├── NotFound       (404) - no row for a single-target read or mutation
    └── Unprocessable  (422) - a bulk mutation affected fewer rows than asked

CardinalityError is deliberately outside that tree. It means a filter matched
more rows than the caller allowed, which is a bug in the caller, so nothing in
prequel catches or converts it.
"""


class PrequelError(Exception):
    """Base class for recoverable prequel errors."""

    status_code = 500
    default_detail = "Prequel operation failed"

    def __init__(self, detail=None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class QueryError(PrequelError):
    status_code = 400
    default_detail = "Invalid query settings"


class NotFound(PrequelError):
    status_code = 404
    default_detail = "Not Found"


class Unprocessable(PrequelError):
    status_code = 422
    default_detail = "Unprocessable"


class CardinalityError(RuntimeError):
    """More rows matched or were affected than the operation allows."""

    def __init__(self, expected: int, actual: int, action: str = "affected"):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Expected only {expected} {action} row/s, instead {action} {actual}"
        )
