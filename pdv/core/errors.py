"""Domain errors raised by the services layer.

Routes do not catch these; `pdv.main` registers a handler that turns them
into `{"detail": message}` responses with the class' status code.
"""


class PDVError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PDVError):
    """Missing or inconsistent input supplied by the user."""
    status_code = 400


class NotFoundError(PDVError):
    status_code = 404


class ConflictError(PDVError):
    """State changed underneath the request (stock, finished conditional...)."""
    status_code = 409


class TransientIOError(PDVError):
    """Database unreachable or connection dropped; the caller may retry."""
    status_code = 503
