class BookingError(Exception):
    """Base for errors reported to the caller with an HTTP status."""

    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return self.message


class ValidationError(BookingError):
    status_code = 400


class NotFoundError(BookingError):
    status_code = 404

    def __init__(self, resource: str, identifier):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} '{identifier}' not found")


class CapacityError(BookingError):
    status_code = 400

    def __init__(self, max_guests: int):
        self.max_guests = max_guests
        super().__init__(f"Room capacity is {max_guests} guests")


class ConflictError(BookingError):
    status_code = 400


class InternalError(BookingError):
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
