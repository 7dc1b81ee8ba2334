# app/core/exceptions.py
"""
Domain errors raised by the booking core.

Routes do not catch these; a single exception handler in app.main turns
them into JSON responses with the status code carried by the class.
"""


class BookingError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BookingValidationError(BookingError):
    status_code = 400


class NotFoundError(BookingError):
    status_code = 404

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class AlreadyRatedError(BookingError):
    status_code = 409

    def __init__(self, booking_id: str):
        super().__init__("You have already rated this service.")
        self.booking_id = booking_id


class InvalidTransitionError(BookingError):
    status_code = 409

    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot move booking from {current} to {requested}")
        self.current = current
        self.requested = requested


class ConcurrentUpdateError(BookingError):
    status_code = 409

    def __init__(self, booking_id: str):
        super().__init__("Booking was modified by another request, reload and retry")
        self.booking_id = booking_id
