"""Domain Exceptions

Every lifecycle failure is a ``ReservationError``. It subclasses ``ValueError``
so callers that only know about validation errors still catch it, and carries
an ``error_code`` plus the HTTP status the API layer should answer with.
"""


class ReservationError(ValueError):
    """Base class for reservation lifecycle errors"""

    status_code: int = 400
    error_code: str = "RESERVATION_ERROR"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class NotFound(ReservationError):
    status_code = 404
    error_code = "NOT_FOUND"


class ReservationNotFound(NotFound):
    error_code = "RESERVATION_NOT_FOUND"

    def __init__(self, reservation_id):
        self.reservation_id = reservation_id
        super().__init__(f"Reservation {reservation_id} not found")


class PropertyNotFound(NotFound):
    error_code = "PROPERTY_NOT_FOUND"

    def __init__(self, property_id):
        self.property_id = property_id
        super().__init__(f"Property {property_id} not found")


class TransactionNotFound(NotFound):
    error_code = "TRANSACTION_NOT_FOUND"

    def __init__(self, transaction_id):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found")


class InvalidStateTransition(ReservationError):
    status_code = 409
    error_code = "INVALID_STATE_TRANSITION"


class PaymentRequired(InvalidStateTransition):
    error_code = "PAYMENT_REQUIRED"


class PropertyAtCapacity(ReservationError):
    status_code = 409
    error_code = "PROPERTY_AT_CAPACITY"

    def __init__(self, property_id):
        self.property_id = property_id
        super().__init__(f"Property {property_id} is at full capacity")


class InvalidDateRange(ReservationError):
    error_code = "INVALID_DATE_RANGE"


class AlreadyPaid(ReservationError):
    status_code = 409
    error_code = "ALREADY_PAID"

    def __init__(self, reservation_id):
        self.reservation_id = reservation_id
        super().__init__(f"Reservation {reservation_id} has already been paid")
