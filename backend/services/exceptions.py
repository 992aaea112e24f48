# backend/services/exceptions.py


class OrderError(Exception):
    """Base for failures reported to the caller of an order operation."""

    status_code = 400
    default_message = "Bad request."

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(OrderError):
    status_code = 400
    default_message = "Invalid request."


class EmptyCartError(OrderError):
    status_code = 400
    default_message = "Your cart is empty."


class NotFoundError(OrderError):
    status_code = 404
    default_message = "Not found."


class InternalError(OrderError):
    # Never carries internal detail back to the client
    status_code = 500
    default_message = "Internal server error."


class NotificationError(Exception):
    """Raised inside the notification dispatcher only; never escapes it."""


class CustomerNotFoundError(NotificationError):
    pass
