# coding: utf8


class ApiError(Exception):
    """Base class of every error rendered in the API envelope.

    ``extra`` keys are merged into the response body next to
    ``success``/``message``/``data`` so callers can reconcile state
    without another request.
    """

    status = 500
    default_message = "Internal Server Error"

    def __init__(self, message=None, data=None, status=None, **extra):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.payload = data
        if status is not None:
            self.status = status
        self.extra = extra

    def to_dict(self):
        body = {"success": False, "message": self.message, "data": self.payload or {}}
        body.update({k: v for k, v in self.extra.items() if v is not None})
        return body


class ValidationError(ApiError):
    status = 400
    default_message = "Request parameters are invalid."


BadRequest = ValidationError


class Unauthorized(ApiError):
    status = 401
    default_message = "Unauthorized"


class ForbiddenError(ApiError):
    status = 403
    default_message = "You are not allowed to perform this action"


class NotFoundError(ApiError):
    status = 404
    default_message = "Resource not found"


class ConflictError(ApiError):
    status = 400
    default_message = "Request conflicts with the current state"


class UpstreamError(ApiError):
    status = 502
    default_message = "Payment gateway error"
    retryable = False


class SignatureError(ApiError):
    status = 400
    default_message = "Invalid signature"


class ConcurrencyError(ApiError):
    status = 409
    default_message = "The record was modified concurrently, please retry"


# Order state machine
class InvalidTransition(ConflictError):
    default_message = "Invalid status transition"


class NotCancellable(ConflictError):
    default_message = "Order cannot be cancelled at this stage"


# Lookups
class OrderNotFound(NotFoundError):
    default_message = "Order not found"


class PaymentNotFound(NotFoundError):
    default_message = "Payment not found"


class RestaurantUnavailable(NotFoundError):
    default_message = "Restaurant not found or not available"


# Order creation
class NoItems(ValidationError):
    default_message = "Order must contain at least one item"


class ItemUnavailable(ValidationError):
    default_message = "Menu item is not available"


# Payments
class NotOwner(ForbiddenError):
    default_message = "Not authorized to access this resource"


class AlreadyPaid(ConflictError):
    default_message = "Order is already paid"


class GatewayError(UpstreamError):
    default_message = "Payment gateway request failed"


class GatewayTimeout(UpstreamError):
    status = 504
    default_message = "Payment gateway timed out, please retry"
    retryable = True

    def __init__(self, message=None, data=None, status=None, **extra):
        extra.setdefault("retryable", True)
        super().__init__(message, data, status, **extra)
