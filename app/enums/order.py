from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    REFUND_REQUESTED = "refund_requested"
    REFUND_FAILED = "refund_failed"

    @classmethod
    def values(cls):
        return [status.value for status in cls]


class OrderPaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class OrderType(str, Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"
    DINE_IN = "dine_in"

    @classmethod
    def values(cls):
        return [order_type.value for order_type in cls]


# Statuses an order may never be cancelled from through the cancel endpoint.
NOT_CANCELLABLE_STATUSES = (
    OrderStatus.DELIVERED.value,
    OrderStatus.COMPLETED.value,
    OrderStatus.REFUNDED.value,
)

NOT_MODIFIABLE_STATUSES = (
    OrderStatus.PREPARING.value,
    OrderStatus.READY.value,
    OrderStatus.OUT_FOR_DELIVERY.value,
    OrderStatus.DELIVERED.value,
    OrderStatus.COMPLETED.value,
    OrderStatus.CANCELLED.value,
    OrderStatus.REFUNDED.value,
)

# Orders left out of revenue and popular item stats.
NON_EARNING_STATUSES = (
    OrderStatus.CANCELLED.value,
    OrderStatus.REFUNDED.value,
)

# A delivery person can no longer be assigned once an order reaches these.
DELIVERY_CLOSED_STATUSES = NOT_CANCELLABLE_STATUSES + (OrderStatus.CANCELLED.value,)
