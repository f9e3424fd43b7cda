from enum import Enum


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    AUTHORIZED = "authorized"  # gateway authorized, capture not yet confirmed
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"

    @classmethod
    def values(cls):
        return [status.value for status in cls]


class RefundStatus(str, Enum):
    NONE = "none"
    PENDING = "pending"  # awaiting admin approval or gateway settlement
    PROCESSED = "processed"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    CASH_ON_DELIVERY = "cash_on_delivery"
    CARD = "card"
    UPI = "upi"
    WALLET = "wallet"
    NET_BANKING = "net_banking"
    ONLINE_PAYMENT = "online_payment"

    @classmethod
    def values(cls):
        return [method.value for method in cls]


# Forward moves a payment may make; anything else would regress it.
PAYMENT_STATUS_MOVES = {
    PaymentStatus.PENDING.value: (
        PaymentStatus.PROCESSING.value,
        PaymentStatus.AUTHORIZED.value,
        PaymentStatus.COMPLETED.value,
        PaymentStatus.FAILED.value,
        PaymentStatus.CANCELLED.value,
        PaymentStatus.REFUNDED.value,
    ),
    PaymentStatus.PROCESSING.value: (
        PaymentStatus.AUTHORIZED.value,
        PaymentStatus.COMPLETED.value,
        PaymentStatus.FAILED.value,
        PaymentStatus.CANCELLED.value,
        PaymentStatus.REFUNDED.value,
    ),
    PaymentStatus.AUTHORIZED.value: (
        PaymentStatus.COMPLETED.value,
        PaymentStatus.FAILED.value,
        PaymentStatus.CANCELLED.value,
    ),
    # A late capture is real money movement and wins over an earlier failure
    # or a superseded checkout.
    PaymentStatus.FAILED.value: (PaymentStatus.COMPLETED.value,),
    PaymentStatus.COMPLETED.value: (PaymentStatus.REFUNDED.value,),
    PaymentStatus.REFUNDED.value: (),
    PaymentStatus.CANCELLED.value: (PaymentStatus.COMPLETED.value,),
}

REFUND_STATUS_MOVES = {
    RefundStatus.NONE.value: (
        RefundStatus.PENDING.value,
        RefundStatus.PROCESSED.value,
        RefundStatus.FAILED.value,
    ),
    RefundStatus.PENDING.value: (RefundStatus.PROCESSED.value, RefundStatus.FAILED.value),
    RefundStatus.FAILED.value: (RefundStatus.PROCESSED.value,),
    RefundStatus.PROCESSED.value: (),
}
