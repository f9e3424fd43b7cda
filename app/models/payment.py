from app.enums.payment import (
    PAYMENT_STATUS_MOVES,
    REFUND_STATUS_MOVES,
    PaymentMethod,
    PaymentStatus,
    RefundStatus,
)
from app.extensions import db
from app.lib.string import dump_json, generate_order_id, load_json
from app.models.base import BaseModel, utc_now


class Payment(db.Model, BaseModel):
    __tablename__ = "payments"

    id = db.Column(
        db.String(40), primary_key=True, default=lambda: generate_order_id("pay")
    )
    user_id = db.Column(db.String(64), nullable=False, index=True)
    order_id = db.Column(
        db.String(40), db.ForeignKey("orders.id"), nullable=False, index=True
    )
    amount = db.Column(db.Float, nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="INR")
    payment_method = db.Column(db.String(30), nullable=False)
    payment_gateway = db.Column(db.String(30), nullable=True)

    status = db.Column(db.String(20), nullable=False, default=PaymentStatus.PENDING.value)

    gateway_order_id = db.Column(db.String(100), nullable=True, index=True)
    gateway_payment_id = db.Column(db.String(100), nullable=True, index=True)
    gateway_signature = db.Column(db.String(255), nullable=True)

    refund_status = db.Column(
        db.String(20), nullable=False, default=RefundStatus.NONE.value
    )
    refund_amount = db.Column(db.Float, nullable=True)
    refund_reason = db.Column(db.String(500), nullable=True)
    refund_id = db.Column(db.String(100), nullable=True)
    refunded_at = db.Column(db.DateTime, nullable=True)

    error_message = db.Column(db.String(500), nullable=True)
    error_code = db.Column(db.String(100), nullable=True)

    payment_metadata = db.Column(db.Text, nullable=True)
    receipt_url = db.Column(db.String(500), nullable=True)
    paid_at = db.Column(db.DateTime, nullable=True)

    version = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    to_json_parse = ("payment_metadata",)
    to_json_filter = ("gateway_signature",)

    order = db.relationship("Order")

    def is_cash_on_delivery(self):
        return self.payment_method == PaymentMethod.CASH_ON_DELIVERY.value

    def is_gateway_backed(self):
        return bool(self.gateway_payment_id) and not self.is_cash_on_delivery()

    def can_move_to(self, new_status):
        if new_status == self.status:
            return True
        return new_status in PAYMENT_STATUS_MOVES.get(self.status, ())

    def move_to(self, new_status):
        """Apply ``new_status`` unless it would move the payment backwards.

        Returns True only when the status actually changed.
        """
        if new_status == self.status or not self.can_move_to(new_status):
            return False
        self.status = new_status
        if new_status == PaymentStatus.COMPLETED.value:
            self.paid_at = utc_now()
            self.error_message = None
            self.error_code = None
        return True

    def move_refund_to(self, new_refund_status):
        if new_refund_status == self.refund_status:
            return False
        if new_refund_status not in REFUND_STATUS_MOVES.get(self.refund_status, ()):
            return False
        self.refund_status = new_refund_status
        if new_refund_status == RefundStatus.PROCESSED.value:
            self.refunded_at = utc_now()
        return True

    def get_metadata(self):
        return load_json(self.payment_metadata, default={}) or {}

    def merge_metadata(self, **values):
        metadata = self.get_metadata()
        metadata.update(values)
        self.payment_metadata = dump_json(metadata)

    def refund_details(self):
        return {
            "refundStatus": self.refund_status,
            "refundAmount": self.refund_amount,
            "refundReason": self.refund_reason,
            "refundId": self.refund_id,
            "refundedAt": (
                self.refunded_at.strftime("%Y-%m-%dT%H:%M:%SZ")
                if self.refunded_at
                else None
            ),
        }

    def to_json(self):
        return self._to_json()
