from datetime import timedelta

from sqlalchemy import event
from sqlalchemy.orm import validates

from app.enums.order import (
    NOT_CANCELLABLE_STATUSES,
    NOT_MODIFIABLE_STATUSES,
    OrderPaymentStatus,
    OrderStatus,
)
from app.extensions import db
from app.lib.string import dump_json, generate_order_id, load_json
from app.models.base import BaseModel, utc_now


class Order(db.Model, BaseModel):
    __tablename__ = "orders"

    id = db.Column(
        db.String(40), primary_key=True, default=lambda: generate_order_id("order")
    )
    user_id = db.Column(db.String(64), nullable=False, index=True)
    restaurant_id = db.Column(
        db.String(64), db.ForeignKey("restaurants.id"), nullable=False, index=True
    )
    items = db.Column(db.Text, nullable=False)

    subtotal = db.Column(db.Float, nullable=False, default=0)
    tax_amount = db.Column(db.Float, nullable=False, default=0)
    delivery_fee = db.Column(db.Float, nullable=False, default=0)
    packaging_fee = db.Column(db.Float, nullable=False, default=0)
    discount = db.Column(db.Float, nullable=False, default=0)
    total_amount = db.Column(db.Float, nullable=False, default=0)

    status = db.Column(db.String(30), nullable=False, default=OrderStatus.PENDING.value)
    status_history = db.Column(db.Text, nullable=False, default="[]")

    payment_id = db.Column(db.String(40), nullable=True, index=True)
    payment_status = db.Column(
        db.String(20), nullable=False, default=OrderPaymentStatus.PENDING.value
    )
    payment_method = db.Column(db.String(30), nullable=True)

    order_type = db.Column(db.String(20), nullable=False)
    delivery_address = db.Column(db.Text, nullable=True)
    special_instructions = db.Column(db.Text, nullable=True)
    delivery_person_id = db.Column(db.String(64), nullable=True, index=True)
    estimated_delivery_time = db.Column(db.DateTime, nullable=True)
    actual_delivery_time = db.Column(db.DateTime, nullable=True)

    cancellation_reason = db.Column(db.String(500), nullable=True)
    cancellation_time = db.Column(db.DateTime, nullable=True)
    cancelled_by = db.Column(db.String(64), nullable=True)

    refund_amount = db.Column(db.Float, nullable=True)
    refund_time = db.Column(db.DateTime, nullable=True)

    version = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    to_json_parse = ("items", "status_history", "delivery_address")

    @validates("user_id", "restaurant_id")
    def validate_owner_fields(self, key, value):
        current = getattr(self, key)
        if current is not None and current != value:
            raise ValueError(f"Order.{key} cannot change after creation")
        return value

    def get_items(self):
        return load_json(self.items, default=[]) or []

    def get_status_history(self):
        return load_json(self.status_history, default=[]) or []

    def append_status_history(self, status, updated_by=None, note=None):
        history = self.get_status_history()
        history.append(
            {
                "status": status,
                "timestamp": utc_now().strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
                "updatedBy": updated_by,
                "note": note,
            }
        )
        self.status_history = dump_json(history)

    def can_be_cancelled(self):
        return self.status not in NOT_CANCELLABLE_STATUSES

    def can_be_modified(self):
        return self.status not in NOT_MODIFIABLE_STATUSES

    def recalculate_totals(self):
        self.total_amount = round(
            (self.subtotal or 0)
            + (self.tax_amount or 0)
            + (self.delivery_fee or 0)
            + (self.packaging_fee or 0)
            - (self.discount or 0),
            2,
        )
        return self.total_amount

    def calculate_estimated_delivery_time(self, prep_minutes, buffer_minutes):
        self.estimated_delivery_time = utc_now() + timedelta(
            minutes=prep_minutes + buffer_minutes
        )
        return self.estimated_delivery_time

    def to_json(self):
        data = self._to_json()
        data["can_be_cancelled"] = self.can_be_cancelled()
        data["can_be_modified"] = self.can_be_modified()
        return data


@event.listens_for(Order, "before_insert")
@event.listens_for(Order, "before_update")
def recalculate_order_totals(mapper, connection, target):
    target.recalculate_totals()
