from app.extensions import db
from app.lib.string import generate_order_id
from app.models.base import BaseModel


class SavedPaymentMethod(db.Model, BaseModel):
    __tablename__ = "saved_payment_methods"

    id = db.Column(
        db.String(40), primary_key=True, default=lambda: generate_order_id("pm")
    )
    user_id = db.Column(db.String(64), nullable=False, index=True)
    type = db.Column(db.String(30), nullable=False)
    name = db.Column(db.String(255), nullable=True)
    card_last4 = db.Column(db.String(4), nullable=True)
    card_brand = db.Column(db.String(30), nullable=True)
    expiry_month = db.Column(db.String(2), nullable=True)
    expiry_year = db.Column(db.String(4), nullable=True)
    holder_name = db.Column(db.String(255), nullable=True)
    is_default = db.Column(db.Boolean, default=False)
