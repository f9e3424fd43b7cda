from app.extensions import db
from app.models.base import BaseModel


class Restaurant(db.Model, BaseModel):
    """Catalog restaurant row, owned by the catalog service and only read here."""

    __tablename__ = "restaurants"

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    owner_id = db.Column(db.String(64), nullable=False, index=True)
    is_active = db.Column(db.Boolean, default=True)
    is_approved = db.Column(db.Boolean, default=False)
    delivery_fee = db.Column(db.Float, default=0)
    free_delivery_min_amount = db.Column(db.Float, default=0)
    estimated_prep_minutes = db.Column(db.Integer, nullable=True)

    def is_available(self):
        return bool(self.is_active and self.is_approved)
