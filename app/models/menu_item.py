from app.extensions import db
from app.lib.string import load_json
from app.models.base import BaseModel


class MenuItem(db.Model, BaseModel):
    __tablename__ = "menu_items"

    id = db.Column(db.String(64), primary_key=True)
    restaurant_id = db.Column(
        db.String(64), db.ForeignKey("restaurants.id"), nullable=False, index=True
    )
    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Float, nullable=False)
    discounted_price = db.Column(db.Float, default=0)
    is_available = db.Column(db.Boolean, default=True)
    # [{"name": "Size", "options": [{"name": "Large", "price": 2.0}]}]
    customization_groups = db.Column(db.Text, nullable=True)

    to_json_parse = ("customization_groups",)

    def final_price(self):
        if self.discounted_price and 0 < self.discounted_price < self.price:
            return self.discounted_price
        return self.price

    def get_customization_groups(self):
        return load_json(self.customization_groups, default=[]) or []

    def find_customization_group(self, group_name):
        for group in self.get_customization_groups():
            if group.get("name") == group_name or group.get("groupName") == group_name:
                return group
        return None
