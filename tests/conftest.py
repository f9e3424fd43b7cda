import json

import pytest
from flask_jwt_extended import create_access_token

from app import create_app
from app.config import TestingConfig
from app.extensions import db
from app.models.menu_item import MenuItem
from app.models.order import Order
from app.models.payment import Payment
from app.models.restaurant import Restaurant

from tests.helpers import CUSTOMER_ID, OWNER_ID


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    def _headers(user_id=CUSTOMER_ID, role="customer"):
        token = create_access_token(identity=user_id, additional_claims={"role": role})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def restaurant(app):
    restaurant = Restaurant(
        id="rest_spice",
        name="Spice Hub",
        owner_id=OWNER_ID,
        is_active=True,
        is_approved=True,
        delivery_fee=3.0,
        free_delivery_min_amount=0,
    )
    db.session.add(restaurant)
    db.session.add_all(
        [
            MenuItem(
                id="item_burger",
                restaurant_id=restaurant.id,
                name="Burger",
                price=10.0,
                discounted_price=0,
                is_available=True,
                customization_groups=json.dumps(
                    [
                        {
                            "name": "Size",
                            "options": [
                                {"name": "Regular", "price": 0},
                                {"name": "Large", "price": 2.0},
                            ],
                        },
                        {"name": "Extras", "options": [{"name": "Cheese", "price": 1.5}]},
                    ]
                ),
            ),
            MenuItem(
                id="item_fries",
                restaurant_id=restaurant.id,
                name="Fries",
                price=5.0,
                is_available=True,
            ),
            MenuItem(
                id="item_sold_out",
                restaurant_id=restaurant.id,
                name="Sold out special",
                price=12.0,
                is_available=False,
            ),
        ]
    )
    db.session.commit()
    return restaurant


@pytest.fixture
def make_order(restaurant):
    def _make(user_id=CUSTOMER_ID, status="pending", payment_status="pending", total=29.25):
        order = Order(
            user_id=user_id,
            restaurant_id=restaurant.id,
            items=json.dumps(
                [
                    {
                        "menuItemId": "item_burger",
                        "name": "Burger",
                        "price": 10.0,
                        "quantity": 2,
                        "customizations": [],
                        "totalPrice": 20.0,
                    },
                    {
                        "menuItemId": "item_fries",
                        "name": "Fries",
                        "price": 5.0,
                        "quantity": 1,
                        "customizations": [],
                        "totalPrice": 5.0,
                    },
                ]
            ),
            subtotal=25.0,
            tax_amount=1.25,
            delivery_fee=3.0,
            packaging_fee=0,
            discount=0,
            total_amount=total,
            status=status,
            payment_status=payment_status,
            payment_method="card",
            order_type="delivery",
            delivery_address=json.dumps({"street": "1 MG Road", "city": "Pune"}),
        )
        order.append_status_history(status, updated_by=user_id)
        db.session.add(order)
        db.session.commit()
        return order

    return _make


@pytest.fixture
def make_payment(make_order):
    def _make(
        order=None,
        status="pending",
        method="card",
        gateway_order_id="order_123",
        gateway_payment_id=None,
        refund_status="none",
        link=True,
    ):
        order = order or make_order()
        payment = Payment(
            user_id=order.user_id,
            order_id=order.id,
            amount=order.total_amount,
            currency="INR",
            payment_method=method,
            payment_gateway=None if method == "cash_on_delivery" else "razorpay",
            status=status,
            gateway_order_id=None if method == "cash_on_delivery" else gateway_order_id,
            gateway_payment_id=gateway_payment_id,
            refund_status=refund_status,
        )
        db.session.add(payment)
        db.session.flush()
        if link:
            order.payment_id = payment.id
            order.payment_method = method
            if status == "completed":
                order.payment_status = "paid"
        db.session.commit()
        return payment

    return _make
