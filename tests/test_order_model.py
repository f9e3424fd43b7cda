import pytest

from app.extensions import db
from app.models.menu_item import MenuItem
from app.models.order import Order
from tests.helpers import CUSTOMER_ID, reload


def test_total_amount_is_recomputed_on_insert(make_order):
    order = make_order(total=999.0)

    assert reload(Order, order.id).total_amount == 29.25


def test_total_amount_is_recomputed_on_update(make_order):
    order = make_order()
    order.discount = 4.25
    order.total_amount = 1.0
    db.session.commit()

    order = reload(Order, order.id)
    assert order.total_amount == 25.0
    assert order.total_amount == (
        order.subtotal
        + order.tax_amount
        + order.delivery_fee
        + order.packaging_fee
        - order.discount
    )


def test_version_is_bumped_on_every_write(make_order):
    order = make_order()
    first = reload(Order, order.id).version
    order = reload(Order, order.id)
    order.special_instructions = "Ring twice"
    db.session.commit()

    assert reload(Order, order.id).version == first + 1


def test_owner_fields_cannot_change(make_order):
    order = make_order()
    with pytest.raises(ValueError):
        order.user_id = "someone_else"
    with pytest.raises(ValueError):
        order.restaurant_id = "another_restaurant"
    db.session.rollback()
    assert reload(Order, order.id).user_id == CUSTOMER_ID


@pytest.mark.parametrize(
    "status,cancellable",
    [
        ("pending", True),
        ("confirmed", True),
        ("preparing", True),
        ("ready", True),
        ("out_for_delivery", True),
        ("delivered", False),
        ("completed", False),
        ("refunded", False),
        ("cancelled", True),
    ],
)
def test_can_be_cancelled(status, cancellable):
    assert Order(status=status).can_be_cancelled() is cancellable


@pytest.mark.parametrize(
    "status,modifiable",
    [
        ("pending", True),
        ("confirmed", True),
        ("preparing", False),
        ("ready", False),
        ("out_for_delivery", False),
        ("delivered", False),
        ("completed", False),
        ("cancelled", False),
        ("refunded", False),
    ],
)
def test_can_be_modified(status, modifiable):
    assert Order(status=status).can_be_modified() is modifiable


def test_status_history_appends(make_order):
    order = make_order()
    order.append_status_history("confirmed", updated_by="user_owner", note="ok")

    history = order.get_status_history()
    assert [entry["status"] for entry in history] == ["pending", "confirmed"]
    assert history[-1]["updatedBy"] == "user_owner"
    assert history[-1]["note"] == "ok"
    assert history[-1]["timestamp"].endswith("Z")


def test_to_json_decodes_json_columns(make_order):
    data = reload(Order, make_order().id).to_json()

    assert isinstance(data["items"], list)
    assert data["status_history"][0]["status"] == "pending"
    assert data["delivery_address"]["city"] == "Pune"
    assert data["can_be_cancelled"] is True


@pytest.mark.parametrize(
    "price,discounted,expected",
    [(10.0, 0, 10.0), (10.0, 8.0, 8.0), (10.0, 12.0, 10.0), (10.0, None, 10.0)],
)
def test_menu_item_final_price(price, discounted, expected):
    assert MenuItem(price=price, discounted_price=discounted).final_price() == expected
