from unittest.mock import patch

import pytest
from sqlalchemy import text
from sqlalchemy.orm.exc import StaleDataError

from app.errors.exceptions import ConcurrencyError, ValidationError
from app.extensions import db
from app.lib.query import run_in_transaction
from app.models.payment import Payment
from app.services.order_status import OrderStateMachine
from tests.helpers import OWNER_ID, reload

BUMP_VERSION = text("UPDATE payments SET version = version + 1 WHERE id = :id")


def test_conflicting_write_is_retried(app, make_payment):
    payment_id = make_payment().id
    seen_versions = []

    def work():
        payment = db.session.get(Payment, payment_id)
        seen_versions.append(payment.version)
        if len(seen_versions) == 1:
            # Another writer gets in between our read and our write.
            db.session.execute(BUMP_VERSION, {"id": payment_id})
        payment.move_to("failed")
        return payment

    run_in_transaction(work)

    assert len(seen_versions) == 2
    payment = reload(Payment, payment_id)
    assert payment.status == "failed"
    assert payment.version == seen_versions[-1] + 1


def test_persistent_conflict_gives_up(app, make_payment):
    app.config["CONCURRENCY_RETRIES"] = 2
    payment_id = make_payment().id
    calls = []

    def work():
        payment = db.session.get(Payment, payment_id)
        calls.append(payment.version)
        db.session.execute(BUMP_VERSION, {"id": payment_id})
        payment.move_to("failed")

    with pytest.raises(ConcurrencyError):
        run_in_transaction(work)

    assert len(calls) == 3
    assert reload(Payment, payment_id).status == "pending"


def test_other_errors_roll_back_without_retry(app, make_payment):
    payment_id = make_payment().id
    calls = []

    def work():
        calls.append(1)
        db.session.get(Payment, payment_id).move_to("failed")
        raise ValidationError(message="nope")

    with pytest.raises(ValidationError):
        run_in_transaction(work)

    assert calls == [1]
    assert reload(Payment, payment_id).status == "pending"


def test_conflict_surfaces_as_409(client, auth_headers, make_order):
    order = make_order()

    with patch.object(OrderStateMachine, "transition", side_effect=StaleDataError("conflict")):
        res = client.put(
            f"/api/v1/orders/{order.id}/status",
            json={"status": "confirmed"},
            headers=auth_headers(OWNER_ID, "restaurant_owner"),
        )

    assert res.status_code == 409
    assert res.get_json()["success"] is False
