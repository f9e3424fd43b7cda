from unittest.mock import patch

from app.errors.exceptions import GatewayTimeout
from app.models.order import Order
from app.models.payment import Payment
from app.third_parties.razorpay import RazorpayClient
from tests.helpers import ADMIN_ID, KEY_SECRET, OTHER_CUSTOMER_ID, reload, sign

PAYMENT_URL = "/api/v1/payments"


def test_initialize_cash_on_delivery(client, auth_headers, make_order):
    order = make_order()

    res = client.post(
        f"{PAYMENT_URL}/initialize",
        json={"orderId": order.id, "paymentMethod": {"type": "cash_on_delivery"}},
        headers=auth_headers(),
    )

    assert res.status_code == 200
    data = res.get_json()["data"]
    payment_id = data["payment"]["id"]
    assert data["payment"]["status"] == "pending"
    assert data["payment"]["amount"] == 29.25
    assert data["nextStep"]["endpoint"] == "/api/v1/payments/verify-cod"
    assert data["nextStep"]["body"] == {"paymentId": payment_id}
    assert data["order"]["payment_id"] == payment_id
    assert data["order"]["payment_method"] == "cash_on_delivery"


def test_initialize_online_payment(client, auth_headers, make_order):
    order = make_order()
    gateway_order = {
        "id": "order_gw_1",
        "amount": 2925,
        "currency": "INR",
        "receipt": f"order_{order.id}",
    }

    with patch.object(RazorpayClient, "create_order", return_value=gateway_order) as create:
        res = client.post(
            f"{PAYMENT_URL}/initialize",
            json={"orderId": order.id, "paymentMethod": {"type": "card"}},
            headers=auth_headers(),
        )

    assert res.status_code == 200
    assert create.call_args.kwargs["amount"] == 29.25
    data = res.get_json()["data"]
    assert data["gatewayOrder"] == gateway_order
    assert data["checkoutOptions"]["order_id"] == "order_gw_1"
    assert data["checkoutOptions"]["amount"] == 2925
    assert data["checkoutOptions"]["key"] == "rzp_test_key"
    assert data["payment"]["gateway_order_id"] == "order_gw_1"
    assert data["payment"]["payment_metadata"]["gateway"]["orderId"] == "order_gw_1"
    assert reload(Order, order.id).payment_id == data["payment"]["id"]


def test_initialize_gateway_timeout_keeps_payment_pending(client, auth_headers, make_order):
    order = make_order()

    with patch.object(RazorpayClient, "create_order", side_effect=GatewayTimeout()):
        res = client.post(
            f"{PAYMENT_URL}/initialize",
            json={"orderId": order.id, "paymentMethod": {"type": "upi"}},
            headers=auth_headers(),
        )

    assert res.status_code == 504
    assert res.get_json()["retryable"] is True
    payments = Payment.query.filter_by(order_id=order.id).all()
    assert [p.status for p in payments] == ["pending"]
    assert payments[0].gateway_order_id is None
    assert reload(Order, order.id).payment_id is None


def test_initialize_supersedes_previous_payment(client, auth_headers, make_payment):
    first = make_payment(method="cash_on_delivery")

    res = client.post(
        f"{PAYMENT_URL}/initialize",
        json={"orderId": first.order_id, "paymentMethod": {"type": "cash_on_delivery"}},
        headers=auth_headers(),
    )

    assert res.status_code == 200
    assert reload(Payment, first.id).status == "cancelled"


def test_initialize_rejects_paid_order(client, auth_headers, make_order):
    order = make_order(payment_status="paid")

    res = client.post(
        f"{PAYMENT_URL}/initialize",
        json={"orderId": order.id, "paymentMethod": {"type": "card"}},
        headers=auth_headers(),
    )

    assert res.status_code == 400
    assert Payment.query.count() == 0


def test_initialize_for_someone_elses_order(client, auth_headers, make_order):
    order = make_order()

    res = client.post(
        f"{PAYMENT_URL}/initialize",
        json={"orderId": order.id, "paymentMethod": {"type": "card"}},
        headers=auth_headers(OTHER_CUSTOMER_ID),
    )

    assert res.status_code == 403


def test_initialize_unknown_order(client, auth_headers, restaurant):
    res = client.post(
        f"{PAYMENT_URL}/initialize",
        json={"orderId": "order_missing", "paymentMethod": {"type": "card"}},
        headers=auth_headers(),
    )

    assert res.status_code == 404


def test_verify_online_payment(client, auth_headers, make_payment):
    payment = make_payment()

    res = client.post(
        f"{PAYMENT_URL}/verify",
        json={
            "paymentId": payment.id,
            "gateway_order_id": "order_123",
            "gateway_payment_id": "pay_456",
            "gateway_signature": sign(KEY_SECRET, "order_123|pay_456"),
        },
        headers=auth_headers(),
    )

    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["payment"]["status"] == "completed"
    assert data["payment"]["gateway_payment_id"] == "pay_456"
    assert data["payment"]["paid_at"] is not None
    assert "gateway_signature" not in data["payment"]
    assert data["order"]["payment_status"] == "paid"
    # Verification alone does not confirm the order.
    assert data["order"]["status"] == "pending"


def test_verify_bad_signature_fails_payment_only(client, auth_headers, make_payment):
    payment = make_payment()

    res = client.post(
        f"{PAYMENT_URL}/verify",
        json={
            "paymentId": payment.id,
            "gateway_order_id": "order_123",
            "gateway_payment_id": "pay_456",
            "gateway_signature": "deadbeef",
        },
        headers=auth_headers(),
    )

    assert res.status_code == 400
    assert res.get_json()["paymentStatus"] == "failed"
    payment = reload(Payment, payment.id)
    assert payment.status == "failed"
    assert payment.error_code == "SIGNATURE_MISMATCH"
    assert reload(Order, payment.order_id).payment_status == "pending"


def test_verify_requires_signature(client, auth_headers, make_payment):
    payment = make_payment()

    res = client.post(
        f"{PAYMENT_URL}/verify",
        json={"paymentId": payment.id, "gateway_payment_id": "pay_456"},
        headers=auth_headers(),
    )

    assert res.status_code == 400
    assert reload(Payment, payment.id).status == "pending"


def test_verify_in_relaxed_mode_generates_test_signature(app, client, auth_headers, make_payment):
    app.config["PAYMENT_RELAXED_MODE"] = True
    payment = make_payment()

    res = client.post(
        f"{PAYMENT_URL}/verify",
        json={"paymentId": payment.id, "gateway_payment_id": "pay_456"},
        headers=auth_headers(),
    )

    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["testSignature"] == sign(KEY_SECRET, "order_123|pay_456")
    assert data["payment"]["status"] == "completed"
    assert data["payment"]["payment_metadata"]["relaxedMode"] is True


def test_verify_rejects_mismatched_gateway_order(client, auth_headers, make_payment):
    payment = make_payment()

    res = client.post(
        f"{PAYMENT_URL}/verify",
        json={
            "paymentId": payment.id,
            "gateway_order_id": "order_other",
            "gateway_payment_id": "pay_456",
            "gateway_signature": sign(KEY_SECRET, "order_other|pay_456"),
        },
        headers=auth_headers(),
    )

    assert res.status_code == 400
    assert reload(Payment, payment.id).status == "pending"


def test_verify_is_idempotent_for_completed_payment(client, auth_headers, make_payment):
    payment = make_payment(status="completed", gateway_payment_id="pay_456")
    body = {
        "paymentId": payment.id,
        "gateway_payment_id": "pay_456",
        "gateway_signature": sign(KEY_SECRET, "order_123|pay_456"),
    }

    res = client.post(f"{PAYMENT_URL}/verify", json=body, headers=auth_headers())

    assert res.status_code == 200
    assert res.get_json()["data"]["payment"]["status"] == "completed"


def test_bad_signature_does_not_undo_completed_payment(client, auth_headers, make_payment):
    payment = make_payment(status="completed", gateway_payment_id="pay_456")

    res = client.post(
        f"{PAYMENT_URL}/verify",
        json={
            "paymentId": payment.id,
            "gateway_payment_id": "pay_456",
            "gateway_signature": "deadbeef",
        },
        headers=auth_headers(),
    )

    assert res.status_code == 400
    assert res.get_json()["paymentStatus"] == "completed"
    payment = reload(Payment, payment.id)
    assert payment.status == "completed"
    assert payment.error_code is None
    assert reload(Order, payment.order_id).payment_status == "paid"


def test_verify_refunded_payment_conflicts(client, auth_headers, make_payment):
    payment = make_payment(status="refunded", gateway_payment_id="pay_456")

    res = client.post(
        f"{PAYMENT_URL}/verify",
        json={
            "paymentId": payment.id,
            "gateway_payment_id": "pay_456",
            "gateway_signature": sign(KEY_SECRET, "order_123|pay_456"),
        },
        headers=auth_headers(),
    )

    assert res.status_code == 400
    assert res.get_json()["paymentStatus"] == "refunded"


def test_verify_someone_elses_payment(client, auth_headers, make_payment):
    payment = make_payment()

    res = client.post(
        f"{PAYMENT_URL}/verify",
        json={"paymentId": payment.id, "gateway_payment_id": "pay_456"},
        headers=auth_headers(OTHER_CUSTOMER_ID),
    )

    assert res.status_code == 403


def test_verify_cod_through_verify_endpoint(client, auth_headers, make_payment):
    payment = make_payment(method="cash_on_delivery")

    res = client.post(
        f"{PAYMENT_URL}/verify", json={"paymentId": payment.id}, headers=auth_headers()
    )

    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["order"]["status"] == "confirmed"
    assert data["payment"]["status"] == "pending"


def test_verify_cod_confirms_order(client, auth_headers, make_payment):
    payment = make_payment(method="cash_on_delivery")

    res = client.post(
        f"{PAYMENT_URL}/verify-cod", json={"paymentId": payment.id}, headers=auth_headers()
    )

    assert res.status_code == 200
    order = reload(Order, payment.order_id)
    assert order.status == "confirmed"
    assert order.get_status_history()[-1]["note"] == "Cash on delivery confirmed"


def test_verify_cod_rejects_online_payment(client, auth_headers, make_payment):
    payment = make_payment()

    res = client.post(
        f"{PAYMENT_URL}/verify-cod", json={"paymentId": payment.id}, headers=auth_headers()
    )

    assert res.status_code == 400
    assert res.get_json()["paymentMethod"] == "card"


def test_verify_cod_rejects_cancelled_order(client, auth_headers, make_order, make_payment):
    order = make_order(status="cancelled")
    payment = make_payment(order=order, method="cash_on_delivery")

    res = client.post(
        f"{PAYMENT_URL}/verify-cod", json={"paymentId": payment.id}, headers=auth_headers()
    )

    assert res.status_code == 400
    assert res.get_json()["orderStatus"] == "cancelled"
    assert reload(Order, order.id).status == "cancelled"
    assert reload(Payment, payment.id).status == "pending"


def test_verify_cod_twice_keeps_order_confirmed(client, auth_headers, make_payment):
    payment = make_payment(method="cash_on_delivery")
    url = f"{PAYMENT_URL}/verify-cod"

    client.post(url, json={"paymentId": payment.id}, headers=auth_headers())
    res = client.post(url, json={"paymentId": payment.id}, headers=auth_headers())

    assert res.status_code == 200
    order = reload(Order, payment.order_id)
    assert order.status == "confirmed"
    assert [e["status"] for e in order.get_status_history()] == ["pending", "confirmed"]


def test_verify_cod_unknown_payment(client, auth_headers, restaurant):
    res = client.post(
        f"{PAYMENT_URL}/verify-cod", json={"paymentId": "pay_missing"}, headers=auth_headers()
    )

    assert res.status_code == 404


def test_get_payment_access(client, auth_headers, make_payment):
    payment = make_payment()
    url = f"{PAYMENT_URL}/{payment.id}"

    assert client.get(url, headers=auth_headers()).status_code == 200
    assert client.get(url, headers=auth_headers(ADMIN_ID, "super_admin")).status_code == 200
    assert client.get(url, headers=auth_headers(OTHER_CUSTOMER_ID)).status_code == 403


def test_list_payments(client, auth_headers, make_payment):
    make_payment()
    make_payment(status="completed", gateway_payment_id="pay_1")
    make_payment(method="cash_on_delivery")

    res = client.get(f"{PAYMENT_URL}?status=completed", headers=auth_headers())
    body = res.get_json()
    assert body["total"] == 1
    assert body["data"][0]["status"] == "completed"

    res = client.get(f"{PAYMENT_URL}?payment_method=cash_on_delivery", headers=auth_headers())
    assert res.get_json()["total"] == 1


def test_receipt_for_completed_payment(client, auth_headers, make_payment):
    payment = make_payment(status="completed", gateway_payment_id="pay_456")

    res = client.get(f"{PAYMENT_URL}/{payment.id}/receipt", headers=auth_headers())

    assert res.status_code == 200
    assert res.get_json()["data"]["receiptUrl"].endswith(f"/{payment.id}")


def test_receipt_for_pending_payment_is_accepted(client, auth_headers, make_payment):
    payment = make_payment()

    res = client.get(f"{PAYMENT_URL}/{payment.id}/receipt", headers=auth_headers())

    assert res.status_code == 202
    body = res.get_json()
    assert body["success"] is True
    assert body["data"]["paymentStatus"] == "pending"
    assert "estimatedCompletionTime" in body["data"]


def test_provisional_receipt_for_admin(client, auth_headers, make_payment):
    payment = make_payment()

    res = client.get(
        f"{PAYMENT_URL}/{payment.id}/receipt", headers=auth_headers(ADMIN_ID, "sub_admin")
    )

    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["provisional"] is True
    assert data["receiptUrl"].endswith("?provisional=true")


def test_receipt_for_failed_payment(client, auth_headers, make_payment):
    payment = make_payment(status="failed")

    res = client.get(f"{PAYMENT_URL}/{payment.id}/receipt", headers=auth_headers())

    assert res.status_code == 400
    assert res.get_json()["data"] == {"paymentStatus": "failed"}
