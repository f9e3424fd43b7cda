from datetime import timedelta

from flask import current_app

import const
from app.enums.order import OrderPaymentStatus, OrderStatus
from app.enums.payment import PaymentMethod, PaymentStatus, RefundStatus
from app.errors.exceptions import (
    AlreadyPaid,
    ConflictError,
    ForbiddenError,
    NotOwner,
    PaymentNotFound,
    SignatureError,
    UpstreamError,
    ValidationError,
)
from app.extensions import db
from app.lib.logger import logger
from app.lib.query import run_in_transaction, select_by_id, select_with_filter_one
from app.models.base import utc_now
from app.models.payment import Payment
from app.models.payment_method import SavedPaymentMethod
from app.services.order import OrderService
from app.services.payment_sync import PaymentSync
from app.third_parties.razorpay import (
    RazorpayClient,
    generate_payment_signature,
    verify_payment_signature,
)

# Re-confirming an already confirmed COD order is a no-op.
COD_CONFIRMABLE_STATUSES = (OrderStatus.PENDING.value, OrderStatus.CONFIRMED.value)


class PaymentService:

    @staticmethod
    def find_payment(id):
        return select_by_id(Payment, id)

    @staticmethod
    def find_payment_by_gateway_order(gateway_order_id):
        if not gateway_order_id:
            return None
        return select_with_filter_one(
            Payment,
            filters=[Payment.gateway_order_id == gateway_order_id],
            order_by=[Payment.created_at.desc()],
        )

    @staticmethod
    def find_payment_by_gateway_payment(gateway_payment_id):
        if not gateway_payment_id:
            return None
        return select_with_filter_one(
            Payment, filters=[Payment.gateway_payment_id == gateway_payment_id]
        )

    @staticmethod
    def get_payment_or_404(payment_id):
        payment = PaymentService.find_payment(payment_id)
        if not payment:
            raise PaymentNotFound()
        return payment

    @staticmethod
    def check_owner(actor, payment, allow_admin=False):
        if payment.user_id == actor.id:
            return
        if allow_admin and actor.is_admin():
            return
        raise NotOwner(message="Not authorized to access this payment")

    @staticmethod
    def is_relaxed_mode():
        return bool(current_app.config.get("PAYMENT_RELAXED_MODE"))

    @staticmethod
    def link_payment(order, payment):
        """Point ``order`` at ``payment``; a superseded unpaid payment is cancelled."""
        if order.payment_id and order.payment_id != payment.id:
            previous = PaymentService.find_payment(order.payment_id)
            if previous and previous.move_to(PaymentStatus.CANCELLED.value):
                logger.info(
                    f"Payment {previous.id} superseded by {payment.id} on order {order.id}"
                )
        order.payment_id = payment.id
        order.payment_method = payment.payment_method
        order.payment_status = OrderPaymentStatus.PENDING.value

    @staticmethod
    def save_payment_method(actor, method):
        card = method.get("cardDetails") or {}
        saved = SavedPaymentMethod(
            user_id=actor.id,
            type=method.get("type"),
            name=method.get("name")
            or f"{method.get('type')} ending in {card.get('last4')}",
            card_last4=card.get("last4"),
            card_brand=card.get("brand"),
            expiry_month=card.get("expiryMonth"),
            expiry_year=card.get("expiryYear"),
            holder_name=card.get("holderName"),
            is_default=False,
        )
        db.session.add(saved)
        return saved

    @staticmethod
    def initialize_payment(actor, data):
        config = current_app.config
        order_id = data.get("orderId")
        method = data.get("paymentMethod") or {}
        method_type = method.get("type")
        is_cod = method_type == PaymentMethod.CASH_ON_DELIVERY.value

        def create_pending_payment():
            order = OrderService.get_order_or_404(order_id)
            if order.user_id != actor.id:
                raise NotOwner(message="Not authorized to access this order")
            if order.payment_status == OrderPaymentStatus.PAID.value:
                raise AlreadyPaid()

            payment = Payment(
                user_id=actor.id,
                order_id=order.id,
                amount=order.total_amount,
                currency=config["GATEWAY_CURRENCY"],
                payment_method=method_type,
                payment_gateway=None if is_cod else method.get("gateway") or config["GATEWAY_NAME"],
                status=PaymentStatus.PENDING.value,
            )
            db.session.add(payment)
            db.session.flush()
            if is_cod:
                PaymentService.link_payment(order, payment)
            return payment

        payment = run_in_transaction(create_pending_payment)
        payment_id = payment.id
        logger.info(
            f"Payment {payment_id} ({method_type}) created for order {order_id} by {actor.id}"
        )

        if is_cod:
            order = OrderService.find_order(order_id)
            return {
                "payment": payment.to_json(),
                "order": order.to_json(),
                "nextStep": {
                    "message": "To confirm this COD order, use the verify-cod endpoint",
                    "endpoint": const.VERIFY_COD_ENDPOINT,
                    "method": "POST",
                    "body": {"paymentId": payment_id},
                },
            }

        # Payment stays pending and retryable if the gateway call fails.
        client = RazorpayClient.from_config()
        gateway_order = client.create_order(
            amount=payment.amount,
            currency=payment.currency,
            receipt=f"order_{order_id}",
            notes={"orderId": order_id, "userId": actor.id, "paymentId": payment_id},
        )

        def attach_gateway_order():
            payment = PaymentService.get_payment_or_404(payment_id)
            order = OrderService.get_order_or_404(order_id)
            payment.gateway_order_id = gateway_order.get("id")
            payment.merge_metadata(
                gateway={
                    "orderId": gateway_order.get("id"),
                    "amount": gateway_order.get("amount"),
                    "currency": gateway_order.get("currency"),
                    "receipt": gateway_order.get("receipt"),
                }
            )
            PaymentService.link_payment(order, payment)
            if data.get("savePaymentMethod") and method.get("cardDetails"):
                PaymentService.save_payment_method(actor, method)
            return payment, order

        payment, order = run_in_transaction(attach_gateway_order)
        return {
            "payment": payment.to_json(),
            "order": order.to_json(),
            "gatewayOrder": gateway_order,
            "checkoutOptions": client.checkout_options(
                amount=payment.amount,
                currency=payment.currency,
                gateway_order_id=payment.gateway_order_id,
                order_id=order.id,
                user_id=actor.id,
            ),
        }

    @staticmethod
    def confirm_cod(actor, payment, order):
        if payment.status != PaymentStatus.PENDING.value:
            raise ConflictError(
                message=f"Cannot confirm cash on delivery payment with status: {payment.status}",
                paymentStatus=payment.status,
            )
        if order is None or order.status not in COD_CONFIRMABLE_STATUSES:
            raise ConflictError(
                message="Cannot confirm cash on delivery for order with status: {}".format(
                    order.status if order else None
                ),
                paymentStatus=payment.status,
                orderStatus=order.status if order else None,
            )
        # Cash is collected on delivery, so the payment itself stays pending.
        PaymentSync.confirm_order(order, actor, note="Cash on delivery confirmed")

    @staticmethod
    def verify_payment(actor, data):
        config = current_app.config
        payment_id = data.get("paymentId")

        def work():
            payment = PaymentService.get_payment_or_404(payment_id)
            PaymentService.check_owner(actor, payment)
            order = PaymentSync.linked_order(payment)

            if payment.is_cash_on_delivery():
                PaymentService.confirm_cod(actor, payment, order)
                return {
                    "message": "Cash on delivery payment verification completed",
                    "data": {"payment": payment.to_json(), "order": order.to_json()},
                }

            gateway_payment_id = data.get("gateway_payment_id")
            if not gateway_payment_id:
                raise ValidationError(
                    message="Please provide gateway_payment_id for online payments"
                )

            gateway_order_id = payment.gateway_order_id or data.get("gateway_order_id")
            if data.get("gateway_order_id") and data["gateway_order_id"] != gateway_order_id:
                raise ValidationError(
                    message="gateway_order_id does not match this payment"
                )

            secret = config["GATEWAY_KEY_SECRET"]
            signature = data.get("gateway_signature")
            test_signature = None
            if not signature:
                if not PaymentService.is_relaxed_mode():
                    raise ValidationError(message="Please provide gateway_signature")
                test_signature = generate_payment_signature(
                    secret, gateway_order_id, gateway_payment_id
                )
                signature = test_signature
                payment.merge_metadata(relaxedMode=True, testSignature=test_signature)
                logger.warning(
                    f"Payment {payment.id} verified without signature in relaxed mode"
                )

            if not verify_payment_signature(
                secret, gateway_order_id, gateway_payment_id, signature
            ):
                logger.error(f"Payment {payment.id} signature verification failed")
                PaymentSync.mark_failed(
                    payment,
                    order,
                    error_code="SIGNATURE_MISMATCH",
                    error_message="Invalid signature",
                    update_order=False,
                )
                payment.merge_metadata(verificationError="Invalid signature")
                return {
                    "error": SignatureError(
                        message="Invalid payment signature",
                        paymentStatus=payment.status,
                    )
                }

            if not PaymentSync.mark_captured(
                payment, order, gateway_payment_id, signature
            ) and payment.status != PaymentStatus.COMPLETED.value:
                raise ConflictError(
                    message=f"Payment is already {payment.status}",
                    paymentStatus=payment.status,
                )

            logger.info(f"Payment {payment.id} verified and completed")
            if test_signature:
                return {
                    "message": "Payment processed in relaxed mode (test signature generated)",
                    "data": {
                        "payment": payment.to_json(),
                        "order": order.to_json() if order else None,
                        "testSignature": test_signature,
                    },
                }
            return {
                "message": "Payment verified and completed successfully",
                "data": {
                    "payment": payment.to_json(),
                    "order": order.to_json() if order else None,
                },
            }

        outcome = run_in_transaction(work)
        if outcome.get("error"):
            raise outcome["error"]
        return outcome

    @staticmethod
    def verify_cod(actor, data):
        payment_id = data.get("paymentId")

        def work():
            payment = PaymentService.get_payment_or_404(payment_id)
            PaymentService.check_owner(actor, payment)
            if not payment.is_cash_on_delivery():
                raise ValidationError(
                    message="This endpoint is only for cash on delivery payments",
                    paymentMethod=payment.payment_method,
                )
            order = PaymentSync.linked_order(payment)
            PaymentService.confirm_cod(actor, payment, order)
            return payment, order

        payment, order = run_in_transaction(work)
        logger.info(f"Cash on delivery payment {payment.id} confirmed")
        return {"payment": payment.to_json(), "order": order.to_json()}

    @staticmethod
    def refundable_statuses():
        statuses = [PaymentStatus.COMPLETED.value]
        if PaymentService.is_relaxed_mode():
            statuses += [PaymentStatus.PENDING.value, PaymentStatus.PROCESSING.value]
        return statuses

    @staticmethod
    def request_refund(actor, payment_id, data):
        reason = data.get("reason") or data.get("comment")
        if not reason:
            raise ValidationError(
                message='Please provide a reason for the refund (use "reason" or "comment" field)',
                expectedFormat={
                    "reason": "Why the refund is needed",
                    "amount": "Optional: specific amount to refund",
                },
            )
        relaxed = PaymentService.is_relaxed_mode()
        approve_requested = data.get("status") == "approved" and (
            actor.is_admin() or relaxed
        )

        def claim():
            payment = PaymentService.get_payment_or_404(payment_id)
            PaymentService.check_owner(actor, payment, allow_admin=True)

            if payment.status == PaymentStatus.REFUNDED.value:
                raise ConflictError(
                    message="This payment has already been refunded",
                    paymentStatus=payment.status,
                    refundDetails=payment.refund_details(),
                )

            refundable = PaymentService.refundable_statuses()
            if payment.status not in refundable:
                raise ConflictError(
                    message=f"Cannot request refund for payment with status: {payment.status}",
                    paymentStatus=payment.status,
                    refundableStatuses=refundable,
                )

            if payment.refund_status != RefundStatus.NONE.value:
                raise ConflictError(
                    message=f"Refund already {payment.refund_status}",
                    paymentStatus=payment.status,
                    refundDetails=payment.refund_details(),
                )

            amount = data.get("amount")
            amount = payment.amount if amount is None else float(amount)
            if amount <= 0 or amount > payment.amount:
                raise ValidationError(
                    message=f"Refund amount must be between 0 and {payment.amount}"
                )

            order = PaymentSync.linked_order(payment)
            if (
                payment.status == PaymentStatus.COMPLETED.value
                and payment.is_gateway_backed()
            ):
                # Claim the refund before calling out so a second request is rejected.
                PaymentSync.mark_refund_pending(
                    payment, order, amount, reason, request_on_order=False
                )
                return "gateway", payment, amount

            auto_approve = relaxed and payment.status == PaymentStatus.PENDING.value
            if approve_requested or auto_approve:
                payment.refund_reason = reason
                note = (
                    f"Admin-approved refund: {reason}"
                    if actor.is_admin()
                    else f"Relaxed mode auto-approved refund: {reason}"
                )
                payment.merge_metadata(approvalNote=note)
                PaymentSync.mark_refund_processed(payment, order, amount=amount, note=note)
                return "approved", payment, amount

            PaymentSync.mark_refund_pending(payment, order, amount, reason)
            return "requested", payment, amount

        path, payment, amount = run_in_transaction(claim)

        if path == "approved":
            logger.info(f"Refund for payment {payment_id} approved by {actor!r}")
            return "Refund approved successfully", {"payment": payment.to_json()}
        if path == "requested":
            logger.info(f"Refund for payment {payment_id} requested by {actor!r}")
            return "Refund request submitted successfully", {"payment": payment.to_json()}

        try:
            refund = RazorpayClient.from_config().refund(
                payment.gateway_payment_id,
                amount,
                notes={"reason": reason, "paymentId": payment_id},
            )
        except UpstreamError as e:

            def record_failure():
                payment = PaymentService.get_payment_or_404(payment_id)
                PaymentSync.mark_refund_failed(
                    payment,
                    PaymentSync.linked_order(payment),
                    error_message=e.message,
                    error_code="GATEWAY_ERROR",
                    update_order=False,
                )
                return payment

            payment = run_in_transaction(record_failure)
            e.message = f"Error processing refund with payment gateway: {e.message}"
            e.extra.update(
                paymentStatus=payment.status, refundDetails=payment.refund_details()
            )
            raise e

        def record_success():
            payment = PaymentService.get_payment_or_404(payment_id)
            PaymentSync.mark_refund_processed(
                payment,
                PaymentSync.linked_order(payment),
                refund_id=refund.get("id"),
                amount=amount,
                note=reason,
            )
            return payment

        payment = run_in_transaction(record_success)
        logger.info(f"Refund {refund.get('id')} processed for payment {payment_id}")
        return "Refund processed successfully", {
            "payment": payment.to_json(),
            "refund": refund,
        }

    @staticmethod
    def process_refund(actor, payment_id, data):
        status = data.get("status")
        refund_id = data.get("refundId")
        notes = data.get("notes")

        def work():
            payment = PaymentService.get_payment_or_404(payment_id)
            order = PaymentSync.linked_order(payment)
            if (
                actor.role == const.RESTAURANT_OWNER
                and order is not None
                and not OrderService.is_restaurant_owner(actor, order.restaurant_id)
            ):
                raise ForbiddenError(message="Not authorized to process this refund")

            if payment.refund_status != RefundStatus.PENDING.value:
                raise ConflictError(
                    message=f"Cannot process refund with status: {payment.refund_status}",
                    paymentStatus=payment.status,
                    refundDetails=payment.refund_details(),
                )

            if notes:
                payment.merge_metadata(adminNotes=notes)
            if status == RefundStatus.PROCESSED.value:
                PaymentSync.mark_refund_processed(
                    payment, order, refund_id=refund_id, note=notes or "Refund approved"
                )
            else:
                PaymentSync.mark_refund_failed(
                    payment,
                    order,
                    error_message=notes or "Refund rejected",
                    error_code="REFUND_REJECTED",
                    refund_id=refund_id,
                )
            return payment

        payment = run_in_transaction(work)
        logger.info(f"Refund for payment {payment_id} set to {status} by {actor!r}")
        return payment

    @staticmethod
    def get_payment(actor, payment_id):
        payment = PaymentService.get_payment_or_404(payment_id)
        PaymentService.check_owner(actor, payment, allow_admin=True)
        return payment

    @staticmethod
    def get_user_payments(actor, data_search):
        query = Payment.query.filter(Payment.user_id == actor.id)
        if data_search.get("status"):
            query = query.filter(Payment.status == data_search["status"])
        if data_search.get("payment_method"):
            query = query.filter(Payment.payment_method == data_search["payment_method"])

        query = query.order_by(Payment.created_at.desc())
        per_page = min(
            data_search.get("per_page") or const.DEFAULT_PER_PAGE, const.MAX_PER_PAGE
        )
        return query.paginate(
            page=data_search.get("page") or const.DEFAULT_PAGE,
            per_page=per_page,
            error_out=False,
        )

    @staticmethod
    def get_receipt(actor, payment_id):
        """Returns ``(message, data, status)`` for the receipt endpoint."""
        payment = PaymentService.get_payment(actor, payment_id)
        base_url = current_app.config["RECEIPT_BASE_URL"].rstrip("/")

        if payment.status == PaymentStatus.COMPLETED.value:
            return (
                "Receipt generated",
                {
                    "receiptUrl": f"{base_url}/{payment.id}",
                    "paymentStatus": payment.status,
                },
                200,
            )

        if payment.status in (PaymentStatus.PENDING.value, PaymentStatus.PROCESSING.value):
            if actor.is_admin() or PaymentService.is_relaxed_mode():
                return (
                    "This is a provisional receipt for a payment that is not yet completed",
                    {
                        "receiptUrl": f"{base_url}/{payment.id}?provisional=true",
                        "paymentStatus": payment.status,
                        "provisional": True,
                    },
                    200,
                )
            estimated = utc_now() + timedelta(seconds=const.RECEIPT_ESTIMATE_SECONDS)
            return (
                "Your payment is being processed. Receipt will be available once payment is completed.",
                {
                    "paymentStatus": payment.status,
                    "estimatedCompletionTime": estimated.strftime("%Y-%m-%dT%H:%M:%SZ"),
                },
                202,
            )

        raise ConflictError(
            message=f"Receipt is not available for payments with status: {payment.status}",
            data={"paymentStatus": payment.status},
        )
