from app.enums.order import OrderPaymentStatus, OrderStatus
from app.enums.payment import PaymentStatus, RefundStatus
from app.lib.logger import logger
from app.lib.query import select_by_id
from app.models.order import Order
from app.models.payment import Payment
from app.services.auth import Actor
from app.services.order_status import OrderStateMachine

CAPTURED_AFTER_SUPERSEDE = "CAPTURED_AFTER_SUPERSEDE"


class PaymentSync:
    """Moves a Payment and its Order together.

    Both the client verify path and the gateway webhooks end up here, so
    every rule that keeps ``order.payment_status``/``order.status`` in line
    with ``payment.status``/``payment.refund_status`` lives in one place.
    Nothing here commits; callers run inside ``run_in_transaction``.
    """

    @staticmethod
    def linked_order(payment):
        return select_by_id(Order, payment.order_id)

    @staticmethod
    def _set_order_status(order, status, note):
        if order is None or order.status == status:
            return
        OrderStateMachine.transition(order, status, Actor.SYSTEM, note)

    @staticmethod
    def confirm_order(order, actor=None, note="Payment confirmed"):
        if order is None or order.status != OrderStatus.PENDING.value:
            return False
        OrderStateMachine.transition(
            order, OrderStatus.CONFIRMED.value, actor or Actor.SYSTEM, note
        )
        return True

    @staticmethod
    def mark_authorized(payment, gateway_payment_id=None):
        moved = payment.move_to(PaymentStatus.AUTHORIZED.value)
        if gateway_payment_id and not payment.gateway_payment_id:
            payment.gateway_payment_id = gateway_payment_id
        return moved

    @staticmethod
    def mark_captured(payment, order, gateway_payment_id=None, signature=None, confirm_order=False):
        if not payment.can_move_to(PaymentStatus.COMPLETED.value):
            logger.warning(
                f"Payment {payment.id} is {payment.status}, capture not applied"
            )
            return False

        moved = payment.move_to(PaymentStatus.COMPLETED.value)
        if gateway_payment_id:
            payment.gateway_payment_id = gateway_payment_id
        if signature:
            payment.gateway_signature = signature

        if order is None:
            return moved

        linked = None
        if order.payment_id and order.payment_id != payment.id:
            linked = select_by_id(Payment, order.payment_id)
        if linked is not None and linked.status in (
            PaymentStatus.COMPLETED.value,
            PaymentStatus.REFUNDED.value,
        ):
            # The order is already settled by another payment; keep this
            # capture on record so it can be refunded.
            payment.error_code = CAPTURED_AFTER_SUPERSEDE
            payment.error_message = (
                f"Captured after order {order.id} was paid by {linked.id}"
            )
            logger.warning(
                f"Payment {payment.id} captured but order {order.id} is settled "
                f"by {linked.id}, flagged for refund"
            )
            return moved
        if linked is not None and linked.move_to(PaymentStatus.CANCELLED.value):
            logger.info(
                f"Payment {linked.id} superseded by captured {payment.id} on order {order.id}"
            )

        # The captured payment is the one that carries the money for this order.
        order.payment_id = payment.id
        order.payment_method = payment.payment_method
        order.payment_status = OrderPaymentStatus.PAID.value
        if confirm_order:
            PaymentSync.confirm_order(order, note="Payment captured")
        return moved

    @staticmethod
    def mark_failed(payment, order, error_code=None, error_message=None, update_order=True):
        if not payment.move_to(PaymentStatus.FAILED.value):
            logger.info(
                f"Payment {payment.id} is {payment.status}, failure not applied"
            )
            return False

        payment.error_code = error_code
        payment.error_message = error_message
        if (
            update_order
            and order is not None
            and order.payment_id == payment.id
            and order.payment_status != OrderPaymentStatus.PAID.value
        ):
            order.payment_status = OrderPaymentStatus.FAILED.value
        return True

    @staticmethod
    def mark_refund_pending(payment, order, amount=None, reason=None, refund_id=None, request_on_order=True):
        if payment.refund_status == RefundStatus.PENDING.value:
            if refund_id and not payment.refund_id:
                payment.refund_id = refund_id
            return False
        if not payment.move_refund_to(RefundStatus.PENDING.value):
            return False

        payment.refund_amount = amount if amount is not None else payment.amount
        if reason:
            payment.refund_reason = reason
        if refund_id:
            payment.refund_id = refund_id

        if (
            request_on_order
            and order is not None
            and order.status != OrderStatus.REFUNDED.value
        ):
            PaymentSync._set_order_status(
                order, OrderStatus.REFUND_REQUESTED.value, reason or "Refund requested"
            )
        return True

    @staticmethod
    def mark_refund_processed(payment, order, refund_id=None, amount=None, note=None):
        if payment.refund_status == RefundStatus.PROCESSED.value:
            if refund_id and not payment.refund_id:
                payment.refund_id = refund_id
            return False
        if not payment.move_refund_to(RefundStatus.PROCESSED.value):
            return False

        if refund_id:
            payment.refund_id = refund_id
        if amount is not None:
            payment.refund_amount = amount
        elif payment.refund_amount is None:
            payment.refund_amount = payment.amount
        payment.move_to(PaymentStatus.REFUNDED.value)

        if order is not None:
            order.payment_status = OrderPaymentStatus.REFUNDED.value
            order.refund_amount = payment.refund_amount
            PaymentSync._set_order_status(
                order, OrderStatus.REFUNDED.value, note or "Refund processed"
            )
        return True

    @staticmethod
    def mark_refund_failed(payment, order, error_message=None, error_code=None, refund_id=None, update_order=True):
        if not payment.move_refund_to(RefundStatus.FAILED.value):
            return False

        payment.error_message = error_message
        payment.error_code = error_code
        if refund_id:
            payment.refund_id = refund_id

        if (
            update_order
            and order is not None
            and order.status != OrderStatus.REFUNDED.value
        ):
            PaymentSync._set_order_status(
                order, OrderStatus.REFUND_FAILED.value, error_message or "Refund failed"
            )
        return True
