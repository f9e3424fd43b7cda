from app.enums.order import OrderStatus
from app.errors.exceptions import InvalidTransition, NotCancellable, ValidationError
from app.lib.logger import logger
from app.models.base import utc_now
import const


ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING.value: (OrderStatus.CONFIRMED.value, OrderStatus.CANCELLED.value),
    OrderStatus.CONFIRMED.value: (
        OrderStatus.PREPARING.value,
        OrderStatus.CANCELLED.value,
    ),
    OrderStatus.PREPARING.value: (OrderStatus.READY.value, OrderStatus.CANCELLED.value),
    OrderStatus.READY.value: (
        OrderStatus.OUT_FOR_DELIVERY.value,
        OrderStatus.COMPLETED.value,
    ),
    OrderStatus.OUT_FOR_DELIVERY.value: (
        OrderStatus.DELIVERED.value,
        OrderStatus.CANCELLED.value,
    ),
    OrderStatus.DELIVERED.value: (OrderStatus.COMPLETED.value,),
    OrderStatus.COMPLETED.value: (),
    OrderStatus.CANCELLED.value: (OrderStatus.PENDING.value,),
    OrderStatus.REFUNDED.value: (),
}


class OrderStateMachine:
    """The only writer of ``Order.status``.

    Callers flush/commit; nothing here touches the session.
    """

    @staticmethod
    def is_valid_transition(current_status, new_status):
        return new_status in ALLOWED_TRANSITIONS.get(current_status, ())

    @staticmethod
    def transition(order, new_status, actor, note=None):
        if new_status not in OrderStatus.values():
            raise ValidationError(
                message=f"Invalid order status '{new_status}'",
                validStatuses=OrderStatus.values(),
            )

        forced = actor.can_force_transition()
        if forced and new_status == order.status:
            return order

        if not forced and not OrderStateMachine.is_valid_transition(
            order.status, new_status
        ):
            raise InvalidTransition(
                message=f"Cannot change order status from {order.status} to {new_status}",
                currentStatus=order.status,
                allowedStatuses=list(ALLOWED_TRANSITIONS.get(order.status, ())),
            )

        OrderStateMachine._apply(order, new_status, actor, note)
        return order

    @staticmethod
    def cancel(order, actor, reason=None):
        if order.status == OrderStatus.CANCELLED.value:
            return order
        if not order.can_be_cancelled():
            raise NotCancellable(
                message=f"Order cannot be cancelled in {order.status} status",
                currentStatus=order.status,
            )
        OrderStateMachine._apply(order, OrderStatus.CANCELLED.value, actor, reason)
        return order

    @staticmethod
    def _apply(order, new_status, actor, note):
        previous = order.status
        now = utc_now()
        order.status = new_status
        order.append_status_history(new_status, updated_by=actor.id, note=note)

        if new_status == OrderStatus.DELIVERED.value:
            order.actual_delivery_time = now
        elif new_status == OrderStatus.CANCELLED.value:
            order.cancellation_time = now
            order.cancelled_by = actor.id
            order.cancellation_reason = note or const.NO_CANCEL_REASON
        elif new_status == OrderStatus.REFUNDED.value:
            order.refund_time = now

        logger.info(
            f"Order {order.id} status {previous} -> {new_status} by {actor!r}"
        )
