import json

from flask import current_app

from app.errors.exceptions import SignatureError, ValidationError
from app.lib.logger import log_webhook_message
from app.lib.query import run_in_transaction
from app.lib.string import from_minor_units
from app.services.payment_services import PaymentService
from app.services.payment_sync import PaymentSync
from app.third_parties.razorpay import verify_webhook_signature


class WebhookService:

    @staticmethod
    def verify_signature(raw_body, signature):
        secret = current_app.config.get("GATEWAY_WEBHOOK_SECRET")
        if not secret or not signature:
            log_webhook_message("Missing webhook signature or secret", "ERROR")
            raise SignatureError(message="Invalid webhook request")
        if not verify_webhook_signature(secret, raw_body, signature):
            log_webhook_message("Invalid webhook signature", "ERROR")
            raise SignatureError(message="Invalid webhook signature")

    @staticmethod
    def parse_event(raw_body):
        try:
            event = json.loads(raw_body or b"{}")
        except ValueError:
            raise ValidationError(message="Webhook body is not valid JSON")
        if not isinstance(event, dict):
            raise ValidationError(message="Webhook body must be a JSON object")
        return event

    @staticmethod
    def handle_event(event):
        """Apply one gateway event. Returns True when a handler ran."""
        event_type = event.get("event")
        handler = EVENT_HANDLERS.get(event_type)
        if handler is None:
            log_webhook_message(f"Unhandled webhook event type: {event_type}", "INFO")
            return False

        payload = event.get("payload") or {}
        entity_name = event_type.split(".")[0]
        entity = (payload.get(entity_name) or {}).get("entity") or {}
        log_webhook_message(f"Processing {event_type} for {entity.get('id')}")
        run_in_transaction(handler, entity)
        return True

    @staticmethod
    def _payment_for_gateway_order(entity):
        gateway_order_id = entity.get("order_id")
        payment = PaymentService.find_payment_by_gateway_order(gateway_order_id)
        if not payment:
            log_webhook_message(
                f"Payment not found for gateway order ID: {gateway_order_id}", "WARNING"
            )
        return payment

    @staticmethod
    def _payment_for_gateway_payment(entity):
        gateway_payment_id = entity.get("payment_id")
        payment = PaymentService.find_payment_by_gateway_payment(gateway_payment_id)
        if not payment:
            log_webhook_message(
                f"Payment not found for gateway payment ID: {gateway_payment_id}", "WARNING"
            )
        return payment

    @staticmethod
    def payment_authorized(entity):
        payment = WebhookService._payment_for_gateway_order(entity)
        if not payment:
            return
        PaymentSync.mark_authorized(payment, entity.get("id"))
        payment.merge_metadata(gatewayPayment=entity)

    @staticmethod
    def payment_captured(entity):
        payment = WebhookService._payment_for_gateway_order(entity)
        if not payment:
            return
        if PaymentSync.mark_captured(
            payment,
            PaymentSync.linked_order(payment),
            gateway_payment_id=entity.get("id"),
            confirm_order=True,
        ):
            payment.merge_metadata(gatewayPayment=entity)
            log_webhook_message(f"Payment {payment.id} captured")

    @staticmethod
    def payment_failed(entity):
        payment = WebhookService._payment_for_gateway_order(entity)
        if not payment:
            return
        if PaymentSync.mark_failed(
            payment,
            PaymentSync.linked_order(payment),
            error_code=entity.get("error_code"),
            error_message=entity.get("error_description") or "Payment failed",
        ):
            payment.merge_metadata(gatewayPayment=entity)
            log_webhook_message(f"Payment {payment.id} failed", "WARNING")

    @staticmethod
    def refund_created(entity):
        payment = WebhookService._payment_for_gateway_payment(entity)
        if not payment:
            return
        amount = entity.get("amount")
        PaymentSync.mark_refund_pending(
            payment,
            PaymentSync.linked_order(payment),
            amount=from_minor_units(amount) if amount is not None else None,
            reason=payment.refund_reason or "Refund initiated via gateway",
            refund_id=entity.get("id"),
            request_on_order=False,
        )

    @staticmethod
    def refund_processed(entity):
        payment = WebhookService._payment_for_gateway_payment(entity)
        if not payment:
            return
        amount = entity.get("amount")
        if PaymentSync.mark_refund_processed(
            payment,
            PaymentSync.linked_order(payment),
            refund_id=entity.get("id"),
            amount=from_minor_units(amount) if amount is not None else None,
        ):
            log_webhook_message(f"Refund {entity.get('id')} processed for {payment.id}")

    @staticmethod
    def refund_failed(entity):
        payment = WebhookService._payment_for_gateway_payment(entity)
        if not payment:
            return
        PaymentSync.mark_refund_failed(
            payment,
            PaymentSync.linked_order(payment),
            error_message=entity.get("error_description") or "Refund failed",
            error_code=entity.get("error_code"),
            refund_id=entity.get("id"),
        )


EVENT_HANDLERS = {
    "payment.authorized": WebhookService.payment_authorized,
    "payment.captured": WebhookService.payment_captured,
    "payment.failed": WebhookService.payment_failed,
    "refund.created": WebhookService.refund_created,
    "refund.processed": WebhookService.refund_processed,
    "refund.failed": WebhookService.refund_failed,
}
