import traceback

from flask import request
from flask_restx import Namespace, Resource

from app.lib.logger import log_webhook_message
from app.lib.response import Response
from app.services.webhook import WebhookService

ns = Namespace("webhooks", description="Payment gateway webhooks")


@ns.route("/gateway")
class APIGatewayWebhook(Resource):

    def post(self):
        raw_body = request.get_data()
        signature = request.headers.get("X-Signature") or request.headers.get(
            "X-Razorpay-Signature"
        )
        # A bad signature is the only non-200 answer.
        WebhookService.verify_signature(raw_body, signature)

        try:
            event = WebhookService.parse_event(raw_body)
            WebhookService.handle_event(event)
        except Exception as e:
            log_webhook_message(
                f"Error processing webhook: {e}\n{traceback.format_exc()}", "ERROR"
            )
            return Response(
                message="Webhook received, but error during processing"
            ).to_dict()

        return Response(message="Webhook received successfully").to_dict()
