import hashlib
import hmac

import requests
from flask import current_app

from app.errors.exceptions import GatewayError, GatewayTimeout
from app.lib.logger import logger
from app.lib.string import to_minor_units


def generate_signature(secret, payload):
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def generate_payment_signature(secret, gateway_order_id, gateway_payment_id):
    return generate_signature(secret, f"{gateway_order_id}|{gateway_payment_id}")


def verify_payment_signature(secret, gateway_order_id, gateway_payment_id, signature):
    if not (secret and gateway_order_id and gateway_payment_id and signature):
        return False
    expected = generate_payment_signature(secret, gateway_order_id, gateway_payment_id)
    return hmac.compare_digest(expected, signature)


def verify_webhook_signature(secret, raw_body, signature):
    if not secret or not signature:
        return False
    expected = generate_signature(secret, raw_body or b"")
    return hmac.compare_digest(expected, signature)


class RazorpayClient:
    """Thin REST client for the Razorpay orders and refunds API."""

    def __init__(self, key_id, key_secret, base_url, timeout=(5, 15)):
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_config(cls, config=None):
        config = config or current_app.config
        return cls(
            key_id=config.get("GATEWAY_KEY_ID"),
            key_secret=config.get("GATEWAY_KEY_SECRET"),
            base_url=config.get("GATEWAY_BASE_URL"),
            timeout=config.get("GATEWAY_TIMEOUT", (5, 15)),
        )

    def _post(self, path, payload):
        url = f"{self.base_url}{path}"
        try:
            res = requests.post(
                url,
                json=payload,
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            logger.error(f"Razorpay timeout on {path}: {e}")
            raise GatewayTimeout()
        except requests.RequestException as e:
            logger.error(f"Razorpay connection error on {path}: {e}")
            raise GatewayError(message=f"Payment gateway connection error: {e}")

        try:
            body = res.json()
        except ValueError:
            body = {}

        if res.status_code >= 400:
            error = body.get("error") or {}
            description = error.get("description") or res.text
            logger.error(f"Razorpay {path} failed [{res.status_code}]: {description}")
            raise GatewayError(
                message=f"Payment gateway request failed: {description}",
                gatewayStatus=res.status_code,
                errorCode=error.get("code"),
            )
        return body

    def create_order(self, amount, currency="INR", receipt=None, notes=None):
        return self._post(
            "/orders",
            {
                "amount": to_minor_units(amount),
                "currency": currency,
                "receipt": receipt,
                "notes": notes or {},
                "payment_capture": 1,
            },
        )

    def refund(self, gateway_payment_id, amount, notes=None, speed="normal"):
        return self._post(
            f"/payments/{gateway_payment_id}/refund",
            {
                "amount": to_minor_units(amount),
                "speed": speed,
                "notes": notes or {},
            },
        )

    def checkout_options(self, amount, currency, gateway_order_id, order_id, user_id):
        config = current_app.config
        return {
            "key": self.key_id,
            "amount": to_minor_units(amount),
            "currency": currency,
            "name": config.get("COMPANY_NAME"),
            "description": "Food Order Payment",
            "order_id": gateway_order_id,
            "notes": {"orderId": order_id, "userId": user_id},
            "theme": {"color": config.get("THEME_COLOR")},
        }
