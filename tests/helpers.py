import hashlib
import hmac

from app.extensions import db

CUSTOMER_ID = "user_customer"
OTHER_CUSTOMER_ID = "user_other"
OWNER_ID = "user_owner"
ADMIN_ID = "user_admin"
DRIVER_ID = "user_driver"

KEY_SECRET = "test_key_secret"
WEBHOOK_SECRET = "test_webhook_secret"


def reload(model, pk):
    db.session.expire_all()
    return db.session.get(model, pk)


def sign(secret, payload):
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
