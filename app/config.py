# coding: utf8
import os

from sqlalchemy.pool import StaticPool


def _env_flag(name, default="0"):
    return (os.environ.get(name) or default).lower() in ("1", "true", "yes", "on")


class Config(object):
    SECRET_KEY = os.environ.get("SECRET_KEY") or "<your secret key>"
    API_URL = os.environ.get("API_URL") or "http://localhost:5000"

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "SQLALCHEMY_DATABASE_URI"
    ) or "{engine}://{user}:{password}@{host}:{port}/{db}".format(
        engine=os.environ.get("SQLALCHEMY_ENGINE") or "mysql+pymysql",
        user=os.environ.get("SQLALCHEMY_USER") or "root",
        password=os.environ.get("SQLALCHEMY_PASSWORD") or "",
        host=os.environ.get("SQLALCHEMY_HOST") or "127.0.0.1",
        port=int(os.environ.get("SQLALCHEMY_PORT", 3306)),
        db=os.environ.get("SQLALCHEMY_DATABASE") or "meallink",
    )

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_size": 20,
        "max_overflow": 50,
        "pool_timeout": 10,
        "pool_recycle": 900,
        "pool_pre_ping": True,
    }

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY") or "secret"
    JWT_ACCESS_TOKEN_EXPIRES = False

    # Payment gateway (Razorpay compatible REST API)
    GATEWAY_NAME = os.environ.get("GATEWAY_NAME") or "razorpay"
    GATEWAY_BASE_URL = os.environ.get("GATEWAY_BASE_URL") or "https://api.razorpay.com/v1"
    GATEWAY_KEY_ID = os.environ.get("GATEWAY_KEY_ID") or ""
    GATEWAY_KEY_SECRET = os.environ.get("GATEWAY_KEY_SECRET") or ""
    GATEWAY_WEBHOOK_SECRET = os.environ.get("GATEWAY_WEBHOOK_SECRET") or ""
    GATEWAY_TIMEOUT = (
        float(os.environ.get("GATEWAY_CONNECT_TIMEOUT", 5)),
        float(os.environ.get("GATEWAY_READ_TIMEOUT", 15)),
    )
    GATEWAY_CURRENCY = os.environ.get("GATEWAY_CURRENCY") or "INR"
    COMPANY_NAME = os.environ.get("COMPANY_NAME") or "Food Delivery App"
    THEME_COLOR = os.environ.get("THEME_COLOR") or "#F37254"

    # Accept unsigned verify calls and refunds of pending payments.
    PAYMENT_RELAXED_MODE = _env_flag("PAYMENT_RELAXED_MODE")

    ORDER_TAX_RATE = float(os.environ.get("ORDER_TAX_RATE", 0.05))
    ORDER_DELIVERY_BUFFER_MINUTES = int(os.environ.get("ORDER_DELIVERY_BUFFER_MINUTES", 20))
    ORDER_DEFAULT_PREP_MINUTES = int(os.environ.get("ORDER_DEFAULT_PREP_MINUTES", 30))

    RECEIPT_BASE_URL = (
        os.environ.get("RECEIPT_BASE_URL") or "http://localhost:5000/api/v1/receipts"
    )

    CONCURRENCY_RETRIES = int(os.environ.get("CONCURRENCY_RETRIES", 3))

    PROPAGATE_EXCEPTIONS = False
    RESTX_ERROR_404_HELP = False


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {
        "poolclass": StaticPool,
        "connect_args": {"check_same_thread": False},
    }
    JWT_SECRET_KEY = "testing-secret"
    GATEWAY_KEY_ID = "rzp_test_key"
    GATEWAY_KEY_SECRET = "test_key_secret"
    GATEWAY_WEBHOOK_SECRET = "test_webhook_secret"
    PAYMENT_RELAXED_MODE = False


class DevelopmentConfig(Config):
    DEBUG = True


class ProductionConfig(Config):
    DEBUG = False
    TESTING = False
    PAYMENT_RELAXED_MODE = False


configs = {
    "develop": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
