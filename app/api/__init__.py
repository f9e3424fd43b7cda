# coding: utf8
from flask import Blueprint
from flask_restx import Api

from app.api.order import ns as order_ns
from app.api.payment import ns as payment_ns
from app.api.webhook import ns as webhook_ns
from app.errors.handler import restx_error_handler

bp = Blueprint("api", __name__, url_prefix="/api/v1")

api = Api(
    bp,
    version="1.0",
    title="Order & Payment API",
    description="Order lifecycle and payment reconciliation",
    doc="/docs/",
)

api.errorhandler(Exception)(restx_error_handler)

api.add_namespace(ns=order_ns)
api.add_namespace(ns=payment_ns)
api.add_namespace(ns=webhook_ns)
