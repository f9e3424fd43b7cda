from flask import request
from flask_restx import Namespace, Resource
from flask_jwt_extended import jwt_required

import const
from app.decorators import parameters, roles_required
from app.enums.payment import PaymentMethod, RefundStatus
from app.lib.response import Response
from app.services.auth import AuthService
from app.services.payment_services import PaymentService

ns = Namespace("payments", description="Payment API")


@ns.route("/initialize")
class APIInitializePayment(Resource):

    @jwt_required()
    @roles_required(*const.PAYMENT_ROLES)
    @parameters(
        type="object",
        properties={
            "orderId": {"type": "string"},
            "paymentMethod": {
                "type": "object",
                "properties": {
                    "type": {"type": "string", "enum": PaymentMethod.values()},
                    "gateway": {"type": "string"},
                    "name": {"type": "string"},
                    "cardDetails": {"type": "object"},
                },
                "required": ["type"],
            },
            "savePaymentMethod": {"type": "boolean"},
        },
        required=["orderId", "paymentMethod"],
    )
    def post(self, args):
        actor = AuthService.get_current_actor()
        data = PaymentService.initialize_payment(actor, args)
        if "nextStep" in data:
            message = "Cash on delivery payment initialized"
        else:
            message = "Payment initialized"
        return Response(message=message, data=data).to_dict()


@ns.route("/verify")
class APIVerifyPayment(Resource):

    @jwt_required()
    @roles_required(*const.PAYMENT_ROLES)
    @parameters(
        type="object",
        properties={
            "paymentId": {"type": "string"},
            "gateway_payment_id": {"type": "string"},
            "gateway_order_id": {"type": "string"},
            "gateway_signature": {"type": "string"},
        },
        required=["paymentId"],
    )
    def post(self, args):
        actor = AuthService.get_current_actor()
        outcome = PaymentService.verify_payment(actor, args)
        return Response(message=outcome["message"], data=outcome["data"]).to_dict()


@ns.route("/verify-cod")
class APIVerifyCodPayment(Resource):

    @jwt_required()
    @roles_required(*const.PAYMENT_ROLES)
    @parameters(
        type="object",
        properties={"paymentId": {"type": "string"}},
        required=["paymentId"],
    )
    def post(self, args):
        actor = AuthService.get_current_actor()
        data = PaymentService.verify_cod(actor, args)
        return Response(
            message="Cash on delivery order confirmed", data=data
        ).to_dict()


@ns.route("")
class APIPayments(Resource):

    @jwt_required()
    def get(self):
        actor = AuthService.get_current_actor()
        data_search = {
            "page": request.args.get("page", const.DEFAULT_PAGE, type=int),
            "per_page": request.args.get("per_page", const.DEFAULT_PER_PAGE, type=int),
            "status": request.args.get("status", "", type=str),
            "payment_method": request.args.get("payment_method", "", type=str),
        }
        payments = PaymentService.get_user_payments(actor, data_search)
        return Response(
            message="Payments fetched successfully",
            data=[payment.to_json() for payment in payments.items],
            count=len(payments.items),
            total=payments.total,
            page=payments.page,
            per_page=payments.per_page,
            total_pages=payments.pages,
        ).to_dict()


@ns.route("/<string:payment_id>")
class APIPayment(Resource):

    @jwt_required()
    def get(self, payment_id):
        actor = AuthService.get_current_actor()
        payment = PaymentService.get_payment(actor, payment_id)
        return Response(
            message="Payment fetched successfully", data=payment.to_json()
        ).to_dict()


@ns.route("/<string:payment_id>/receipt")
class APIPaymentReceipt(Resource):

    @jwt_required()
    def get(self, payment_id):
        actor = AuthService.get_current_actor()
        message, data, status = PaymentService.get_receipt(actor, payment_id)
        return Response(message=message, data=data, status=status, success=True).to_dict()


@ns.route("/<string:payment_id>/refund")
class APIPaymentRefund(Resource):

    @jwt_required()
    @roles_required(*const.PAYMENT_ROLES)
    @parameters(
        type="object",
        properties={
            "reason": {"type": "string"},
            "comment": {"type": "string"},
            "amount": {"type": "number", "exclusiveMinimum": 0},
            "status": {"type": "string", "enum": ["approved"]},
        },
    )
    def post(self, args, payment_id):
        actor = AuthService.get_current_actor()
        message, data = PaymentService.request_refund(actor, payment_id, args)
        return Response(message=message, data=data).to_dict()

    @jwt_required()
    @roles_required(*const.REFUND_PROCESS_ROLES)
    @parameters(
        type="object",
        properties={
            "status": {
                "type": "string",
                "enum": [RefundStatus.PROCESSED.value, RefundStatus.FAILED.value],
            },
            "refundId": {"type": "string"},
            "notes": {"type": "string"},
        },
        required=["status"],
    )
    def put(self, args, payment_id):
        actor = AuthService.get_current_actor()
        payment = PaymentService.process_refund(actor, payment_id, args)
        return Response(
            message=f"Refund {args['status']} successfully",
            data={"payment": payment.to_json()},
        ).to_dict()
