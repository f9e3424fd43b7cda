from flask import request
from flask_restx import Namespace, Resource
from flask_jwt_extended import jwt_required

import const
from app.decorators import parameters, roles_required
from app.enums.order import OrderStatus, OrderType
from app.lib.response import Response
from app.services.auth import AuthService
from app.services.order import OrderService

ns = Namespace("orders", description="Order API")


def _search_args():
    return {
        "page": request.args.get("page", const.DEFAULT_PAGE, type=int),
        "per_page": request.args.get("per_page", const.DEFAULT_PER_PAGE, type=int),
        "status": request.args.get("status", "", type=str),
        "start_date": request.args.get("start_date", "", type=str),
        "end_date": request.args.get("end_date", "", type=str),
    }


def _paged_response(pagination, message="Orders fetched successfully"):
    return Response(
        message=message,
        data=[order.to_json() for order in pagination.items],
        count=len(pagination.items),
        total=pagination.total,
        page=pagination.page,
        per_page=pagination.per_page,
        total_pages=pagination.pages,
    ).to_dict()


@ns.route("")
class APIOrders(Resource):

    @jwt_required()
    @roles_required(*const.ORDER_CREATE_ROLES)
    @parameters(
        type="object",
        properties={
            "restaurantId": {"type": "string"},
            "items": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "menuItemId": {"type": "string"},
                        "quantity": {"type": "integer", "minimum": 1},
                        "customizations": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "groupName": {"type": "string"},
                                    "options": {
                                        "type": "array",
                                        "items": {"type": "string"},
                                    },
                                },
                            },
                        },
                        "specialInstructions": {"type": "string"},
                    },
                    "required": ["menuItemId"],
                },
            },
            "orderType": {"type": "string", "enum": OrderType.values()},
            "paymentMethod": {"type": "string"},
            "deliveryAddress": {"type": ["object", "string", "null"]},
            "specialInstructions": {"type": "string"},
        },
        required=["restaurantId", "orderType", "paymentMethod"],
    )
    def post(self, args):
        actor = AuthService.get_current_actor()
        order = OrderService.create_order(actor, args)
        return Response(
            message="Order created successfully", data=order.to_json(), status=201
        ).to_dict()

    @jwt_required()
    def get(self):
        actor = AuthService.get_current_actor()
        orders = OrderService.get_user_orders(actor, _search_args())
        return _paged_response(orders)


@ns.route("/restaurant/<string:restaurant_id>")
class APIRestaurantOrders(Resource):

    @jwt_required()
    @roles_required(const.RESTAURANT_OWNER, *const.ADMIN_ROLES)
    def get(self, restaurant_id):
        actor = AuthService.get_current_actor()
        orders = OrderService.get_restaurant_orders(actor, restaurant_id, _search_args())
        return _paged_response(orders)


@ns.route("/restaurant/<string:restaurant_id>/stats")
class APIRestaurantOrderStats(Resource):

    @jwt_required()
    @roles_required(*const.ORDER_MANAGE_ROLES)
    def get(self, restaurant_id):
        actor = AuthService.get_current_actor()
        data_search = {
            "start_date": request.args.get("start_date", "", type=str),
            "end_date": request.args.get("end_date", "", type=str),
        }
        stats = OrderService.get_restaurant_order_stats(actor, restaurant_id, data_search)
        return Response(
            message="Order stats fetched successfully", data=stats
        ).to_dict()


@ns.route("/<string:order_id>")
class APIOrder(Resource):

    @jwt_required()
    @roles_required(*const.ORDER_READ_ROLES)
    def get(self, order_id):
        actor = AuthService.get_current_actor()
        order = OrderService.get_order(actor, order_id)
        return Response(
            message="Order fetched successfully", data=order.to_json()
        ).to_dict()


@ns.route("/<string:order_id>/status")
class APIOrderStatus(Resource):

    @jwt_required()
    @roles_required(*const.ORDER_STATUS_ROLES)
    @parameters(
        type="object",
        properties={
            "status": {"type": "string", "enum": OrderStatus.values()},
            "note": {"type": "string"},
            "notes": {"type": "string"},
        },
        required=["status"],
    )
    def put(self, args, order_id):
        actor = AuthService.get_current_actor()
        order = OrderService.update_status(
            actor, order_id, args["status"], args.get("note") or args.get("notes")
        )
        return Response(
            message=f"Order status updated to {order.status}", data=order.to_json()
        ).to_dict()


@ns.route("/<string:order_id>/cancel")
class APIOrderCancel(Resource):

    @jwt_required()
    @roles_required(*const.ORDER_CANCEL_ROLES)
    @parameters(
        type="object",
        properties={
            "reason": {"type": "string"},
            "cancellationReason": {"type": "string"},
        },
    )
    def put(self, args, order_id):
        actor = AuthService.get_current_actor()
        order = OrderService.cancel_order(
            actor, order_id, args.get("reason") or args.get("cancellationReason")
        )
        return Response(
            message="Order cancelled successfully", data=order.to_json()
        ).to_dict()


@ns.route("/<string:order_id>/assign-delivery")
class APIOrderAssignDelivery(Resource):

    @jwt_required()
    @roles_required(*const.ORDER_MANAGE_ROLES)
    @parameters(
        type="object",
        properties={
            "deliveryPersonId": {"type": "string", "minLength": 1},
            "deliveryPersonName": {"type": "string"},
        },
        required=["deliveryPersonId"],
    )
    def put(self, args, order_id):
        actor = AuthService.get_current_actor()
        order = OrderService.assign_delivery_person(
            actor,
            order_id,
            args["deliveryPersonId"],
            args.get("deliveryPersonName"),
        )
        return Response(
            message="Delivery person assigned successfully", data=order.to_json()
        ).to_dict()
