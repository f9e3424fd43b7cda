from datetime import timedelta

from flask import current_app
from sqlalchemy import func

import const
from app.enums.order import (
    DELIVERY_CLOSED_STATUSES,
    NON_EARNING_STATUSES,
    OrderPaymentStatus,
    OrderStatus,
    OrderType,
)
from app.errors.exceptions import (
    ConflictError,
    ForbiddenError,
    ItemUnavailable,
    NoItems,
    OrderNotFound,
    RestaurantUnavailable,
    ValidationError,
)
from app.extensions import db
from app.lib.logger import logger
from app.lib.query import run_in_transaction, select_by_id
from app.lib.string import dump_json, load_json, parse_date
from app.models.menu_item import MenuItem
from app.models.order import Order
from app.models.restaurant import Restaurant
from app.services.order_status import OrderStateMachine


class OrderService:

    @staticmethod
    def find_order(order_id):
        return select_by_id(Order, order_id)

    @staticmethod
    def get_order_or_404(order_id):
        order = OrderService.find_order(order_id)
        if not order:
            raise OrderNotFound()
        return order

    @staticmethod
    def is_restaurant_owner(actor, restaurant_id):
        restaurant = select_by_id(Restaurant, restaurant_id)
        return bool(restaurant and actor.id and restaurant.owner_id == actor.id)

    @staticmethod
    def can_read_order(actor, order):
        if actor.is_admin() or actor.role == const.DELIVERY_PERSON:
            return True
        if order.user_id == actor.id:
            return True
        return OrderService.is_restaurant_owner(actor, order.restaurant_id)

    @staticmethod
    def build_order_items(restaurant, items):
        order_items = []
        subtotal = 0
        for item in items:
            menu_item = MenuItem.query.filter_by(
                id=item.get("menuItemId"),
                restaurant_id=restaurant.id,
                is_available=True,
            ).first()
            if not menu_item:
                raise ItemUnavailable(
                    message=f"Menu item {item.get('menuItemId')} not found or not available"
                )

            base_price = menu_item.final_price()
            surcharge, customizations = OrderService.resolve_customizations(
                menu_item, item.get("customizations") or []
            )
            quantity = int(item.get("quantity") or 1)
            unit_price = round(base_price + surcharge, 2)
            total_price = round(unit_price * quantity, 2)
            subtotal += total_price

            order_items.append(
                {
                    "menuItemId": menu_item.id,
                    "name": menu_item.name,
                    "basePrice": base_price,
                    "price": unit_price,
                    "quantity": quantity,
                    "customizations": customizations,
                    "specialInstructions": item.get("specialInstructions") or "",
                    "totalPrice": total_price,
                }
            )
        return order_items, round(subtotal, 2)

    @staticmethod
    def resolve_customizations(menu_item, requested):
        """Snapshot the selected options; unknown groups or options are skipped."""
        surcharge = 0
        customizations = []
        for customization in requested:
            group_name = customization.get("groupName")
            group = menu_item.find_customization_group(group_name)
            if not group:
                logger.warning(
                    f"Customization group '{group_name}' not found for menu item "
                    f"{menu_item.id}, skipped"
                )
                continue

            selected = []
            for option_name in customization.get("options") or []:
                option = next(
                    (o for o in group.get("options") or [] if o.get("name") == option_name),
                    None,
                )
                if not option:
                    logger.warning(
                        f"Option '{option_name}' not found in group '{group_name}' "
                        f"for menu item {menu_item.id}, skipped"
                    )
                    continue
                price = option.get("price") or 0
                surcharge += price
                selected.append({"name": option["name"], "price": price})

            if selected:
                logger.info(
                    f"Customization '{group_name}' matched {len(selected)} option(s) "
                    f"for menu item {menu_item.id}"
                )
                customizations.append({"groupName": group_name, "options": selected})
        return surcharge, customizations

    @staticmethod
    def create_order(actor, data):
        restaurant = select_by_id(Restaurant, data.get("restaurantId"))
        if not restaurant or not restaurant.is_available():
            raise RestaurantUnavailable(
                message="Restaurant not found or not active/approved"
            )

        items = data.get("items") or []
        if not items:
            raise NoItems(message="Please provide at least one item to order")

        order_type = data.get("orderType")
        delivery_address = data.get("deliveryAddress")
        if order_type == OrderType.DELIVERY.value and not delivery_address:
            raise ValidationError(message="deliveryAddress is required for delivery orders")

        order_items, subtotal = OrderService.build_order_items(restaurant, items)

        config = current_app.config
        tax_amount = round(subtotal * config["ORDER_TAX_RATE"], 2)

        delivery_fee = 0
        if order_type == OrderType.DELIVERY.value:
            delivery_fee = restaurant.delivery_fee or 0
            free_min = restaurant.free_delivery_min_amount or 0
            if free_min > 0 and subtotal >= free_min:
                delivery_fee = 0

        order = Order(
            user_id=actor.id,
            restaurant_id=restaurant.id,
            items=dump_json(order_items),
            subtotal=subtotal,
            tax_amount=tax_amount,
            delivery_fee=delivery_fee,
            packaging_fee=0,
            discount=0,
            status=OrderStatus.PENDING.value,
            payment_status=OrderPaymentStatus.PENDING.value,
            payment_method=data.get("paymentMethod"),
            order_type=order_type,
            delivery_address=(
                dump_json(delivery_address)
                if order_type == OrderType.DELIVERY.value
                else None
            ),
            special_instructions=data.get("specialInstructions"),
        )
        order.append_status_history(OrderStatus.PENDING.value, updated_by=actor.id)

        if order_type == OrderType.DELIVERY.value:
            order.calculate_estimated_delivery_time(
                restaurant.estimated_prep_minutes or config["ORDER_DEFAULT_PREP_MINUTES"],
                config["ORDER_DELIVERY_BUFFER_MINUTES"],
            )

        order.save()
        logger.info(
            f"Order {order.id} created by {actor.id} for restaurant {restaurant.id}, "
            f"total {order.total_amount}"
        )
        return order

    @staticmethod
    def get_order(actor, order_id):
        order = OrderService.get_order_or_404(order_id)
        if not OrderService.can_read_order(actor, order):
            raise ForbiddenError(message="Not authorized to view this order")
        return order

    @staticmethod
    def apply_date_filters(query, data_search):
        start_date = parse_date(data_search.get("start_date"))
        end_date = parse_date(data_search.get("end_date"))
        if start_date:
            query = query.filter(Order.created_at >= start_date)
        if end_date:
            if len(data_search["end_date"]) == 10:
                end_date = end_date + timedelta(days=1)
            query = query.filter(Order.created_at < end_date)
        return query

    @staticmethod
    def apply_search(query, data_search):
        if data_search.get("status"):
            query = query.filter(Order.status == data_search["status"])
        query = OrderService.apply_date_filters(query, data_search)

        query = query.order_by(Order.created_at.desc())
        per_page = min(data_search.get("per_page") or const.DEFAULT_PER_PAGE, const.MAX_PER_PAGE)
        return query.paginate(
            page=data_search.get("page") or const.DEFAULT_PAGE,
            per_page=per_page,
            error_out=False,
        )

    @staticmethod
    def get_user_orders(actor, data_search):
        query = Order.query.filter(Order.user_id == actor.id)
        return OrderService.apply_search(query, data_search)

    @staticmethod
    def get_managed_restaurant(actor, restaurant_id, message):
        restaurant = select_by_id(Restaurant, restaurant_id)
        if not restaurant:
            raise RestaurantUnavailable(message="Restaurant not found")
        if not actor.is_admin() and restaurant.owner_id != actor.id:
            raise ForbiddenError(message=message)
        return restaurant

    @staticmethod
    def get_restaurant_orders(actor, restaurant_id, data_search):
        restaurant = OrderService.get_managed_restaurant(
            actor, restaurant_id, "Not authorized to view orders for this restaurant"
        )
        query = Order.query.filter(Order.restaurant_id == restaurant.id)
        return OrderService.apply_search(query, data_search)

    @staticmethod
    def get_restaurant_order_stats(actor, restaurant_id, data_search):
        """Counts by status and type, revenue and the most ordered items.

        Cancelled and refunded orders are left out of revenue and popular items.
        """
        restaurant = OrderService.get_managed_restaurant(
            actor, restaurant_id, "Not authorized to view stats for this restaurant"
        )

        def scoped(*columns):
            query = db.session.query(*columns).filter(
                Order.restaurant_id == restaurant.id
            )
            return OrderService.apply_date_filters(query, data_search)

        orders_by_status = dict(
            scoped(Order.status, func.count(Order.id)).group_by(Order.status).all()
        )
        orders_by_type = dict(
            scoped(Order.order_type, func.count(Order.id))
            .group_by(Order.order_type)
            .all()
        )

        earning = scoped(Order).filter(Order.status.notin_(NON_EARNING_STATUSES))
        total_revenue, avg_order_value, earning_count = (
            earning.with_entities(
                func.sum(Order.total_amount),
                func.avg(Order.total_amount),
                func.count(Order.id),
            ).one()
        )

        popular = {}
        for (items,) in earning.with_entities(Order.items).all():
            for item in load_json(items, default=[]) or []:
                entry = popular.setdefault(
                    item.get("menuItemId"),
                    {
                        "menuItemId": item.get("menuItemId"),
                        "name": item.get("name"),
                        "totalOrdered": 0,
                        "totalRevenue": 0,
                    },
                )
                entry["totalOrdered"] += item.get("quantity") or 0
                entry["totalRevenue"] = round(
                    entry["totalRevenue"] + (item.get("totalPrice") or 0), 2
                )
        popular_items = sorted(
            popular.values(), key=lambda entry: entry["totalOrdered"], reverse=True
        )[: const.POPULAR_ITEMS_LIMIT]

        return {
            "totalOrders": sum(orders_by_status.values()),
            "ordersByStatus": orders_by_status,
            "ordersByType": orders_by_type,
            "revenue": {
                "totalRevenue": round(total_revenue or 0, 2),
                "avgOrderValue": round(avg_order_value or 0, 2),
                "completedOrders": earning_count or 0,
            },
            "popularItems": popular_items,
        }

    @staticmethod
    def assign_delivery_person(actor, order_id, delivery_person_id, delivery_person_name=None):
        def work():
            order = OrderService.get_order_or_404(order_id)
            if not (
                actor.is_admin()
                or OrderService.is_restaurant_owner(actor, order.restaurant_id)
            ):
                raise ForbiddenError(
                    message="Not authorized to assign delivery for this order"
                )
            if order.order_type != OrderType.DELIVERY.value:
                raise ValidationError(
                    message="Can only assign delivery person to delivery orders",
                    orderType=order.order_type,
                )
            if order.status in DELIVERY_CLOSED_STATUSES:
                raise ConflictError(
                    message=f"Cannot assign delivery person to order in {order.status} status",
                    currentStatus=order.status,
                )

            order.delivery_person_id = delivery_person_id
            # A history note without a status change keeps the last entry equal to the status.
            order.append_status_history(
                order.status,
                updated_by=actor.id,
                note=f"Assigned to delivery person: {delivery_person_name or delivery_person_id}",
            )
            return order

        order = run_in_transaction(work)
        logger.info(
            f"Order {order_id} assigned to delivery person {delivery_person_id} by {actor!r}"
        )
        return order

    @staticmethod
    def update_status(actor, order_id, status, note=None):
        def work():
            order = OrderService.get_order_or_404(order_id)
            if actor.role == const.RESTAURANT_OWNER and not OrderService.is_restaurant_owner(
                actor, order.restaurant_id
            ):
                raise ForbiddenError(message="Not authorized to update this order")
            OrderStateMachine.transition(order, status, actor, note)
            return order

        return run_in_transaction(work)

    @staticmethod
    def cancel_order(actor, order_id, reason=None):
        def work():
            order = OrderService.get_order_or_404(order_id)
            is_customer = order.user_id == actor.id
            if not (
                is_customer
                or actor.is_admin()
                or OrderService.is_restaurant_owner(actor, order.restaurant_id)
            ):
                raise ForbiddenError(message="Not authorized to cancel this order")
            OrderStateMachine.cancel(order, actor, reason)
            return order

        return run_in_transaction(work)
