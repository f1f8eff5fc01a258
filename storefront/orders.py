"""
Order pricing and checkout.

Prices come from the catalog at creation time and are copied into the order's
line items, so later catalog edits never change an existing order. Nothing is
written until every item has been resolved and the payment intent exists.
"""

import logging
from typing import Any, Dict, List, Tuple

from pymongo.database import Database

from storefront.errors import ConflictError, NotFoundError, UpstreamError
from storefront.permissions import check_permission, require_owner
from storefront.security import Principal
from storefront.database import create_document, find_by_id, populate, serialize_doc, utcnow
from storefront.schemas import CartItem, Order, OrderIn, OrderItem, OrderPayment
from storefront.payments import PaymentError, PaymentGateway, default_currency, to_minor_units

logger = logging.getLogger("storefront.orders")


def build_line_items(db: Database, cart_items: List[CartItem]) -> Tuple[List[OrderItem], float]:
    order_items: List[OrderItem] = []
    subtotal = 0.0
    for item in cart_items:
        prod = find_by_id(db, "product", item.product_id)
        if not prod:
            raise NotFoundError(f"No product with id: {item.product_id}")
        line = OrderItem(
            name=prod["name"],
            image=prod.get("image", ""),
            price=float(prod.get("price", 0)),
            quantity=item.quantity,
            product_id=str(prod["_id"]),
        )
        order_items.append(line)
        subtotal += line.price * line.quantity
    return order_items, round(subtotal, 2)


def create_order(db: Database, principal: Principal, payload: OrderIn,
                 gateway: PaymentGateway) -> Tuple[Dict[str, Any], str]:
    order_items, subtotal = build_line_items(db, payload.order_items)
    total = round(subtotal + payload.tax + payload.shipping_fee, 2)

    try:
        intent = gateway.create_intent(amount=to_minor_units(total), currency=default_currency())
    except PaymentError as e:
        logger.error("Payment intent failed for user %s: %s", principal.user_id, e)
        raise UpstreamError("Unable to initiate payment")

    order = Order(
        tax=payload.tax,
        shipping_fee=payload.shipping_fee,
        subtotal=subtotal,
        total=total,
        order_items=order_items,
        user_id=principal.user_id,
        client_secret=intent.client_secret,
    )
    order_id = create_document(db, "order", order)
    logger.info("Order %s created by %s: total=%.2f", order_id, principal.user_id, total)
    return serialize_doc(find_by_id(db, "order", order_id)), intent.client_secret


def _with_user(db: Database, docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return populate(db, docs, "user_id", "user", "user", ["name"])


def get_all_orders(db: Database) -> List[Dict[str, Any]]:
    return _with_user(db, [serialize_doc(o) for o in db["order"].find({})])


def get_current_user_orders(db: Database, principal: Principal) -> List[Dict[str, Any]]:
    return _with_user(db, [serialize_doc(o) for o in db["order"].find({"user_id": principal.user_id})])


def get_order(db: Database, principal: Principal, order_id: str) -> Dict[str, Any]:
    order = find_by_id(db, "order", order_id)
    if not order:
        raise NotFoundError(f"No order with id: {order_id}")
    check_permission(principal, order["user_id"])
    return _with_user(db, [serialize_doc(order)])[0]


def pay_order(db: Database, principal: Principal, order_id: str, payload: OrderPayment) -> Dict[str, Any]:
    """Record the confirmed payment intent; pending -> paid is the only transition handled here."""
    order = find_by_id(db, "order", order_id)
    if not order:
        raise NotFoundError(f"No order with id: {order_id}")
    require_owner(principal, order["user_id"], "update")
    # Status is matched in the filter so a concurrent transition cannot be overwritten
    result = db["order"].update_one(
        {"_id": order["_id"], "status": "pending"},
        {"$set": {"payment_intent_id": payload.payment_intent_id, "status": "paid", "updated_at": utcnow()}},
    )
    if result.matched_count == 0:
        current = find_by_id(db, "order", order_id) or order
        raise ConflictError(f"Order is {current['status']} and cannot be paid")
    logger.info("Order %s paid", order_id)
    return serialize_doc(find_by_id(db, "order", order_id))
