"""
Order placement and the order status state machine.

    pending --cancel (owner)------> cancelled
    pending --status (admin)------> completed | cancelled | pending

An order and its items are written in a single transaction: if any row
fails to persist, none of them are kept.
"""
from typing import Iterable, List, Tuple

from database import Store
from errors import (
    BadRequest,
    InvalidAddress,
    InvalidProduct,
    InvalidQuantity,
    InvalidTransition,
    NotFound,
)
from logger import get_logger
from models import (
    ORDER_STATUS_CANCELLED,
    ORDER_STATUS_PENDING,
    ORDER_STATUSES,
    Address,
    Order,
    OrderItem,
    Product,
)
from pagination import Page
from policy import POLICIES, check_owner

log = get_logger("orders")


def price_lines(store: Store, items: Iterable) -> Tuple[List[Tuple[Product, int, float]], float]:
    """
    Look up every requested product, in request order, and price each line.

    Each line's price is the product's current unit price times the quantity;
    the total is the running sum of those prices.
    """
    lines = []
    total = 0.0
    for item in items:
        product = store.get(Product, item.product_id)
        if product is None:
            raise InvalidProduct(item.product_id)
        if item.quantity <= 0:
            raise InvalidQuantity(item.product_id)
        price = product.price * item.quantity
        lines.append((product, item.quantity, price))
        total += price
    return lines, total


def place_order(store: Store, user, address_id: int, items: Iterable) -> Order:
    lines, total = price_lines(store, items)

    address = store.get(Address, address_id)
    if address is None or address.user_id != user.id:
        raise InvalidAddress(address_id)

    with store.transaction():
        order = store.add(
            Order(
                user=user,
                address=address,
                total=total,
                status=ORDER_STATUS_PENDING,
                order_items=[
                    OrderItem(product=product, quantity=quantity, price=price)
                    for product, quantity, price in lines
                ],
            )
        )
    log.info(f"Order {order.id} placed by user {user.id}: {len(lines)} item(s), total {total}")
    return store.get(Order, order.id, fresh=True)


def get_order(store: Store, order_id: int) -> Order:
    order = store.get(Order, order_id)
    if order is None:
        raise NotFound("Order not found")
    return order


def list_orders(store: Store, user_id: int, page: Page) -> Tuple[List[Order], int]:
    orders = store.list(Order, offset=page.offset, limit=page.page_size, user_id=user_id)
    return orders, store.count(Order, user_id=user_id)


def cancel_order(store: Store, user, order_id: int) -> Order:
    order = get_order(store, order_id)
    check_owner(user, POLICIES["order:cancel"], order.user_id)
    if order.status != ORDER_STATUS_PENDING:
        raise InvalidTransition("Order cannot be cancelled, it is not in pending state")

    with store.transaction():
        order.status = ORDER_STATUS_CANCELLED
    return order


def update_order_status(store: Store, order_id: int, status: str) -> Order:
    order = get_order(store, order_id)
    if status not in ORDER_STATUSES:
        raise BadRequest("Invalid order status")

    with store.transaction():
        order.status = status
    return order
