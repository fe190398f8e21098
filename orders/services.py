"""
Order Service Layer - Stock-aware order lifecycle.

Every operation runs inside one database transaction. Stock changes follow
a two-phase pattern:
1. Lock the product rows with select_for_update(), ordered by id
2. Validate ALL lines (product exists, enough stock)
3. Only if every line passes: decrement with a conditional update
   (stock >= quantity), so stock can never go negative

Restoration is best-effort: a line whose product has been deleted is skipped
with a warning.
"""
import logging
from collections import OrderedDict
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from catalog.models import Product
from core.exceptions import (
    AuthorizationError,
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from core.permissions import is_admin
from .lifecycle import OrderState, StockEffect, normalize_status, plan_transition
from .models import Order, OrderItem

logger = logging.getLogger(__name__)

ADDRESS_FIELDS = ('street', 'city', 'phone_number', 'zip', 'country')


# =============================================================================
# Validation
# =============================================================================

def validate_order_items(items) -> None:
    """
    Validate order items structure.

    Args:
        items: List of dicts with 'product_id' and 'quantity'

    Raises:
        ValidationError: If validation fails
    """
    if not items or not isinstance(items, (list, tuple)):
        raise ValidationError("Order must contain at least one item")

    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"Item {idx}: must be an object")
        if item.get('product_id') in (None, ''):
            raise ValidationError(f"Item {idx}: missing 'product_id'")
        if 'quantity' not in item:
            raise ValidationError(f"Item {idx}: missing 'quantity'")

        product_id = item['product_id']
        quantity = item['quantity']

        if isinstance(product_id, bool) or not isinstance(product_id, int) or product_id < 1:
            raise ValidationError(f"Invalid productId: {product_id}")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError(f"Item {idx}: quantity must be at least 1")


def validate_rating(rating) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationError("Rating must be between 1 and 5")
    return rating


def _clean_address(address: Optional[Dict]) -> Dict:
    if not address:
        return {}
    if not isinstance(address, dict):
        raise ValidationError("Address must be an object")
    return {
        f'shipping_{key}': str(address.get(key) or '').strip()
        for key in ADDRESS_FIELDS
    }


# =============================================================================
# Stock primitives
# =============================================================================

def _required_quantities(lines: Iterable) -> "OrderedDict[int, int]":
    """
    Sum quantities per product, keeping first-seen order.

    ``lines`` yields (product_id, quantity) pairs.
    """
    required = OrderedDict()
    for product_id, quantity in lines:
        required[product_id] = required.get(product_id, 0) + quantity
    return required


def _lock_products(product_ids, visible_only=False) -> Dict[int, Product]:
    # Lock in id order to prevent deadlocks between concurrent orders
    queryset = Product.objects.select_for_update().filter(id__in=list(product_ids))
    if visible_only:
        queryset = queryset.filter(is_visible=True)
    return {p.id: p for p in queryset.order_by('id')}


def _check_stock(required: "OrderedDict[int, int]", products: Dict[int, Product]) -> None:
    """
    Phase one: every product must exist and hold enough stock.

    Lines are checked in input order; the first failing line is reported.
    """
    for product_id, quantity in required.items():
        product = products.get(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        if product.stock < quantity:
            raise InsufficientStockError(
                product_id=product_id,
                requested=quantity,
                available=product.stock,
                name=product.name
            )


def _decrement_stock(required: "OrderedDict[int, int]", products: Dict[int, Product]) -> None:
    """
    Phase two: apply all decrements.

    Each update only matches while stock >= quantity; a miss means another
    writer got there first and the enclosing transaction is rolled back.
    """
    for product_id, quantity in required.items():
        updated = Product.objects.filter(
            id=product_id, stock__gte=quantity
        ).update(stock=F('stock') - quantity, updated_at=timezone.now())
        if not updated:
            current = Product.objects.filter(id=product_id).values_list('stock', flat=True).first()
            raise InsufficientStockError(
                product_id=product_id,
                requested=quantity,
                available=current or 0,
                name=products[product_id].name
            )


def reserve_stock(order: Order) -> None:
    """Withhold stock for every item of ``order``; all lines or nothing."""
    items = list(order.items.all())
    missing = [item for item in items if item.product_id is None]
    if missing:
        raise NotFoundError(f"Product {missing[0].product_name!r} no longer exists")

    required = _required_quantities((item.product_id, item.quantity) for item in items)
    products = _lock_products(required.keys())
    _check_stock(required, products)
    _decrement_stock(required, products)

    logger.info(f"Order #{order.id}: reserved stock for {len(items)} items")


def restore_stock(order: Order) -> None:
    """Return every item's quantity to the catalog, skipping deleted products."""
    restored = 0
    for item in order.items.all():
        if item.product_id is None:
            logger.warning(
                f"Order #{order.id}: product {item.product_name!r} was deleted, "
                f"{item.quantity} units not restored"
            )
            continue
        updated = Product.objects.filter(id=item.product_id).update(
            stock=F('stock') + item.quantity, updated_at=timezone.now()
        )
        if updated:
            restored += 1
        else:
            logger.warning(
                f"Order #{order.id}: product {item.product_id} not found, "
                f"{item.quantity} units not restored"
            )

    logger.info(f"Order #{order.id}: restored stock for {restored} items")


# =============================================================================
# Lookups
# =============================================================================

def _order_queryset():
    return Order.objects.select_related('user').prefetch_related('items')


def _load_for_update(order_id: int) -> Order:
    try:
        return Order.objects.select_for_update().get(id=order_id)
    except Order.DoesNotExist:
        raise NotFoundError("Order not found")


def list_orders(user):
    """Admins see every order, everyone else only their own."""
    queryset = _order_queryset()
    if not is_admin(user):
        queryset = queryset.filter(user=user)
    return queryset.order_by('-created_at')


def get_order(order_id: int, user) -> Order:
    """
    Raises:
        NotFoundError: If the order doesn't exist
        AuthorizationError: If the caller is neither admin nor owner
    """
    try:
        order = _order_queryset().get(id=order_id)
    except Order.DoesNotExist:
        raise NotFoundError("Order not found")
    if not is_admin(user) and order.user_id != user.id:
        raise AuthorizationError("Not authorized to view this order")
    return order


def refresh_order(order: Order) -> Order:
    """Fetch fresh order with all relations."""
    return _order_queryset().get(id=order.id)


# =============================================================================
# Lifecycle operations
# =============================================================================

def _queue_task(task, *args):
    """Queue a Celery task once the surrounding transaction commits."""
    def send():
        try:
            task.delay(*args)
        except Exception as e:
            # Don't fail the order if task queuing fails
            logger.error(f"Failed to queue {task.name}: {e}")

    transaction.on_commit(send)


def create_order(user, items: List[Dict], address: Optional[Dict] = None) -> Order:
    """
    Create an order and reserve its stock.

    Fail-fast: if ANY line references a missing product or exceeds the
    available stock, nothing is written.

    Args:
        user: Client placing the order
        items: List of dicts with 'product_id' and 'quantity'
        address: Optional shipping address dict

    Returns:
        The created order, status PENDING with stock reserved

    Raises:
        ValidationError: If items are malformed
        NotFoundError: If a product doesn't exist or is hidden
        InsufficientStockError: If a product lacks stock
    """
    validate_order_items(items)
    shipping = _clean_address(address)

    required = _required_quantities((item['product_id'], item['quantity']) for item in items)

    with transaction.atomic():
        products = _lock_products(required.keys(), visible_only=True)
        _check_stock(required, products)
        _decrement_stock(required, products)

        total_amount = Decimal('0.00')
        order_items = []
        for item in items:
            product = products[item['product_id']]
            quantity = item['quantity']
            order_items.append(OrderItem(
                product=product,
                product_name=product.name,
                product_image=product.image,
                quantity=quantity,
                unit_price=product.price
            ))
            total_amount += product.price * quantity

        order = Order.objects.create(
            user=user,
            status=Order.Status.PENDING,
            stock_reserved=True,
            total_amount=total_amount,
            **shipping
        )
        for order_item in order_items:
            order_item.order = order
        OrderItem.objects.bulk_create(order_items)

        logger.info(
            f"Order #{order.id} created for user #{user.id}: "
            f"{len(order_items)} items, total ${total_amount}"
        )

        from .tasks import send_order_confirmation
        _queue_task(send_order_confirmation, order.id)

    return refresh_order(order)


def transition_status(order_id: int, new_status) -> Order:
    """
    Move an order to ``new_status``, reserving or restoring stock as the
    lifecycle rules require.

    Raises:
        ValidationError: If the status is unknown
        NotFoundError: If the order, or a product during reservation, is missing
        InsufficientStockError: If stock can't be reserved; nothing changes
    """
    new_status = normalize_status(new_status)

    with transaction.atomic():
        order = _load_for_update(order_id)
        transition = plan_transition(OrderState.of(order), new_status)

        if transition.effect is StockEffect.RESERVE:
            reserve_stock(order)
        elif transition.effect is StockEffect.RESTORE:
            restore_stock(order)

        previous_status = order.status
        order.status = transition.target.status
        order.stock_reserved = transition.target.reserved
        order.save(update_fields=['status', 'stock_reserved', 'updated_at'])

        logger.info(
            f"Order #{order.id}: {previous_status} -> {order.status} "
            f"(stock {transition.effect.value}, reserved={order.stock_reserved})"
        )

        if previous_status != order.status:
            from .tasks import send_order_status_update
            _queue_task(send_order_status_update, order.id, previous_status)

    return refresh_order(order)


def delete_order(order_id: int, user) -> None:
    """
    Delete an order, returning its stock first if still reserved.

    Raises:
        NotFoundError: If the order doesn't exist
        AuthorizationError: If the caller is neither admin nor owner
    """
    with transaction.atomic():
        order = _load_for_update(order_id)
        if not is_admin(user) and order.user_id != user.id:
            raise AuthorizationError("Not authorized to delete this order")

        if order.stock_reserved:
            restore_stock(order)

        order.delete()

    logger.info(f"Order #{order_id} deleted by user #{user.id}")


def rate_order(order_id: int, user, rating, review: Optional[str] = None) -> Order:
    """
    Record the owner's rating of a delivered order. An order is rated once.

    Raises:
        ValidationError: If rating is not an integer in 1..5
        NotFoundError: If the order doesn't exist
        AuthorizationError: If the caller is not the owner
        ConflictError: If the order is not delivered or is already rated
    """
    rating = validate_rating(rating)

    with transaction.atomic():
        order = _load_for_update(order_id)
        if order.user_id != user.id:
            raise AuthorizationError("Not authorized to rate this order")
        if order.status != Order.Status.DELIVERED:
            raise ConflictError("Can only rate delivered orders")
        if order.is_rated:
            raise ConflictError("Order already rated")

        order.rating = rating
        order.review = review or ''
        order.rated_at = timezone.now()
        order.save(update_fields=['rating', 'review', 'rated_at', 'updated_at'])

    logger.info(f"Order #{order.id} rated {rating} by user #{user.id}")
    return refresh_order(order)
