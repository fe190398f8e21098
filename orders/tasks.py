"""
Celery tasks for order notifications.

Tasks:
    - send_order_confirmation: Async notification after an order is placed
    - send_order_status_update: Async notification after a status change
"""
import logging
from celery import shared_task

logger = logging.getLogger(__name__)


def _items_summary(order):
    return [
        f"  - {item.quantity}x {item.product_name} @ ${item.unit_price}"
        for item in order.items.all()
    ]


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def send_order_confirmation(self, order_id: int):
    """
    Async task triggered after successful order creation.

    In production, this would email the client and notify fulfilment.

    Args:
        order_id: ID of the placed order

    Returns:
        Dict with confirmation details
    """
    from orders.models import Order

    try:
        order = Order.objects.select_related('user').prefetch_related('items').get(id=order_id)
    except Order.DoesNotExist:
        logger.error(f"Order #{order_id} not found for confirmation")
        return {'status': 'error', 'message': f'Order {order_id} not found'}

    if order.status != Order.Status.PENDING:
        logger.warning(
            f"Order #{order_id} is no longer pending (status: {order.status}), "
            "skipping confirmation"
        )
        return {
            'status': 'skipped',
            'message': f'Order {order_id} is not pending'
        }

    confirmation_message = f"""
    ===============================================
    ORDER CONFIRMATION - #{order.id}
    ===============================================
    Customer: {order.user.name} <{order.user.email}>
    Status: {order.status}
    Total: ${order.total_amount}

    Items:
    {chr(10).join(_items_summary(order))}

    Created: {order.created_at.strftime('%Y-%m-%d %H:%M:%S')}
    ===============================================
    """

    logger.info(f"[CELERY] Processing confirmation for Order #{order.id}")
    logger.info(confirmation_message)

    return {
        'status': 'success',
        'order_id': order.id,
        'message': f'Confirmation sent for order {order_id}'
    }


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def send_order_status_update(self, order_id: int, previous_status: str):
    """
    Async task triggered after an admin changes an order's status.

    Args:
        order_id: ID of the updated order
        previous_status: Status before the change
    """
    from orders.models import Order

    try:
        order = Order.objects.select_related('user').get(id=order_id)
    except Order.DoesNotExist:
        # Deleted between the update and the task running
        logger.warning(f"Order #{order_id} not found for status update")
        return {'status': 'error', 'message': f'Order {order_id} not found'}

    logger.info(
        f"[CELERY] Order #{order.id} for {order.user.email}: "
        f"{previous_status} -> {order.status}"
    )

    return {
        'status': 'success',
        'order_id': order.id,
        'previous_status': previous_status,
        'current_status': order.status,
    }
