"""
Order Models - Order and OrderItem entities with status tracking.

Order Status Flow:
    PENDING <-> DELIVERED (stock reserved on entry if not reserved yet)
    any -> CANCELLED (reserved stock is restored)
    PROCESSING, SHIPPED carry the current reservation unchanged

``stock_reserved`` records whether the catalog stock for this order's items
is currently withheld; see ``orders.lifecycle`` for the transition rules.
"""
from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from catalog.models import Product


class Order(models.Model):
    """
    Order entity representing a client's purchase.

    Status:
        - PENDING: Placed, stock reserved
        - PROCESSING / SHIPPED: Fulfilment in progress
        - DELIVERED: Received by the client, may be rated
        - CANCELLED: Stock returned to the catalog
    """

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        PROCESSING = 'processing', 'Processing'
        SHIPPED = 'shipped', 'Shipped'
        DELIVERED = 'delivered', 'Delivered'
        CANCELLED = 'cancelled', 'Cancelled'

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='orders',
        help_text="Client who placed the order"
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
        help_text="Current order status"
    )
    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="Total order amount, fixed at creation"
    )
    stock_reserved = models.BooleanField(
        default=False,
        help_text="Whether catalog stock is currently withheld for this order"
    )

    # Shipping address
    shipping_street = models.CharField(max_length=255, blank=True, default='')
    shipping_city = models.CharField(max_length=100, blank=True, default='')
    shipping_phone_number = models.CharField(max_length=30, blank=True, default='')
    shipping_zip = models.CharField(max_length=20, blank=True, default='')
    shipping_country = models.CharField(max_length=100, blank=True, default='')

    rating = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(5)],
        help_text="Client rating (1-5) after delivery"
    )
    review = models.TextField(blank=True, default='')
    rated_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Order'
        verbose_name_plural = 'Orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'status'], name='order_user_status_idx'),
            models.Index(fields=['status', 'created_at'], name='order_status_created_idx'),
        ]

    def __str__(self):
        return f"Order #{self.id} - {self.user_id} ({self.status})"

    @property
    def is_rated(self) -> bool:
        return self.rating is not None

    @property
    def item_count(self) -> int:
        return self.items.count()

    @property
    def address(self) -> dict:
        return {
            'street': self.shipping_street,
            'city': self.shipping_city,
            'phone_number': self.shipping_phone_number,
            'zip': self.shipping_zip,
            'country': self.shipping_country,
        }


class OrderItem(models.Model):
    """
    OrderItem entity representing a product in an order.

    Stores the unit price, name and image at time of order to preserve
    historical data. The product reference becomes NULL if the product is
    later deleted from the catalog.
    """
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='items',
        help_text="Parent order"
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='order_items',
        help_text="Ordered product"
    )
    product_name = models.CharField(max_length=200, help_text="Product name at time of order")
    product_image = models.CharField(max_length=500, blank=True, default='')
    quantity = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Quantity ordered"
    )
    unit_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Price per unit at time of order"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Order Item'
        verbose_name_plural = 'Order Items'
        ordering = ['id']

    def __str__(self):
        return f"{self.quantity}x {self.product_name} @ ${self.unit_price}"

    @property
    def subtotal(self) -> Decimal:
        """Calculate item subtotal."""
        return self.quantity * self.unit_price
