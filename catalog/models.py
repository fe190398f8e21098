"""
Catalog Models - Products available for sale.

Only ``stock`` is touched by the order lifecycle; everything else is managed
through the catalog endpoints.
"""
from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class Product(models.Model):
    """
    Product entity representing items available for sale.
    """
    name = models.CharField(
        max_length=200,
        db_index=True,
        help_text="Product name for display and search"
    )
    category = models.CharField(
        max_length=100,
        default='General',
        db_index=True,
        help_text="Free-text product category"
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Unit price (non-negative)"
    )
    original_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Price before discount, for display"
    )
    sale_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
    )
    is_sale = models.BooleanField(default=False)
    stock = models.PositiveIntegerField(
        default=0,
        help_text="Units available for ordering"
    )
    image = models.CharField(max_length=500, blank=True, default='')
    description = models.TextField(
        blank=True,
        default='',
        help_text="Optional product description"
    )
    is_eco_friendly = models.BooleanField(default=False)
    is_new = models.BooleanField(default=False)
    in_stock = models.BooleanField(
        default=True,
        help_text="Display flag; ordering checks the stock count"
    )
    rating = models.DecimalField(
        max_digits=2,
        decimal_places=1,
        default=Decimal('4.0'),
        validators=[MinValueValidator(Decimal('0.0')), MaxValueValidator(Decimal('5.0'))],
    )
    reviews = models.PositiveIntegerField(default=0)
    tags = models.JSONField(default=list, blank=True)
    features = models.JSONField(default=list, blank=True)
    is_visible = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Hidden products are neither listed nor orderable"
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Product'
        verbose_name_plural = 'Products'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['name', 'is_visible'], name='product_name_visible_idx'),
            models.Index(fields=['category', 'is_visible'], name='product_category_visible_idx'),
            models.Index(fields=['price'], name='product_price_idx'),
        ]

    def __str__(self):
        return f"{self.name} (${self.price})"

    @property
    def is_out_of_stock(self) -> bool:
        return self.stock == 0
