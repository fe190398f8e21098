"""
Django Admin configuration for order models.

Status and stock reservation are read-only here: changing them outside the
order service would desynchronise catalog stock.
"""
from django.contrib import admin
from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['product', 'product_name', 'quantity', 'unit_price', 'subtotal']
    can_delete = False

    def subtotal(self, obj):
        return f"${obj.subtotal}"
    subtotal.short_description = 'Subtotal'


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'status', 'stock_reserved', 'total_amount', 'item_count', 'rating', 'created_at']
    list_filter = ['status', 'stock_reserved', 'created_at']
    search_fields = ['id', 'user__email', 'user__name']
    ordering = ['-created_at']
    readonly_fields = [
        'status', 'stock_reserved', 'total_amount',
        'rating', 'review', 'rated_at', 'created_at', 'updated_at'
    ]
    raw_id_fields = ['user']
    inlines = [OrderItemInline]

    def item_count(self, obj):
        return obj.items.count()
    item_count.short_description = 'Items'

    def has_delete_permission(self, request, obj=None):
        # Deleting must go through the API so reserved stock is returned
        return False
