"""
Serializers for order models.
"""
from rest_framework import serializers

from accounts.serializers import UserMinimalSerializer
from .models import Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    """Serializer for OrderItem with the product snapshot taken at order time."""
    subtotal = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        read_only=True
    )

    class Meta:
        model = OrderItem
        fields = [
            'id', 'product', 'product_name', 'product_image',
            'quantity', 'unit_price', 'subtotal'
        ]


class OrderItemCreateSerializer(serializers.Serializer):
    """Serializer for creating order items in order creation request."""
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)


class AddressSerializer(serializers.Serializer):
    street = serializers.CharField(max_length=255, required=False, allow_blank=True)
    city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    phone_number = serializers.CharField(max_length=30, required=False, allow_blank=True)
    zip = serializers.CharField(max_length=20, required=False, allow_blank=True)
    country = serializers.CharField(max_length=100, required=False, allow_blank=True)


def _item_count(obj):
    # Use prefetched items count if available
    if hasattr(obj, '_prefetched_objects_cache') and 'items' in obj._prefetched_objects_cache:
        return len(obj.items.all())
    return obj.items.count()


class OrderSerializer(serializers.ModelSerializer):
    """
    Serializer for Order model with nested items.
    Expects items to be prefetched.
    """
    user = UserMinimalSerializer(read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)
    address = AddressSerializer(read_only=True)
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id', 'user', 'status', 'total_amount', 'stock_reserved',
            'address', 'items', 'item_count',
            'rating', 'review', 'rated_at',
            'created_at', 'updated_at'
        ]

    def get_item_count(self, obj):
        return _item_count(obj)


class OrderListSerializer(serializers.ModelSerializer):
    """
    Optimized serializer for listing orders.
    """
    user = UserMinimalSerializer(read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id', 'user', 'status', 'total_amount', 'stock_reserved',
            'items', 'item_count', 'rating', 'created_at'
        ]

    def get_item_count(self, obj):
        return _item_count(obj)


class OrderCreateSerializer(serializers.Serializer):
    """
    Serializer for creating orders via POST /orders/

    Request format:
    {
        "items": [
            {"product_id": 1, "quantity": 2},
            {"product_id": 3, "quantity": 1}
        ],
        "address": {"street": "...", "city": "...", "zip": "...", "country": "..."}
    }
    """
    items = OrderItemCreateSerializer(many=True)
    address = AddressSerializer(required=False, allow_null=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("Order items are required")
        return value


class OrderStatusSerializer(serializers.Serializer):
    """Status is matched case-insensitively by the service layer."""
    status = serializers.CharField(max_length=20)


class OrderRateSerializer(serializers.Serializer):
    rating = serializers.IntegerField()
    review = serializers.CharField(required=False, allow_blank=True, default='', max_length=2000)
