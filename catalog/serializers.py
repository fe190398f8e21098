"""
Serializers for catalog models.
Provides data validation and JSON conversion for API endpoints.
"""
from rest_framework import serializers
from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    """Full product representation used by the catalog endpoints."""
    tags = serializers.ListField(child=serializers.CharField(max_length=50), required=False)
    features = serializers.ListField(child=serializers.CharField(max_length=200), required=False)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'category', 'price', 'original_price',
            'sale_price', 'is_sale', 'stock', 'image', 'description',
            'is_eco_friendly', 'is_new', 'in_stock', 'rating', 'reviews',
            'tags', 'features', 'is_visible',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']
        extra_kwargs = {
            'price': {'required': True},
            'stock': {'required': True},
        }

    def update(self, instance, validated_data):
        # Orders decrement stock with F() updates; write back only the
        # submitted fields so a stale stock value never overwrites them
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save(update_fields=[*validated_data, 'updated_at'])
        return instance


class ProductMinimalSerializer(serializers.ModelSerializer):
    """Minimal serializer for autocomplete and nested representations."""
    class Meta:
        model = Product
        fields = ['id', 'name', 'image', 'price']
