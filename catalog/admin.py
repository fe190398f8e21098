"""
Django Admin configuration for catalog models.
"""
from django.contrib import admin
from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'category', 'price', 'stock', 'is_visible', 'is_out_of_stock', 'created_at']
    list_filter = ['category', 'is_visible', 'is_sale', 'created_at']
    search_fields = ['name', 'description', 'category']
    ordering = ['name']

    def is_out_of_stock(self, obj):
        return obj.is_out_of_stock
    is_out_of_stock.boolean = True
    is_out_of_stock.short_description = 'Out of Stock'
