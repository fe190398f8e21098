"""
Catalog API Views.

Implements:
- CRUD operations for Product (reads are public, writes are admin only)
- Product search with keyword and filter support
- Autocomplete with rate limiting
"""
import logging
from decimal import Decimal, InvalidOperation

from django.db.models import Q
from rest_framework import generics, status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from core.permissions import IsAdminOrReadOnly, is_admin
from core.rate_limiting import rate_limit
from .models import Product
from .serializers import ProductSerializer

logger = logging.getLogger(__name__)


def visible_products(user):
    """Admins see the whole catalog; everyone else only visible products."""
    queryset = Product.objects.all()
    if not is_admin(user):
        queryset = queryset.filter(is_visible=True)
    return queryset


def _parse_decimal(value):
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError):
        return None


class ProductListCreateView(generics.ListCreateAPIView):
    """
    GET: List products, newest first
    POST: Create a new product (admin only)
    """
    serializer_class = ProductSerializer
    permission_classes = [IsAdminOrReadOnly]

    def get_queryset(self):
        return visible_products(self.request.user).order_by('-created_at')

    def perform_create(self, serializer):
        product = serializer.save()
        logger.info(f"Created product #{product.id} ({product.name}) with stock {product.stock}")


class ProductDetailView(generics.RetrieveUpdateDestroyAPIView):
    """
    GET: Retrieve a product
    PUT/PATCH: Update a product (admin only)
    DELETE: Delete a product (admin only)
    """
    serializer_class = ProductSerializer
    permission_classes = [IsAdminOrReadOnly]

    def get_queryset(self):
        return visible_products(self.request.user)

    def update(self, request, *args, **kwargs):
        # PUT behaves like PATCH: only the supplied fields change
        kwargs['partial'] = True
        return super().update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        product = self.get_object()
        product_id = product.id
        product.delete()
        logger.info(f"Deleted product #{product_id}")
        return Response({'message': 'Product deleted successfully'})


class ProductSearchView(generics.ListAPIView):
    """
    GET: Search products with keyword and filters.

    Query Parameters:
        - q: Keyword to search in name, description, and category
        - category: Exact category (case-insensitive)
        - min_price: Minimum price filter
        - max_price: Maximum price filter
        - in_stock: Only products with stock left (true/false)
    """
    serializer_class = ProductSerializer
    permission_classes = [AllowAny]

    def get_queryset(self):
        queryset = visible_products(self.request.user)
        params = self.request.query_params

        keyword = params.get('q', '').strip()
        if keyword:
            queryset = queryset.filter(
                Q(name__icontains=keyword) |
                Q(description__icontains=keyword) |
                Q(category__icontains=keyword)
            )

        category = params.get('category', '').strip()
        if category:
            queryset = queryset.filter(category__iexact=category)

        # Unparseable prices are ignored
        min_price = _parse_decimal(params.get('min_price'))
        if min_price is not None:
            queryset = queryset.filter(price__gte=min_price)

        max_price = _parse_decimal(params.get('max_price'))
        if max_price is not None:
            queryset = queryset.filter(price__lte=max_price)

        if params.get('in_stock', '').lower() == 'true':
            queryset = queryset.filter(stock__gt=0)

        return queryset.order_by('name')


class ProductAutocompleteView(APIView):
    """
    GET: Fast prefix-matching autocomplete for product names.

    Query Parameters:
        - q: Search query (minimum 3 characters)

    Returns top 10 matching products.
    Rate limited to 20 requests per minute.
    """
    permission_classes = [AllowAny]

    @rate_limit(max_requests=20, window_seconds=60)
    def get(self, request):
        query = request.query_params.get('q', '').strip()

        if len(query) < 3:
            return Response(
                {'error': 'Validation Error', 'detail': 'Query must be at least 3 characters'},
                status=status.HTTP_400_BAD_REQUEST
            )

        products = visible_products(request.user).filter(
            name__istartswith=query
        ).order_by('name').values('id', 'name', 'price')[:10]

        return Response(list(products))
