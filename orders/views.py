"""
Order API Views.

Implements:
- GET /orders/ - List orders (admins: all, clients: their own)
- POST /orders/ - Place an order, reserving stock (client role)
- GET /orders/{id}/ - Order detail with items (owner or admin)
- DELETE /orders/{id}/ - Delete an order, returning reserved stock (owner or admin)
- PUT/PATCH /orders/{id}/status/ - Change status (admin role)
- POST /orders/{id}/rate/ - Rate a delivered order (owning client)
- GET /admin/dashboard/ - Order and catalog statistics (admin role)

Business-rule failures are raised by the service layer and mapped to
responses by core.exceptions.api_exception_handler.
"""
import logging
from decimal import Decimal

from django.db import models
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from catalog.models import Product
from catalog.serializers import ProductMinimalSerializer
from core.permissions import IsAdminRole, IsClientRole
from core.rate_limiting import rate_limit
from . import services
from .models import Order
from .serializers import (
    OrderCreateSerializer,
    OrderListSerializer,
    OrderRateSerializer,
    OrderSerializer,
    OrderStatusSerializer,
)

logger = logging.getLogger(__name__)


class OrderListCreateView(generics.ListCreateAPIView):
    """
    GET: List orders visible to the caller
    POST: Create a new order (client role)

    Query Parameters (GET):
        - status: Filter by status (pending, processing, shipped, delivered, cancelled)

    Request Body (POST):
    {
        "items": [
            {"product_id": 1, "quantity": 2},
            {"product_id": 3, "quantity": 1}
        ],
        "address": {"street": "1 Main St", "city": "Springfield"}
    }
    """
    serializer_class = OrderListSerializer

    def get_permissions(self):
        if self.request.method == 'POST':
            return [IsAuthenticated(), IsClientRole()]
        return [IsAuthenticated()]

    def get_queryset(self):
        queryset = services.list_orders(self.request.user)

        status_filter = self.request.query_params.get('status', '').strip().lower()
        if status_filter in Order.Status.values:
            queryset = queryset.filter(status=status_filter)

        return queryset

    @rate_limit(max_requests=30, window_seconds=60)
    def create(self, request, *args, **kwargs):
        """
        Returns:
            - 201: Order created, stock reserved
            - 400: Validation error or insufficient stock
            - 404: Product not found
        """
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = services.create_order(
            request.user,
            serializer.validated_data['items'],
            serializer.validated_data.get('address'),
        )
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


class OrderDetailView(APIView):
    """
    GET: Retrieve order details with all items
    DELETE: Delete the order, restoring reserved stock
    """

    def get(self, request, pk):
        order = services.get_order(pk, request.user)
        return Response(OrderSerializer(order).data)

    def delete(self, request, pk):
        services.delete_order(pk, request.user)
        return Response({'message': 'Order deleted successfully'})


class OrderStatusView(APIView):
    """
    PUT/PATCH: Change an order's status (admin role).

    Request Body:
        {"status": "delivered"}
    """
    permission_classes = [IsAdminRole]

    def put(self, request, pk):
        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = services.transition_status(pk, serializer.validated_data['status'])
        return Response(OrderSerializer(order).data)

    patch = put


class OrderRateView(APIView):
    """
    POST: Rate a delivered order (owning client).

    Request Body:
        {"rating": 5, "review": "Great"}
    """
    permission_classes = [IsAuthenticated, IsClientRole]

    def post(self, request, pk):
        serializer = OrderRateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = services.rate_order(
            pk,
            request.user,
            serializer.validated_data['rating'],
            serializer.validated_data.get('review', ''),
        )
        return Response(OrderSerializer(order).data)


class AdminDashboardView(APIView):
    """
    GET: Order statistics and low-stock products (admin role).

    Query Parameters:
        - low_stock: Stock threshold for the low-stock list (default 5)
    """
    permission_classes = [IsAdminRole]

    def get(self, request):
        from django.db.models import Avg, Count, Sum

        stats = Order.objects.aggregate(
            total_orders=Count('id'),
            pending_orders=Count('id', filter=models.Q(status=Order.Status.PENDING)),
            processing_orders=Count('id', filter=models.Q(status=Order.Status.PROCESSING)),
            shipped_orders=Count('id', filter=models.Q(status=Order.Status.SHIPPED)),
            delivered_orders=Count('id', filter=models.Q(status=Order.Status.DELIVERED)),
            cancelled_orders=Count('id', filter=models.Q(status=Order.Status.CANCELLED)),
            delivered_revenue=Sum('total_amount', filter=models.Q(status=Order.Status.DELIVERED)),
            average_rating=Avg('rating'),
        )

        # Handle None values
        revenue = stats['delivered_revenue'] or Decimal('0')
        stats['delivered_revenue'] = str(revenue.quantize(Decimal('0.01')))
        stats['average_rating'] = round(stats['average_rating'], 2) if stats['average_rating'] else None

        try:
            threshold = int(request.query_params.get('low_stock', 5))
        except ValueError:
            threshold = 5

        low_stock = Product.objects.filter(stock__lte=threshold).order_by('stock', 'name')[:20]

        return Response({
            'message': 'Welcome to admin dashboard',
            'orders': stats,
            'low_stock_threshold': threshold,
            'low_stock_products': [
                dict(ProductMinimalSerializer(p).data, stock=p.stock) for p in low_stock
            ],
        })
