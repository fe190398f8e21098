"""
Account API Views.

Implements:
- POST /auth/register/ - Create a client account and return a token
- POST /auth/login/ - Exchange credentials for a token
- GET /users/me/ - Current user profile
- GET /users/ - List users (admin)
- GET/PUT/PATCH/DELETE /users/{id}/ - User detail (self or admin; delete is admin only)
"""
import logging

from django.db import transaction
from rest_framework import generics, status
from rest_framework.authtoken.models import Token
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import AuthorizationError
from core.permissions import IsAdminRole, IsSelfOrAdmin, is_admin
from core.rate_limiting import RateLimitMixin
from .models import User
from .serializers import LoginSerializer, RegisterSerializer, UserSerializer

logger = logging.getLogger(__name__)


def _auth_payload(user):
    token, _ = Token.objects.get_or_create(user=user)
    return {'token': token.key, 'user': UserSerializer(user).data}


class RegisterView(RateLimitMixin, APIView):
    """
    POST: Register a new client account.
    Rate limited to 10 requests per minute per IP.
    """
    permission_classes = [AllowAny]
    rate_limit_max_requests = 10

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info(f"Registered user #{user.id} ({user.email})")
        return Response(_auth_payload(user), status=status.HTTP_201_CREATED)


class LoginView(RateLimitMixin, APIView):
    """
    POST: Authenticate with email and password.
    Rate limited to 10 requests per minute per IP.
    """
    permission_classes = [AllowAny]
    rate_limit_max_requests = 10

    def post(self, request):
        serializer = LoginSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        user = serializer.validated_data['user']
        return Response(_auth_payload(user))


class CurrentUserView(generics.RetrieveAPIView):
    """GET: Profile of the authenticated user."""
    serializer_class = UserSerializer

    def get_object(self):
        return self.request.user


class UserListView(generics.ListAPIView):
    """GET: List all users (admin only)."""
    serializer_class = UserSerializer
    permission_classes = [IsAdminRole]
    queryset = User.objects.all()


class UserDetailView(generics.RetrieveUpdateDestroyAPIView):
    """
    GET: Retrieve a user (self or admin)
    PUT/PATCH: Update a user (self or admin; only admins may change roles)
    DELETE: Delete a user (admin only)
    """
    serializer_class = UserSerializer
    queryset = User.objects.all()

    def get_permissions(self):
        if self.request.method == 'DELETE':
            return [IsAdminRole()]
        return [IsAuthenticated(), IsSelfOrAdmin()]

    def update(self, request, *args, **kwargs):
        if 'role' in request.data and not is_admin(request.user):
            raise AuthorizationError("Only admin can change user roles")
        # PUT behaves like PATCH: only the supplied fields change
        kwargs['partial'] = True
        return super().update(request, *args, **kwargs)

    def perform_update(self, serializer):
        user = serializer.save()
        logger.info(f"User #{user.id} updated by user #{self.request.user.id}")

    def destroy(self, request, *args, **kwargs):
        from orders import services as order_services

        user = self.get_object()
        user_id = user.id
        with transaction.atomic():
            # Orders cascade with the user; delete them first so reserved stock is returned
            for order_id in list(user.orders.values_list('id', flat=True)):
                order_services.delete_order(order_id, request.user)
            user.delete()
        logger.info(f"User #{user_id} deleted by admin #{request.user.id}")
        return Response({'message': 'User deleted successfully'})
