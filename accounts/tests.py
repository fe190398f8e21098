"""
Tests for registration, login and user management.
"""
from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework import status
from rest_framework.test import APITestCase

from catalog.models import Product
from orders.models import Order
from orders.services import create_order, transition_status

User = get_user_model()


class UserModelTestCase(TestCase):

    def test_create_user_defaults_to_client(self):
        user = User.objects.create_user(email='Jane@Example.com', password='password123', name='Jane')

        self.assertEqual(user.email, 'jane@example.com')
        self.assertTrue(user.is_client)
        self.assertFalse(user.is_admin)
        self.assertTrue(user.check_password('password123'))

    def test_create_superuser_is_admin(self):
        user = User.objects.create_superuser(email='root@example.com', password='password123', name='Root')
        self.assertTrue(user.is_admin)
        self.assertTrue(user.is_staff)


@override_settings(RATE_LIMIT_ENABLED=False)
class AuthAPITestCase(APITestCase):

    def test_register_returns_token(self):
        response = self.client.post('/api/auth/register/', {
            'name': 'Jane', 'email': 'jane@example.com', 'password': 'password123'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['token'])
        self.assertEqual(response.data['user']['role'], 'client')
        self.assertNotIn('password', response.data['user'])

    def test_register_ignores_requested_role(self):
        response = self.client.post('/api/auth/register/', {
            'name': 'Eve', 'email': 'eve@example.com', 'password': 'password123', 'role': 'admin'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(User.objects.get(email='eve@example.com').role, 'client')

    def test_register_validation(self):
        response = self.client.post('/api/auth/register/', {
            'name': 'J', 'email': 'not-an-email', 'password': 'short'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(set(response.data), {'name', 'email', 'password'})

    def test_register_duplicate_email(self):
        User.objects.create_user(email='jane@example.com', password='password123', name='Jane')
        response = self.client.post('/api/auth/register/', {
            'name': 'Jane', 'email': 'JANE@example.com', 'password': 'password123'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_login_and_use_token(self):
        User.objects.create_user(email='jane@example.com', password='password123', name='Jane')

        response = self.client.post('/api/auth/login/', {
            'email': 'jane@example.com', 'password': 'password123'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.client.credentials(HTTP_AUTHORIZATION=f"Token {response.data['token']}")
        response = self.client.get('/api/users/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['email'], 'jane@example.com')

    def test_login_invalid_credentials(self):
        User.objects.create_user(email='jane@example.com', password='password123', name='Jane')
        response = self.client.post('/api/auth/login/', {
            'email': 'jane@example.com', 'password': 'wrong-password'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


@override_settings(RATE_LIMIT_ENABLED=False)
class UserAPITestCase(APITestCase):

    def setUp(self):
        self.admin = User.objects.create_user(
            email='admin@example.com', password='password123', name='Admin', role=User.Role.ADMIN
        )
        self.jane = User.objects.create_user(email='jane@example.com', password='password123', name='Jane')
        self.bob = User.objects.create_user(email='bob@example.com', password='password123', name='Bob')

    def test_list_users_admin_only(self):
        self.client.force_authenticate(user=self.jane)
        self.assertEqual(self.client.get('/api/users/').status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.admin)
        response = self.client.get('/api/users/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 3)

    def test_view_other_user_forbidden(self):
        self.client.force_authenticate(user=self.jane)
        response = self.client.get(f'/api/users/{self.bob.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.get(f'/api/users/{self.jane.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_update_self(self):
        self.client.force_authenticate(user=self.jane)
        response = self.client.put(f'/api/users/{self.jane.id}/', {'name': 'Jane Doe'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.jane.refresh_from_db()
        self.assertEqual(self.jane.name, 'Jane Doe')

    def test_only_admin_changes_role(self):
        self.client.force_authenticate(user=self.jane)
        response = self.client.patch(f'/api/users/{self.jane.id}/', {'role': 'admin'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['detail'], 'Only admin can change user roles')

        self.client.force_authenticate(user=self.admin)
        response = self.client.patch(f'/api/users/{self.jane.id}/', {'role': 'superuser'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.patch(f'/api/users/{self.jane.id}/', {'role': 'admin'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.jane.refresh_from_db()
        self.assertTrue(self.jane.is_admin)

    def test_update_email_to_taken_address(self):
        self.client.force_authenticate(user=self.jane)
        response = self.client.patch(f'/api/users/{self.jane.id}/', {'email': 'bob@example.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_user_admin_only(self):
        self.client.force_authenticate(user=self.jane)
        response = self.client.delete(f'/api/users/{self.bob.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.admin)
        response = self.client.delete(f'/api/users/{self.bob.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(User.objects.filter(id=self.bob.id).exists())

    def test_delete_user_returns_reserved_stock(self):
        """
        Given: Bob holds a pending order for 2 of 5 units and a cancelled one
        When: An admin deletes Bob
        Then: His orders are gone and all 5 units are back in stock
        """
        product = Product.objects.create(name='Desk Lamp', price='10.00', stock=5)
        create_order(self.bob, [{'product_id': product.id, 'quantity': 2}])
        cancelled = create_order(self.bob, [{'product_id': product.id, 'quantity': 1}])
        transition_status(cancelled.id, 'cancelled')

        self.client.force_authenticate(user=self.admin)
        response = self.client.delete(f'/api/users/{self.bob.id}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Order.objects.filter(user_id=self.bob.id).exists())
        product.refresh_from_db()
        self.assertEqual(product.stock, 5)
