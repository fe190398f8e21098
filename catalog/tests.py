"""
Tests for the product catalog API.

Test Cases:
1. Public reads, admin-only writes
2. Hidden products are invisible to non-admins
3. Search filters and autocomplete
"""
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import override_settings
from rest_framework import status
from rest_framework.test import APITestCase

from catalog.models import Product
from catalog.serializers import ProductSerializer
from orders.services import create_order

User = get_user_model()


@override_settings(RATE_LIMIT_ENABLED=False)
class ProductAPITestCase(APITestCase):

    def setUp(self):
        self.admin = User.objects.create_user(
            email='admin@example.com', password='password123', name='Admin', role=User.Role.ADMIN
        )
        self.shopper = User.objects.create_user(
            email='shopper@example.com', password='password123', name='Shopper'
        )
        self.headphones = Product.objects.create(
            name='Wireless Headphones', category='Electronics', price=Decimal('59.99'),
            stock=10, description='Noise cancelling'
        )
        self.mat = Product.objects.create(
            name='Yoga Mat', category='Sports', price=Decimal('19.50'), stock=0
        )
        self.hidden = Product.objects.create(
            name='Wireless Prototype', category='Electronics', price=Decimal('5.00'),
            stock=3, is_visible=False
        )

    def test_list_is_public_and_hides_invisible(self):
        response = self.client.get('/api/products/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        names = {p['name'] for p in response.data}
        self.assertEqual(names, {'Wireless Headphones', 'Yoga Mat'})

    def test_admin_sees_hidden_products(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get('/api/products/')
        self.assertEqual(len(response.data), 3)

        response = self.client.get(f'/api/products/{self.hidden.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_hidden_product_detail_not_found_for_clients(self):
        self.client.force_authenticate(user=self.shopper)
        response = self.client.get(f'/api/products/{self.hidden.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_create_product_admin_only(self):
        payload = {'name': 'Desk Lamp', 'price': '25.00', 'stock': 4, 'tags': ['home']}

        self.client.force_authenticate(user=self.shopper)
        response = self.client.post('/api/products/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.admin)
        response = self.client.post('/api/products/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['category'], 'General')
        self.assertEqual(response.data['tags'], ['home'])
        self.assertTrue(response.data['is_visible'])

    def test_create_product_requires_name_price_stock(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post('/api/products/', {'name': 'Incomplete'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('price', response.data)
        self.assertIn('stock', response.data)

    def test_negative_stock_or_price_rejected(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(
            '/api/products/', {'name': 'Bad', 'price': '-1.00', 'stock': 1}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.patch(
            f'/api/products/{self.mat.id}/', {'stock': -5}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_product_partial(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.put(f'/api/products/{self.mat.id}/', {'stock': 7}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.mat.refresh_from_db()
        self.assertEqual(self.mat.stock, 7)
        self.assertEqual(self.mat.name, 'Yoga Mat')

    def test_delete_product(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.delete(f'/api/products/{self.mat.id}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Product.objects.filter(id=self.mat.id).exists())

    def test_search_filters(self):
        response = self.client.get('/api/products/search/', {'q': 'wireless'})
        self.assertEqual([p['name'] for p in response.data], ['Wireless Headphones'])

        response = self.client.get('/api/products/search/', {'q': 'sports'})
        self.assertEqual([p['name'] for p in response.data], ['Yoga Mat'])

        response = self.client.get('/api/products/search/', {'max_price': '20'})
        self.assertEqual([p['name'] for p in response.data], ['Yoga Mat'])

        response = self.client.get('/api/products/search/', {'in_stock': 'true'})
        self.assertEqual([p['name'] for p in response.data], ['Wireless Headphones'])

        # Unparseable prices are ignored
        response = self.client.get('/api/products/search/', {'min_price': 'abc'})
        self.assertEqual(len(response.data), 2)

    def test_autocomplete(self):
        response = self.client.get('/api/products/autocomplete/', {'q': 'wir'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['name'] for p in response.data], ['Wireless Headphones'])

        response = self.client.get('/api/products/autocomplete/', {'q': 'wi'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_price_update_keeps_stock_reserved_since_read(self):
        """
        Given: An admin loaded the product before a client ordered 2 units
        When: The admin saves a price-only change from that stale copy
        Then: The stock taken by the order is not written back
        """
        stale = Product.objects.get(id=self.headphones.id)
        create_order(self.shopper, [{'product_id': self.headphones.id, 'quantity': 2}])

        serializer = ProductSerializer(stale, data={'price': '49.99'}, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()

        self.headphones.refresh_from_db()
        self.assertEqual(self.headphones.price, Decimal('49.99'))
        self.assertEqual(self.headphones.stock, 8)

    def test_admin_put_updates_only_supplied_fields(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.put(
            f'/api/products/{self.headphones.id}/', {'price': '55.00'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.headphones.refresh_from_db()
        self.assertEqual(self.headphones.price, Decimal('55.00'))
        self.assertEqual(self.headphones.stock, 10)
        self.assertEqual(self.headphones.description, 'Noise cancelling')
