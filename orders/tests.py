"""
Tests for the stock-aware order lifecycle.

Test Cases:
1. Lifecycle rules (status normalisation, transition planning)
2. Order creation reserves stock, fails without partial deductions
3. Status transitions reserve/restore stock exactly once
4. Deletion restores reserved stock
5. Rating rules
6. HTTP API: roles, ownership, error responses
7. Concurrent order race condition prevention (PostgreSQL only)
"""
import threading
from decimal import Decimal
from unittest import skipUnless
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.db import connection
from django.test import SimpleTestCase, TestCase, TransactionTestCase, override_settings
from rest_framework import status
from rest_framework.test import APITestCase

from catalog.models import Product
from core.exceptions import (
    AuthorizationError,
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from orders.lifecycle import OrderState, StockEffect, normalize_status, plan_transition
from orders.models import Order, OrderItem
from orders.services import (
    create_order,
    delete_order,
    get_order,
    list_orders,
    rate_order,
    transition_status,
)
from orders.tasks import send_order_confirmation, send_order_status_update

User = get_user_model()


def make_user(email, role=User.Role.CLIENT):
    return User.objects.create_user(
        email=email, password='password123', name=email.split('@')[0], role=role
    )


def make_product(name, price, stock, **extra):
    return Product.objects.create(name=name, price=Decimal(price), stock=stock, **extra)


class LifecycleRulesTestCase(SimpleTestCase):
    """Pure transition rules, no database."""

    def test_normalize_status_is_case_insensitive(self):
        self.assertEqual(normalize_status('DELIVERED'), 'delivered')
        self.assertEqual(normalize_status('  Pending '), 'pending')

    def test_normalize_status_rejects_unknown(self):
        for value in ['', None, 'refunded', 'cancel']:
            with self.assertRaises(ValidationError):
                normalize_status(value)

    def test_cancelled_state_cannot_hold_stock(self):
        with self.assertRaises(ConflictError):
            OrderState('cancelled', True)

    def test_delivered_to_pending_never_touches_stock(self):
        transition = plan_transition(OrderState('delivered', True), 'pending')
        self.assertEqual(transition.effect, StockEffect.NONE)
        self.assertEqual(transition.target, OrderState('pending', True))

    def test_entering_pending_or_delivered_reserves_when_unreserved(self):
        for new_status in ['pending', 'delivered']:
            transition = plan_transition(OrderState('cancelled', False), new_status)
            self.assertEqual(transition.effect, StockEffect.RESERVE)
            self.assertEqual(transition.target, OrderState(new_status, True))

    def test_pending_to_delivered_keeps_existing_reservation(self):
        transition = plan_transition(OrderState('pending', True), 'delivered')
        self.assertEqual(transition.effect, StockEffect.NONE)
        self.assertTrue(transition.target.reserved)

    def test_cancel_restores_only_when_reserved(self):
        for current in ['pending', 'processing', 'shipped', 'delivered']:
            transition = plan_transition(OrderState(current, True), 'cancelled')
            self.assertEqual(transition.effect, StockEffect.RESTORE)
            self.assertEqual(transition.target, OrderState('cancelled', False))

        transition = plan_transition(OrderState('processing', False), 'cancelled')
        self.assertEqual(transition.effect, StockEffect.NONE)

    def test_unknown_target_status_is_rejected(self):
        with self.assertRaises(ValidationError):
            plan_transition(OrderState('pending', True), 'refunded')

    def test_cancel_twice_is_a_no_op(self):
        transition = plan_transition(OrderState('cancelled', False), 'cancelled')
        self.assertFalse(transition.changes_stock)

    def test_processing_and_shipped_pass_through(self):
        for new_status in ['processing', 'shipped']:
            transition = plan_transition(OrderState('pending', True), new_status)
            self.assertEqual(transition.effect, StockEffect.NONE)
            self.assertEqual(transition.target, OrderState(new_status, True))


class OrderTestMixin:
    """Shared fixtures: two clients, an admin, and two products."""

    def setUp(self):
        self.client_user = make_user('client@example.com')
        self.other_client = make_user('other@example.com')
        self.admin = make_user('admin@example.com', role=User.Role.ADMIN)

        self.product1 = make_product('Product 1', '10.00', 5, image='p1.png')
        self.product2 = make_product('Product 2', '5.00', 3)

    def place_default_order(self):
        return create_order(self.client_user, [
            {'product_id': self.product1.id, 'quantity': 2},
            {'product_id': self.product2.id, 'quantity': 1},
        ])

    def assertStock(self, product, expected):
        product.refresh_from_db()
        self.assertEqual(product.stock, expected)


class OrderCreationTestCase(OrderTestMixin, TestCase):

    def test_order_reserves_stock(self):
        """
        Given: P1 (price 10, stock 5) and P2 (price 5, stock 3)
        When: Ordering 2x P1 and 1x P2
        Then: Total is 25, stock is deducted and marked reserved
        """
        order = self.place_default_order()

        self.assertEqual(order.status, Order.Status.PENDING)
        self.assertTrue(order.stock_reserved)
        self.assertEqual(order.total_amount, Decimal('25.00'))
        self.assertEqual(order.items.count(), 2)
        self.assertStock(self.product1, 3)
        self.assertStock(self.product2, 2)

    def test_order_items_snapshot_product(self):
        order = self.place_default_order()
        item = order.items.get(product=self.product1)

        self.product1.price = Decimal('99.00')
        self.product1.name = 'Renamed'
        self.product1.save()

        item.refresh_from_db()
        order.refresh_from_db()
        self.assertEqual(item.unit_price, Decimal('10.00'))
        self.assertEqual(item.product_name, 'Product 1')
        self.assertEqual(item.product_image, 'p1.png')
        self.assertEqual(order.total_amount, Decimal('25.00'))

    def test_order_with_exact_stock(self):
        create_order(self.client_user, [{'product_id': self.product2.id, 'quantity': 3}])
        self.assertStock(self.product2, 0)

    def test_insufficient_stock_mutates_nothing(self):
        """
        Given: P2 has 3 units
        When: First line fits, second asks for more than available
        Then: InsufficientStockError, no stock change, no order
        """
        with self.assertRaises(InsufficientStockError) as context:
            create_order(self.client_user, [
                {'product_id': self.product1.id, 'quantity': 2},
                {'product_id': self.product2.id, 'quantity': 4},
            ])

        self.assertEqual(context.exception.requested, 4)
        self.assertEqual(context.exception.available, 3)
        self.assertIn('Product 2', str(context.exception))
        self.assertStock(self.product1, 5)
        self.assertStock(self.product2, 3)
        self.assertFalse(Order.objects.exists())

    def test_quantity_above_stock_rejected(self):
        product = make_product('Scarce', '1.00', 2)
        with self.assertRaises(InsufficientStockError):
            create_order(self.client_user, [{'product_id': product.id, 'quantity': 3}])
        self.assertStock(product, 2)

    def test_duplicate_lines_checked_on_total_quantity(self):
        with self.assertRaises(InsufficientStockError):
            create_order(self.client_user, [
                {'product_id': self.product1.id, 'quantity': 3},
                {'product_id': self.product1.id, 'quantity': 3},
            ])
        self.assertStock(self.product1, 5)

        order = create_order(self.client_user, [
            {'product_id': self.product1.id, 'quantity': 2},
            {'product_id': self.product1.id, 'quantity': 3},
        ])
        self.assertEqual(order.items.count(), 2)
        self.assertEqual(order.total_amount, Decimal('50.00'))
        self.assertStock(self.product1, 0)

    def test_unknown_product_not_found(self):
        with self.assertRaises(NotFoundError):
            create_order(self.client_user, [
                {'product_id': self.product1.id, 'quantity': 1},
                {'product_id': 99999, 'quantity': 1},
            ])
        self.assertStock(self.product1, 5)

    def test_hidden_product_not_orderable(self):
        hidden = make_product('Hidden', '1.00', 10, is_visible=False)
        with self.assertRaises(NotFoundError):
            create_order(self.client_user, [{'product_id': hidden.id, 'quantity': 1}])
        self.assertStock(hidden, 10)

    def test_validation_error_empty_items(self):
        with self.assertRaises(ValidationError) as context:
            create_order(self.client_user, [])
        self.assertIn('at least one item', str(context.exception))

    def test_validation_error_invalid_quantity(self):
        for quantity in [0, -1, '2', 1.5, True]:
            with self.assertRaises(ValidationError):
                create_order(self.client_user, [{'product_id': self.product1.id, 'quantity': quantity}])
        self.assertStock(self.product1, 5)

    def test_validation_error_missing_product_id(self):
        with self.assertRaises(ValidationError):
            create_order(self.client_user, [{'quantity': 1}])

    def test_shipping_address_stored(self):
        order = create_order(
            self.client_user,
            [{'product_id': self.product1.id, 'quantity': 1}],
            {'street': '1 Main St', 'city': 'Springfield', 'zip': '12345'}
        )
        self.assertEqual(order.shipping_street, '1 Main St')
        self.assertEqual(order.address['city'], 'Springfield')
        self.assertEqual(order.address['country'], '')

    def test_confirmation_task_queued_on_commit(self):
        with patch('orders.tasks.send_order_confirmation.delay') as mock_delay:
            with self.captureOnCommitCallbacks(execute=True):
                order = self.place_default_order()

        mock_delay.assert_called_once_with(order.id)

    def test_task_queue_failure_does_not_fail_order(self):
        with patch('orders.tasks.send_order_confirmation.delay', side_effect=ConnectionError('broker down')):
            with self.captureOnCommitCallbacks(execute=True):
                order = self.place_default_order()

        self.assertTrue(Order.objects.filter(id=order.id).exists())


class OrderTransitionTestCase(OrderTestMixin, TestCase):

    def test_cancel_restores_stock(self):
        order = self.place_default_order()

        order = transition_status(order.id, 'cancelled')

        self.assertEqual(order.status, Order.Status.CANCELLED)
        self.assertFalse(order.stock_reserved)
        self.assertStock(self.product1, 5)
        self.assertStock(self.product2, 3)

    def test_cancel_twice_restores_once(self):
        order = self.place_default_order()
        transition_status(order.id, 'cancelled')

        order = transition_status(order.id, 'CANCELLED')

        self.assertEqual(order.status, Order.Status.CANCELLED)
        self.assertStock(self.product1, 5)
        self.assertStock(self.product2, 3)

    def test_delivered_to_pending_keeps_stock(self):
        order = self.place_default_order()
        transition_status(order.id, 'delivered')
        self.assertStock(self.product1, 3)

        order = transition_status(order.id, 'pending')

        self.assertEqual(order.status, Order.Status.PENDING)
        self.assertTrue(order.stock_reserved)
        self.assertStock(self.product1, 3)
        self.assertStock(self.product2, 2)

    def test_processing_and_shipped_keep_reservation(self):
        order = self.place_default_order()

        order = transition_status(order.id, 'processing')
        self.assertTrue(order.stock_reserved)
        order = transition_status(order.id, 'Shipped')
        self.assertEqual(order.status, Order.Status.SHIPPED)
        self.assertStock(self.product1, 3)

        order = transition_status(order.id, 'cancelled')
        self.assertStock(self.product1, 5)
        self.assertStock(self.product2, 3)

    def test_cancelled_order_revived_reserves_again(self):
        order = self.place_default_order()
        transition_status(order.id, 'cancelled')

        order = transition_status(order.id, 'pending')

        self.assertEqual(order.status, Order.Status.PENDING)
        self.assertTrue(order.stock_reserved)
        self.assertStock(self.product1, 3)
        self.assertStock(self.product2, 2)

    def test_revival_without_stock_mutates_nothing(self):
        """
        Given: A cancelled order for 2x P1 and 1x P2
        When: P2 runs out and the order is moved back to delivered
        Then: InsufficientStockError; P1 is untouched and the order stays cancelled
        """
        order = self.place_default_order()
        transition_status(order.id, 'cancelled')
        Product.objects.filter(id=self.product2.id).update(stock=0)

        with self.assertRaises(InsufficientStockError):
            transition_status(order.id, 'delivered')

        order.refresh_from_db()
        self.assertEqual(order.status, Order.Status.CANCELLED)
        self.assertFalse(order.stock_reserved)
        self.assertStock(self.product1, 5)
        self.assertStock(self.product2, 0)

    def test_revival_with_deleted_product_not_found(self):
        order = self.place_default_order()
        transition_status(order.id, 'cancelled')
        self.product2.delete()

        with self.assertRaises(NotFoundError):
            transition_status(order.id, 'pending')

        order.refresh_from_db()
        self.assertEqual(order.status, Order.Status.CANCELLED)
        self.assertStock(self.product1, 5)

    def test_restore_skips_deleted_product(self):
        order = self.place_default_order()
        self.product2.delete()

        with self.assertLogs('orders.services', level='WARNING') as logs:
            order = transition_status(order.id, 'cancelled')

        self.assertFalse(order.stock_reserved)
        self.assertStock(self.product1, 5)
        self.assertTrue(any('not restored' in line for line in logs.output))

    def test_unknown_status_rejected(self):
        order = self.place_default_order()
        with self.assertRaises(ValidationError):
            transition_status(order.id, 'refunded')
        order.refresh_from_db()
        self.assertEqual(order.status, Order.Status.PENDING)

    def test_unknown_order_not_found(self):
        with self.assertRaises(NotFoundError):
            transition_status(99999, 'delivered')

    def test_status_update_task_queued(self):
        order = self.place_default_order()
        with patch('orders.tasks.send_order_status_update.delay') as mock_delay:
            with self.captureOnCommitCallbacks(execute=True):
                transition_status(order.id, 'shipped')

        mock_delay.assert_called_once_with(order.id, 'pending')


class OrderDeletionTestCase(OrderTestMixin, TestCase):

    def test_delete_restores_reserved_stock(self):
        order = self.place_default_order()

        delete_order(order.id, self.client_user)

        self.assertFalse(Order.objects.filter(id=order.id).exists())
        self.assertFalse(OrderItem.objects.filter(order_id=order.id).exists())
        self.assertStock(self.product1, 5)
        self.assertStock(self.product2, 3)

    def test_delete_after_cancel_does_not_restore_twice(self):
        order = self.place_default_order()
        transition_status(order.id, 'cancelled')

        delete_order(order.id, self.admin)

        self.assertStock(self.product1, 5)
        self.assertStock(self.product2, 3)

    def test_delete_delivered_order_restores(self):
        order = self.place_default_order()
        transition_status(order.id, 'delivered')

        delete_order(order.id, self.admin)

        self.assertStock(self.product1, 5)

    def test_non_owner_cannot_delete(self):
        order = self.place_default_order()

        with self.assertRaises(AuthorizationError):
            delete_order(order.id, self.other_client)

        self.assertTrue(Order.objects.filter(id=order.id).exists())
        self.assertStock(self.product1, 3)

    def test_delete_unknown_order(self):
        with self.assertRaises(NotFoundError):
            delete_order(99999, self.admin)


class OrderRatingTestCase(OrderTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.order = self.place_default_order()

    def test_rate_delivered_order(self):
        transition_status(self.order.id, 'delivered')

        order = rate_order(self.order.id, self.client_user, 5, 'Great')

        self.assertEqual(order.rating, 5)
        self.assertEqual(order.review, 'Great')
        self.assertIsNotNone(order.rated_at)

    def test_review_defaults_to_empty(self):
        transition_status(self.order.id, 'delivered')
        order = rate_order(self.order.id, self.client_user, 3)
        self.assertEqual(order.review, '')

    def test_rate_twice_rejected(self):
        transition_status(self.order.id, 'delivered')
        rate_order(self.order.id, self.client_user, 4)

        with self.assertRaises(ConflictError) as context:
            rate_order(self.order.id, self.client_user, 5)

        self.assertIn('already rated', str(context.exception))
        self.order.refresh_from_db()
        self.assertEqual(self.order.rating, 4)

    def test_rate_undelivered_rejected(self):
        with self.assertRaises(ConflictError):
            rate_order(self.order.id, self.client_user, 5)

    def test_rating_bounds(self):
        transition_status(self.order.id, 'delivered')
        for rating in [0, 6, -1, None, True]:
            with self.assertRaises(ValidationError):
                rate_order(self.order.id, self.client_user, rating)

    def test_only_owner_can_rate(self):
        transition_status(self.order.id, 'delivered')
        with self.assertRaises(AuthorizationError):
            rate_order(self.order.id, self.other_client, 5)


class OrderQueryTestCase(OrderTestMixin, TestCase):

    def test_list_orders_by_role(self):
        own = self.place_default_order()
        other = create_order(self.other_client, [{'product_id': self.product1.id, 'quantity': 1}])

        self.assertEqual([o.id for o in list_orders(self.client_user)], [own.id])
        self.assertEqual({o.id for o in list_orders(self.admin)}, {own.id, other.id})

    def test_get_order_ownership(self):
        order = self.place_default_order()

        self.assertEqual(get_order(order.id, self.client_user).id, order.id)
        self.assertEqual(get_order(order.id, self.admin).id, order.id)
        with self.assertRaises(AuthorizationError):
            get_order(order.id, self.other_client)
        with self.assertRaises(NotFoundError):
            get_order(99999, self.admin)


class OrderTaskTestCase(OrderTestMixin, TestCase):

    def test_confirmation_for_pending_order(self):
        order = self.place_default_order()
        result = send_order_confirmation(order.id)
        self.assertEqual(result['status'], 'success')
        self.assertEqual(result['order_id'], order.id)

    def test_confirmation_skipped_when_not_pending(self):
        order = self.place_default_order()
        transition_status(order.id, 'cancelled')
        result = send_order_confirmation(order.id)
        self.assertEqual(result['status'], 'skipped')

    def test_confirmation_for_missing_order(self):
        result = send_order_confirmation(99999)
        self.assertEqual(result['status'], 'error')

    def test_status_update_reports_change(self):
        order = self.place_default_order()
        transition_status(order.id, 'shipped')
        result = send_order_status_update(order.id, 'pending')
        self.assertEqual(result['current_status'], 'shipped')
        self.assertEqual(result['previous_status'], 'pending')


@override_settings(RATE_LIMIT_ENABLED=False)
class OrderAPITestCase(OrderTestMixin, APITestCase):
    """HTTP surface: roles, ownership and error mapping."""

    def post_order(self, user, items):
        self.client.force_authenticate(user=user)
        return self.client.post('/api/orders/', {'items': items}, format='json')

    def test_create_order(self):
        response = self.post_order(self.client_user, [
            {'product_id': self.product1.id, 'quantity': 2},
            {'product_id': self.product2.id, 'quantity': 1},
        ])

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['total_amount'], '25.00')
        self.assertTrue(response.data['stock_reserved'])
        self.assertEqual(response.data['items'][0]['product_name'], 'Product 1')
        self.assertEqual(response.data['items'][0]['product_image'], 'p1.png')

    def test_create_order_requires_client_role(self):
        response = self.post_order(self.admin, [{'product_id': self.product1.id, 'quantity': 1}])
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_order_requires_authentication(self):
        response = self.client.post('/api/orders/', {'items': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_order_malformed(self):
        response = self.post_order(self.client_user, [])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.post_order(self.client_user, [{'product_id': self.product1.id, 'quantity': 0}])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_order_insufficient_stock(self):
        response = self.post_order(self.client_user, [{'product_id': self.product2.id, 'quantity': 4}])

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Conflict')
        self.assertIn('Insufficient stock', response.data['detail'])
        self.assertStock(self.product2, 3)

    def test_create_order_unknown_product(self):
        response = self.post_order(self.client_user, [{'product_id': 99999, 'quantity': 1}])
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Not Found')

    def test_list_orders_scoped_to_owner(self):
        self.place_default_order()
        create_order(self.other_client, [{'product_id': self.product1.id, 'quantity': 1}])

        self.client.force_authenticate(user=self.client_user)
        response = self.client.get('/api/orders/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

        self.client.force_authenticate(user=self.admin)
        response = self.client.get('/api/orders/')
        self.assertEqual(len(response.data), 2)

        response = self.client.get('/api/orders/', {'status': 'PENDING'})
        self.assertEqual(len(response.data), 2)
        response = self.client.get('/api/orders/', {'status': 'delivered'})
        self.assertEqual(len(response.data), 0)

    def test_get_order_of_other_client_forbidden(self):
        order = self.place_default_order()

        self.client.force_authenticate(user=self.other_client)
        response = self.client.get(f'/api/orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.client_user)
        response = self.client.get(f'/api/orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['item_count'], 2)

    def test_get_unknown_order(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get('/api/orders/99999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_status_update_admin_only(self):
        order = self.place_default_order()

        self.client.force_authenticate(user=self.client_user)
        response = self.client.put(f'/api/orders/{order.id}/status/', {'status': 'cancelled'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertStock(self.product1, 3)

        self.client.force_authenticate(user=self.admin)
        response = self.client.put(f'/api/orders/{order.id}/status/', {'status': 'Cancelled'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'cancelled')
        self.assertFalse(response.data['stock_reserved'])
        self.assertStock(self.product1, 5)

    def test_status_update_unknown_status(self):
        order = self.place_default_order()
        self.client.force_authenticate(user=self.admin)
        response = self.client.patch(f'/api/orders/{order.id}/status/', {'status': 'lost'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Validation Error')

    def test_delete_order_by_owner(self):
        order = self.place_default_order()

        self.client.force_authenticate(user=self.other_client)
        response = self.client.delete(f'/api/orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.client_user)
        response = self.client.delete(f'/api/orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Order deleted successfully')
        self.assertStock(self.product1, 5)

    def test_rate_order(self):
        order = self.place_default_order()
        self.client.force_authenticate(user=self.client_user)
        url = f'/api/orders/{order.id}/rate/'

        response = self.client.post(url, {'rating': 5}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['detail'], 'Can only rate delivered orders')

        transition_status(order.id, 'delivered')

        response = self.client.post(url, {'rating': 6}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(url, {'rating': 4, 'review': 'Good'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['rating'], 4)

        response = self.client.post(url, {'rating': 5}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['detail'], 'Order already rated')

    def test_rate_order_of_other_client_forbidden(self):
        order = self.place_default_order()
        transition_status(order.id, 'delivered')

        self.client.force_authenticate(user=self.other_client)
        response = self.client.post(f'/api/orders/{order.id}/rate/', {'rating': 5}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_dashboard(self):
        order = self.place_default_order()
        transition_status(order.id, 'delivered')

        self.client.force_authenticate(user=self.client_user)
        response = self.client.get('/api/admin/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.admin)
        response = self.client.get('/api/admin/dashboard/', {'low_stock': 2})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['orders']['total_orders'], 1)
        self.assertEqual(response.data['orders']['delivered_orders'], 1)
        self.assertEqual(response.data['orders']['delivered_revenue'], '25.00')
        self.assertEqual(
            [p['name'] for p in response.data['low_stock_products']],
            ['Product 2']
        )


@skipUnless(connection.vendor == 'postgresql', 'Row locking requires PostgreSQL')
class ConcurrentOrderTestCase(TransactionTestCase):
    """
    Test concurrent order handling to verify select_for_update works.
    Uses TransactionTestCase for proper multi-threading support.
    """

    def setUp(self):
        self.user = make_user('race@example.com')
        # Only 10 units available
        self.product = make_product('Limited Stock Product', '50.00', 10)

    def test_concurrent_orders_no_overselling(self):
        """
        Given: 10 units in stock
        When: Two concurrent orders of 8 units each
        Then: At most one succeeds; stock ends at 2 or 10, never negative
        """
        results = {}

        def place_order(key):
            try:
                create_order(self.user, [{'product_id': self.product.id, 'quantity': 8}])
                results[key] = 'created'
            except InsufficientStockError:
                results[key] = 'rejected'
            finally:
                connection.close()

        threads = [threading.Thread(target=place_order, args=(key,)) for key in ('a', 'b')]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.product.refresh_from_db()
        created = sum(1 for r in results.values() if r == 'created')

        self.assertLessEqual(created, 1)
        self.assertEqual(self.product.stock, 10 - 8 * created)
        self.assertEqual(Order.objects.count(), created)
