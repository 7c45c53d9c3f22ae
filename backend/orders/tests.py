"""
Test suite for Orders module
Tests: Order placement and stock, Listing, Stats, Payment, Delivery, Status changes, Cancellation
"""
from datetime import timedelta

from django.core import mail
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.inventory.models import Product, InventoryMovement
from backend.orders.models import Order


def order_payload(*lines, payment_method='Cash on Delivery'):
    """Checkout payload from (product, quantity) pairs"""
    return {
        'order_items': [
            {
                'product': product.id,
                'name': product.name,
                'quantity': quantity,
                'price': str(product.price),
                'category': product.category,
                'fabric_measurement': '2.50' if product.category == Product.CATEGORY_FABRIC else None,
                'image': product.image,
            }
            for product, quantity in lines
        ],
        'shipping_address': {
            'full_name': 'Sunil Perera',
            'address': '12 Temple Road',
            'city': 'Galle',
            'postal_code': '80000',
            'country': 'Sri Lanka',
            'phone_number': '0779998888',
        },
        'payment_method': payment_method,
    }


class OrderPlacementTests(TestCase):
    """Test placing orders against stock"""

    def setUp(self):
        self.user = TestDataFactory.create_user(email='buyer@example.com')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.shirt = TestDataFactory.create_product(name='Polo Shirt', price=500, quantity=15)
        self.linen = TestDataFactory.create_product(name='Linen', price=900, quantity=4,
                                                    category=Product.CATEGORY_FABRIC)

    def test_place_order_decrements_stock_and_records_movements(self):
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post('/api/orders/', order_payload((self.shirt, 6), (self.linen, 1)), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        order_id = response.data['order']['id']
        self.assertEqual(float(response.data['order']['total_price']), 3900.0)
        self.assertEqual(len(response.data['order']['order_items']), 2)

        self.shirt.refresh_from_db()
        self.linen.refresh_from_db()
        self.assertEqual(self.shirt.quantity, 9)
        self.assertTrue(self.shirt.is_low_stock)
        self.assertEqual(self.linen.quantity, 3)

        movement = self.shirt.inventory_history.get()
        self.assertEqual(movement.movement_type, InventoryMovement.TYPE_ORDER)
        self.assertEqual(movement.quantity, -6)
        self.assertEqual(movement.reference, f'Order #{order_id}')
        self.assertEqual(movement.reference_id, str(order_id))

        self.assertEqual(len(mail.outbox), 1)
        self.assertIn(f'#{order_id}', mail.outbox[0].subject)
        self.assertEqual(mail.outbox[0].to, ['buyer@example.com'])
        self.assertIn('Polo Shirt x 6 @ 500.00 = 3000.00', mail.outbox[0].body)

    def test_insufficient_stock_rolls_back_everything(self):
        response = self.client.post('/api/orders/', order_payload((self.shirt, 2), (self.linen, 5)), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Not enough stock for Linen. Available: 4')

        self.shirt.refresh_from_db()
        self.assertEqual(self.shirt.quantity, 15)
        self.assertFalse(Order.objects.exists())
        self.assertFalse(InventoryMovement.objects.exists())

    def test_repeated_product_checks_remaining_stock(self):
        response = self.client.post('/api/orders/', order_payload((self.linen, 3), (self.linen, 2)), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Not enough stock for Linen. Available: 1')
        self.linen.refresh_from_db()
        self.assertEqual(self.linen.quantity, 4)
        self.assertFalse(Order.objects.exists())

    def test_repeated_product_lines_share_stock(self):
        response = self.client.post('/api/orders/', order_payload((self.linen, 3), (self.linen, 1)), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.linen.refresh_from_db()
        self.assertEqual(self.linen.quantity, 0)
        self.assertTrue(self.linen.is_out_of_stock)
        movements = list(self.linen.inventory_history.order_by('id'))
        self.assertEqual([(m.previous_quantity, m.new_quantity) for m in movements], [(4, 1), (1, 0)])

    def test_unknown_product(self):
        payload = order_payload((self.shirt, 1))
        payload['order_items'][0]['product'] = 999999
        response = self.client.post('/api/orders/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['message'], 'Product Polo Shirt not found')
        self.assertFalse(Order.objects.exists())

    def test_empty_order(self):
        response = self.client.post('/api/orders/', order_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'No order items')

    def test_fabric_requires_measurement(self):
        payload = order_payload((self.linen, 1))
        payload['order_items'][0]['fabric_measurement'] = None
        response = self.client.post('/api/orders/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_requires_authentication(self):
        response = AuthenticatedAPIClient().post('/api/orders/', order_payload((self.shirt, 1)), format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_my_orders(self):
        TestDataFactory.create_order(self.user, items=[(self.shirt, 1)])
        TestDataFactory.create_order(TestDataFactory.create_user(), items=[(self.shirt, 1)])
        response = self.client.get('/api/orders/myorders/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)


class OrderAdminListTests(TestCase):
    """Test admin order listing, stats and totals"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.customer = TestDataFactory.create_user(email='alice@example.com')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_list_requires_admin(self):
        self.client.authenticate_user(self.customer)
        response = self.client.get('/api/orders/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_pagination(self):
        for _ in range(12):
            TestDataFactory.create_order(self.customer, total_price=100)
        response = self.client.get('/api/orders/?page=2&limit=5')
        self.assertEqual(response.data['count'], 5)
        self.assertEqual(response.data['total_pages'], 3)
        self.assertEqual(response.data['current_page'], 2)

        response = self.client.get('/api/orders/')
        self.assertEqual(response.data['count'], 10)

    def test_filters(self):
        TestDataFactory.create_order(self.customer, total_price=100, is_paid=True)
        TestDataFactory.create_order(self.customer, total_price=100, order_status=Order.STATUS_SHIPPED)
        response = self.client.get('/api/orders/?is_paid=true')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/orders/?status=Shipped')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/orders/?search=alice')
        self.assertEqual(response.data['count'], 2)

    def test_stats(self):
        TestDataFactory.create_order(self.customer, total_price=250, is_paid=True)
        TestDataFactory.create_order(self.customer, total_price=100)
        response = self.client.get('/api/orders/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        stats = response.data['stats']
        self.assertEqual(stats['total_revenue'], 250.0)
        self.assertEqual(stats['total_orders'], 2)
        self.assertEqual(set(stats['status_counts']), set(Order.STATUSES))
        self.assertEqual(stats['status_counts']['Pending'], 2)
        self.assertEqual(len(stats['daily_revenue']), 31)
        self.assertEqual(sum(day['order_count'] for day in stats['daily_revenue']), 2)
        self.assertEqual(len(stats['recent_orders']), 2)

    def test_stats_custom_window_and_income_alias(self):
        end = timezone.localdate()
        start = end - timedelta(days=6)
        response = self.client.get(f'/api/orders/income/?start_date={start.isoformat()}&end_date={end.isoformat()}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['stats']['daily_revenue']), 7)

    def test_stats_window_is_capped(self):
        response = self.client.get('/api/orders/stats/?start_date=0001-01-01')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Date range cannot exceed 366 days')

        end = timezone.localdate()
        start = end - timedelta(days=365)
        response = self.client.get(f'/api/orders/stats/?start_date={start.isoformat()}&end_date={end.isoformat()}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['stats']['daily_revenue']), 366)

    def test_stats_invalid_date(self):
        response = self.client.get('/api/orders/stats/?start_date=last-week')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_total_price_summation(self):
        TestDataFactory.create_order(self.customer, total_price=120)
        TestDataFactory.create_order(self.customer, total_price=80)
        response = self.client.get('/api/orders/total-price-summation/')
        self.assertEqual(response.data['total_amount'], 200.0)
        self.assertEqual(response.data['order_count'], 2)


class OrderLifecycleTests(TestCase):
    """Test detail access, payment, delivery, status changes and cancellation"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.owner = TestDataFactory.create_user()
        self.product = TestDataFactory.create_product(quantity=7)
        self.order = TestDataFactory.create_order(self.owner, items=[(self.product, 3)])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.owner)

    def test_owner_can_view(self):
        response = self.client.get(f'/api/orders/{self.order.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['order']['shipping_address']['city'], 'Colombo')

    def test_other_user_forbidden(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get(f'/api/orders/{self.order.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_pay(self):
        response = self.client.put(f'/api/orders/{self.order.id}/pay/', {
            'id': 'PAY-1', 'status': 'COMPLETED', 'update_time': '2024-01-01T10:00:00Z',
            'payer': {'email_address': 'payer@example.com'},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.order.refresh_from_db()
        self.assertTrue(self.order.is_paid)
        self.assertIsNotNone(self.order.paid_at)
        self.assertEqual(self.order.payment_result['email_address'], 'payer@example.com')

    def test_deliver_admin_only(self):
        response = self.client.put(f'/api/orders/{self.order.id}/deliver/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.admin)
        response = self.client.put(f'/api/orders/{self.order.id}/deliver/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.order.refresh_from_db()
        self.assertTrue(self.order.is_delivered)
        self.assertEqual(self.order.order_status, Order.STATUS_DELIVERED)

    def test_status_update_invalid(self):
        self.client.authenticate_user(self.admin)
        response = self.client.put(f'/api/orders/{self.order.id}/status/', {'status': 'Lost'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Invalid status value')

    def test_status_cancelled_returns_stock_once(self):
        self.client.authenticate_user(self.admin)
        response = self.client.put(f'/api/orders/{self.order.id}/status/', {'status': 'Cancelled'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 10)

        self.client.put(f'/api/orders/{self.order.id}/status/', {'status': 'Cancelled'}, format='json')
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 10)
        self.assertEqual(self.product.inventory_history.filter(movement_type=InventoryMovement.TYPE_RETURN).count(), 1)

    def test_cancel_by_owner_returns_stock(self):
        response = self.client.put(f'/api/orders/{self.order.id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Order cancelled successfully')
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 10)
        movement = self.product.inventory_history.get()
        self.assertEqual(movement.movement_type, InventoryMovement.TYPE_RETURN)
        self.assertEqual(movement.reference_id, str(self.order.id))

    def test_cancelled_order_cannot_be_reopened(self):
        self.client.put(f'/api/orders/{self.order.id}/cancel/')
        self.client.authenticate_user(self.admin)

        response = self.client.put(f'/api/orders/{self.order.id}/status/', {'status': 'Pending'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Cannot reopen a cancelled order')
        response = self.client.put(f'/api/orders/{self.order.id}/deliver/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        self.client.put(f'/api/orders/{self.order.id}/status/', {'status': 'Cancelled'}, format='json')
        self.order.refresh_from_db()
        self.product.refresh_from_db()
        self.assertEqual(self.order.order_status, Order.STATUS_CANCELLED)
        self.assertEqual(self.product.quantity, 10)

    def test_cannot_cancel_twice(self):
        self.client.put(f'/api/orders/{self.order.id}/cancel/')
        response = self.client.put(f'/api/orders/{self.order.id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 10)

    def test_cannot_cancel_shipped(self):
        Order.objects.filter(pk=self.order.pk).update(order_status=Order.STATUS_SHIPPED)
        response = self.client.put(f'/api/orders/{self.order.id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Cannot cancel order in Shipped status')

    def test_other_user_cannot_cancel(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.put(f'/api/orders/{self.order.id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_deleted_product_is_skipped_on_cancel(self):
        self.product.delete()
        response = self.client.put(f'/api/orders/{self.order.id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
