"""
Test suite for Inventory module
Tests: Product listing filters, Product CRUD permissions, Low stock, Restock, Adjustments, Stock flag command
"""
from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.inventory.models import Product, InventoryMovement
from backend.inventory.serializers import ProductSerializer


class ProductListingTests(TestCase):
    """Test the public product listing and its filters"""

    def setUp(self):
        self.client = APIClient()
        self.blue_cotton = TestDataFactory.create_product(
            name='Blue Cotton', price=50, category=Product.CATEGORY_FABRIC, color='Navy Blue', fabric_type='Cotton')
        self.red_silk = TestDataFactory.create_product(
            name='Red Silk', price=150, category=Product.CATEGORY_FABRIC, color='Red', fabric_type='Silk',
            featured=True)
        self.shirt = TestDataFactory.create_product(
            name='Work Shirt', price=300, description='Blue collar work shirt')

    def _names(self, response):
        return [product['name'] for product in response.data['data']]

    def test_list_is_public(self):
        response = self.client.get('/api/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 3)

    def test_default_sort_is_newest_first(self):
        response = self.client.get('/api/products/')
        self.assertEqual(self._names(response), ['Work Shirt', 'Red Silk', 'Blue Cotton'])

    def test_sort_by_price(self):
        response = self.client.get('/api/products/?sort=price_asc')
        self.assertEqual(self._names(response), ['Blue Cotton', 'Red Silk', 'Work Shirt'])
        response = self.client.get('/api/products/?sort=price_desc')
        self.assertEqual(self._names(response), ['Work Shirt', 'Red Silk', 'Blue Cotton'])

    def test_category_filter(self):
        response = self.client.get('/api/products/?category=fabric')
        self.assertEqual(response.data['count'], 2)

    def test_unknown_category_is_ignored(self):
        response = self.client.get('/api/products/?category=shoes')
        self.assertEqual(response.data['count'], 3)

    def test_color_filter_only_applies_to_fabrics(self):
        response = self.client.get('/api/products/?category=fabric&color=blue')
        self.assertEqual(self._names(response), ['Blue Cotton'])
        response = self.client.get('/api/products/?color=blue')
        self.assertEqual(response.data['count'], 3)

    def test_price_range(self):
        response = self.client.get('/api/products/?min_price=100&max_price=200')
        self.assertEqual(self._names(response), ['Red Silk'])

    def test_featured(self):
        response = self.client.get('/api/products/?featured=true')
        self.assertEqual(self._names(response), ['Red Silk'])

    def test_search_matches_any_word(self):
        response = self.client.get('/api/products/?search=silk collar')
        self.assertEqual(set(self._names(response)), {'Red Silk', 'Work Shirt'})

    def test_invalid_price_filter(self):
        response = self.client.get('/api/products/?min_price=cheap')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])

    def test_detail_is_public(self):
        response = self.client.get(f'/api/products/{self.shirt.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['name'], 'Work Shirt')

    def test_detail_not_found(self):
        response = self.client.get('/api/products/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(response.data['success'])


class ProductAdminTests(TestCase):
    """Test product create, update and delete"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.payload = {
            'name': 'Denim Roll',
            'price': '1200.00',
            'image': 'https://example.com/denim.jpg',
            'category': 'fabric',
            'quantity': 40,
            'color': 'Indigo',
            'fabric_type': 'Denim',
        }

    def test_create_product(self):
        response = self.client.post('/api/products/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        product = Product.objects.get(name='Denim Roll')
        self.assertFalse(product.is_low_stock)
        self.assertFalse(product.is_out_of_stock)

    def test_create_fabric_requires_color_and_type(self):
        del self.payload['color']
        response = self.client.post('/api/products/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Color and fabric type are required', response.data['message'])

    def test_create_requires_image(self):
        del self.payload['image']
        response = self.client.post('/api/products/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_as_customer_forbidden(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post('/api/products/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_anonymous_unauthorized(self):
        response = APIClient().post('/api/products/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_update_recomputes_flags(self):
        product = TestDataFactory.create_product(quantity=50)
        response = self.client.put(f'/api/products/{product.id}/', {'quantity': 3}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['data']['is_low_stock'])

    def test_update_quantity_records_adjustment(self):
        product = TestDataFactory.create_product(quantity=50)
        self.client.put(f'/api/products/{product.id}/', {'quantity': 45}, format='json')
        movement = product.inventory_history.get()
        self.assertEqual(movement.movement_type, InventoryMovement.TYPE_ADJUSTMENT)
        self.assertEqual((movement.quantity, movement.previous_quantity, movement.new_quantity), (-5, 50, 45))

        out = StringIO()
        call_command('check_stock_flags', '--product-id', str(product.id), stdout=out)
        self.assertIn('Products whose quantity differs from history: 0', out.getvalue())

    def test_price_update_keeps_concurrent_stock_change(self):
        product = TestDataFactory.create_product(quantity=10)
        validate = ProductSerializer.is_valid

        def checkout_then_validate(serializer, *args, **kwargs):
            # A checkout commits after the row was read for the update
            Product.objects.filter(pk=product.pk).update(quantity=3)
            return validate(serializer, *args, **kwargs)

        with patch.object(ProductSerializer, 'is_valid', checkout_then_validate):
            response = self.client.put(f'/api/products/{product.id}/', {'price': '120.00'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        product.refresh_from_db()
        self.assertEqual(product.quantity, 3)
        self.assertEqual(product.price, 120)
        self.assertFalse(product.inventory_history.exists())

    def test_delete_product(self):
        product = TestDataFactory.create_product()
        response = self.client.delete(f'/api/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Product.objects.filter(id=product.id).exists())


class StockTests(TestCase):
    """Test low stock report, restock and adjustment"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.product = TestDataFactory.create_product(name='Thread Spool', quantity=8)

    def test_stock_flags(self):
        self.assertTrue(self.product.is_low_stock)
        self.assertFalse(self.product.is_out_of_stock)
        empty = TestDataFactory.create_product(quantity=0)
        self.assertTrue(empty.is_out_of_stock)
        self.assertFalse(empty.is_low_stock)

    def test_low_stock_report(self):
        TestDataFactory.create_product(name='Buttons', quantity=0)
        TestDataFactory.create_product(name='Zippers', quantity=100)
        response = self.client.get('/api/products/inventory/low-stock/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(response.data['out_of_stock_count'], 1)
        self.assertEqual(response.data['low_stock_count'], 1)
        self.assertEqual(response.data['data'][0]['name'], 'Buttons')

    def test_restock(self):
        response = self.client.post(f'/api/products/{self.product.id}/restock/',
                                    {'quantity': 12, 'notes': 'Supplier delivery'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['new_quantity'], 20)

        self.product.refresh_from_db()
        self.assertFalse(self.product.is_low_stock)
        movement = self.product.inventory_history.get()
        self.assertEqual(movement.movement_type, InventoryMovement.TYPE_RESTOCK)
        self.assertEqual((movement.previous_quantity, movement.new_quantity), (8, 20))
        self.assertEqual(movement.notes, 'Supplier delivery')

    def test_restock_rejects_non_positive(self):
        for quantity in (0, -5, 'abc', 2.5):
            response = self.client.post(f'/api/products/{self.product.id}/restock/',
                                        {'quantity': quantity}, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(InventoryMovement.objects.exists())

    def test_adjust_inventory(self):
        response = self.client.post(f'/api/products/{self.product.id}/adjust-inventory/',
                                    {'adjustment': -3, 'reason': 'Damaged in storage'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['new_quantity'], 5)
        movement = self.product.inventory_history.get()
        self.assertEqual(movement.movement_type, InventoryMovement.TYPE_ADJUSTMENT)
        self.assertEqual(movement.quantity, -3)

    def test_adjust_requires_reason(self):
        response = self.client.post(f'/api/products/{self.product.id}/adjust-inventory/',
                                    {'adjustment': 2}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_adjust_cannot_go_negative(self):
        response = self.client.post(f'/api/products/{self.product.id}/adjust-inventory/',
                                    {'adjustment': -9, 'reason': 'Count correction'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Adjustment would result in negative inventory')
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 8)

    def test_inventory_history_newest_first(self):
        self.client.post(f'/api/products/{self.product.id}/restock/', {'quantity': 2}, format='json')
        self.client.post(f'/api/products/{self.product.id}/adjust-inventory/',
                         {'adjustment': -1, 'reason': 'Sample'}, format='json')
        response = self.client.get(f'/api/products/{self.product.id}/inventory-history/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['product_name'], 'Thread Spool')
        self.assertEqual(response.data['current_quantity'], 9)
        types = [movement['movement_type'] for movement in response.data['inventory_history']]
        self.assertEqual(types, ['adjustment', 'restock'])

    def test_stock_endpoints_admin_only(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post(f'/api/products/{self.product.id}/restock/', {'quantity': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class CheckStockFlagsCommandTests(TestCase):
    """Test the check_stock_flags management command"""

    def test_fix_rewrites_stale_flags(self):
        product = TestDataFactory.create_product(quantity=50)
        Product.objects.filter(id=product.id).update(is_out_of_stock=True)

        out = StringIO()
        call_command('check_stock_flags', '--fix', stdout=out)

        product.refresh_from_db()
        self.assertFalse(product.is_out_of_stock)
        self.assertIn(product.name, out.getvalue())
