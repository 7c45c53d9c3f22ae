"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from backend.core.authentication import issue_token
from backend.inventory.models import Product
from backend.orders.models import Order, OrderItem
from backend.employees.models import Employee
from decimal import Decimal
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(email=None, password='testpass123', name=None, role=User.ROLE_USER, **extra):
        """Create a test user"""
        if not email:
            email = f'user_{TestDataFactory.random_string(6).lower()}@test.com'
        return User.objects.create_user(
            email=email,
            password=password,
            name=name or 'Test User',
            role=role,
            **extra
        )

    @staticmethod
    def create_admin(email=None, password='adminpass123'):
        """Create a user with the admin role"""
        if not email:
            email = f'admin_{TestDataFactory.random_string(6).lower()}@test.com'
        return TestDataFactory.create_user(email=email, password=password, name='Test Admin', role=User.ROLE_ADMIN)

    @staticmethod
    def create_product(name=None, price=None, quantity=20, category=Product.CATEGORY_PRODUCT, **extra):
        """Create a test product; fabrics get a color and fabric type unless given"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if price is None:
            price = Decimal('100.00')
        if category == Product.CATEGORY_FABRIC:
            extra.setdefault('color', 'Blue')
            extra.setdefault('fabric_type', 'Cotton')
        return Product.objects.create(
            name=name,
            price=price,
            image=f'https://example.com/{name}.jpg',
            category=category,
            quantity=quantity,
            **extra
        )

    @staticmethod
    def create_order(user, items=None, total_price=None, **extra):
        """
        Create an order directly, without touching stock.

        ``items`` is a list of (product, quantity) pairs.
        """
        items = items or []
        items_price = sum((product.price * quantity for product, quantity in items), Decimal('0.00'))
        if total_price is None:
            total_price = items_price
        order = Order.objects.create(
            user=user,
            shipping_full_name='Test Customer',
            shipping_address='1 Mill Road',
            shipping_city='Colombo',
            shipping_postal_code='00100',
            shipping_country='Sri Lanka',
            shipping_phone_number='0771234567',
            payment_method=extra.pop('payment_method', 'Cash on Delivery'),
            items_price=items_price,
            total_price=total_price,
            **extra
        )
        for product, quantity in items:
            OrderItem.objects.create(
                order=order,
                product=product,
                name=product.name,
                quantity=quantity,
                price=product.price,
                category=product.category,
                image=product.image,
            )
        return order

    @staticmethod
    def create_employee(employee_id=None, department='Sewing', net_salary=None, **extra):
        """Create a test employee, optionally with a current net salary"""
        if not employee_id:
            employee_id = f'EMP{TestDataFactory.random_string(5).upper()}'
        employee = Employee.objects.create(
            employee_id=employee_id,
            name=extra.pop('name', f'Worker {employee_id}'),
            email=extra.pop('email', f'{employee_id.lower()}@factory.test'),
            department=department,
            position=extra.pop('position', 'Machine Operator'),
            attend_time=extra.pop('attend_time', '08:00'),
            leave_time=extra.pop('leave_time', '17:00'),
            **extra
        )
        if net_salary is not None:
            employee.basic_salary = net_salary
            employee.net_salary = net_salary
            employee.save()
        return employee


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {issue_token(user)}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
