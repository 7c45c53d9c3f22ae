from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from backend.inventory.models import Product


class Order(models.Model):
    """Customer order placed from the shopping cart"""
    STATUS_PENDING = 'Pending'
    STATUS_PROCESSING = 'Processing'
    STATUS_SHIPPED = 'Shipped'
    STATUS_DELIVERED = 'Delivered'
    STATUS_CANCELLED = 'Cancelled'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_PROCESSING, 'Processing'),
        (STATUS_SHIPPED, 'Shipped'),
        (STATUS_DELIVERED, 'Delivered'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    STATUSES = [choice[0] for choice in STATUS_CHOICES]

    PAYMENT_METHOD_CHOICES = [
        ('Credit Card', 'Credit Card'),
        ('Cash on Delivery', 'Cash on Delivery'),
        ('Bank Transfer', 'Bank Transfer'),
    ]

    user = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, related_name='orders')

    # Shipping address
    shipping_full_name = models.CharField(max_length=200)
    shipping_address = models.CharField(max_length=500)
    shipping_city = models.CharField(max_length=100)
    shipping_postal_code = models.CharField(max_length=20)
    shipping_country = models.CharField(max_length=100)
    shipping_phone_number = models.CharField(max_length=30)

    payment_method = models.CharField(max_length=30, choices=PAYMENT_METHOD_CHOICES)
    payment_result = models.JSONField(default=dict, blank=True)  # id, status, update_time, email_address

    items_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    tax_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    shipping_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    is_paid = models.BooleanField(default=False)
    paid_at = models.DateTimeField(null=True, blank=True)
    is_delivered = models.BooleanField(default=False)
    delivered_at = models.DateTimeField(null=True, blank=True)
    order_status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Order #{self.id}"

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', '-created_at'], name='idx_order_user_created'),
            models.Index(fields=['is_paid', 'created_at'], name='idx_order_paid_created'),
        ]


class OrderItem(models.Model):
    """Line item snapshot of a product at order time"""
    CATEGORY_CHOICES = Product.CATEGORY_CHOICES

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='order_items')
    name = models.CharField(max_length=200)
    quantity = models.IntegerField(validators=[MinValueValidator(1)])
    price = models.DecimalField(max_digits=12, decimal_places=2)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default=Product.CATEGORY_PRODUCT)
    # Length in meters, required for fabrics
    fabric_measurement = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    image = models.CharField(max_length=500)

    def __str__(self):
        return f"{self.name} x {self.quantity}"

    @property
    def line_total(self):
        return self.price * self.quantity

    class Meta:
        db_table = 'order_items'
