import uuid

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from decimal import Decimal


class Product(models.Model):
    """Catalog item: a fabric sold by measurement or a finished product"""
    CATEGORY_FABRIC = 'fabric'
    CATEGORY_PRODUCT = 'product'
    CATEGORY_CHOICES = [
        (CATEGORY_FABRIC, 'Fabric'),
        (CATEGORY_PRODUCT, 'Product'),
    ]

    name = models.CharField(max_length=200, db_index=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.00'))])
    image = models.CharField(max_length=500)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default=CATEGORY_PRODUCT, db_index=True)
    quantity = models.IntegerField(default=0)
    # Required for fabrics
    color = models.CharField(max_length=100, blank=True)
    fabric_type = models.CharField(max_length=100, blank=True)
    description = models.TextField(blank=True)
    featured = models.BooleanField(default=False)
    low_stock_threshold = models.IntegerField(default=10)
    reorder_point = models.IntegerField(default=5)
    is_low_stock = models.BooleanField(default=False)
    is_out_of_stock = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.category})"

    def refresh_stock_flags(self):
        """Recompute low/out-of-stock flags from the current quantity"""
        self.is_out_of_stock = self.quantity <= 0
        self.is_low_stock = 0 < self.quantity <= self.low_stock_threshold

    def save(self, *args, **kwargs):
        self.refresh_stock_flags()
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'quantity' in update_fields:
            kwargs['update_fields'] = set(update_fields) | {'is_low_stock', 'is_out_of_stock'}
        super().save(*args, **kwargs)

    def track_inventory_change(self, movement_type, quantity, reference, reference_id=None, notes=''):
        """
        Apply a signed quantity change and record it in the movement history.

        The caller is responsible for locking the row and for saving the
        product afterwards.
        """
        previous_quantity = self.quantity
        self.quantity = previous_quantity + quantity
        return InventoryMovement.objects.create(
            product=self,
            movement_type=movement_type,
            quantity=quantity,
            reference=reference,
            reference_id=str(reference_id or uuid.uuid4()),
            notes=notes or '',
            previous_quantity=previous_quantity,
            new_quantity=self.quantity,
        )

    class Meta:
        db_table = 'products'
        indexes = [
            models.Index(fields=['category', 'price'], name='idx_product_category_price'),
            models.Index(fields=['is_low_stock', 'is_out_of_stock'], name='idx_product_stock_flags'),
        ]


class InventoryMovement(models.Model):
    """History of product quantity changes"""
    TYPE_ORDER = 'order'
    TYPE_RESTOCK = 'restock'
    TYPE_ADJUSTMENT = 'adjustment'
    TYPE_RETURN = 'return'
    MOVEMENT_TYPE_CHOICES = [
        (TYPE_ORDER, 'Order'),
        (TYPE_RESTOCK, 'Restock'),
        (TYPE_ADJUSTMENT, 'Adjustment'),
        (TYPE_RETURN, 'Return'),
    ]

    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='inventory_history')
    movement_type = models.CharField(max_length=20, choices=MOVEMENT_TYPE_CHOICES)
    quantity = models.IntegerField()  # Negative for reductions
    reference = models.CharField(max_length=200)
    reference_id = models.CharField(max_length=64)
    date = models.DateTimeField(default=timezone.now)
    notes = models.TextField(blank=True)
    previous_quantity = models.IntegerField()
    new_quantity = models.IntegerField()

    def __str__(self):
        return f"{self.movement_type} {self.quantity:+d} on {self.product_id}"

    class Meta:
        db_table = 'inventory_movements'
        ordering = ['-date', '-id']
        indexes = [
            models.Index(fields=['product', '-date'], name='idx_movement_product_date'),
        ]
