from rest_framework import serializers
from .models import Product, InventoryMovement


class ProductSerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = ['id', 'name', 'price', 'image', 'category', 'quantity', 'color', 'fabric_type',
                  'description', 'featured', 'low_stock_threshold', 'reorder_point',
                  'is_low_stock', 'is_out_of_stock', 'created_at', 'updated_at']
        read_only_fields = ['is_low_stock', 'is_out_of_stock', 'created_at', 'updated_at']
        extra_kwargs = {
            'category': {'required': True},
            'quantity': {'required': True, 'min_value': 0},
        }

    def validate(self, attrs):
        category = attrs.get('category', getattr(self.instance, 'category', None))
        if category == Product.CATEGORY_FABRIC:
            color = attrs.get('color', getattr(self.instance, 'color', ''))
            fabric_type = attrs.get('fabric_type', getattr(self.instance, 'fabric_type', ''))
            if not color or not fabric_type:
                raise serializers.ValidationError('Color and fabric type are required for fabrics')
        return attrs


class InventoryMovementSerializer(serializers.ModelSerializer):
    class Meta:
        model = InventoryMovement
        fields = ['id', 'movement_type', 'quantity', 'reference', 'reference_id', 'date', 'notes',
                  'previous_quantity', 'new_quantity']
