from decimal import Decimal

from rest_framework import serializers

from backend.inventory.models import Product
from .models import Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    product = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = OrderItem
        fields = ['id', 'product', 'name', 'quantity', 'price', 'category', 'fabric_measurement', 'image']


class ShippingAddressSerializer(serializers.Serializer):
    full_name = serializers.CharField(source='shipping_full_name', max_length=200)
    address = serializers.CharField(source='shipping_address', max_length=500)
    city = serializers.CharField(source='shipping_city', max_length=100)
    postal_code = serializers.CharField(source='shipping_postal_code', max_length=20)
    country = serializers.CharField(source='shipping_country', max_length=100)
    phone_number = serializers.CharField(source='shipping_phone_number', max_length=30)


class OrderSerializer(serializers.ModelSerializer):
    user = serializers.SerializerMethodField()
    order_items = OrderItemSerializer(source='items', many=True, read_only=True)
    shipping_address = ShippingAddressSerializer(source='*', read_only=True)

    class Meta:
        model = Order
        fields = ['id', 'user', 'order_items', 'shipping_address', 'payment_method', 'payment_result',
                  'items_price', 'tax_price', 'shipping_price', 'total_price',
                  'is_paid', 'paid_at', 'is_delivered', 'delivered_at', 'order_status',
                  'created_at', 'updated_at']

    def get_user(self, obj):
        if obj.user is None:
            return None
        return {'id': obj.user.id, 'name': obj.user.name, 'email': obj.user.email}


class OrderItemInputSerializer(serializers.Serializer):
    product = serializers.IntegerField()
    name = serializers.CharField(max_length=200)
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'))
    category = serializers.ChoiceField(choices=Product.CATEGORY_CHOICES, default=Product.CATEGORY_PRODUCT)
    fabric_measurement = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    image = serializers.CharField(max_length=500)

    def validate(self, attrs):
        if attrs.get('category') == Product.CATEGORY_FABRIC and not attrs.get('fabric_measurement'):
            raise serializers.ValidationError('Fabric measurement is required for fabric items')
        return attrs


class OrderCreateSerializer(serializers.Serializer):
    """Validates checkout payloads; stock checks happen in the view's transaction"""
    order_items = OrderItemInputSerializer(many=True, allow_empty=False)
    shipping_address = ShippingAddressSerializer()
    payment_method = serializers.ChoiceField(choices=Order.PAYMENT_METHOD_CHOICES)
    items_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    tax_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=Decimal('0.00'))
    shipping_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=Decimal('0.00'))
    total_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)

    def validate(self, attrs):
        if attrs.get('items_price') is None:
            attrs['items_price'] = sum(
                (item['price'] * item['quantity'] for item in attrs['order_items']),
                Decimal('0.00'),
            )
        if attrs.get('total_price') is None:
            attrs['total_price'] = attrs['items_price'] + attrs['tax_price'] + attrs['shipping_price']
        return attrs


class PaymentResultSerializer(serializers.Serializer):
    id = serializers.CharField(required=False, allow_blank=True, default='')
    status = serializers.CharField(required=False, allow_blank=True, default='')
    update_time = serializers.CharField(required=False, allow_blank=True, default='')
    payer = serializers.DictField(required=False, default=dict)

    def to_payment_result(self):
        data = self.validated_data
        return {
            'id': data['id'],
            'status': data['status'],
            'update_time': data['update_time'],
            'email_address': data['payer'].get('email_address', ''),
        }
