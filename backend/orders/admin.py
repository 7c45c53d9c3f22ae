from django.contrib import admin
from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['product', 'name', 'quantity', 'price', 'category', 'fabric_measurement', 'image']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'shipping_full_name', 'total_price', 'payment_method', 'is_paid', 'is_delivered', 'order_status', 'created_at']
    list_filter = ['order_status', 'is_paid', 'is_delivered', 'payment_method', 'created_at']
    search_fields = ['id', 'user__email', 'shipping_full_name', 'shipping_address']
    ordering = ['-created_at']
    readonly_fields = ['payment_result', 'paid_at', 'delivered_at', 'created_at', 'updated_at']
    inlines = [OrderItemInline]
