from django.urls import path
from .views import (
    order_list_create, my_orders, order_stats, total_price_summation,
    order_detail, order_pay, order_deliver, order_status_update, order_cancel,
)

urlpatterns = [
    # Order endpoints
    path('orders/', order_list_create, name='order-list-create'),
    path('orders/myorders/', my_orders, name='order-my-orders'),
    path('orders/stats/', order_stats, name='order-stats'),
    path('orders/income/', order_stats, name='order-income'),
    path('orders/total-price-summation/', total_price_summation, name='order-total-price-summation'),
    path('orders/<int:pk>/', order_detail, name='order-detail'),
    path('orders/<int:pk>/pay/', order_pay, name='order-pay'),
    path('orders/<int:pk>/deliver/', order_deliver, name='order-deliver'),
    path('orders/<int:pk>/status/', order_status_update, name='order-status'),
    path('orders/<int:pk>/cancel/', order_cancel, name='order-cancel'),
]
