from django.urls import path
from .views import (
    product_list_create, product_detail,
    low_stock_products, inventory_history, restock_product, adjust_inventory,
)

urlpatterns = [
    # Product endpoints
    path('products/', product_list_create, name='product-list-create'),
    path('products/<int:pk>/', product_detail, name='product-detail'),

    # Inventory endpoints
    path('products/inventory/low-stock/', low_stock_products, name='product-low-stock'),
    path('products/<int:pk>/inventory-history/', inventory_history, name='product-inventory-history'),
    path('products/<int:pk>/restock/', restock_product, name='product-restock'),
    path('products/<int:pk>/adjust-inventory/', adjust_inventory, name='product-adjust-inventory'),
]
