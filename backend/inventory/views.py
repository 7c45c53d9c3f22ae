import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response

from backend.core.exceptions import error_response
from backend.core.permissions import IsAdmin
from backend.core.utils import create_audit_log
from .filters import ProductFilter
from .models import Product, InventoryMovement
from .serializers import ProductSerializer, InventoryMovementSerializer

logger = logging.getLogger(__name__)


def _parse_whole_number(value):
    """Parse an integer quantity from request data; None when not a whole number"""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite() or number != number.to_integral_value():
        return None
    return int(number)


def log_stock_transition(product, previous_quantity):
    """Log when a quantity change crosses the low or out-of-stock boundary"""
    was_out = previous_quantity <= 0
    was_low = 0 < previous_quantity <= product.low_stock_threshold
    if product.is_out_of_stock and not was_out:
        logger.warning(f"Product {product.name} (ID: {product.id}) is now out of stock")
    elif product.is_low_stock and not was_low:
        logger.warning(f"Product {product.name} (ID: {product.id}) is low on stock: {product.quantity} left")


def _deny(request):
    if not request.user or not request.user.is_authenticated:
        return error_response('Not Authorized. Login Again', status.HTTP_401_UNAUTHORIZED)
    return error_response(IsAdmin.message, status.HTTP_403_FORBIDDEN)


# Product views
@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def product_list_create(request):
    """List products with filters, or create a product (admin)"""
    if request.method == 'GET':
        filterset = ProductFilter(request.query_params, queryset=Product.objects.all())
        if not filterset.is_valid():
            return error_response('Invalid filter parameters', errors=filterset.errors)
        serializer = ProductSerializer(filterset.qs, many=True)
        return Response({'success': True, 'count': len(serializer.data), 'data': serializer.data})

    if not IsAdmin().has_permission(request, None):
        return _deny(request)

    serializer = ProductSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    product = serializer.save()
    create_audit_log(request=request, action='create', model_name='Product',
                     object_id=product.id, object_name=product.name,
                     changes={'quantity': product.quantity, 'price': str(product.price)})
    logger.info(f"Created product {product.name} (ID: {product.id})")
    return Response({'success': True, 'data': ProductSerializer(product).data}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([AllowAny])
def product_detail(request, pk):
    """Retrieve a product, or update/delete it (admin)"""
    if request.method != 'GET' and not IsAdmin().has_permission(request, None):
        return _deny(request)

    product = get_object_or_404(Product, pk=pk)

    if request.method == 'GET':
        return Response({'success': True, 'data': ProductSerializer(product).data})

    elif request.method == 'PUT':
        with transaction.atomic():
            product = get_object_or_404(Product.objects.select_for_update(), pk=pk)
            serializer = ProductSerializer(product, data=request.data, partial=True)
            serializer.is_valid(raise_exception=True)
            changes = dict(serializer.validated_data)
            new_quantity = changes.pop('quantity', product.quantity)
            previous_quantity = product.quantity

            for field, value in changes.items():
                setattr(product, field, value)
            update_fields = set(changes) | {'updated_at'}

            # Quantity edits go through the movement history like any other adjustment
            if new_quantity != previous_quantity:
                product.track_inventory_change(
                    InventoryMovement.TYPE_ADJUSTMENT, new_quantity - previous_quantity,
                    'Product Update', notes=f"Quantity set to {new_quantity} by {request.user.email}",
                )
                update_fields.add('quantity')
            product.save(update_fields=update_fields)

        create_audit_log(request=request, action='update', model_name='Product',
                         object_id=product.id, object_name=product.name,
                         changes={key: str(value) for key, value in serializer.validated_data.items()})
        if product.quantity != previous_quantity:
            log_stock_transition(product, previous_quantity)
        return Response({'success': True, 'data': ProductSerializer(product).data})

    else:  # DELETE
        product_id = product.id
        product_name = product.name
        product.delete()
        create_audit_log(request=request, action='delete', model_name='Product',
                         object_id=product_id, object_name=product_name)
        logger.info(f"Deleted product {product_name} (ID: {product_id})")
        return Response({'success': True, 'message': 'Product deleted'})


# Inventory views
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def low_stock_products(request):
    """Products that are low on stock or out of stock, lowest quantity first"""
    products = list(
        Product.objects.filter(Q(is_low_stock=True) | Q(is_out_of_stock=True)).order_by('quantity', 'id')
    )
    out_of_stock_count = sum(1 for product in products if product.quantity <= 0)
    low_stock_count = sum(1 for product in products if 0 < product.quantity <= product.low_stock_threshold)
    return Response({
        'success': True,
        'count': len(products),
        'out_of_stock_count': out_of_stock_count,
        'low_stock_count': low_stock_count,
        'data': ProductSerializer(products, many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def inventory_history(request, pk):
    """Movement history for a product, newest first"""
    product = get_object_or_404(Product, pk=pk)
    movements = product.inventory_history.order_by('-date', '-id')
    return Response({
        'success': True,
        'product_name': product.name,
        'current_quantity': product.quantity,
        'inventory_history': InventoryMovementSerializer(movements, many=True).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def restock_product(request, pk):
    """Add stock to a product and record a restock movement"""
    quantity = _parse_whole_number(request.data.get('quantity'))
    if quantity is None or quantity <= 0:
        return error_response('Please provide a valid quantity greater than zero')

    notes = request.data.get('notes') or 'Manual restock by admin'

    with transaction.atomic():
        product = get_object_or_404(Product.objects.select_for_update(), pk=pk)
        previous_quantity = product.quantity
        movement = product.track_inventory_change(
            InventoryMovement.TYPE_RESTOCK, quantity, 'Inventory Restock', notes=notes,
        )
        product.save()

    create_audit_log(request=request, action='stock_restock', model_name='Product',
                     object_id=product.id, object_name=product.name,
                     changes={'quantity': quantity, 'previous_quantity': previous_quantity,
                              'new_quantity': product.quantity, 'reference_id': movement.reference_id})
    logger.info(f"Restocked {product.name} (ID: {product.id}): {previous_quantity} -> {product.quantity}")

    return Response({
        'success': True,
        'message': f'Successfully added {quantity} items to inventory',
        'new_quantity': product.quantity,
        'product': ProductSerializer(product).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def adjust_inventory(request, pk):
    """Apply a signed manual correction to a product's stock"""
    adjustment = _parse_whole_number(request.data.get('adjustment'))
    if not adjustment:
        return error_response('Please provide a valid adjustment value (positive or negative)')

    reason = (request.data.get('reason') or '').strip()
    if not reason:
        return error_response('Please provide a reason for the adjustment')

    with transaction.atomic():
        product = get_object_or_404(Product.objects.select_for_update(), pk=pk)
        if product.quantity + adjustment < 0:
            return error_response('Adjustment would result in negative inventory')

        previous_quantity = product.quantity
        movement = product.track_inventory_change(
            InventoryMovement.TYPE_ADJUSTMENT, adjustment, 'Inventory Adjustment', notes=reason,
        )
        product.save()

    log_stock_transition(product, previous_quantity)
    create_audit_log(request=request, action='stock_adjust', model_name='Product',
                     object_id=product.id, object_name=product.name,
                     changes={'adjustment': adjustment, 'reason': reason, 'previous_quantity': previous_quantity,
                              'new_quantity': product.quantity, 'reference_id': movement.reference_id})

    return Response({
        'success': True,
        'message': f'Successfully adjusted inventory by {adjustment} items',
        'new_quantity': product.quantity,
        'product': ProductSerializer(product).data,
    })
