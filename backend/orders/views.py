import logging
import math
from datetime import timedelta
from decimal import Decimal

from django.core.paginator import Paginator, EmptyPage
from django.db import transaction
from django.db.models import Sum, Count, Q, Case, When, DecimalField, Value
from django.db.models.functions import TruncDate, Coalesce
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.emails import send_order_confirmation
from backend.core.exceptions import error_response
from backend.core.permissions import IsAdmin, is_owner_or_admin
from backend.core.utils import (
    create_audit_log, parse_date_param, resolve_date_window, to_bool, DATE_FORMAT_ERROR,
)
from backend.inventory.models import Product, InventoryMovement
from backend.inventory.views import log_stock_transition
from .models import Order, OrderItem
from .serializers import OrderSerializer, OrderCreateSerializer, PaymentResultSerializer

logger = logging.getLogger(__name__)

RECENT_ORDERS_LIMIT = 5
MAX_STATS_WINDOW_DAYS = 366
REOPEN_CANCELLED_ERROR = 'Cannot reopen a cancelled order'
MONEY_FIELD = DecimalField(max_digits=14, decimal_places=2)


class OrderProcessingError(Exception):
    """Aborts an order transaction with a client-facing message"""

    def __init__(self, message, status_code=status.HTTP_400_BAD_REQUEST):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _order_queryset():
    return Order.objects.select_related('user').prefetch_related('items')


def _send_confirmation_after_commit(order_id):
    """Confirmation email; failures are logged and never surface to the client"""
    try:
        order = _order_queryset().get(pk=order_id)
        if order.user is None:
            return
        send_order_confirmation(order)
    except Exception as e:
        logger.error(f"Error sending order confirmation email for order #{order_id}: {e}")


def return_items_to_stock(order, reference, notes):
    """
    Put every item of an order back into stock with a return movement.

    Must run inside a transaction; product rows are locked in id order.
    Items whose product has since been deleted are skipped.
    """
    items = list(order.items.all())
    product_ids = sorted({item.product_id for item in items if item.product_id})
    products = {
        product.id: product
        for product in Product.objects.select_for_update().filter(pk__in=product_ids).order_by('id')
    }

    for item in items:
        product = products.get(item.product_id)
        if product is None:
            logger.warning(f"Order #{order.id}: product for item '{item.name}' no longer exists, nothing returned")
            continue
        product.track_inventory_change(
            InventoryMovement.TYPE_RETURN, item.quantity, reference,
            reference_id=order.id, notes=notes,
        )
        logger.info(f"Returned {item.quantity} of {item.name} to inventory. New quantity: {product.quantity}")

    for product in products.values():
        product.save(update_fields=['quantity', 'updated_at'])


# Order views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_list_create(request):
    """Place an order, or list all orders (admin)"""
    if request.method == 'POST':
        return _create_order(request)

    if not IsAdmin().has_permission(request, None):
        return error_response(IsAdmin.message, status.HTTP_403_FORBIDDEN)
    return _list_orders(request)


def _create_order(request):
    if not request.data.get('order_items'):
        return error_response('No order items')

    serializer = OrderCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    user = request.user

    try:
        with transaction.atomic():
            product_ids = sorted({item['product'] for item in data['order_items']})
            products = {
                product.id: product
                for product in Product.objects.select_for_update().filter(pk__in=product_ids).order_by('id')
            }
            previous_quantities = {product_id: product.quantity for product_id, product in products.items()}

            order = Order.objects.create(
                user=user,
                payment_method=data['payment_method'],
                items_price=data['items_price'],
                tax_price=data['tax_price'],
                shipping_price=data['shipping_price'],
                total_price=data['total_price'],
                **data['shipping_address'],
            )

            for item in data['order_items']:
                product = products.get(item['product'])
                if product is None:
                    raise OrderProcessingError(f"Product {item['name']} not found", status.HTTP_404_NOT_FOUND)
                if product.quantity < item['quantity']:
                    raise OrderProcessingError(
                        f"Not enough stock for {item['name']}. Available: {product.quantity}"
                    )

                OrderItem.objects.create(
                    order=order,
                    product=product,
                    name=item['name'],
                    quantity=item['quantity'],
                    price=item['price'],
                    category=item['category'],
                    fabric_measurement=item.get('fabric_measurement'),
                    image=item['image'],
                )
                product.track_inventory_change(
                    InventoryMovement.TYPE_ORDER, -item['quantity'], f"Order #{order.id}",
                    reference_id=order.id,
                    notes=f"Order placed by {user.name} ({user.email})",
                )

            for product in products.values():
                product.save(update_fields=['quantity', 'updated_at'])

            transaction.on_commit(lambda: _send_confirmation_after_commit(order.id))
    except OrderProcessingError as e:
        logger.info(f"Order rejected for {user.email}: {e.message}")
        return error_response(e.message, e.status_code)
    except Exception as e:
        logger.exception(f"Error creating order for {user.email}: {e}")
        return error_response('Error creating order', status.HTTP_500_INTERNAL_SERVER_ERROR)

    for product_id, product in products.items():
        log_stock_transition(product, previous_quantities[product_id])

    create_audit_log(request=request, action='order_create', model_name='Order',
                     object_id=order.id, object_name=f"Order #{order.id}",
                     changes={'items': len(data['order_items']), 'total_price': str(order.total_price)})
    logger.info(f"Order #{order.id} placed by {user.email}: total {order.total_price}")

    order = _order_queryset().get(pk=order.pk)
    return Response({'success': True, 'order': OrderSerializer(order).data}, status=status.HTTP_201_CREATED)


def _parse_positive_int(value, default):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _list_orders(request):
    params = request.query_params
    page = _parse_positive_int(params.get('page'), 1)
    limit = _parse_positive_int(params.get('limit'), 10)

    queryset = _order_queryset().order_by('-created_at', '-id')

    order_status = params.get('status')
    if order_status in Order.STATUSES:
        queryset = queryset.filter(order_status=order_status)

    if params.get('is_paid'):
        queryset = queryset.filter(is_paid=to_bool(params['is_paid']))

    if params.get('is_delivered'):
        queryset = queryset.filter(is_delivered=to_bool(params['is_delivered']))

    if params.get('start_date') and params.get('end_date'):
        try:
            start = parse_date_param(params['start_date'])
            end = parse_date_param(params['end_date'], end_of_day=True)
        except ValueError:
            return error_response(DATE_FORMAT_ERROR)
        queryset = queryset.filter(created_at__gte=start, created_at__lte=end)

    search = (params.get('search') or '').strip()
    if search:
        search_query = Q()
        for word in search.split():
            search_query |= (
                Q(shipping_full_name__icontains=word) |
                Q(shipping_address__icontains=word) |
                Q(order_status__icontains=word) |
                Q(user__email__icontains=word)
            )
        queryset = queryset.filter(search_query)

    paginator = Paginator(queryset, limit)
    try:
        orders = list(paginator.page(page).object_list)
    except EmptyPage:
        orders = []

    return Response({
        'success': True,
        'count': len(orders),
        'total_pages': math.ceil(paginator.count / limit),
        'current_page': page,
        'orders': OrderSerializer(orders, many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_orders(request):
    orders = _order_queryset().filter(user=request.user).order_by('-created_at', '-id')
    serializer = OrderSerializer(orders, many=True)
    return Response({'success': True, 'count': len(serializer.data), 'orders': serializer.data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def order_stats(request):
    """Revenue and order statistics over a date window (default: last 30 days)"""
    try:
        start, end = resolve_date_window(request.query_params.get('start_date'),
                                         request.query_params.get('end_date'))
    except ValueError:
        return error_response(DATE_FORMAT_ERROR)
    if (end - start).days >= MAX_STATS_WINDOW_DAYS:
        return error_response(f'Date range cannot exceed {MAX_STATS_WINDOW_DAYS} days')

    orders = Order.objects.filter(created_at__gte=start, created_at__lte=end)

    status_counts = {order_status: 0 for order_status in Order.STATUSES}
    for row in orders.values('order_status').annotate(count=Count('id')):
        status_counts[row['order_status']] = row['count']

    total_revenue = orders.filter(is_paid=True).aggregate(
        total=Coalesce(Sum('total_price'), Value(Decimal('0.00')), output_field=MONEY_FIELD)
    )['total']

    daily_rows = orders.annotate(day=TruncDate('created_at')).values('day').annotate(
        revenue=Coalesce(
            Sum(Case(When(is_paid=True, then='total_price'), default=Value(Decimal('0.00')), output_field=MONEY_FIELD)),
            Value(Decimal('0.00')),
            output_field=MONEY_FIELD,
        ),
        order_count=Count('id'),
    )
    by_day = {row['day']: row for row in daily_rows}

    daily_revenue = []
    day = timezone.localtime(start).date()
    last_day = timezone.localtime(end).date()
    while day <= last_day:
        row = by_day.get(day)
        daily_revenue.append({
            'date': day.isoformat(),
            'revenue': float(row['revenue']) if row else 0.0,
            'order_count': row['order_count'] if row else 0,
        })
        day += timedelta(days=1)

    recent_orders = _order_queryset().order_by('-created_at', '-id')[:RECENT_ORDERS_LIMIT]

    return Response({
        'success': True,
        'stats': {
            'start_date': start.isoformat(),
            'end_date': end.isoformat(),
            'total_revenue': float(total_revenue),
            'total_orders': sum(status_counts.values()),
            'status_counts': status_counts,
            'daily_revenue': daily_revenue,
            'recent_orders': OrderSerializer(recent_orders, many=True).data,
        },
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def total_price_summation(request):
    result = Order.objects.aggregate(
        total_amount=Coalesce(Sum('total_price'), Value(Decimal('0.00')), output_field=MONEY_FIELD),
        order_count=Count('id'),
    )
    return Response({
        'success': True,
        'total_amount': float(result['total_amount']),
        'order_count': result['order_count'],
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_detail(request, pk):
    order = get_object_or_404(_order_queryset(), pk=pk)
    if not is_owner_or_admin(request.user, order.user_id):
        return error_response('Not authorized to access this order', status.HTTP_403_FORBIDDEN)
    return Response({'success': True, 'order': OrderSerializer(order).data})


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def order_pay(request, pk):
    """Mark an order as paid and store the payment provider's result"""
    order = get_object_or_404(Order, pk=pk)
    if not is_owner_or_admin(request.user, order.user_id):
        return error_response('Not authorized to update this order', status.HTTP_403_FORBIDDEN)

    serializer = PaymentResultSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order.is_paid = True
    order.paid_at = timezone.now()
    order.payment_result = serializer.to_payment_result()
    order.save()

    create_audit_log(request=request, action='order_pay', model_name='Order',
                     object_id=order.id, object_name=f"Order #{order.id}",
                     changes={'payment_result': order.payment_result})
    logger.info(f"Order #{order.id} marked as paid")

    order = _order_queryset().get(pk=order.pk)
    return Response({'success': True, 'order': OrderSerializer(order).data})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdmin])
def order_deliver(request, pk):
    order = get_object_or_404(Order, pk=pk)
    if order.order_status == Order.STATUS_CANCELLED:
        return error_response(REOPEN_CANCELLED_ERROR)
    previous_status = order.order_status

    order.is_delivered = True
    order.delivered_at = timezone.now()
    order.order_status = Order.STATUS_DELIVERED
    order.save()

    create_audit_log(request=request, action='order_deliver', model_name='Order',
                     object_id=order.id, object_name=f"Order #{order.id}",
                     changes={'previous_status': previous_status})

    order = _order_queryset().get(pk=order.pk)
    return Response({'success': True, 'order': OrderSerializer(order).data})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdmin])
def order_status_update(request, pk):
    """Change an order's status; cancelling returns its items to stock"""
    new_status = request.data.get('status')
    if new_status not in Order.STATUSES:
        return error_response('Invalid status value')

    with transaction.atomic():
        order = get_object_or_404(Order.objects.select_for_update(), pk=pk)
        previous_status = order.order_status
        if previous_status == Order.STATUS_CANCELLED and new_status != Order.STATUS_CANCELLED:
            return error_response(REOPEN_CANCELLED_ERROR)
        order.order_status = new_status

        if new_status == Order.STATUS_DELIVERED:
            order.is_delivered = True
            order.delivered_at = timezone.now()

        if new_status == Order.STATUS_CANCELLED and previous_status != Order.STATUS_CANCELLED:
            return_items_to_stock(
                order,
                f"Order Cancelled #{order.id}",
                f"Order cancelled, item returned to inventory. Previous status: {previous_status}",
            )

        order.save()

    create_audit_log(request=request, action='order_status', model_name='Order',
                     object_id=order.id, object_name=f"Order #{order.id}",
                     changes={'previous_status': previous_status, 'status': new_status})
    logger.info(f"Order #{order.id} status {previous_status} -> {new_status}")

    order = _order_queryset().get(pk=order.pk)
    return Response({'success': True, 'order': OrderSerializer(order).data})


NON_CANCELLABLE_STATUSES = [Order.STATUS_SHIPPED, Order.STATUS_DELIVERED, Order.STATUS_CANCELLED]


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def order_cancel(request, pk):
    """Cancel an order (owner or admin) and return its items to stock"""
    user = request.user

    with transaction.atomic():
        order = get_object_or_404(Order.objects.select_for_update(), pk=pk)

        if not is_owner_or_admin(user, order.user_id):
            return error_response('Not authorized to cancel this order', status.HTTP_403_FORBIDDEN)

        if order.order_status in NON_CANCELLABLE_STATUSES:
            return error_response(f"Cannot cancel order in {order.order_status} status")

        previous_status = order.order_status
        order.order_status = Order.STATUS_CANCELLED
        return_items_to_stock(
            order,
            f"Order Cancelled by User #{order.id}",
            f"Order cancelled by {user.name} ({user.email}). Previous status: {previous_status}",
        )
        order.save()

    create_audit_log(request=request, action='order_cancel', model_name='Order',
                     object_id=order.id, object_name=f"Order #{order.id}",
                     changes={'previous_status': previous_status})
    logger.info(f"Order #{order.id} cancelled by {user.email}")

    order = _order_queryset().get(pk=order.pk)
    return Response({
        'success': True,
        'message': 'Order cancelled successfully',
        'order': OrderSerializer(order).data,
    })
