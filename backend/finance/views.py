import logging
from datetime import timedelta
from decimal import Decimal

from django.db.models import Sum, Count, Q, DecimalField, Value
from django.db.models.functions import TruncMonth, Coalesce
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.cache_utils import cached_query, FINANCE_CACHE_PREFIX, FINANCE_REPORT_CACHE_TTL
from backend.core.exceptions import error_response
from backend.core.permissions import IsAdmin
from backend.core.utils import parse_date_param, month_start, shift_months, DATE_FORMAT_ERROR
from backend.employees.models import Employee, SalaryRecord
from backend.orders.models import Order

logger = logging.getLogger(__name__)

MONEY_FIELD = DecimalField(max_digits=14, decimal_places=2)
ZERO = Value(Decimal('0.00'))
KPI_PERIOD_DAYS = 30
MONTHLY_SERIES_LENGTH = 12


def _money_sum(field='total_price', **filters):
    if filters:
        return Coalesce(Sum(field, filter=Q(**filters)), ZERO, output_field=MONEY_FIELD)
    return Coalesce(Sum(field), ZERO, output_field=MONEY_FIELD)


def _percentage(part, whole):
    """part / whole as a percentage rounded to 2 places, 0 when whole is 0"""
    if not whole:
        return 0.0
    return round(float(part) / float(whole) * 100, 2)


def _growth(current, previous):
    if previous:
        return round((float(current) - float(previous)) / float(previous) * 100, 2)
    return 100.0 if current else 0.0


def _salaried_employees():
    return Employee.objects.filter(net_salary__gt=0)


def _monthly_payroll():
    return _salaried_employees().aggregate(total=_money_sum('net_salary'))['total']


def _order_figures(orders):
    totals = orders.aggregate(
        total_potential_revenue=_money_sum(),
        active_revenue=_money_sum(order_status__in=[s for s in Order.STATUSES if s != Order.STATUS_CANCELLED]),
        paid_revenue=_money_sum(is_paid=True),
        delivered_revenue=_money_sum(order_status=Order.STATUS_DELIVERED),
        cancelled_revenue=_money_sum(order_status=Order.STATUS_CANCELLED),
        order_count=Count('id'),
        active_order_count=Count('id', filter=~Q(order_status=Order.STATUS_CANCELLED)),
    )

    revenue_by_payment_method = {
        row['payment_method'] or 'Unknown': float(row['total'])
        for row in orders.values('payment_method').annotate(total=_money_sum()).order_by('payment_method')
    }

    monthly_revenue = {}
    monthly_rows = orders.annotate(month=TruncMonth('created_at')).values('month').annotate(
        total=_money_sum(),
        paid=_money_sum(is_paid=True),
        cancelled=_money_sum(order_status=Order.STATUS_CANCELLED),
    ).order_by('month')
    for row in monthly_rows:
        monthly_revenue[row['month'].strftime('%B %Y')] = {
            'total': float(row['total']),
            'paid': float(row['paid']),
            'cancelled': float(row['cancelled']),
        }

    revenue_by_status = {}
    order_count_by_status = {}
    for row in orders.values('order_status').annotate(total=_money_sum(), count=Count('id')).order_by('order_status'):
        revenue_by_status[row['order_status']] = float(row['total'])
        order_count_by_status[row['order_status']] = row['count']

    order_count = totals['order_count']
    total_potential = totals['total_potential_revenue']
    active_revenue = totals['active_revenue']
    paid_revenue = totals['paid_revenue']

    return {
        'total_potential_revenue': float(total_potential),
        'active_revenue': float(active_revenue),
        'paid_revenue': float(paid_revenue),
        'delivered_revenue': float(totals['delivered_revenue']),
        'cancelled_revenue': float(totals['cancelled_revenue']),
        'order_count': order_count,
        'active_order_count': totals['active_order_count'],
        'avg_order_value': round(float(total_potential) / order_count, 2) if order_count else 0.0,
        'revenue_by_payment_method': revenue_by_payment_method,
        'monthly_revenue': monthly_revenue,
        'revenue_by_status': revenue_by_status,
        'order_count_by_status': order_count_by_status,
        'payment_summary': {
            'paid': float(paid_revenue),
            'unpaid': float(active_revenue - paid_revenue),
            'paid_percentage': _percentage(paid_revenue, active_revenue),
        },
    }


def _salary_figures(start, end):
    """Salary expense from the salary history in the window, plus current payroll by department"""
    records = SalaryRecord.objects.filter(employee__net_salary__gt=0)
    if start:
        records = records.filter(date__gte=start)
    if end:
        records = records.filter(date__lte=end)
    total_salaries = records.aggregate(total=_money_sum('net_salary'))['total']

    employees = _salaried_employees()
    employee_count = employees.count()
    department_salaries = {
        row['department']: float(row['total'])
        for row in employees.values('department').annotate(total=_money_sum('net_salary')).order_by('department')
    }

    return {
        'total_salaries': float(total_salaries),
        'employee_count': employee_count,
        'avg_salary': round(float(total_salaries) / employee_count, 2) if employee_count else 0.0,
        'department_salaries': department_salaries,
    }


@cached_query(cache_ttl=FINANCE_REPORT_CACHE_TTL, key_prefix=FINANCE_CACHE_PREFIX)
def build_financial_summary(start_iso, end_iso):
    start = parse_date_param(start_iso)
    end = parse_date_param(end_iso)

    orders = Order.objects.all()
    if start:
        orders = orders.filter(created_at__gte=start)
    if end:
        orders = orders.filter(created_at__lte=end)

    order_summary = _order_figures(orders)
    salary_summary = _salary_figures(start, end)

    total_revenue = order_summary['total_potential_revenue']
    total_expenses = salary_summary['total_salaries']
    profit_loss = round(total_revenue - total_expenses, 2)

    return {
        'period': {'start_date': start_iso, 'end_date': end_iso},
        'orders': order_summary,
        'salaries': salary_summary,
        'overview': {
            'total_revenue': total_revenue,
            'total_expenses': total_expenses,
            'profit_loss': profit_loss,
            'profit_margin': _percentage(profit_loss, total_revenue),
        },
    }


@cached_query(cache_ttl=FINANCE_REPORT_CACHE_TTL, key_prefix=FINANCE_CACHE_PREFIX)
def build_monthly_series(current_month_iso):
    """Last twelve calendar months, oldest first"""
    current_month = parse_date_param(current_month_iso)
    expenses = float(_monthly_payroll())
    first_month = shift_months(current_month, -(MONTHLY_SERIES_LENGTH - 1))
    next_month = shift_months(current_month, 1)

    rows = Order.objects.filter(created_at__gte=first_month, created_at__lt=next_month).annotate(
        month=TruncMonth('created_at')
    ).values('month').annotate(
        revenue=_money_sum(),
        paid_revenue=_money_sum(is_paid=True),
        order_count=Count('id'),
    )
    by_month = {(row['month'].year, row['month'].month): row for row in rows}

    monthly_data = []
    for offset in range(MONTHLY_SERIES_LENGTH):
        month = shift_months(first_month, offset)
        row = by_month.get((month.year, month.month))
        revenue = float(row['revenue']) if row else 0.0
        monthly_data.append({
            'month': month.strftime('%b %Y'),
            'revenue': revenue,
            'paid_revenue': float(row['paid_revenue']) if row else 0.0,
            'expenses': expenses,
            'profit': round(revenue - expenses, 2),
            'order_count': row['order_count'] if row else 0,
        })
    return monthly_data


@cached_query(cache_ttl=FINANCE_REPORT_CACHE_TTL, key_prefix=FINANCE_CACHE_PREFIX)
def build_kpis(today_iso):
    # today_iso only keys the cache per day
    now = timezone.now()
    current_start = now - timedelta(days=KPI_PERIOD_DAYS)
    previous_start = current_start - timedelta(days=KPI_PERIOD_DAYS)

    current = Order.objects.filter(created_at__gte=current_start, created_at__lte=now).aggregate(
        revenue=_money_sum(), count=Count('id'))
    previous = Order.objects.filter(created_at__gte=previous_start, created_at__lt=current_start).aggregate(
        revenue=_money_sum(), count=Count('id'))

    active_employees = _salaried_employees().filter(status=Employee.STATUS_ACTIVE).count()
    salary_expense = float(_monthly_payroll())
    current_revenue = float(current['revenue'])
    profit = round(current_revenue - salary_expense, 2)

    return {
        'revenue': {
            'current': current_revenue,
            'previous': float(previous['revenue']),
            'growth': _growth(current['revenue'], previous['revenue']),
        },
        'orders': {
            'current': current['count'],
            'previous': previous['count'],
            'growth': _growth(current['count'], previous['count']),
        },
        'employees': active_employees,
        'salary_expense': salary_expense,
        'profit': {
            'amount': profit,
            'margin': _percentage(profit, current_revenue),
        },
        'period': {
            'current': {'start': current_start.isoformat(), 'end': now.isoformat()},
            'previous': {'start': previous_start.isoformat(), 'end': current_start.isoformat()},
        },
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def financial_summary(request):
    """Revenue, salary expense and profit over an optional date window"""
    start_value = request.query_params.get('start_date') or None
    end_value = request.query_params.get('end_date') or None
    try:
        start = parse_date_param(start_value)
        end = parse_date_param(end_value, end_of_day=True)
    except ValueError:
        return error_response(DATE_FORMAT_ERROR)

    summary = build_financial_summary(
        start.isoformat() if start else None,
        end.isoformat() if end else None,
    )
    return Response({'success': True, 'financial_summary': summary})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def monthly_finance(request):
    current_month = month_start(timezone.localtime())
    return Response({'success': True, 'monthly_data': build_monthly_series(current_month.isoformat())})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def financial_kpis(request):
    """Last 30 days against the 30 days before"""
    today = timezone.localdate()
    return Response({'success': True, 'kpis': build_kpis(today.isoformat())})
