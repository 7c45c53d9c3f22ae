"""
Test suite for Finance module
Tests: Financial summary, Monthly series, KPIs, Report caching
"""
from datetime import timedelta
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.core.cache_utils import invalidate_finance_cache
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.employees.models import SalaryRecord
from backend.orders.models import Order


class FinanceTestCase(TestCase):

    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_admin()
        self.customer = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def tearDown(self):
        cache.clear()

    def backdate(self, order, days):
        Order.objects.filter(pk=order.pk).update(created_at=timezone.now() - timedelta(days=days))


class FinancialSummaryTests(FinanceTestCase):
    """Test the financial summary report"""

    def setUp(self):
        super().setUp()
        TestDataFactory.create_order(self.customer, total_price=1000, is_paid=True,
                                     order_status=Order.STATUS_DELIVERED, payment_method='Credit Card')
        TestDataFactory.create_order(self.customer, total_price=500)
        TestDataFactory.create_order(self.customer, total_price=300, order_status=Order.STATUS_CANCELLED)

        employee = TestDataFactory.create_employee(department='Sewing', net_salary=Decimal('400.00'))
        SalaryRecord.objects.create(employee=employee, basic=400, net_salary=400)

    def test_order_figures(self):
        response = self.client.get('/api/finance/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        orders = response.data['financial_summary']['orders']
        self.assertEqual(orders['total_potential_revenue'], 1800.0)
        self.assertEqual(orders['active_revenue'], 1500.0)
        self.assertEqual(orders['paid_revenue'], 1000.0)
        self.assertEqual(orders['delivered_revenue'], 1000.0)
        self.assertEqual(orders['cancelled_revenue'], 300.0)
        self.assertEqual(orders['order_count'], 3)
        self.assertEqual(orders['active_order_count'], 2)
        self.assertEqual(orders['avg_order_value'], 600.0)
        self.assertEqual(orders['revenue_by_payment_method'], {'Cash on Delivery': 800.0, 'Credit Card': 1000.0})
        self.assertEqual(orders['order_count_by_status'], {'Cancelled': 1, 'Delivered': 1, 'Pending': 1})
        self.assertEqual(orders['payment_summary'], {'paid': 1000.0, 'unpaid': 500.0, 'paid_percentage': 66.67})
        month_label = timezone.localtime().strftime('%B %Y')
        self.assertEqual(orders['monthly_revenue'][month_label]['total'], 1800.0)

    def test_salaries_and_overview(self):
        summary = self.client.get('/api/finance/summary/').data['financial_summary']
        self.assertEqual(summary['salaries']['total_salaries'], 400.0)
        self.assertEqual(summary['salaries']['employee_count'], 1)
        self.assertEqual(summary['salaries']['department_salaries'], {'Sewing': 400.0})

        overview = summary['overview']
        self.assertEqual(overview['total_revenue'], 1800.0)
        self.assertEqual(overview['total_expenses'], 400.0)
        self.assertEqual(overview['profit_loss'], 1400.0)
        self.assertEqual(overview['profit_margin'], 77.78)

    def test_date_window_excludes_older_records(self):
        start = (timezone.localdate() + timedelta(days=1)).isoformat()
        response = self.client.get(f'/api/finance/summary/?start_date={start}')
        summary = response.data['financial_summary']
        self.assertEqual(summary['orders']['order_count'], 0)
        self.assertEqual(summary['salaries']['total_salaries'], 0.0)
        self.assertEqual(summary['overview']['profit_margin'], 0.0)

    def test_invalid_date(self):
        response = self.client.get('/api/finance/summary/?end_date=tomorrow')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_admin_only(self):
        self.client.authenticate_user(self.customer)
        response = self.client.get('/api/finance/summary/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_summary_is_cached_until_invalidated(self):
        self.client.get('/api/finance/summary/')
        TestDataFactory.create_order(self.customer, total_price=200)

        response = self.client.get('/api/finance/summary/')
        self.assertEqual(response.data['financial_summary']['orders']['order_count'], 3)

        invalidate_finance_cache()
        response = self.client.get('/api/finance/summary/')
        self.assertEqual(response.data['financial_summary']['orders']['order_count'], 4)


class MonthlyFinanceTests(FinanceTestCase):
    """Test the twelve month series"""

    def test_twelve_months_oldest_first(self):
        TestDataFactory.create_employee(net_salary=Decimal('250.00'))
        TestDataFactory.create_order(self.customer, total_price=900, is_paid=True)

        response = self.client.get('/api/finance/monthly/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        months = response.data['monthly_data']
        self.assertEqual(len(months), 12)

        current = months[-1]
        self.assertEqual(current['month'], timezone.localtime().strftime('%b %Y'))
        self.assertEqual(current['revenue'], 900.0)
        self.assertEqual(current['paid_revenue'], 900.0)
        self.assertEqual(current['expenses'], 250.0)
        self.assertEqual(current['profit'], 650.0)
        self.assertEqual(current['order_count'], 1)

        self.assertEqual(months[0]['order_count'], 0)
        self.assertEqual(months[0]['profit'], -250.0)


class FinancialKPITests(FinanceTestCase):
    """Test the 30 day KPIs"""

    def test_growth_against_previous_period(self):
        recent = TestDataFactory.create_order(self.customer, total_price=300)
        older = TestDataFactory.create_order(self.customer, total_price=200)
        self.backdate(recent, 5)
        self.backdate(older, 45)
        TestDataFactory.create_employee(net_salary=Decimal('100.00'))
        TestDataFactory.create_employee(net_salary=Decimal('50.00'), status='inactive')

        response = self.client.get('/api/finance/kpis/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        kpis = response.data['kpis']
        self.assertEqual(kpis['revenue'], {'current': 300.0, 'previous': 200.0, 'growth': 50.0})
        self.assertEqual(kpis['orders'], {'current': 1, 'previous': 1, 'growth': 0.0})
        self.assertEqual(kpis['employees'], 1)
        self.assertEqual(kpis['salary_expense'], 150.0)
        self.assertEqual(kpis['profit'], {'amount': 150.0, 'margin': 50.0})

    def test_no_previous_orders(self):
        TestDataFactory.create_order(self.customer, total_price=300)
        kpis = self.client.get('/api/finance/kpis/').data['kpis']
        self.assertEqual(kpis['revenue']['growth'], 100.0)
        self.assertEqual(kpis['orders']['growth'], 100.0)

    def test_empty(self):
        kpis = self.client.get('/api/finance/kpis/').data['kpis']
        self.assertEqual(kpis['revenue']['growth'], 0.0)
        self.assertEqual(kpis['profit']['margin'], 0.0)
