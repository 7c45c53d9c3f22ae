from django.urls import path
from .views import financial_summary, monthly_finance, financial_kpis

urlpatterns = [
    # Finance endpoints
    path('finance/summary/', financial_summary, name='finance-summary'),
    path('finance/monthly/', monthly_finance, name='finance-monthly'),
    path('finance/kpis/', financial_kpis, name='finance-kpis'),
]
