from django.urls import path
from .views import (
    employee_list_create, employee_detail, employee_deactivate,
    employee_salary, salary_report,
)

urlpatterns = [
    # Employee endpoints
    path('employees/', employee_list_create, name='employee-list-create'),
    path('employees/salary/report/', salary_report, name='employee-salary-report'),
    path('employees/<int:pk>/', employee_detail, name='employee-detail'),
    path('employees/<int:pk>/deactivate/', employee_deactivate, name='employee-deactivate'),
    path('employees/<int:pk>/salary/', employee_salary, name='employee-salary'),
]
