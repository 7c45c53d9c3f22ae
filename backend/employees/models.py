from decimal import Decimal

from django.core.validators import MinLengthValidator, RegexValidator
from django.db import models
from django.utils import timezone

time_of_day_validator = RegexValidator(
    regex=r'^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$',
    message='Please enter a valid time in HH:MM format',
)


class Employee(models.Model):
    """Factory staff record with current salary"""
    STATUS_ACTIVE = 'active'
    STATUS_INACTIVE = 'inactive'
    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_INACTIVE, 'Inactive'),
    ]

    employee_id = models.CharField(max_length=20, unique=True, validators=[MinLengthValidator(2)])
    name = models.CharField(max_length=50, validators=[MinLengthValidator(2)])
    email = models.EmailField(unique=True)
    department = models.CharField(max_length=100, db_index=True)
    position = models.CharField(max_length=100)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    date = models.DateField(default=timezone.localdate)
    attend_time = models.CharField(max_length=5, validators=[time_of_day_validator])
    leave_time = models.CharField(max_length=5, validators=[time_of_day_validator])

    # Current salary
    basic_salary = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    allowances = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    deductions = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    net_salary = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    salary_last_updated = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.employee_id})"

    def save(self, *args, **kwargs):
        self.email = (self.email or '').strip().lower()
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'employees'
        ordering = ['-created_at']


class SalaryRecord(models.Model):
    """One entry per salary assignment"""
    employee = models.ForeignKey(Employee, on_delete=models.CASCADE, related_name='salary_history')
    basic = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    allowances = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    deductions = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    net_salary = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    date = models.DateTimeField(default=timezone.now, db_index=True)
    note = models.CharField(max_length=255, blank=True)

    def __str__(self):
        return f"{self.employee.employee_id} {self.net_salary} @ {self.date:%Y-%m-%d}"

    class Meta:
        db_table = 'salary_records'
        ordering = ['-date', '-id']
