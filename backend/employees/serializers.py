from decimal import Decimal

from rest_framework import serializers
from .models import Employee, SalaryRecord


class SalaryRecordSerializer(serializers.ModelSerializer):
    class Meta:
        model = SalaryRecord
        fields = ['id', 'basic', 'allowances', 'deductions', 'net_salary', 'date', 'note']


class EmployeeSerializer(serializers.ModelSerializer):
    salary = serializers.SerializerMethodField()

    class Meta:
        model = Employee
        fields = ['id', 'employee_id', 'name', 'email', 'department', 'position', 'status', 'date',
                  'attend_time', 'leave_time', 'salary', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']
        extra_kwargs = {
            'employee_id': {
                'validators': [],
                'min_length': 2,
                'error_messages': {
                    'min_length': 'Employee ID must be between 2 and 20 characters',
                    'max_length': 'Employee ID must be between 2 and 20 characters',
                },
            },
            'name': {
                'validators': [],
                'min_length': 2,
                'error_messages': {
                    'min_length': 'Name must be between 2 and 50 characters',
                    'max_length': 'Name must be between 2 and 50 characters',
                },
            },
            'email': {
                'validators': [],
                'error_messages': {'invalid': 'Please enter a valid email address'},
            },
            'date': {'required': True, 'error_messages': {'invalid': 'Please enter a valid date'}},
            'attend_time': {'required': True},
            'leave_time': {'required': True},
            'status': {'error_messages': {'invalid_choice': 'Status must be either active or inactive'}},
        }

    def get_salary(self, obj):
        return {
            'basic': obj.basic_salary,
            'allowances': obj.allowances,
            'deductions': obj.deductions,
            'net_salary': obj.net_salary,
            'last_updated': obj.salary_last_updated,
        }

    def _others(self):
        queryset = Employee.objects.all()
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        return queryset

    def validate_employee_id(self, value):
        value = value.strip()
        if self._others().filter(employee_id=value).exists():
            raise serializers.ValidationError('Employee with this ID already exists')
        return value

    def validate_email(self, value):
        value = value.strip().lower()
        if self._others().filter(email__iexact=value).exists():
            raise serializers.ValidationError('Employee with this email already exists')
        return value


class SalaryAssignmentSerializer(serializers.Serializer):
    basic = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'), required=False, allow_null=True, default=Decimal('0.00'))
    allowances = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'), required=False, allow_null=True, default=Decimal('0.00'))
    deductions = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'), required=False, allow_null=True, default=Decimal('0.00'))
    note = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')

    def validate(self, attrs):
        for field in ('basic', 'allowances', 'deductions'):
            if attrs.get(field) is None:
                attrs[field] = Decimal('0.00')
        attrs['net_salary'] = attrs['basic'] + attrs['allowances'] - attrs['deductions']
        return attrs
