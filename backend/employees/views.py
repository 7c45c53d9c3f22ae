import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.exceptions import error_response
from backend.core.permissions import IsAdmin
from backend.core.utils import create_audit_log, parse_date_param, DATE_FORMAT_ERROR
from .models import Employee, SalaryRecord
from .serializers import EmployeeSerializer, SalaryRecordSerializer, SalaryAssignmentSerializer

logger = logging.getLogger(__name__)


# Employee views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def employee_list_create(request):
    """List all employees or create a new employee"""
    if request.method == 'GET':
        employees = Employee.objects.order_by('-created_at', '-id')
        serializer = EmployeeSerializer(employees, many=True)
        return Response({'success': True, 'count': len(serializer.data), 'employees': serializer.data})

    serializer = EmployeeSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    employee = serializer.save(status=Employee.STATUS_ACTIVE)
    create_audit_log(request=request, action='create', model_name='Employee',
                     object_id=employee.id, object_name=employee.name,
                     changes={'employee_id': employee.employee_id, 'department': employee.department})
    logger.info(f"Added employee {employee.employee_id} ({employee.name})")
    return Response({
        'success': True,
        'message': 'Employee added successfully',
        'employee': EmployeeSerializer(employee).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdmin])
def employee_detail(request, pk):
    """Retrieve, update or delete an employee"""
    employee = get_object_or_404(Employee, pk=pk)

    if request.method == 'GET':
        return Response({'success': True, 'employee': EmployeeSerializer(employee).data})

    elif request.method == 'PUT':
        serializer = EmployeeSerializer(employee, data=request.data)
        serializer.is_valid(raise_exception=True)
        employee = serializer.save()
        create_audit_log(request=request, action='update', model_name='Employee',
                         object_id=employee.id, object_name=employee.name,
                         changes={key: str(value) for key, value in serializer.validated_data.items()})
        return Response({
            'success': True,
            'message': 'Employee updated successfully',
            'employee': EmployeeSerializer(employee).data,
        })

    else:  # DELETE
        employee_id = employee.id
        employee_name = employee.name
        employee.delete()
        create_audit_log(request=request, action='delete', model_name='Employee',
                         object_id=employee_id, object_name=employee_name)
        logger.info(f"Deleted employee {employee_name} (ID: {employee_id})")
        return Response({'success': True, 'message': 'Employee deleted successfully'})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdmin])
def employee_deactivate(request, pk):
    employee = get_object_or_404(Employee, pk=pk)
    employee.status = Employee.STATUS_INACTIVE
    employee.save(update_fields=['status', 'updated_at'])
    create_audit_log(request=request, action='employee_deactivate', model_name='Employee',
                     object_id=employee.id, object_name=employee.name)
    return Response({
        'success': True,
        'message': 'Employee deactivated successfully',
        'employee': EmployeeSerializer(employee).data,
    })


# Salary views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def employee_salary(request, pk):
    """Salary history (GET) or assign a new salary (POST)"""
    if request.method == 'GET':
        employee = get_object_or_404(Employee, pk=pk)
        history = employee.salary_history.order_by('-date', '-id')
        return Response({
            'success': True,
            'salary_history': SalaryRecordSerializer(history, many=True).data,
            'current_salary': EmployeeSerializer(employee).data['salary'],
        })

    serializer = SalaryAssignmentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    with transaction.atomic():
        employee = get_object_or_404(Employee.objects.select_for_update(), pk=pk)
        now = timezone.now()
        employee.basic_salary = data['basic']
        employee.allowances = data['allowances']
        employee.deductions = data['deductions']
        employee.net_salary = data['net_salary']
        employee.salary_last_updated = now
        employee.save()
        SalaryRecord.objects.create(
            employee=employee,
            basic=data['basic'],
            allowances=data['allowances'],
            deductions=data['deductions'],
            net_salary=data['net_salary'],
            date=now,
            note=data['note'],
        )

    create_audit_log(request=request, action='salary_assign', model_name='Employee',
                     object_id=employee.id, object_name=employee.name,
                     changes={'basic': str(data['basic']), 'allowances': str(data['allowances']),
                              'deductions': str(data['deductions']), 'net_salary': str(data['net_salary'])})
    logger.info(f"Assigned salary {data['net_salary']} to employee {employee.employee_id}")

    return Response({
        'success': True,
        'message': 'Salary assigned successfully',
        'employee': EmployeeSerializer(employee).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def salary_report(request):
    """Salaried employees filtered by department and salary update date, with totals"""
    employees = Employee.objects.filter(net_salary__gt=0)

    department = request.query_params.get('department')
    if department:
        employees = employees.filter(department=department)

    try:
        start = parse_date_param(request.query_params.get('start_date'))
        end = parse_date_param(request.query_params.get('end_date'), end_of_day=True)
    except ValueError:
        return error_response(DATE_FORMAT_ERROR)
    if start:
        employees = employees.filter(salary_last_updated__gte=start)
    if end:
        employees = employees.filter(salary_last_updated__lte=end)

    employees = employees.order_by('department', 'name')
    totals = employees.aggregate(
        total_basic=Sum('basic_salary'),
        total_allowances=Sum('allowances'),
        total_deductions=Sum('deductions'),
        total_net_salary=Sum('net_salary'),
    )
    serializer = EmployeeSerializer(employees, many=True)

    return Response({
        'success': True,
        'report': {
            'employees': serializer.data,
            'summary': {
                'total_employees': len(serializer.data),
                'total_basic': float(totals['total_basic'] or Decimal('0.00')),
                'total_allowances': float(totals['total_allowances'] or Decimal('0.00')),
                'total_deductions': float(totals['total_deductions'] or Decimal('0.00')),
                'total_net_salary': float(totals['total_net_salary'] or Decimal('0.00')),
                'generated_at': timezone.now().isoformat(),
            },
        },
    })
