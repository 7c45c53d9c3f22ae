"""
Test suite for Employees module
Tests: Employee CRUD, Validation, Deactivation, Salary assignment, Salary history, Salary report
"""
from django.test import TestCase
from rest_framework import status

from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.employees.models import Employee, SalaryRecord


class EmployeeTests(TestCase):
    """Test employee management endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.payload = {
            'employee_id': 'EMP001',
            'name': 'Kumari Silva',
            'email': 'Kumari@Factory.test',
            'department': 'Cutting',
            'position': 'Cutter',
            'date': '2024-02-01',
            'attend_time': '08:30',
            'leave_time': '17:30',
        }

    def test_create_employee(self):
        response = self.client.post('/api/employees/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message'], 'Employee added successfully')
        self.assertEqual(response.data['employee']['status'], 'active')
        self.assertEqual(response.data['employee']['email'], 'kumari@factory.test')
        self.assertEqual(response.data['employee']['salary']['net_salary'], 0)

    def test_duplicate_employee_id(self):
        TestDataFactory.create_employee(employee_id='EMP001')
        response = self.client.post('/api/employees/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Employee with this ID already exists', response.data['message'])

    def test_validation_errors(self):
        cases = {
            'employee_id': 'E',
            'name': 'K',
            'email': 'not-an-email',
            'date': '01/02/2024',
            'attend_time': '25:00',
            'leave_time': '5pm',
            'department': '',
            'status': 'retired',
        }
        for field, value in cases.items():
            payload = dict(self.payload, **{field: value})
            response = self.client.post('/api/employees/', payload, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, field)
            self.assertIn(field, response.data['errors'])
        self.assertFalse(Employee.objects.exists())

    def test_list_newest_first(self):
        TestDataFactory.create_employee(employee_id='EMP100')
        TestDataFactory.create_employee(employee_id='EMP200')
        response = self.client.get('/api/employees/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([e['employee_id'] for e in response.data['employees']], ['EMP200', 'EMP100'])

    def test_update_employee(self):
        employee = TestDataFactory.create_employee(employee_id='EMP001')
        payload = dict(self.payload, position='Senior Cutter')
        response = self.client.put(f'/api/employees/{employee.id}/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Employee updated successfully')
        employee.refresh_from_db()
        self.assertEqual(employee.position, 'Senior Cutter')

    def test_delete_employee(self):
        employee = TestDataFactory.create_employee()
        response = self.client.delete(f'/api/employees/{employee.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Employee.objects.filter(id=employee.id).exists())

    def test_deactivate(self):
        employee = TestDataFactory.create_employee()
        response = self.client.put(f'/api/employees/{employee.id}/deactivate/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        employee.refresh_from_db()
        self.assertEqual(employee.status, Employee.STATUS_INACTIVE)
        self.assertTrue(AuditLog.objects.filter(action='employee_deactivate', object_id=str(employee.id)).exists())

    def test_unknown_employee(self):
        response = self.client.put('/api/employees/999999/deactivate/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_admin_only(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/employees/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class SalaryTests(TestCase):
    """Test salary assignment, history and report"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.employee = TestDataFactory.create_employee(employee_id='EMP010', department='Sewing')

    def test_assign_salary(self):
        response = self.client.post(f'/api/employees/{self.employee.id}/salary/', {
            'basic': '50000', 'allowances': '7500', 'deductions': '2500', 'note': 'Annual raise',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Salary assigned successfully')

        self.employee.refresh_from_db()
        self.assertEqual(self.employee.net_salary, 55000)
        self.assertIsNotNone(self.employee.salary_last_updated)

        record = self.employee.salary_history.get()
        self.assertEqual(record.net_salary, 55000)
        self.assertEqual(record.note, 'Annual raise')
        self.assertTrue(AuditLog.objects.filter(action='salary_assign').exists())

    def test_missing_components_default_to_zero(self):
        response = self.client.post(f'/api/employees/{self.employee.id}/salary/', {'basic': '30000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.employee.refresh_from_db()
        self.assertEqual(self.employee.net_salary, 30000)

    def test_negative_component_rejected(self):
        response = self.client.post(f'/api/employees/{self.employee.id}/salary/', {'basic': '-1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(SalaryRecord.objects.exists())

    def test_salary_history(self):
        for basic in ('20000', '25000'):
            self.client.post(f'/api/employees/{self.employee.id}/salary/', {'basic': basic}, format='json')
        response = self.client.get(f'/api/employees/{self.employee.id}/salary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['salary_history']), 2)
        self.assertEqual(response.data['salary_history'][0]['net_salary'], 25000)
        self.assertEqual(response.data['current_salary']['basic'], 25000)

    def test_salary_report(self):
        TestDataFactory.create_employee(employee_id='EMP011', department='Sewing', net_salary=40000)
        TestDataFactory.create_employee(employee_id='EMP012', department='Packing', net_salary=30000)
        TestDataFactory.create_employee(employee_id='EMP013', department='Sewing')

        response = self.client.get('/api/employees/salary/report/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        summary = response.data['report']['summary']
        self.assertEqual(summary['total_employees'], 2)
        self.assertEqual(summary['total_net_salary'], 70000.0)

        response = self.client.get('/api/employees/salary/report/?department=Sewing')
        self.assertEqual(response.data['report']['summary']['total_employees'], 1)

    def test_salary_report_date_filter(self):
        self.client.post(f'/api/employees/{self.employee.id}/salary/', {'basic': '10000'}, format='json')
        response = self.client.get('/api/employees/salary/report/?start_date=2000-01-01&end_date=2000-12-31')
        self.assertEqual(response.data['report']['summary']['total_employees'], 0)
        response = self.client.get('/api/employees/salary/report/?start_date=bad')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
