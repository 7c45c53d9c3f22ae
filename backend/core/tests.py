"""
Test suite for Core module
Tests: Registration, Login, OTP flows, Profile, Audit logs, Envelope errors, Helpers
"""
from datetime import timedelta

from django.core import mail
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from backend.core.models import User, AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.core.utils import parse_date_param, resolve_date_window, shift_months, month_start, is_admin_email


class AuthTests(TestCase):
    """Test registration, login and logout"""

    def setUp(self):
        self.client = APIClient()

    def test_register_sets_cookie_and_sends_welcome_email(self):
        response = self.client.post('/api/auth/register/', {
            'name': 'Nimal', 'email': 'nimal@example.com', 'password': 'secret123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['role'], 'user')
        self.assertIn('token', response.cookies)
        self.assertTrue(response.cookies['token']['httponly'])
        self.assertEqual(len(mail.outbox), 1)

        user = User.objects.get(email='nimal@example.com')
        self.assertTrue(user.check_password('secret123'))
        self.assertNotEqual(user.password, 'secret123')

    def test_register_missing_details(self):
        response = self.client.post('/api/auth/register/', {'email': 'a@example.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Missing Details')

    def test_register_existing_email(self):
        TestDataFactory.create_user(email='taken@example.com')
        response = self.client.post('/api/auth/register/', {
            'name': 'Other', 'email': 'taken@example.com', 'password': 'secret123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'User already exists')

    def test_register_admin_pattern_grants_admin_role(self):
        response = self.client.post('/api/auth/register/', {
            'name': 'Boss', 'email': 'Admin001@next.com', 'password': 'secret123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['role'], 'admin')

    def test_login_success(self):
        TestDataFactory.create_user(email='kamal@example.com', password='secret123')
        response = self.client.post('/api/auth/login/', {
            'email': 'kamal@example.com', 'password': 'secret123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['role'], 'user')
        self.assertIn('token', response.cookies)

    def test_login_bad_password(self):
        TestDataFactory.create_user(email='kamal@example.com', password='secret123')
        response = self.client.post('/api/auth/login/', {
            'email': 'kamal@example.com', 'password': 'wrong',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['message'], 'Invalid email or password')

    def test_login_promotes_admin_pattern(self):
        user = TestDataFactory.create_user(email='Admin002@next.com', password='secret123')
        response = self.client.post('/api/auth/login/', {
            'email': 'Admin002@next.com', 'password': 'secret123',
        }, format='json')
        self.assertEqual(response.data['role'], 'admin')
        user.refresh_from_db()
        self.assertEqual(user.role, 'admin')

    def test_cookie_authenticates_requests(self):
        TestDataFactory.create_user(email='kamal@example.com', password='secret123')
        self.client.post('/api/auth/login/', {'email': 'kamal@example.com', 'password': 'secret123'}, format='json')
        response = self.client.get('/api/auth/is-auth/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['email'], 'kamal@example.com')

    def test_stale_cookie_does_not_block_login(self):
        TestDataFactory.create_user(email='kamal@example.com', password='secret123')
        self.client.cookies['token'] = 'not-a-jwt'
        response = self.client.post('/api/auth/login/', {
            'email': 'kamal@example.com', 'password': 'secret123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_logout_clears_cookie(self):
        response = self.client.post('/api/auth/logout/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.cookies['token'].value, '')

    def test_is_auth_requires_authentication(self):
        response = self.client.get('/api/auth/is-auth/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(response.data['success'])

    def test_ping(self):
        response = self.client.get('/api/auth/ping/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('timestamp', response.data)


class OTPTests(TestCase):
    """Test account verification and password reset OTPs"""

    def setUp(self):
        self.user = TestDataFactory.create_user(email='otp@example.com', password='oldpass123')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_send_and_verify_account_otp(self):
        response = self.client.post('/api/auth/send-verify-otp/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(mail.outbox), 1)

        self.user.refresh_from_db()
        self.assertEqual(len(self.user.verify_otp), 6)
        self.assertIn(self.user.verify_otp, mail.outbox[0].body)

        response = self.client.post('/api/auth/verify-account/', {'otp': self.user.verify_otp}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.is_account_verified)
        self.assertEqual(self.user.verify_otp, '')

    def test_verify_wrong_otp(self):
        self.user.verify_otp = '123456'
        self.user.verify_otp_expire_at = timezone.now() + timedelta(hours=1)
        self.user.save()
        response = self.client.post('/api/auth/verify-account/', {'otp': '654321'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Invalid OTP')

    def test_verify_expired_otp(self):
        self.user.verify_otp = '123456'
        self.user.verify_otp_expire_at = timezone.now() - timedelta(minutes=1)
        self.user.save()
        response = self.client.post('/api/auth/verify-account/', {'otp': '123456'}, format='json')
        self.assertEqual(response.data['message'], 'OTP expired')

    def test_send_verify_otp_when_already_verified(self):
        self.user.is_account_verified = True
        self.user.save()
        response = self.client.post('/api/auth/send-verify-otp/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_password_reset_flow(self):
        client = APIClient()
        response = client.post('/api/auth/send-reset-otp/', {'email': 'otp@example.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.user.refresh_from_db()
        expires_in = self.user.reset_otp_expire_at - timezone.now()
        self.assertLessEqual(expires_in, timedelta(minutes=15))

        response = client.post('/api/auth/reset-password/', {
            'email': 'otp@example.com', 'otp': self.user.reset_otp, 'new_password': 'newpass123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('newpass123'))
        self.assertEqual(self.user.reset_otp, '')

    def test_send_reset_otp_unknown_email(self):
        response = APIClient().post('/api/auth/send-reset-otp/', {'email': 'nobody@example.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class UserProfileTests(TestCase):
    """Test profile endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(email='me@example.com', password='secret123', name='Me')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_user_data(self):
        response = self.client.get('/api/user/data/')
        self.assertEqual(response.data['user_data'], {'name': 'Me', 'is_account_verified': False})

    def test_profile_does_not_expose_password(self):
        response = self.client.get('/api/user/profile/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertNotIn('password', response.data['user'])

    def test_update_profile(self):
        response = self.client.put('/api/user/profile/', {
            'name': 'New Name', 'phone': '0771112222', 'address': 'Kandy',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['name'], 'New Name')
        self.assertEqual(response.data['user']['address'], 'Kandy')

    def test_update_profile_email_in_use(self):
        TestDataFactory.create_user(email='other@example.com')
        response = self.client.put('/api/user/profile/', {'email': 'other@example.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Email is already in use', response.data['message'])

    def test_update_password(self):
        response = self.client.put('/api/user/update-password/', {
            'current_password': 'secret123', 'new_password': 'changed123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('changed123'))

    def test_update_password_wrong_current(self):
        response = self.client.put('/api/user/update-password/', {
            'current_password': 'nope', 'new_password': 'changed123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_account(self):
        response = self.client.delete('/api/user/profile/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(User.objects.filter(email='me@example.com').exists())
        self.assertTrue(AuditLog.objects.filter(model_name='User', action='delete').exists())


class AuditLogTests(TestCase):
    """Test audit log listing"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_list_filters_by_model(self):
        AuditLog.objects.create(user=self.admin, action='create', model_name='Product', object_id='1')
        AuditLog.objects.create(user=self.admin, action='delete', model_name='Employee', object_id='2')
        response = self.client.get('/api/audit-logs/?model=Product')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_invalid_date(self):
        response = self.client.get('/api/audit-logs/?date_from=yesterday')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_admin_role_grants_access(self):
        self.assertTrue(self.admin.is_admin)
        self.assertFalse(TestDataFactory.create_user().is_admin)
        response = self.client.get('/api/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_non_admin_forbidden(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['message'], 'Access denied. Admin only.')


class UtilsTests(TestCase):
    """Test date window and helper functions"""

    def test_parse_date_param(self):
        self.assertIsNone(parse_date_param(''))
        start = parse_date_param('2024-03-01')
        end = parse_date_param('2024-03-01', end_of_day=True)
        self.assertEqual(start.date(), end.date())
        self.assertLess(start, end)
        with self.assertRaises(ValueError):
            parse_date_param('03/01/2024')

    def test_resolve_date_window_defaults_to_thirty_days(self):
        start, end = resolve_date_window(None, None)
        self.assertEqual((end - start).days, 30)

    def test_resolve_date_window_clamps_future_end(self):
        future = (timezone.now() + timedelta(days=10)).date().isoformat()
        _, end = resolve_date_window(None, future)
        self.assertLessEqual(end, timezone.now())

    def test_resolve_date_window_resets_start_after_end(self):
        start, end = resolve_date_window('2024-05-20', '2024-05-10')
        self.assertEqual(end - start, timedelta(days=30))

    def test_shift_months_crosses_year(self):
        january = month_start(timezone.now()).replace(year=2024, month=1)
        self.assertEqual(shift_months(january, -1).month, 12)
        self.assertEqual(shift_months(january, -1).year, 2023)
        self.assertEqual(shift_months(january, 13).year, 2025)

    @override_settings(ADMIN_EMAIL_PATTERN=r'^Boss\d{2}@factory\.com$')
    def test_admin_email_pattern_is_configurable(self):
        self.assertTrue(is_admin_email('Boss01@factory.com'))
        self.assertFalse(is_admin_email('Admin001@next.com'))
