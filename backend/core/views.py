import logging
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response

from .authentication import issue_token, set_auth_cookie, clear_auth_cookie
from .emails import send_welcome_email, send_verification_otp, send_reset_otp
from .exceptions import error_response
from .models import AuditLog
from .permissions import IsAdmin
from .serializers import UserSerializer, UserProfileUpdateSerializer, AuditLogSerializer
from .utils import create_audit_log, generate_otp, is_admin_email, parse_date_param, DATE_FORMAT_ERROR

logger = logging.getLogger(__name__)

User = get_user_model()

VERIFY_OTP_LIFETIME = timedelta(hours=24)
RESET_OTP_LIFETIME = timedelta(minutes=15)


def _find_user_by_email(email):
    return User.objects.filter(email__iexact=email.strip()).first()


def _check_otp(stored_otp, expires_at, otp):
    """Return an error message for a wrong or expired OTP, or None"""
    if not stored_otp or stored_otp != str(otp):
        return 'Invalid OTP'
    if expires_at is None or expires_at < timezone.now():
        return 'OTP expired'
    return None


# Auth views
@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """User registration endpoint"""
    name = request.data.get('name')
    email = (request.data.get('email') or '').strip()
    password = request.data.get('password')

    if not name or not email or not password:
        return error_response('Missing Details')

    if _find_user_by_email(email):
        return error_response('User already exists')

    role = User.ROLE_ADMIN if is_admin_email(email) else User.ROLE_USER
    user = User.objects.create_user(email=email, password=password, name=name, role=role)
    logger.info(f"Registered user {user.email} with role {role}")

    token = issue_token(user)

    try:
        send_welcome_email(user)
    except Exception as e:
        logger.warning(f"Welcome email to {user.email} failed: {e}")

    response = Response({
        'success': True,
        'message': 'User registered successfully',
        'role': role,
        'token': token,
    }, status=status.HTTP_201_CREATED)
    return set_auth_cookie(response, token)


@api_view(['POST'])
@permission_classes([AllowAny])
def login(request):
    """Authenticate with email and password and issue the auth cookie"""
    email = (request.data.get('email') or '').strip()
    password = request.data.get('password')

    if not email or not password:
        return error_response('Email and password are required')

    user = _find_user_by_email(email)
    if not user or not user.is_active or not user.check_password(password):
        logger.warning(f"Failed login attempt for {email}")
        return error_response('Invalid email or password', status.HTTP_401_UNAUTHORIZED)

    if is_admin_email(user.email) and user.role != User.ROLE_ADMIN:
        user.role = User.ROLE_ADMIN
        user.save(update_fields=['role', 'updated_at'])
        logger.info(f"Promoted {user.email} to admin")

    user.last_login = timezone.now()
    user.save(update_fields=['last_login'])

    token = issue_token(user)
    response = Response({
        'success': True,
        'role': user.role,
        'token': token,
    })
    return set_auth_cookie(response, token)


@api_view(['POST'])
@permission_classes([AllowAny])
def logout(request):
    response = Response({'success': True, 'message': 'Logged Out'})
    return clear_auth_cookie(response)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def send_verify_otp(request):
    """Email a 6-digit verification OTP, valid for 24 hours"""
    user = request.user
    if user.is_account_verified:
        return error_response('Account already verified')

    user.verify_otp = generate_otp()
    user.verify_otp_expire_at = timezone.now() + VERIFY_OTP_LIFETIME
    user.save(update_fields=['verify_otp', 'verify_otp_expire_at', 'updated_at'])

    try:
        send_verification_otp(user)
    except Exception as e:
        logger.error(f"Verification OTP email to {user.email} failed: {e}")
        return error_response('Failed to send verification email', status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Response({'success': True, 'message': 'Verification OTP sent to email'})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def verify_account(request):
    otp = request.data.get('otp')
    if not otp:
        return error_response('Missing details')

    user = request.user
    message = _check_otp(user.verify_otp, user.verify_otp_expire_at, otp)
    if message:
        return error_response(message)

    user.is_account_verified = True
    user.verify_otp = ''
    user.verify_otp_expire_at = None
    user.save(update_fields=['is_account_verified', 'verify_otp', 'verify_otp_expire_at', 'updated_at'])
    return Response({'success': True, 'message': 'Email verified successfully'})


@api_view(['POST'])
@permission_classes([AllowAny])
def send_password_reset_otp(request):
    """Email a 6-digit password reset OTP, valid for 15 minutes"""
    email = request.data.get('email')
    if not email:
        return error_response('Email is required')

    user = _find_user_by_email(email)
    if not user:
        return error_response('User not found', status.HTTP_404_NOT_FOUND)

    user.reset_otp = generate_otp()
    user.reset_otp_expire_at = timezone.now() + RESET_OTP_LIFETIME
    user.save(update_fields=['reset_otp', 'reset_otp_expire_at', 'updated_at'])

    try:
        send_reset_otp(user)
    except Exception as e:
        logger.error(f"Reset OTP email to {user.email} failed: {e}")
        return error_response('Failed to send reset email', status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Response({'success': True, 'message': 'OTP sent to your email'})


@api_view(['POST'])
@permission_classes([AllowAny])
def reset_password(request):
    email = request.data.get('email')
    otp = request.data.get('otp')
    new_password = request.data.get('new_password')

    if not email or not otp or not new_password:
        return error_response('Email, OTP, and new password are required')

    user = _find_user_by_email(email)
    if not user:
        return error_response('User not found', status.HTTP_404_NOT_FOUND)

    message = _check_otp(user.reset_otp, user.reset_otp_expire_at, otp)
    if message:
        return error_response(message)

    user.set_password(new_password)
    user.reset_otp = ''
    user.reset_otp_expire_at = None
    user.save()
    logger.info(f"Password reset for {user.email}")
    return Response({'success': True, 'message': 'Password has been reset successfully'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def is_authenticated(request):
    return Response({'success': True, 'user': UserSerializer(request.user).data})


@api_view(['GET'])
@permission_classes([AllowAny])
def ping(request):
    return Response({'success': True, 'message': 'pong', 'timestamp': timezone.now().isoformat()})


# User views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_data(request):
    return Response({
        'success': True,
        'user_data': {
            'name': request.user.name,
            'is_account_verified': request.user.is_account_verified,
        },
    })


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def user_profile(request):
    """Retrieve, update or delete the current user's account"""
    user = request.user

    if request.method == 'GET':
        return Response({'success': True, 'user': UserSerializer(user).data})

    elif request.method == 'PUT':
        serializer = UserProfileUpdateSerializer(user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return Response({
            'success': True,
            'message': 'Profile updated successfully',
            'user': UserSerializer(user).data,
        })

    else:  # DELETE
        user_id = user.id
        email = user.email
        with transaction.atomic():
            create_audit_log(request=request, action='delete', model_name='User',
                             object_id=user_id, object_name=email)
            user.delete()
        logger.info(f"Deleted account {email}")
        response = Response({'success': True, 'message': 'Account deleted successfully'})
        return clear_auth_cookie(response)


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def update_password(request):
    current_password = request.data.get('current_password')
    new_password = request.data.get('new_password')

    if not current_password or not new_password:
        return error_response('Please provide both current and new passwords')

    user = request.user
    if not user.check_password(current_password):
        return error_response('Current password is incorrect')

    user.set_password(new_password)
    user.save()
    return Response({'success': True, 'message': 'Password updated successfully'})


# AuditLog views
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def audit_log_list(request):
    """List audit logs with filtering"""
    queryset = AuditLog.objects.select_related('user')

    action_filter = request.query_params.get('action', None)
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    model_filter = request.query_params.get('model', None)
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)

    try:
        date_from = parse_date_param(request.query_params.get('date_from'))
        date_to = parse_date_param(request.query_params.get('date_to'), end_of_day=True)
    except ValueError:
        return error_response(DATE_FORMAT_ERROR)
    if date_from:
        queryset = queryset.filter(created_at__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__lte=date_to)

    queryset = queryset.order_by('-created_at')[:500]
    serializer = AuditLogSerializer(queryset, many=True)
    return Response({'success': True, 'count': len(serializer.data), 'data': serializer.data})
