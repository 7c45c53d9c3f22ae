"""Shared helpers: audit logging, request parsing, OTPs and date windows"""
import logging
import re
import secrets
from datetime import datetime, time, timedelta

from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from .models import AuditLog

logger = logging.getLogger(__name__)

DATE_FORMAT_ERROR = 'Invalid date format. Please use YYYY-MM-DD format.'


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, delete, stock_restock, order_create, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., product name, order number)
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or not object_id:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            changes=changes or {},
            ip_address=ip_address
        )
    except Exception as e:
        # Don't fail the main operation if audit logging fails
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def is_admin_email(email):
    """Whether an address matches the reserved admin pattern (e.g. Admin001@next.com)"""
    if not email:
        return False
    return re.match(settings.ADMIN_EMAIL_PATTERN, email) is not None


def generate_otp():
    """Six digit numeric one-time password"""
    return str(100000 + secrets.randbelow(900000))


def parse_date_param(value, end_of_day=False):
    """
    Parse a query parameter holding a date (YYYY-MM-DD) or an ISO datetime.

    Returns an aware datetime, or None when the value is empty. Plain dates
    resolve to the start of the day, or its last microsecond when
    ``end_of_day`` is set. Raises ValueError for malformed input.
    """
    if value in (None, ''):
        return None

    parsed = None
    try:
        parsed = parse_datetime(value)
    except ValueError:
        parsed = None

    if parsed is None:
        try:
            day = parse_date(value)
        except ValueError:
            day = None
        if day is None:
            raise ValueError(DATE_FORMAT_ERROR)
        parsed = datetime.combine(day, time.max if end_of_day else time.min)

    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def resolve_date_window(start_value, end_value, default_days=30):
    """
    Resolve an inclusive reporting window from raw query values.

    Missing end defaults to now and an end in the future is clamped to now.
    Missing start defaults to ``default_days`` before the end, as does a
    start falling after the end.
    """
    now = timezone.now()
    end = parse_date_param(end_value, end_of_day=True) or now
    if end > now:
        end = now

    start = parse_date_param(start_value)
    if start is None or start > end:
        start = end - timedelta(days=default_days)
    return start, end


def month_start(value):
    """First instant of the month containing ``value``"""
    return value.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def shift_months(value, months):
    """Move a month-start datetime forward (or back, for negative values) by whole months"""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    return value.replace(year=year, month=month_index % 12 + 1, day=1)


def to_bool(value):
    """Interpret query-string booleans such as 'true', '1' or 'false'"""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')
