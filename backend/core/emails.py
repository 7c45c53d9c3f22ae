"""Transactional emails sent through the configured SMTP relay"""
import logging

from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)


def _send(subject, message, recipient, html_message=None):
    send_mail(
        subject,
        message,
        settings.DEFAULT_FROM_EMAIL,
        [recipient],
        html_message=html_message,
    )
    logger.info(f"Sent '{subject}' email to {recipient}")


def send_welcome_email(user):
    _send(
        f'Welcome to {settings.COMPANY_NAME}',
        f'Welcome to {settings.COMPANY_NAME} website. Your account has been created with email id: {user.email}',
        user.email,
    )


def send_verification_otp(user):
    _send(
        'Account Verification OTP',
        f'Your OTP is {user.verify_otp}. Verify your account using this OTP.',
        user.email,
    )


def send_reset_otp(user):
    _send(
        'Password Reset OTP',
        f'Your OTP for resetting your password is {user.reset_otp}.',
        user.email,
    )


def send_order_confirmation(order):
    """Plain text plus HTML confirmation listing the ordered items"""
    items = list(order.items.all())
    context = {
        'order': order,
        'items': items,
        'company_name': settings.COMPANY_NAME,
    }
    lines = [
        f"Thank you for your order, {order.shipping_full_name}!",
        f"Order #{order.id}",
        '',
    ]
    for item in items:
        line = f"- {item.name} x {item.quantity} @ {item.price} = {item.line_total}"
        if item.fabric_measurement:
            line += f" ({item.fabric_measurement} m)"
        lines.append(line)
    lines += [
        '',
        f"Items: {order.items_price}",
        f"Tax: {order.tax_price}",
        f"Shipping: {order.shipping_price}",
        f"Total: {order.total_price}",
    ]
    _send(
        f'Order Confirmation #{order.id}',
        '\n'.join(lines),
        order.user.email,
        html_message=render_to_string('emails/order_confirmation.html', context),
    )
