from django.urls import path
from .views import (
    register, login, logout, send_verify_otp, verify_account,
    send_password_reset_otp, reset_password, is_authenticated, ping,
    user_data, user_profile, update_password,
    audit_log_list,
)

urlpatterns = [
    # Auth endpoints
    path('auth/register/', register, name='register'),
    path('auth/login/', login, name='login'),
    path('auth/logout/', logout, name='logout'),
    path('auth/send-verify-otp/', send_verify_otp, name='send-verify-otp'),
    path('auth/verify-account/', verify_account, name='verify-account'),
    path('auth/send-reset-otp/', send_password_reset_otp, name='send-reset-otp'),
    path('auth/reset-password/', reset_password, name='reset-password'),
    path('auth/is-auth/', is_authenticated, name='is-auth'),
    path('auth/ping/', ping, name='ping'),

    # User endpoints
    path('user/data/', user_data, name='user-data'),
    path('user/profile/', user_profile, name='user-profile'),
    path('user/update-password/', update_password, name='user-update-password'),

    # AuditLog endpoints
    path('audit-logs/', audit_log_list, name='audit-log-list'),
]
