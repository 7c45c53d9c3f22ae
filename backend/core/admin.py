from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, AuditLog


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['email', 'name', 'role', 'is_account_verified', 'is_active', 'date_joined']
    list_filter = ['role', 'is_account_verified', 'is_active', 'date_joined']
    search_fields = ['email', 'name', 'phone']
    ordering = ['email']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Profile', {'fields': ('name', 'role', 'phone', 'address')}),
        ('Verification', {'fields': ('is_account_verified', 'verify_otp_expire_at', 'reset_otp_expire_at')}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Profile', {'fields': ('email', 'name', 'role')}),
    )
    readonly_fields = ['verify_otp_expire_at', 'reset_otp_expire_at']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['user', 'action', 'model_name', 'object_id', 'object_name', 'ip_address', 'created_at']
    list_filter = ['action', 'model_name', 'created_at']
    search_fields = ['user__email', 'model_name', 'object_id', 'object_name']
    ordering = ['-created_at']
    readonly_fields = ['user', 'action', 'model_name', 'object_id', 'object_name', 'changes', 'ip_address', 'created_at']
