from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import Tenant, User, AuditLog, PERMISSION_FLAGS


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ['name', 'subdomain', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name', 'subdomain']
    ordering = ['name']


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['email', 'first_name', 'last_name', 'tenant', 'role', 'is_active', 'date_joined']
    list_filter = ['tenant', 'role', 'is_active', 'is_staff']
    search_fields = ['email', 'first_name', 'last_name', 'employee_id']
    ordering = ['email']
    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        ('Personal info', {'fields': ('first_name', 'last_name', 'phone', 'department', 'job_title', 'employee_id')}),
        ('QMS', {'fields': ('tenant', 'role', 'email_notifications', *PERMISSION_FLAGS)}),
        ('Permissions', {'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions')}),
        ('Important dates', {'fields': ('last_login', 'date_joined')}),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'tenant', 'role', 'password1', 'password2'),
        }),
    )


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['tenant', 'user', 'action', 'model_name', 'object_reference', 'ip_address', 'created_at']
    list_filter = ['action', 'model_name', 'created_at']
    search_fields = ['user__email', 'model_name', 'object_id', 'object_reference']
    ordering = ['-created_at']
    readonly_fields = ['tenant', 'user', 'action', 'model_name', 'object_id', 'object_reference', 'changes', 'ip_address', 'created_at']
