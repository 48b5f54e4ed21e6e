from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import Tenant, User, AuditLog, PERMISSION_FLAGS


class TenantScopedSerializerMixin:
    """
    Restrict related-object fields to the requesting user's tenant so that
    ids from another tenant fail validation like unknown ids.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        request = self.context.get('request')
        tenant_id = getattr(getattr(request, 'user', None), 'tenant_id', None)
        if tenant_id is None:
            return
        for field in self.fields.values():
            related = getattr(field, 'child_relation', field)
            queryset = getattr(related, 'queryset', None)
            if queryset is None or getattr(related, 'read_only', False):
                continue
            model_fields = {f.name for f in queryset.model._meta.get_fields()}
            if 'tenant' in model_fields:
                related.queryset = queryset.filter(tenant_id=tenant_id)


class TenantSerializer(serializers.ModelSerializer):
    class Meta:
        model = Tenant
        fields = ['id', 'name', 'subdomain', 'is_active', 'branding', 'features']
        read_only_fields = fields


class UserSummarySerializer(serializers.ModelSerializer):
    """Compact user representation for nested references"""
    name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'email', 'first_name', 'last_name', 'name', 'role', 'department']
        read_only_fields = fields

    def get_name(self, obj):
        return obj.get_full_name() or obj.email


class UserSerializer(serializers.ModelSerializer):
    permissions = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'email', 'first_name', 'last_name', 'role', 'department', 'job_title',
                  'employee_id', 'phone', 'profile_image', 'is_active', 'email_notifications',
                  'last_login', 'tenant', 'permissions', *PERMISSION_FLAGS, 'created_at', 'updated_at']
        read_only_fields = ['email', 'tenant', 'last_login', 'created_at', 'updated_at']

    def get_permissions(self, obj):
        return obj.permissions


# Fields only user managers may change
RESTRICTED_USER_FIELDS = ['role', 'is_active', 'employee_id', *PERMISSION_FLAGS]


class UserSelfUpdateSerializer(UserSerializer):
    """Profile update for users without can_manage_users"""

    class Meta(UserSerializer.Meta):
        read_only_fields = UserSerializer.Meta.read_only_fields + RESTRICTED_USER_FIELDS


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])

    class Meta:
        model = User
        fields = ['email', 'password', 'first_name', 'last_name', 'role', 'department',
                  'job_title', 'employee_id', 'phone', 'email_notifications']
        extra_kwargs = {
            'first_name': {'required': True},
            'last_name': {'required': True},
            'email': {'validators': []},
        }

    def validate_email(self, value):
        value = value.lower()
        if User.objects.filter(email=value).exists():
            raise serializers.ValidationError('User with this email already exists')
        return value

    def create(self, validated_data):
        password = validated_data.pop('password')
        validated_data.setdefault('role', 'trainee')
        return User.objects.create_user(password=password, is_active=True, **validated_data)


class PasswordChangeSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True, required=False, allow_blank=True)
    new_password = serializers.CharField(write_only=True, validators=[validate_password])


class AuditLogSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'action', 'model_name', 'object_id', 'object_reference',
                  'changes', 'ip_address', 'created_at']
