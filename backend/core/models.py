from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models


class Tenant(models.Model):
    """Pharmacy organization owning a set of QMS records"""
    name = models.CharField(max_length=255)
    subdomain = models.CharField(max_length=100, unique=True)
    is_active = models.BooleanField(default=True)
    branding = models.JSONField(default=dict, blank=True, help_text="logo, primary_color, secondary_color")
    features = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'tenants'
        ordering = ['name']


class UserManager(BaseUserManager):
    """Manager for users identified by email"""
    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError('The email must be set')
        email = self.normalize_email(email).lower()
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', 'admin')
        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')
        return self._create_user(email, password, **extra_fields)


PERMISSION_FLAGS = [
    'can_manage_users',
    'can_manage_trainings',
    'can_create_exams',
    'can_assign_trainings',
    'can_view_reports',
    'can_issue_certificates',
    'can_manage_documents',
]

ROLE_PERMISSIONS = {
    'admin': set(PERMISSION_FLAGS),
    'qa_manager': set(PERMISSION_FLAGS) - {'can_manage_users'},
    'pharmacist': {'can_view_reports', 'can_manage_documents'},
    'technician': set(),
    'trainee': set(),
}


class User(AbstractUser):
    """QMS user: belongs to one tenant, logs in with email"""
    ROLE_CHOICES = [
        ('admin', 'Admin'),
        ('qa_manager', 'QA Manager'),
        ('pharmacist', 'Pharmacist'),
        ('technician', 'Technician'),
        ('trainee', 'Trainee'),
    ]

    username = None
    email = models.EmailField(unique=True)
    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, null=True, blank=True, related_name='users')
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='trainee')
    department = models.CharField(max_length=100, blank=True)
    job_title = models.CharField(max_length=100, blank=True)
    employee_id = models.CharField(max_length=50, blank=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    profile_image = models.CharField(max_length=500, blank=True)
    is_active = models.BooleanField(default=True)
    email_notifications = models.BooleanField(default=True)

    can_manage_users = models.BooleanField(default=False)
    can_manage_trainings = models.BooleanField(default=False)
    can_create_exams = models.BooleanField(default=False)
    can_assign_trainings = models.BooleanField(default=False)
    can_view_reports = models.BooleanField(default=False)
    can_issue_certificates = models.BooleanField(default=False)
    can_manage_documents = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        db_table = 'users'
        ordering = ['first_name', 'last_name']
        indexes = [
            models.Index(fields=['tenant', 'role'], name='users_tenant_role_idx'),
        ]

    def __str__(self):
        return self.get_full_name() or self.email

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_role = instance.__dict__.get('role')
        return instance

    def apply_role_permissions(self):
        """Reset permission flags to the defaults of the current role"""
        granted = ROLE_PERMISSIONS.get(self.role, set())
        for flag in PERMISSION_FLAGS:
            setattr(self, flag, flag in granted)

    def save(self, *args, **kwargs):
        if self._state.adding or getattr(self, '_loaded_role', self.role) != self.role:
            self.apply_role_permissions()
        if self.email:
            self.email = self.email.lower()
        super().save(*args, **kwargs)
        self._loaded_role = self.role

    def has_qms_permission(self, flag):
        """Admins hold every permission; everyone else needs the flag"""
        if self.role == 'admin':
            return True
        return bool(getattr(self, flag, False))

    @property
    def permissions(self):
        return {flag: self.has_qms_permission(flag) for flag in PERMISSION_FLAGS}


class AuditLog(models.Model):
    """Audit trail for QMS record changes"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('approve', 'Approve'),
        ('assign', 'Assign'),
        ('reset', 'Reset'),
        ('certificate_issue', 'Certificate Issued'),
        ('certificate_revoke', 'Certificate Revoked'),
        ('exam_submit', 'Exam Submitted'),
        ('user_deactivate', 'User Deactivated'),
        ('password_change', 'Password Changed'),
    ]

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, null=True, blank=True, related_name='audit_logs')
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Record number or title")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['tenant', '-created_at'], name='audit_tenant_created_idx'),
            models.Index(fields=['action'], name='audit_action_idx'),
            models.Index(fields=['model_name'], name='audit_model_name_idx'),
            models.Index(fields=['object_reference'], name='audit_object_ref_idx'),
        ]
