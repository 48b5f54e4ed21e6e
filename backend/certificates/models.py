import uuid
from django.conf import settings
from django.db import models
from django.utils import timezone


class Certificate(models.Model):
    """Proof of training completion, verifiable by its public code"""
    tenant = models.ForeignKey('core.Tenant', on_delete=models.CASCADE, related_name='certificates')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='certificates')
    training = models.ForeignKey('training.Training', on_delete=models.CASCADE, related_name='certificates')
    assignment = models.OneToOneField('training.TrainingAssignment', on_delete=models.SET_NULL, null=True, blank=True,
                                      related_name='certificate')
    certificate_number = models.CharField(max_length=50, unique=True)
    verification_code = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    training_title = models.CharField(max_length=255)
    user_name = models.CharField(max_length=255)
    issue_date = models.DateTimeField(default=timezone.now)
    expiry_date = models.DateTimeField(null=True, blank=True)
    completion_date = models.DateTimeField(null=True, blank=True)
    exam_score = models.FloatField(null=True, blank=True)
    download_count = models.PositiveIntegerField(default=0)
    last_downloaded_at = models.DateTimeField(null=True, blank=True)
    is_valid = models.BooleanField(default=True)
    revoked_at = models.DateTimeField(null=True, blank=True)
    revoked_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='certificates_revoked')
    revoke_reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    @property
    def is_expired(self):
        return self.expiry_date is not None and self.expiry_date < timezone.now()

    def __str__(self):
        return f"{self.certificate_number} - {self.user_name}"

    class Meta:
        db_table = 'certificates'
        ordering = ['-issue_date']
        indexes = [
            models.Index(fields=['tenant', 'is_valid'], name='cert_tenant_valid_idx'),
            models.Index(fields=['user', '-issue_date'], name='cert_user_issued_idx'),
            models.Index(fields=['expiry_date'], name='cert_expiry_idx'),
        ]
