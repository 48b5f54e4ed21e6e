from django.conf import settings
from django.db import models


class Notification(models.Model):
    """In-app notification, optionally mirrored by email"""
    TYPE_CHOICES = [
        ('training_assigned', 'Training Assigned'),
        ('training_reminder', 'Training Reminder'),
        ('training_overdue', 'Training Overdue'),
        ('exam_available', 'Exam Available'),
        ('certificate_issued', 'Certificate Issued'),
        ('general', 'General'),
    ]

    RELATED_TYPE_CHOICES = [
        ('Training', 'Training'),
        ('TrainingAssignment', 'Training Assignment'),
        ('Exam', 'Exam'),
        ('Certificate', 'Certificate'),
    ]

    tenant = models.ForeignKey('core.Tenant', on_delete=models.CASCADE, related_name='notifications')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications')
    notification_type = models.CharField(max_length=30, choices=TYPE_CHOICES, default='general')
    title = models.CharField(max_length=255)
    message = models.TextField()
    link = models.CharField(max_length=500, blank=True)
    related_type = models.CharField(max_length=30, choices=RELATED_TYPE_CHOICES, blank=True)
    related_id = models.CharField(max_length=50, blank=True)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    email_sent = models.BooleanField(default=False)
    email_sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.title} ({self.user_id})"

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read'], name='notif_user_read_idx'),
            models.Index(fields=['tenant', '-created_at'], name='notif_tenant_created_idx'),
        ]
