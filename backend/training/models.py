from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator, RegexValidator
from django.db import models


hex_color_validator = RegexValidator(r'^#[0-9a-fA-F]{6}$', 'Colours must be hex values like #0066cc')

CERTIFICATE_COLOR_KEYS = ('background_color', 'text_color', 'border_color')


def default_certificate_template():
    return {
        'background_color': '#ffffff',
        'text_color': '#1a1a2e',
        'border_color': '#0066cc',
        'signer_name': '',
        'signer_title': '',
        'custom_text': '',
    }


class Training(models.Model):
    """Training program with content, an optional exam and certificate settings"""
    NUMBER_PREFIX = 'TRN'
    NUMBER_FIELD = 'training_number'

    TYPE_CHOICES = [
        ('Initial', 'Initial'),
        ('Refresher', 'Refresher'),
        ('Annual', 'Annual'),
        ('Ad-hoc', 'Ad-hoc'),
        ('Certification', 'Certification'),
    ]

    CATEGORY_CHOICES = [
        ('SOP', 'SOP'),
        ('GMP', 'GMP'),
        ('Safety', 'Safety'),
        ('Compliance', 'Compliance'),
        ('Technical', 'Technical'),
        ('Soft Skills', 'Soft Skills'),
        ('Other', 'Other'),
    ]

    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('published', 'Published'),
        ('scheduled', 'Scheduled'),
        ('in_progress', 'In Progress'),
        ('completed', 'Completed'),
        ('overdue', 'Overdue'),
        ('cancelled', 'Cancelled'),
    ]

    PRIORITY_CHOICES = [
        ('Low', 'Low'),
        ('Medium', 'Medium'),
        ('High', 'High'),
        ('Mandatory', 'Mandatory'),
    ]

    TRAINER_TYPE_CHOICES = [
        ('Internal', 'Internal'),
        ('External', 'External'),
    ]

    RECURRENCE_CHOICES = [
        ('Monthly', 'Monthly'),
        ('Quarterly', 'Quarterly'),
        ('Semi-Annual', 'Semi-Annual'),
        ('Annual', 'Annual'),
    ]

    tenant = models.ForeignKey('core.Tenant', on_delete=models.CASCADE, related_name='trainings')
    training_number = models.CharField(max_length=50)
    title = models.CharField(max_length=255)
    description = models.TextField()
    training_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='draft')
    priority = models.CharField(max_length=20, choices=PRIORITY_CHOICES, default='Medium')

    scheduled_date = models.DateTimeField(null=True, blank=True)
    due_date = models.DateTimeField(null=True, blank=True)
    completion_date = models.DateTimeField(null=True, blank=True)
    duration = models.PositiveIntegerField(default=0, help_text="Minutes")

    trainer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='trainings_led')
    trainer_type = models.CharField(max_length=20, choices=TRAINER_TYPE_CHOICES, default='Internal')
    external_organization = models.CharField(max_length=255, blank=True)
    target_roles = models.JSONField(default=list, blank=True)
    document_references = models.ManyToManyField('documents.Document', blank=True, related_name='trainings')
    materials = models.JSONField(default=list, blank=True)

    assigned_to = models.ManyToManyField(settings.AUTH_USER_MODEL, blank=True, related_name='assigned_trainings')
    completed_by = models.ManyToManyField(settings.AUTH_USER_MODEL, blank=True, related_name='completed_trainings')

    assessment_required = models.BooleanField(default=False)
    passing_score = models.PositiveIntegerField(default=80, validators=[MaxValueValidator(100)])

    certificate_enabled = models.BooleanField(default=True)
    certificate_template = models.JSONField(default=default_certificate_template, blank=True)
    certificate_validity_months = models.PositiveIntegerField(default=12, validators=[MinValueValidator(1)])

    attendance_count = models.PositiveIntegerField(default=0)
    passed_count = models.PositiveIntegerField(default=0)
    average_score = models.FloatField(default=0)

    is_recurring = models.BooleanField(default=False)
    recurrence_interval = models.CharField(max_length=20, choices=RECURRENCE_CHOICES, blank=True)
    next_due_date = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='trainings_created')
    updated_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='trainings_updated')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def number(self):
        return self.training_number

    def get_certificate_template(self):
        """Stored template merged over the defaults"""
        return {**default_certificate_template(), **(self.certificate_template or {})}

    def __str__(self):
        return f"{self.training_number} - {self.title}"

    class Meta:
        db_table = 'trainings'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'training_number'], name='uniq_training_number_per_tenant'),
        ]
        indexes = [
            models.Index(fields=['tenant', 'status'], name='trainings_tenant_status_idx'),
            models.Index(fields=['tenant', 'category'], name='trainings_tenant_cat_idx'),
        ]


class TrainingContent(models.Model):
    """Ordered learning material of a training"""
    CONTENT_TYPE_CHOICES = [
        ('video', 'Video'),
        ('pdf', 'PDF'),
        ('ppt', 'Presentation'),
        ('document', 'Document'),
        ('link', 'Link'),
        ('scorm', 'SCORM'),
    ]

    tenant = models.ForeignKey('core.Tenant', on_delete=models.CASCADE, related_name='training_contents')
    training = models.ForeignKey(Training, on_delete=models.CASCADE, related_name='contents')
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    content_type = models.CharField(max_length=20, choices=CONTENT_TYPE_CHOICES)
    content_url = models.CharField(max_length=1000)
    file_name = models.CharField(max_length=255, blank=True)
    file_size = models.PositiveBigIntegerField(default=0)
    mime_type = models.CharField(max_length=100, blank=True)
    duration = models.PositiveIntegerField(default=0, help_text="Minutes")
    order = models.PositiveIntegerField(default=0)
    is_required = models.BooleanField(default=True)
    slides = models.JSONField(default=list, blank=True)
    slide_count = models.PositiveIntegerField(default=0)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.training_id}#{self.order} {self.title}"

    class Meta:
        db_table = 'training_contents'
        ordering = ['order', 'id']
        indexes = [
            models.Index(fields=['training', 'order'], name='content_training_order_idx'),
        ]


class TrainingAssignment(models.Model):
    """One user's run through a training"""
    STATUS_CHOICES = [
        ('assigned', 'Assigned'),
        ('in_progress', 'In Progress'),
        ('content_completed', 'Content Completed'),
        ('exam_pending', 'Exam Pending'),
        ('exam_failed', 'Exam Failed'),
        ('completed', 'Completed'),
        ('overdue', 'Overdue'),
    ]

    tenant = models.ForeignKey('core.Tenant', on_delete=models.CASCADE, related_name='training_assignments')
    training = models.ForeignKey(Training, on_delete=models.CASCADE, related_name='assignments')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='training_assignments')
    assigned_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='assignments_given')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='assigned')
    due_date = models.DateTimeField(null=True, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    content_completed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    exam_attempts = models.PositiveIntegerField(default=0)
    last_exam_score = models.FloatField(null=True, blank=True)
    best_exam_score = models.FloatField(null=True, blank=True)
    exam_passed_at = models.DateTimeField(null=True, blank=True)
    total_time_spent = models.PositiveIntegerField(default=0, help_text="Seconds")
    certificate_issued_at = models.DateTimeField(null=True, blank=True)
    last_reminder_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.training_id} -> {self.user_id} ({self.status})"

    class Meta:
        db_table = 'training_assignments'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'training', 'user'], name='uniq_assignment_per_user'),
        ]
        indexes = [
            models.Index(fields=['tenant', 'status'], name='assign_tenant_status_idx'),
            models.Index(fields=['user', 'status'], name='assign_user_status_idx'),
            models.Index(fields=['due_date'], name='assign_due_date_idx'),
        ]


class ContentProgress(models.Model):
    """Completion state of one content item within an assignment"""
    assignment = models.ForeignKey(TrainingAssignment, on_delete=models.CASCADE, related_name='content_progress')
    content = models.ForeignKey(TrainingContent, on_delete=models.CASCADE, related_name='progress')
    completed = models.BooleanField(default=False)
    completed_at = models.DateTimeField(null=True, blank=True)
    time_spent = models.PositiveIntegerField(default=0, help_text="Seconds")

    class Meta:
        db_table = 'training_content_progress'
        ordering = ['content__order', 'content_id']
        constraints = [
            models.UniqueConstraint(fields=['assignment', 'content'], name='uniq_progress_per_content'),
        ]
