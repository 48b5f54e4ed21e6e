from django.conf import settings
from django.db import models


PRIORITY_CHOICES = [
    ('Low', 'Low'),
    ('Medium', 'Medium'),
    ('High', 'High'),
    ('Critical', 'Critical'),
]


def default_findings_count():
    return {'critical': 0, 'major': 0, 'minor': 0, 'observation': 0}


class QualityRecord(models.Model):
    """Common fields of numbered, tenant-scoped quality records"""
    NUMBER_PREFIX = None
    NUMBER_FIELD = None

    tenant = models.ForeignKey('core.Tenant', on_delete=models.CASCADE, related_name='%(class)s_records')
    title = models.CharField(max_length=255)
    description = models.TextField()
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='%(class)s_created')
    updated_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='%(class)s_updated')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    @property
    def number(self):
        return getattr(self, self.NUMBER_FIELD)

    def __str__(self):
        return f"{self.number} - {self.title}"


class ChangeControl(QualityRecord):
    """Controlled change request"""
    NUMBER_PREFIX = 'CC'
    NUMBER_FIELD = 'change_number'

    STATUS_CHOICES = [
        ('initiated', 'Initiated'),
        ('assessment', 'Assessment'),
        ('approval_pending', 'Approval Pending'),
        ('approved', 'Approved'),
        ('implementation', 'Implementation'),
        ('verification', 'Verification'),
        ('completed', 'Completed'),
        ('rejected', 'Rejected'),
        ('cancelled', 'Cancelled'),
    ]

    change_number = models.CharField(max_length=50)
    change_type = models.CharField(max_length=100)
    priority = models.CharField(max_length=20, choices=PRIORITY_CHOICES, default='Medium')
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default='initiated')
    requestor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='change_requests')
    approver = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='change_approvals')
    implementation_date = models.DateField(null=True, blank=True)
    completion_date = models.DateField(null=True, blank=True)
    impact_assessment = models.TextField(blank=True)
    risk_level = models.CharField(max_length=50, blank=True)
    affected_systems = models.JSONField(default=list, blank=True)
    approval_comments = models.TextField(blank=True)

    class Meta:
        db_table = 'change_controls'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'change_number'], name='uniq_change_number_per_tenant'),
        ]
        indexes = [
            models.Index(fields=['tenant', 'status'], name='cc_tenant_status_idx'),
        ]


class Deviation(QualityRecord):
    """Recorded non-conformance event"""
    NUMBER_PREFIX = 'DEV'
    NUMBER_FIELD = 'deviation_number'

    SEVERITY_CHOICES = [
        ('Minor', 'Minor'),
        ('Major', 'Major'),
        ('Critical', 'Critical'),
    ]

    STATUS_CHOICES = [
        ('open', 'Open'),
        ('investigation', 'Investigation'),
        ('capa_required', 'CAPA Required'),
        ('capa_in_progress', 'CAPA In Progress'),
        ('pending_closure', 'Pending Closure'),
        ('closed', 'Closed'),
        ('rejected', 'Rejected'),
    ]

    deviation_number = models.CharField(max_length=50)
    severity = models.CharField(max_length=20, choices=SEVERITY_CHOICES)
    category = models.CharField(max_length=100)
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default='open')
    occurrence_date = models.DateTimeField()
    detected_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='deviations_detected')
    assigned_to = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='deviations_assigned')
    product_affected = models.CharField(max_length=255, blank=True)
    batch_number = models.CharField(max_length=100, blank=True)
    immediate_action = models.TextField(blank=True)
    root_cause = models.TextField(blank=True)
    investigation = models.TextField(blank=True)
    corrective_action = models.TextField(blank=True)
    preventive_action = models.TextField(blank=True)
    capa = models.ForeignKey('quality.CAPA', on_delete=models.SET_NULL, null=True, blank=True, related_name='linked_deviations')
    closure_date = models.DateTimeField(null=True, blank=True)
    verified_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='deviations_verified')
    verification_comments = models.TextField(blank=True)
    attachments = models.JSONField(default=list, blank=True)

    class Meta:
        db_table = 'deviations'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'deviation_number'], name='uniq_deviation_number_per_tenant'),
        ]
        indexes = [
            models.Index(fields=['tenant', 'status'], name='dev_tenant_status_idx'),
            models.Index(fields=['tenant', 'severity'], name='dev_tenant_severity_idx'),
        ]


class CAPA(QualityRecord):
    """Corrective and Preventive Action"""
    NUMBER_PREFIX = 'CAPA'
    NUMBER_FIELD = 'capa_number'

    TYPE_CHOICES = [
        ('Corrective', 'Corrective'),
        ('Preventive', 'Preventive'),
        ('Both', 'Both'),
    ]

    STATUS_CHOICES = [
        ('open', 'Open'),
        ('investigation', 'Investigation'),
        ('action_plan', 'Action Plan'),
        ('implementation', 'Implementation'),
        ('effectiveness_check', 'Effectiveness Check'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]

    capa_number = models.CharField(max_length=50)
    capa_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    source = models.CharField(max_length=100, help_text="deviation, audit, complaint, inspection, ...")
    source_reference = models.CharField(max_length=255, blank=True)
    deviation = models.ForeignKey(Deviation, on_delete=models.SET_NULL, null=True, blank=True, related_name='source_capas')
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default='open')
    priority = models.CharField(max_length=20, choices=PRIORITY_CHOICES, default='Medium')
    root_cause = models.TextField(blank=True)
    corrective_action = models.TextField(blank=True)
    preventive_action = models.TextField(blank=True)
    action_plan = models.TextField(blank=True)
    effectiveness_check = models.TextField(blank=True)
    effectiveness_result = models.TextField(blank=True)
    assigned_to = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='capas_assigned')
    due_date = models.DateField(null=True, blank=True)
    implementation_date = models.DateField(null=True, blank=True)
    completion_date = models.DateField(null=True, blank=True)
    verified_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='capas_verified')
    verification_date = models.DateField(null=True, blank=True)
    verification_comments = models.TextField(blank=True)
    attachments = models.JSONField(default=list, blank=True)

    class Meta:
        db_table = 'capas'
        ordering = ['-created_at']
        verbose_name = 'CAPA'
        verbose_name_plural = 'CAPAs'
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'capa_number'], name='uniq_capa_number_per_tenant'),
        ]
        indexes = [
            models.Index(fields=['tenant', 'status'], name='capa_tenant_status_idx'),
        ]


class Audit(QualityRecord):
    """Internal, external or regulatory audit"""
    NUMBER_PREFIX = 'AUD'
    NUMBER_FIELD = 'audit_number'

    TYPE_CHOICES = [
        ('Internal', 'Internal'),
        ('External', 'External'),
        ('Regulatory', 'Regulatory'),
        ('Supplier', 'Supplier'),
        ('Self-Inspection', 'Self-Inspection'),
    ]

    STATUS_CHOICES = [
        ('planned', 'Planned'),
        ('in_progress', 'In Progress'),
        ('report_draft', 'Report Draft'),
        ('report_review', 'Report Review'),
        ('completed', 'Completed'),
        ('closed', 'Closed'),
    ]

    audit_number = models.CharField(max_length=50)
    audit_type = models.CharField(max_length=30, choices=TYPE_CHOICES)
    scope = models.TextField()
    standard = models.CharField(max_length=255, blank=True, help_text="e.g. ISO 9001, EU GMP")
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default='planned')
    priority = models.CharField(max_length=20, choices=PRIORITY_CHOICES, default='Medium')
    scheduled_date = models.DateField()
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    completion_date = models.DateField(null=True, blank=True)
    lead_auditor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='audits_led')
    audit_team = models.ManyToManyField(settings.AUTH_USER_MODEL, blank=True, related_name='audit_teams')
    auditee = models.CharField(max_length=255, blank=True)
    external_organization = models.CharField(max_length=255, blank=True)
    auditor_name = models.CharField(max_length=255, blank=True)
    findings_count = models.JSONField(default=default_findings_count, blank=True)
    report_file = models.CharField(max_length=500, blank=True)
    executive_summary = models.TextField(blank=True)
    follow_up_required = models.BooleanField(default=False)
    follow_up_date = models.DateField(null=True, blank=True)
    capa_generated = models.BooleanField(default=False)
    capa_references = models.JSONField(default=list, blank=True)

    class Meta:
        db_table = 'audits'
        ordering = ['-scheduled_date', '-created_at']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'audit_number'], name='uniq_audit_number_per_tenant'),
        ]
        indexes = [
            models.Index(fields=['tenant', 'status'], name='audit_tenant_status_idx'),
            models.Index(fields=['tenant', 'scheduled_date'], name='audit_tenant_sched_idx'),
        ]
