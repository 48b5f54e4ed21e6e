import backend.quality.models
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


PRIORITY_CHOICES = [('Low', 'Low'), ('Medium', 'Medium'), ('High', 'High'), ('Critical', 'Critical')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ChangeControl',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('change_number', models.CharField(max_length=50)),
                ('change_type', models.CharField(max_length=100)),
                ('priority', models.CharField(choices=PRIORITY_CHOICES, default='Medium', max_length=20)),
                ('status', models.CharField(choices=[('initiated', 'Initiated'), ('assessment', 'Assessment'), ('approval_pending', 'Approval Pending'), ('approved', 'Approved'), ('implementation', 'Implementation'), ('verification', 'Verification'), ('completed', 'Completed'), ('rejected', 'Rejected'), ('cancelled', 'Cancelled')], default='initiated', max_length=30)),
                ('implementation_date', models.DateField(blank=True, null=True)),
                ('completion_date', models.DateField(blank=True, null=True)),
                ('impact_assessment', models.TextField(blank=True)),
                ('risk_level', models.CharField(blank=True, max_length=50)),
                ('affected_systems', models.JSONField(blank=True, default=list)),
                ('approval_comments', models.TextField(blank=True)),
                ('approver', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='change_approvals', to=settings.AUTH_USER_MODEL)),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='changecontrol_created', to=settings.AUTH_USER_MODEL)),
                ('requestor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='change_requests', to=settings.AUTH_USER_MODEL)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='changecontrol_records', to='core.tenant')),
                ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='changecontrol_updated', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'change_controls',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['tenant', 'status'], name='cc_tenant_status_idx')],
                'constraints': [models.UniqueConstraint(fields=('tenant', 'change_number'), name='uniq_change_number_per_tenant')],
            },
        ),
        migrations.CreateModel(
            name='CAPA',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('capa_number', models.CharField(max_length=50)),
                ('capa_type', models.CharField(choices=[('Corrective', 'Corrective'), ('Preventive', 'Preventive'), ('Both', 'Both')], max_length=20)),
                ('source', models.CharField(help_text='deviation, audit, complaint, inspection, ...', max_length=100)),
                ('source_reference', models.CharField(blank=True, max_length=255)),
                ('status', models.CharField(choices=[('open', 'Open'), ('investigation', 'Investigation'), ('action_plan', 'Action Plan'), ('implementation', 'Implementation'), ('effectiveness_check', 'Effectiveness Check'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='open', max_length=30)),
                ('priority', models.CharField(choices=PRIORITY_CHOICES, default='Medium', max_length=20)),
                ('root_cause', models.TextField(blank=True)),
                ('corrective_action', models.TextField(blank=True)),
                ('preventive_action', models.TextField(blank=True)),
                ('action_plan', models.TextField(blank=True)),
                ('effectiveness_check', models.TextField(blank=True)),
                ('effectiveness_result', models.TextField(blank=True)),
                ('due_date', models.DateField(blank=True, null=True)),
                ('implementation_date', models.DateField(blank=True, null=True)),
                ('completion_date', models.DateField(blank=True, null=True)),
                ('verification_date', models.DateField(blank=True, null=True)),
                ('verification_comments', models.TextField(blank=True)),
                ('attachments', models.JSONField(blank=True, default=list)),
                ('assigned_to', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='capas_assigned', to=settings.AUTH_USER_MODEL)),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='capa_created', to=settings.AUTH_USER_MODEL)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='capa_records', to='core.tenant')),
                ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='capa_updated', to=settings.AUTH_USER_MODEL)),
                ('verified_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='capas_verified', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'CAPA',
                'verbose_name_plural': 'CAPAs',
                'db_table': 'capas',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['tenant', 'status'], name='capa_tenant_status_idx')],
                'constraints': [models.UniqueConstraint(fields=('tenant', 'capa_number'), name='uniq_capa_number_per_tenant')],
            },
        ),
        migrations.CreateModel(
            name='Deviation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('deviation_number', models.CharField(max_length=50)),
                ('severity', models.CharField(choices=[('Minor', 'Minor'), ('Major', 'Major'), ('Critical', 'Critical')], max_length=20)),
                ('category', models.CharField(max_length=100)),
                ('status', models.CharField(choices=[('open', 'Open'), ('investigation', 'Investigation'), ('capa_required', 'CAPA Required'), ('capa_in_progress', 'CAPA In Progress'), ('pending_closure', 'Pending Closure'), ('closed', 'Closed'), ('rejected', 'Rejected')], default='open', max_length=30)),
                ('occurrence_date', models.DateTimeField()),
                ('product_affected', models.CharField(blank=True, max_length=255)),
                ('batch_number', models.CharField(blank=True, max_length=100)),
                ('immediate_action', models.TextField(blank=True)),
                ('root_cause', models.TextField(blank=True)),
                ('investigation', models.TextField(blank=True)),
                ('corrective_action', models.TextField(blank=True)),
                ('preventive_action', models.TextField(blank=True)),
                ('closure_date', models.DateTimeField(blank=True, null=True)),
                ('verification_comments', models.TextField(blank=True)),
                ('attachments', models.JSONField(blank=True, default=list)),
                ('assigned_to', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='deviations_assigned', to=settings.AUTH_USER_MODEL)),
                ('capa', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='linked_deviations', to='quality.capa')),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='deviation_created', to=settings.AUTH_USER_MODEL)),
                ('detected_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='deviations_detected', to=settings.AUTH_USER_MODEL)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='deviation_records', to='core.tenant')),
                ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='deviation_updated', to=settings.AUTH_USER_MODEL)),
                ('verified_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='deviations_verified', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'deviations',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['tenant', 'status'], name='dev_tenant_status_idx'),
                    models.Index(fields=['tenant', 'severity'], name='dev_tenant_severity_idx'),
                ],
                'constraints': [models.UniqueConstraint(fields=('tenant', 'deviation_number'), name='uniq_deviation_number_per_tenant')],
            },
        ),
        migrations.AddField(
            model_name='capa',
            name='deviation',
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='source_capas', to='quality.deviation'),
        ),
        migrations.CreateModel(
            name='Audit',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('audit_number', models.CharField(max_length=50)),
                ('audit_type', models.CharField(choices=[('Internal', 'Internal'), ('External', 'External'), ('Regulatory', 'Regulatory'), ('Supplier', 'Supplier'), ('Self-Inspection', 'Self-Inspection')], max_length=30)),
                ('scope', models.TextField()),
                ('standard', models.CharField(blank=True, help_text='e.g. ISO 9001, EU GMP', max_length=255)),
                ('status', models.CharField(choices=[('planned', 'Planned'), ('in_progress', 'In Progress'), ('report_draft', 'Report Draft'), ('report_review', 'Report Review'), ('completed', 'Completed'), ('closed', 'Closed')], default='planned', max_length=30)),
                ('priority', models.CharField(choices=PRIORITY_CHOICES, default='Medium', max_length=20)),
                ('scheduled_date', models.DateField()),
                ('start_date', models.DateField(blank=True, null=True)),
                ('end_date', models.DateField(blank=True, null=True)),
                ('completion_date', models.DateField(blank=True, null=True)),
                ('auditee', models.CharField(blank=True, max_length=255)),
                ('external_organization', models.CharField(blank=True, max_length=255)),
                ('auditor_name', models.CharField(blank=True, max_length=255)),
                ('findings_count', models.JSONField(blank=True, default=backend.quality.models.default_findings_count)),
                ('report_file', models.CharField(blank=True, max_length=500)),
                ('executive_summary', models.TextField(blank=True)),
                ('follow_up_required', models.BooleanField(default=False)),
                ('follow_up_date', models.DateField(blank=True, null=True)),
                ('capa_generated', models.BooleanField(default=False)),
                ('capa_references', models.JSONField(blank=True, default=list)),
                ('audit_team', models.ManyToManyField(blank=True, related_name='audit_teams', to=settings.AUTH_USER_MODEL)),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_created', to=settings.AUTH_USER_MODEL)),
                ('lead_auditor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audits_led', to=settings.AUTH_USER_MODEL)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='audit_records', to='core.tenant')),
                ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_updated', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'audits',
                'ordering': ['-scheduled_date', '-created_at'],
                'indexes': [
                    models.Index(fields=['tenant', 'status'], name='audit_tenant_status_idx'),
                    models.Index(fields=['tenant', 'scheduled_date'], name='audit_tenant_sched_idx'),
                ],
                'constraints': [models.UniqueConstraint(fields=('tenant', 'audit_number'), name='uniq_audit_number_per_tenant')],
            },
        ),
    ]
