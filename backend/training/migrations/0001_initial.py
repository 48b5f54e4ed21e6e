import backend.training.models
import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
        ('documents', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Training',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('training_number', models.CharField(max_length=50)),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField()),
                ('training_type', models.CharField(choices=[('Initial', 'Initial'), ('Refresher', 'Refresher'), ('Annual', 'Annual'), ('Ad-hoc', 'Ad-hoc'), ('Certification', 'Certification')], max_length=20)),
                ('category', models.CharField(choices=[('SOP', 'SOP'), ('GMP', 'GMP'), ('Safety', 'Safety'), ('Compliance', 'Compliance'), ('Technical', 'Technical'), ('Soft Skills', 'Soft Skills'), ('Other', 'Other')], max_length=20)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('published', 'Published'), ('scheduled', 'Scheduled'), ('in_progress', 'In Progress'), ('completed', 'Completed'), ('overdue', 'Overdue'), ('cancelled', 'Cancelled')], default='draft', max_length=20)),
                ('priority', models.CharField(choices=[('Low', 'Low'), ('Medium', 'Medium'), ('High', 'High'), ('Mandatory', 'Mandatory')], default='Medium', max_length=20)),
                ('scheduled_date', models.DateTimeField(blank=True, null=True)),
                ('due_date', models.DateTimeField(blank=True, null=True)),
                ('completion_date', models.DateTimeField(blank=True, null=True)),
                ('duration', models.PositiveIntegerField(default=0, help_text='Minutes')),
                ('trainer_type', models.CharField(choices=[('Internal', 'Internal'), ('External', 'External')], default='Internal', max_length=20)),
                ('external_organization', models.CharField(blank=True, max_length=255)),
                ('target_roles', models.JSONField(blank=True, default=list)),
                ('materials', models.JSONField(blank=True, default=list)),
                ('assessment_required', models.BooleanField(default=False)),
                ('passing_score', models.PositiveIntegerField(default=80, validators=[django.core.validators.MaxValueValidator(100)])),
                ('certificate_enabled', models.BooleanField(default=True)),
                ('certificate_template', models.JSONField(blank=True, default=backend.training.models.default_certificate_template)),
                ('certificate_validity_months', models.PositiveIntegerField(default=12, validators=[django.core.validators.MinValueValidator(1)])),
                ('attendance_count', models.PositiveIntegerField(default=0)),
                ('passed_count', models.PositiveIntegerField(default=0)),
                ('average_score', models.FloatField(default=0)),
                ('is_recurring', models.BooleanField(default=False)),
                ('recurrence_interval', models.CharField(blank=True, choices=[('Monthly', 'Monthly'), ('Quarterly', 'Quarterly'), ('Semi-Annual', 'Semi-Annual'), ('Annual', 'Annual')], max_length=20)),
                ('next_due_date', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assigned_to', models.ManyToManyField(blank=True, related_name='assigned_trainings', to=settings.AUTH_USER_MODEL)),
                ('completed_by', models.ManyToManyField(blank=True, related_name='completed_trainings', to=settings.AUTH_USER_MODEL)),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='trainings_created', to=settings.AUTH_USER_MODEL)),
                ('document_references', models.ManyToManyField(blank=True, related_name='trainings', to='documents.document')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='trainings', to='core.tenant')),
                ('trainer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='trainings_led', to=settings.AUTH_USER_MODEL)),
                ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='trainings_updated', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'trainings',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['tenant', 'status'], name='trainings_tenant_status_idx'),
                    models.Index(fields=['tenant', 'category'], name='trainings_tenant_cat_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('tenant', 'training_number'), name='uniq_training_number_per_tenant'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TrainingContent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True)),
                ('content_type', models.CharField(choices=[('video', 'Video'), ('pdf', 'PDF'), ('ppt', 'Presentation'), ('document', 'Document'), ('link', 'Link'), ('scorm', 'SCORM')], max_length=20)),
                ('content_url', models.CharField(max_length=1000)),
                ('file_name', models.CharField(blank=True, max_length=255)),
                ('file_size', models.PositiveBigIntegerField(default=0)),
                ('mime_type', models.CharField(blank=True, max_length=100)),
                ('duration', models.PositiveIntegerField(default=0, help_text='Minutes')),
                ('order', models.PositiveIntegerField(default=0)),
                ('is_required', models.BooleanField(default=True)),
                ('slides', models.JSONField(blank=True, default=list)),
                ('slide_count', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='training_contents', to='core.tenant')),
                ('training', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='contents', to='training.training')),
            ],
            options={
                'db_table': 'training_contents',
                'ordering': ['order', 'id'],
                'indexes': [models.Index(fields=['training', 'order'], name='content_training_order_idx')],
            },
        ),
        migrations.CreateModel(
            name='TrainingAssignment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('assigned', 'Assigned'), ('in_progress', 'In Progress'), ('content_completed', 'Content Completed'), ('exam_pending', 'Exam Pending'), ('exam_failed', 'Exam Failed'), ('completed', 'Completed'), ('overdue', 'Overdue')], default='assigned', max_length=20)),
                ('due_date', models.DateTimeField(blank=True, null=True)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('content_completed_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('exam_attempts', models.PositiveIntegerField(default=0)),
                ('last_exam_score', models.FloatField(blank=True, null=True)),
                ('best_exam_score', models.FloatField(blank=True, null=True)),
                ('exam_passed_at', models.DateTimeField(blank=True, null=True)),
                ('total_time_spent', models.PositiveIntegerField(default=0, help_text='Seconds')),
                ('certificate_issued_at', models.DateTimeField(blank=True, null=True)),
                ('last_reminder_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assigned_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assignments_given', to=settings.AUTH_USER_MODEL)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='training_assignments', to='core.tenant')),
                ('training', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assignments', to='training.training')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='training_assignments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'training_assignments',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['tenant', 'status'], name='assign_tenant_status_idx'),
                    models.Index(fields=['user', 'status'], name='assign_user_status_idx'),
                    models.Index(fields=['due_date'], name='assign_due_date_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('tenant', 'training', 'user'), name='uniq_assignment_per_user'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ContentProgress',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('completed', models.BooleanField(default=False)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('time_spent', models.PositiveIntegerField(default=0, help_text='Seconds')),
                ('assignment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='content_progress', to='training.trainingassignment')),
                ('content', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='progress', to='training.trainingcontent')),
            ],
            options={
                'db_table': 'training_content_progress',
                'ordering': ['content__order', 'content_id'],
                'constraints': [
                    models.UniqueConstraint(fields=('assignment', 'content'), name='uniq_progress_per_content'),
                ],
            },
        ),
    ]
