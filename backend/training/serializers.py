from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers
from backend.core.serializers import TenantScopedSerializerMixin, UserSummarySerializer
from backend.core.utils import round_half_up
from .models import (
    Training, TrainingContent, TrainingAssignment, ContentProgress,
    CERTIFICATE_COLOR_KEYS, default_certificate_template, hex_color_validator
)


class TrainingSerializer(TenantScopedSerializerMixin, serializers.ModelSerializer):
    created_by = UserSummarySerializer(read_only=True)
    content_count = serializers.IntegerField(source='contents.count', read_only=True)
    target_roles = serializers.ListField(child=serializers.CharField(max_length=20), required=False)

    class Meta:
        model = Training
        exclude = ['tenant', 'assigned_to', 'completed_by']
        read_only_fields = ['training_number', 'attendance_count', 'passed_count', 'average_score',
                            'created_by', 'updated_by', 'created_at', 'updated_at']

    def validate_certificate_template(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError('Certificate template must be an object')
        template = {**default_certificate_template(), **value}
        for key in CERTIFICATE_COLOR_KEYS:
            try:
                hex_color_validator(template[key])
            except DjangoValidationError:
                raise serializers.ValidationError(f'{key} must be a hex colour like #0066cc')
        return template

    def validate(self, attrs):
        is_recurring = attrs.get('is_recurring', getattr(self.instance, 'is_recurring', False))
        interval = attrs.get('recurrence_interval', getattr(self.instance, 'recurrence_interval', ''))
        if is_recurring and not interval:
            raise serializers.ValidationError({'recurrence_interval': 'Recurring trainings need an interval'})
        return attrs


class TrainingSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Training
        fields = ['id', 'training_number', 'title', 'category', 'training_type', 'priority',
                  'duration', 'assessment_required', 'passing_score', 'certificate_enabled']
        read_only_fields = fields


class TrainingContentSerializer(serializers.ModelSerializer):
    slides = serializers.ListField(child=serializers.CharField(), required=False)

    class Meta:
        model = TrainingContent
        fields = ['id', 'training', 'title', 'description', 'content_type', 'content_url',
                  'file_name', 'file_size', 'mime_type', 'duration', 'order', 'is_required',
                  'slides', 'slide_count', 'created_at', 'updated_at']
        read_only_fields = ['training', 'file_name', 'file_size', 'mime_type', 'created_at', 'updated_at']

    def validate(self, attrs):
        if 'slides' in attrs:
            attrs['slide_count'] = len(attrs['slides'])
        return attrs


class ContentProgressSerializer(serializers.ModelSerializer):
    content = TrainingContentSerializer(read_only=True)

    class Meta:
        model = ContentProgress
        fields = ['id', 'content', 'completed', 'completed_at', 'time_spent']
        read_only_fields = fields


class TrainingAssignmentSerializer(serializers.ModelSerializer):
    training = TrainingSummarySerializer(read_only=True)
    user = UserSummarySerializer(read_only=True)
    assigned_by = UserSummarySerializer(read_only=True)
    certificate_id = serializers.SerializerMethodField()

    class Meta:
        model = TrainingAssignment
        fields = ['id', 'training', 'user', 'assigned_by', 'status', 'due_date', 'started_at',
                  'content_completed_at', 'completed_at', 'exam_attempts', 'last_exam_score',
                  'best_exam_score', 'exam_passed_at', 'total_time_spent', 'certificate_issued_at',
                  'certificate_id', 'created_at', 'updated_at']
        read_only_fields = fields

    def get_certificate_id(self, obj):
        certificate = getattr(obj, 'certificate', None)
        return certificate.id if certificate else None


class AssignmentDetailSerializer(TrainingAssignmentSerializer):
    """Assignment with its content and the user's progress through it"""
    content_progress = ContentProgressSerializer(many=True, read_only=True)
    progress_percent = serializers.SerializerMethodField()

    class Meta(TrainingAssignmentSerializer.Meta):
        fields = TrainingAssignmentSerializer.Meta.fields + ['content_progress', 'progress_percent']
        read_only_fields = fields

    def get_progress_percent(self, obj):
        rows = list(obj.content_progress.all())
        if not rows:
            return 100 if obj.content_completed_at else 0
        done = sum(1 for row in rows if row.completed)
        return round_half_up(done * 100 / len(rows))


class AssignRequestSerializer(serializers.Serializer):
    training_id = serializers.IntegerField()
    user_ids = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)
    role_filter = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    due_date = serializers.DateTimeField(required=False, allow_null=True)
