from rest_framework import serializers
from backend.core.serializers import TenantScopedSerializerMixin, UserSummarySerializer
from .models import ChangeControl, Deviation, CAPA, Audit


RECORD_READ_ONLY = ['created_by', 'updated_by', 'created_at', 'updated_at']


class ChangeControlSerializer(TenantScopedSerializerMixin, serializers.ModelSerializer):
    created_by = UserSummarySerializer(read_only=True)
    affected_systems = serializers.ListField(child=serializers.CharField(max_length=255), required=False)

    class Meta:
        model = ChangeControl
        exclude = ['tenant']
        read_only_fields = ['change_number', 'completion_date', *RECORD_READ_ONLY]


class DeviationSerializer(TenantScopedSerializerMixin, serializers.ModelSerializer):
    created_by = UserSummarySerializer(read_only=True)
    detected_by = UserSummarySerializer(read_only=True)
    attachments = serializers.ListField(child=serializers.CharField(max_length=1000), required=False)

    class Meta:
        model = Deviation
        exclude = ['tenant']
        read_only_fields = ['deviation_number', 'closure_date', *RECORD_READ_ONLY]


class CAPASerializer(TenantScopedSerializerMixin, serializers.ModelSerializer):
    created_by = UserSummarySerializer(read_only=True)
    attachments = serializers.ListField(child=serializers.CharField(max_length=1000), required=False)

    class Meta:
        model = CAPA
        exclude = ['tenant']
        read_only_fields = ['capa_number', 'completion_date', *RECORD_READ_ONLY]


class FindingsCountSerializer(serializers.Serializer):
    critical = serializers.IntegerField(min_value=0, default=0)
    major = serializers.IntegerField(min_value=0, default=0)
    minor = serializers.IntegerField(min_value=0, default=0)
    observation = serializers.IntegerField(min_value=0, default=0)


class AuditSerializer(TenantScopedSerializerMixin, serializers.ModelSerializer):
    created_by = UserSummarySerializer(read_only=True)
    capa_references = serializers.ListField(child=serializers.CharField(max_length=100), required=False)

    class Meta:
        model = Audit
        exclude = ['tenant']
        read_only_fields = ['audit_number', 'completion_date', *RECORD_READ_ONLY]

    def validate_findings_count(self, value):
        counts = FindingsCountSerializer(data=value or {})
        counts.is_valid(raise_exception=True)
        return dict(counts.validated_data)
