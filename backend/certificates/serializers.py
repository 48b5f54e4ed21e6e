from rest_framework import serializers
from backend.core.serializers import UserSummarySerializer
from .models import Certificate


class CertificateSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)
    revoked_by = UserSummarySerializer(read_only=True)
    is_expired = serializers.BooleanField(read_only=True)

    class Meta:
        model = Certificate
        fields = ['id', 'certificate_number', 'verification_code', 'user', 'training', 'assignment',
                  'training_title', 'user_name', 'issue_date', 'expiry_date', 'completion_date',
                  'exam_score', 'download_count', 'last_downloaded_at', 'is_valid', 'is_expired',
                  'revoked_at', 'revoked_by', 'revoke_reason', 'created_at']
        read_only_fields = fields
