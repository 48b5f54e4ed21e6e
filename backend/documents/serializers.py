from rest_framework import serializers
from backend.core.serializers import TenantScopedSerializerMixin, UserSummarySerializer
from .models import Document


def validate_attachment_list(value):
    """Attachments are {file_name, file_url, file_size?, uploaded_at?} dicts"""
    for item in value:
        if not item.get('file_name') or not item.get('file_url'):
            raise serializers.ValidationError('Each attachment needs file_name and file_url')
        if not isinstance(item.get('file_size', 0), int):
            raise serializers.ValidationError('file_size must be an integer')


class DocumentSerializer(TenantScopedSerializerMixin, serializers.ModelSerializer):
    created_by = UserSummarySerializer(read_only=True)
    updated_by = UserSummarySerializer(read_only=True)
    approved_by = UserSummarySerializer(read_only=True)
    tags = serializers.ListField(child=serializers.CharField(max_length=100), required=False)
    attachments = serializers.ListField(child=serializers.DictField(), required=False,
                                        validators=[validate_attachment_list])

    class Meta:
        model = Document
        fields = ['id', 'title', 'document_type', 'content', 'version', 'status',
                  'created_by', 'updated_by', 'approved_by', 'approved_at',
                  'effective_date', 'review_date', 'tags', 'attachments',
                  'created_at', 'updated_at']
        read_only_fields = ['approved_at', 'created_at', 'updated_at']
