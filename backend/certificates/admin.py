from django.contrib import admin
from .models import Certificate


@admin.register(Certificate)
class CertificateAdmin(admin.ModelAdmin):
    list_display = ['certificate_number', 'user_name', 'training_title', 'tenant', 'issue_date', 'expiry_date',
                    'is_valid', 'download_count']
    list_filter = ['tenant', 'is_valid']
    search_fields = ['certificate_number', 'user_name', 'training_title', 'verification_code']
    ordering = ['-issue_date']
    readonly_fields = ['certificate_number', 'verification_code', 'download_count', 'last_downloaded_at',
                       'revoked_at', 'revoked_by', 'created_at']
