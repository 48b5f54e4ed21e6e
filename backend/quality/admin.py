from django.contrib import admin
from .models import ChangeControl, Deviation, CAPA, Audit


@admin.register(ChangeControl)
class ChangeControlAdmin(admin.ModelAdmin):
    list_display = ['change_number', 'title', 'tenant', 'change_type', 'priority', 'status', 'created_at']
    list_filter = ['tenant', 'status', 'priority']
    search_fields = ['change_number', 'title', 'description']
    ordering = ['-created_at']


@admin.register(Deviation)
class DeviationAdmin(admin.ModelAdmin):
    list_display = ['deviation_number', 'title', 'tenant', 'severity', 'category', 'status', 'occurrence_date']
    list_filter = ['tenant', 'status', 'severity']
    search_fields = ['deviation_number', 'title', 'batch_number', 'product_affected']
    ordering = ['-created_at']


@admin.register(CAPA)
class CAPAAdmin(admin.ModelAdmin):
    list_display = ['capa_number', 'title', 'tenant', 'capa_type', 'source', 'priority', 'status', 'due_date']
    list_filter = ['tenant', 'status', 'priority', 'capa_type']
    search_fields = ['capa_number', 'title', 'source_reference']
    ordering = ['-created_at']


@admin.register(Audit)
class AuditAdmin(admin.ModelAdmin):
    list_display = ['audit_number', 'title', 'tenant', 'audit_type', 'status', 'scheduled_date']
    list_filter = ['tenant', 'status', 'audit_type']
    search_fields = ['audit_number', 'title', 'auditee', 'external_organization']
    ordering = ['-scheduled_date']
    filter_horizontal = ['audit_team']
