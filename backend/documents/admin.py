from django.contrib import admin
from .models import Document


@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):
    list_display = ['title', 'tenant', 'document_type', 'version', 'status', 'effective_date', 'created_at']
    list_filter = ['tenant', 'document_type', 'status']
    search_fields = ['title', 'content']
    ordering = ['-created_at']
    readonly_fields = ['approved_by', 'approved_at', 'created_at', 'updated_at']
