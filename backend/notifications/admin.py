from django.contrib import admin
from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['title', 'user', 'tenant', 'notification_type', 'is_read', 'email_sent', 'created_at']
    list_filter = ['tenant', 'notification_type', 'is_read', 'email_sent']
    search_fields = ['title', 'message', 'user__email']
    ordering = ['-created_at']
    readonly_fields = ['read_at', 'email_sent_at', 'created_at']
