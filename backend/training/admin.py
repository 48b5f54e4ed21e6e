from django.contrib import admin
from .models import Training, TrainingContent, TrainingAssignment, ContentProgress


class TrainingContentInline(admin.TabularInline):
    model = TrainingContent
    extra = 0
    fields = ['order', 'title', 'content_type', 'content_url', 'is_required']


@admin.register(Training)
class TrainingAdmin(admin.ModelAdmin):
    list_display = ['training_number', 'title', 'tenant', 'category', 'training_type', 'status', 'due_date',
                    'attendance_count', 'passed_count']
    list_filter = ['tenant', 'status', 'category', 'training_type', 'is_recurring']
    search_fields = ['training_number', 'title']
    ordering = ['-created_at']
    readonly_fields = ['training_number', 'attendance_count', 'passed_count', 'average_score', 'created_at', 'updated_at']
    filter_horizontal = ['assigned_to', 'completed_by', 'document_references']
    inlines = [TrainingContentInline]


class ContentProgressInline(admin.TabularInline):
    model = ContentProgress
    extra = 0
    readonly_fields = ['content', 'completed', 'completed_at', 'time_spent']


@admin.register(TrainingAssignment)
class TrainingAssignmentAdmin(admin.ModelAdmin):
    list_display = ['training', 'user', 'status', 'due_date', 'exam_attempts', 'best_exam_score', 'completed_at']
    list_filter = ['tenant', 'status']
    search_fields = ['training__title', 'training__training_number', 'user__email']
    ordering = ['-created_at']
    inlines = [ContentProgressInline]
