from django.contrib import admin
from .models import Exam, ExamQuestion, ExamAttempt


class ExamQuestionInline(admin.StackedInline):
    model = ExamQuestion
    extra = 0


@admin.register(Exam)
class ExamAdmin(admin.ModelAdmin):
    list_display = ['title', 'training', 'tenant', 'is_active', 'total_points', 'passing_score', 'max_attempts']
    list_filter = ['tenant', 'is_active']
    search_fields = ['title', 'training__title']
    readonly_fields = ['total_points', 'created_at', 'updated_at']
    inlines = [ExamQuestionInline]


@admin.register(ExamAttempt)
class ExamAttemptAdmin(admin.ModelAdmin):
    list_display = ['exam', 'user', 'attempt_number', 'score', 'passed', 'status', 'started_at']
    list_filter = ['tenant', 'status', 'passed']
    search_fields = ['exam__title', 'user__email']
    ordering = ['-started_at']
