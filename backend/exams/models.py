from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class Exam(models.Model):
    """Assessment attached to a training"""
    tenant = models.ForeignKey('core.Tenant', on_delete=models.CASCADE, related_name='exams')
    training = models.ForeignKey('training.Training', on_delete=models.CASCADE, related_name='exams')
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)

    total_points = models.PositiveIntegerField(default=0)
    passing_score = models.PositiveIntegerField(default=80, validators=[MaxValueValidator(100)])
    time_limit = models.PositiveIntegerField(null=True, blank=True, help_text="Minutes")
    max_attempts = models.PositiveIntegerField(default=3, validators=[MinValueValidator(1)])
    shuffle_questions = models.BooleanField(default=False)
    shuffle_options = models.BooleanField(default=False)
    show_results = models.BooleanField(default=True)
    show_correct_answers = models.BooleanField(default=False)

    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='exams_created')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def recalculate_total_points(self):
        self.total_points = sum(question.points for question in self.questions.all())
        return self.total_points

    def __str__(self):
        return self.title

    class Meta:
        db_table = 'exams'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['training', 'is_active'], name='exams_training_active_idx'),
        ]


class ExamQuestion(models.Model):
    QUESTION_TYPE_CHOICES = [
        ('multiple_choice', 'Multiple Choice'),
        ('true_false', 'True / False'),
        ('multiple_select', 'Multiple Select'),
    ]

    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name='questions')
    question_text = models.TextField()
    question_type = models.CharField(max_length=20, choices=QUESTION_TYPE_CHOICES, default='multiple_choice')
    options = models.JSONField(default=list)
    correct_answers = models.JSONField(default=list, help_text="Indices into options")
    points = models.PositiveIntegerField(default=1)
    explanation = models.TextField(blank=True)
    order = models.PositiveIntegerField(default=0)

    def __str__(self):
        return self.question_text[:50]

    class Meta:
        db_table = 'exam_questions'
        ordering = ['order', 'id']


class ExamAttempt(models.Model):
    STATUS_CHOICES = [
        ('in_progress', 'In Progress'),
        ('completed', 'Completed'),
        ('timed_out', 'Timed Out'),
        ('abandoned', 'Abandoned'),
    ]

    tenant = models.ForeignKey('core.Tenant', on_delete=models.CASCADE, related_name='exam_attempts')
    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name='attempts')
    assignment = models.ForeignKey('training.TrainingAssignment', on_delete=models.CASCADE, related_name='attempts')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='exam_attempts')
    attempt_number = models.PositiveIntegerField(default=1)
    answers = models.JSONField(default=list, blank=True)
    score = models.FloatField(null=True, blank=True, help_text="Percentage")
    points_earned = models.PositiveIntegerField(default=0)
    total_points = models.PositiveIntegerField(default=0)
    passed = models.BooleanField(default=False)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='in_progress')
    started_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    time_spent = models.PositiveIntegerField(default=0, help_text="Seconds")

    def __str__(self):
        return f"{self.exam_id} attempt {self.attempt_number} by {self.user_id}"

    class Meta:
        db_table = 'exam_attempts'
        ordering = ['-started_at']
        indexes = [
            models.Index(fields=['exam', 'status'], name='attempts_exam_status_idx'),
            models.Index(fields=['assignment', 'status'], name='attempts_assign_status_idx'),
        ]
