from django.db import transaction
from rest_framework import serializers
from backend.core.serializers import UserSummarySerializer
from .models import Exam, ExamQuestion, ExamAttempt


class ExamQuestionSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(read_only=True)
    options = serializers.ListField(child=serializers.CharField(), allow_empty=False)
    correct_answers = serializers.ListField(child=serializers.IntegerField(min_value=0), allow_empty=False)

    class Meta:
        model = ExamQuestion
        fields = ['id', 'question_text', 'question_type', 'options', 'correct_answers', 'points',
                  'explanation', 'order']

    def validate(self, attrs):
        options = attrs.get('options', getattr(self.instance, 'options', []))
        correct = attrs.get('correct_answers', getattr(self.instance, 'correct_answers', []))
        invalid = [index for index in correct if index >= len(options)]
        if invalid:
            raise serializers.ValidationError({'correct_answers': f'Invalid option indices: {invalid}'})
        question_type = attrs.get('question_type', getattr(self.instance, 'question_type', 'multiple_choice'))
        if question_type != 'multiple_select' and len(set(correct)) > 1:
            raise serializers.ValidationError({'correct_answers': 'Only multiple select questions take several answers'})
        return attrs


class ExamSerializer(serializers.ModelSerializer):
    questions = ExamQuestionSerializer(many=True, required=False)
    created_by = UserSummarySerializer(read_only=True)
    question_count = serializers.SerializerMethodField()

    class Meta:
        model = Exam
        fields = ['id', 'training', 'title', 'description', 'is_active', 'total_points', 'passing_score',
                  'time_limit', 'max_attempts', 'shuffle_questions', 'shuffle_options', 'show_results',
                  'show_correct_answers', 'questions', 'question_count', 'created_by', 'created_at', 'updated_at']
        read_only_fields = ['training', 'total_points', 'created_by', 'created_at', 'updated_at']

    def get_question_count(self, obj):
        return obj.questions.count()

    def validate_questions(self, value):
        if self.instance is None and not value:
            raise serializers.ValidationError('An exam needs at least one question')
        return value

    def write_questions(self, exam, questions):
        exam.questions.all().delete()
        ExamQuestion.objects.bulk_create([
            ExamQuestion(exam=exam, **{**question, 'order': question.get('order', index)})
            for index, question in enumerate(questions)
        ])
        exam.recalculate_total_points()
        exam.save(update_fields=['total_points', 'updated_at'])

    @transaction.atomic
    def create(self, validated_data):
        questions = validated_data.pop('questions', [])
        exam = Exam.objects.create(**validated_data)
        self.write_questions(exam, questions)
        return exam

    @transaction.atomic
    def update(self, instance, validated_data):
        questions = validated_data.pop('questions', None)
        exam = super().update(instance, validated_data)
        if questions is not None:
            self.write_questions(exam, questions)
        return exam


class ExamListSerializer(serializers.ModelSerializer):
    question_count = serializers.IntegerField(source='questions.count', read_only=True)

    class Meta:
        model = Exam
        fields = ['id', 'training', 'title', 'is_active', 'total_points', 'passing_score', 'time_limit',
                  'max_attempts', 'question_count', 'created_at']
        read_only_fields = fields


class ExamAttemptSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = ExamAttempt
        fields = ['id', 'exam', 'assignment', 'user', 'attempt_number', 'answers', 'score', 'points_earned',
                  'total_points', 'passed', 'status', 'started_at', 'completed_at', 'time_spent']
        read_only_fields = fields
