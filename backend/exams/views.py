import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.db.models import Avg, Max, Min, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from backend.core.permissions import TenantIsolation, require_permission
from backend.core.utils import create_audit_log, round_half_up
from backend.training.models import Training, TrainingAssignment
from backend.training.workflow import complete_assignment, active_exam
from .grading import grade_answers, score_percentage, questions_for_taking
from .models import Exam, ExamAttempt
from .serializers import ExamSerializer, ExamListSerializer, ExamAttemptSerializer

logger = logging.getLogger('backend.exams')

EXAM_READY_STATUSES = ['exam_pending', 'exam_failed']


def mirror_onto_training(exam):
    """The training follows its exam's pass mark and requires the assessment"""
    Training.objects.filter(pk=exam.training_id).update(assessment_required=True, passing_score=exam.passing_score)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, TenantIsolation, require_permission('can_create_exams')])
def exam_list_create(request):
    """List exams (optionally of one training) or create an exam with its questions"""
    try:
        if request.method == 'GET':
            exams = Exam.objects.filter(tenant_id=request.user.tenant_id)
            training_id = request.query_params.get('training')
            if training_id:
                exams = exams.filter(training_id=training_id)
            return Response(ExamListSerializer(exams, many=True).data)

        training_id = request.data.get('training') or request.data.get('training_id')
        training = Training.objects.filter(pk=training_id, tenant_id=request.user.tenant_id).first() \
            if str(training_id or '').isdigit() else None
        if training is None:
            return Response({'error': 'Training not found'}, status=status.HTTP_404_NOT_FOUND)

        serializer = ExamSerializer(data=request.data)
        if not serializer.is_valid():
            logger.warning(f"Exam creation validation failed: {serializer.errors}")
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        with transaction.atomic():
            exam = serializer.save(tenant=request.user.tenant, training=training, created_by=request.user)
            if exam.is_active:
                Exam.objects.filter(training=training, is_active=True).exclude(pk=exam.pk).update(is_active=False)
            mirror_onto_training(exam)

        create_audit_log(request, 'create', 'Exam', exam.id, object_reference=exam.title)
        logger.info(f"Exam '{exam.title}' created for {training.training_number} by {request.user.email}")
        return Response(ExamSerializer(exam).data, status=status.HTTP_201_CREATED)
    except Exception as e:
        logger.error(f"Unexpected error in exam_list_create: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated, TenantIsolation, require_permission('can_create_exams')])
def exam_detail(request, pk):
    """Exam with questions and answers; updates replace the questions when given"""
    exam = get_object_or_404(Exam, pk=pk, tenant_id=request.user.tenant_id)
    if request.method == 'GET':
        return Response(ExamSerializer(exam).data)

    serializer = ExamSerializer(exam, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        logger.warning(f"Exam update validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        with transaction.atomic():
            exam = serializer.save()
            exam.recalculate_total_points()
            exam.save(update_fields=['total_points', 'updated_at'])
            if exam.is_active:
                Exam.objects.filter(training_id=exam.training_id, is_active=True).exclude(pk=exam.pk).update(is_active=False)
            mirror_onto_training(exam)
        create_audit_log(request, 'update', 'Exam', exam.id, object_reference=exam.title)
        logger.info(f"Exam {exam.id} updated by {request.user.email}")
        return Response(ExamSerializer(exam).data)
    except Exception as e:
        logger.error(f"Unexpected error updating exam {pk}: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


def exam_for_assignment(request, assignment_id):
    """
    Resolve (assignment, exam) for the current user or an error Response.
    The assignment must be waiting for an exam and attempts must remain.
    """
    assignment = TrainingAssignment.objects.filter(
        Q(status__in=EXAM_READY_STATUSES) | Q(status='overdue', content_completed_at__isnull=False),
        pk=assignment_id, user=request.user, tenant_id=request.user.tenant_id,
    ).select_related('training').first()
    if assignment is None:
        return None, None, Response({'error': 'Assignment not found or exam not available'},
                                    status=status.HTTP_404_NOT_FOUND)

    exam = active_exam(assignment.training)
    if exam is None:
        return assignment, None, Response({'error': 'Exam not found'}, status=status.HTTP_404_NOT_FOUND)

    if assignment.exam_attempts >= exam.max_attempts:
        return assignment, exam, Response({'error': 'Maximum attempts reached'}, status=status.HTTP_400_BAD_REQUEST)
    return assignment, exam, None


@api_view(['GET'])
@permission_classes([IsAuthenticated, TenantIsolation])
def take_exam(request, assignment_id):
    """Exam questions for the current user, without answers"""
    assignment, exam, error = exam_for_assignment(request, assignment_id)
    if error:
        return error
    return Response({
        'id': exam.id,
        'title': exam.title,
        'description': exam.description,
        'time_limit': exam.time_limit,
        'passing_score': exam.passing_score,
        'total_points': exam.total_points,
        'max_attempts': exam.max_attempts,
        'attempt_number': assignment.exam_attempts + 1,
        'questions': questions_for_taking(exam),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, TenantIsolation])
def start_exam(request, assignment_id):
    """Start an attempt, or return the attempt already in progress"""
    assignment, exam, error = exam_for_assignment(request, assignment_id)
    if error:
        return error

    with transaction.atomic():
        attempt = ExamAttempt.objects.select_for_update().filter(
            assignment=assignment, exam=exam, status='in_progress'
        ).first()
        if attempt is not None:
            return Response(ExamAttemptSerializer(attempt).data)

        attempt = ExamAttempt.objects.create(
            tenant=assignment.tenant,
            exam=exam,
            assignment=assignment,
            user=request.user,
            attempt_number=assignment.exam_attempts + 1,
            total_points=exam.total_points,
        )
    logger.info(f"Exam attempt {attempt.id} started by {request.user.email}")
    return Response(ExamAttemptSerializer(attempt).data, status=status.HTTP_201_CREATED)


def record_submission(attempt, answers, time_spent):
    """Grade an attempt and move its assignment on. Returns the issued certificate, if any."""
    exam = attempt.exam
    assignment = attempt.assignment
    questions = list(exam.questions.all())

    graded, points_earned, total_points = grade_answers(questions, answers)
    score = score_percentage(points_earned, total_points)
    passed = score >= exam.passing_score

    attempt.answers = graded
    attempt.points_earned = points_earned
    attempt.total_points = total_points
    attempt.score = score
    attempt.passed = passed
    attempt.status = 'completed'
    attempt.completed_at = timezone.now()
    attempt.time_spent = time_spent
    attempt.save()

    assignment.exam_attempts += 1
    assignment.last_exam_score = score
    assignment.best_exam_score = max(score, assignment.best_exam_score or 0)

    certificate = None
    if passed:
        certificate = complete_assignment(assignment, exam_score=score)
    else:
        assignment.status = 'exam_failed'
        assignment.save()

    average = ExamAttempt.objects.filter(exam=exam, status='completed').aggregate(average=Avg('score'))['average']
    Training.objects.filter(pk=exam.training_id).update(average_score=round_half_up(average or 0, 2))
    return certificate


@api_view(['POST'])
@permission_classes([IsAuthenticated, TenantIsolation])
def submit_exam(request, attempt_id):
    """Submit answers for an attempt in progress and receive the result"""
    answers = request.data.get('answers', [])
    if not isinstance(answers, list):
        return Response({'error': 'answers must be a list'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        time_spent = max(int(request.data.get('time_spent') or 0), 0)
    except (TypeError, ValueError):
        return Response({'error': 'time_spent must be a number'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        with transaction.atomic():
            attempt = ExamAttempt.objects.select_for_update().select_related(
                'exam', 'assignment__training', 'assignment__user'
            ).filter(pk=attempt_id, user=request.user, tenant_id=request.user.tenant_id, status='in_progress').first()
            if attempt is None:
                return Response({'error': 'Attempt not found or already submitted'}, status=status.HTTP_404_NOT_FOUND)
            certificate = record_submission(attempt, answers, time_spent)
    except Exception as e:
        logger.error(f"Failed to submit exam attempt {attempt_id}: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    exam = attempt.exam
    create_audit_log(request, 'exam_submit', 'ExamAttempt', attempt.id, object_reference=exam.title,
                     changes={'score': attempt.score, 'passed': attempt.passed})
    logger.info(f"Exam attempt {attempt.id} submitted by {request.user.email}: {attempt.score}% "
                f"({'passed' if attempt.passed else 'failed'})")

    result = {
        'score': attempt.score,
        'passed': attempt.passed,
        'points_earned': attempt.points_earned,
        'total_points': attempt.total_points,
        'attempt_number': attempt.attempt_number,
        'certificate_id': certificate.id if certificate else None,
    }
    if exam.show_results:
        result['answers'] = attempt.answers
    if exam.show_correct_answers and attempt.passed:
        result['correct_answers'] = [
            {'question_id': q.id, 'correct_answers': q.correct_answers, 'explanation': q.explanation}
            for q in exam.questions.all()
        ]
    return Response(result)


@api_view(['GET'])
@permission_classes([IsAuthenticated, TenantIsolation, require_permission('can_view_reports')])
def training_results(request, training_id):
    """Completed attempts of a training's exams with score statistics"""
    training = get_object_or_404(Training, pk=training_id, tenant_id=request.user.tenant_id)
    attempts = ExamAttempt.objects.filter(exam__training=training, status='completed').select_related('user')
    summary = attempts.aggregate(average=Avg('score'), highest=Max('score'), lowest=Min('score'))
    passed_count = attempts.filter(passed=True).count()
    total = attempts.count()
    return Response({
        'attempts': ExamAttemptSerializer(attempts, many=True).data,
        'statistics': {
            'total_attempts': total,
            'passed_count': passed_count,
            'failed_count': total - passed_count,
            'average_score': round_half_up(summary['average']) if summary['average'] is not None else 0,
            'highest_score': summary['highest'] or 0,
            'lowest_score': summary['lowest'] or 0,
        },
    })
