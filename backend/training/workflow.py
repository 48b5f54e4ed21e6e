"""
Training assignment workflow.

An assignment moves assigned -> in_progress -> (exam_pending <-> exam_failed) -> completed.
The content stage ends once every required content item is complete; after
that the assignment waits for the exam, when one is required and active, or
completes immediately.
"""
import logging
from datetime import timedelta
from django.db import transaction
from django.db.models import Count, F, Q
from django.utils import timezone
from backend.certificates.utils import issue_certificate
from backend.core.utils import create_audit_log
from backend.exams.models import Exam, ExamAttempt
from backend.notifications.utils import create_notification, format_email_date
from .models import Training, TrainingAssignment, ContentProgress

logger = logging.getLogger('backend.training')

UNFINISHED_STATUSES = ['assigned', 'in_progress', 'content_completed', 'exam_pending', 'exam_failed']
CONTENT_STAGE_STATUSES = ['assigned', 'in_progress']


def assignment_link(assignment):
    return f'/training/my-trainings/{assignment.id}'


def active_exam(training):
    return Exam.objects.filter(training=training, is_active=True).order_by('-created_at').first()


def build_content_progress(assignment):
    """Create progress rows for every content item the assignment does not track yet"""
    tracked = set(assignment.content_progress.values_list('content_id', flat=True))
    rows = [
        ContentProgress(assignment=assignment, content=content)
        for content in assignment.training.contents.all()
        if content.id not in tracked
    ]
    ContentProgress.objects.bulk_create(rows)
    return len(rows)


def add_content_to_assignments(content):
    """New content joins the progress of every unfinished assignment"""
    assignments = TrainingAssignment.objects.filter(training_id=content.training_id).exclude(status='completed')
    rows = [ContentProgress(assignment=assignment, content=content) for assignment in assignments]
    ContentProgress.objects.bulk_create(rows, ignore_conflicts=True)
    return len(rows)


def required_content_done(assignment):
    return not assignment.content_progress.filter(content__is_required=True, completed=False).exists()


def assign_training(training, users, assigned_by, due_date=None):
    """
    Assign a training to users.

    Returns (assigned, errors); users that already hold an assignment are
    reported in errors.
    """
    assigned, errors = [], []
    due_date = due_date or training.due_date
    existing = set(training.assignments.filter(user__in=users).values_list('user_id', flat=True))

    for user in users:
        if user.id in existing:
            errors.append({'user_id': user.id, 'error': 'Already assigned'})
            continue

        with transaction.atomic():
            assignment = TrainingAssignment.objects.create(
                tenant=training.tenant,
                training=training,
                user=user,
                assigned_by=assigned_by,
                due_date=due_date,
            )
            build_content_progress(assignment)
            training.assigned_to.add(user)
            create_notification(
                user,
                'training_assigned',
                'New Training Assigned',
                f'You have been assigned "{training.title}"',
                link=assignment_link(assignment),
                related_type='TrainingAssignment',
                related_id=assignment.id,
                email_template='training_assigned',
                email_context={
                    'training_title': training.title,
                    'due_date': format_email_date(due_date),
                    'assigned_by': assigned_by.get_full_name() or assigned_by.email,
                },
            )
        assigned.append(assignment)

    if assigned:
        create_audit_log(user=assigned_by, action='assign', model_name='Training', object_id=training.id,
                         object_reference=training.training_number,
                         changes={'user_ids': [a.user_id for a in assigned]})
    logger.info(f"Training {training.training_number} assigned to {len(assigned)} users by {assigned_by.email}")
    return assigned, errors


def complete_assignment(assignment, exam_score=None):
    """Mark an assignment completed, update training counters and issue the certificate"""
    now = timezone.now()
    training = assignment.training
    assignment.status = 'completed'
    assignment.completed_at = now
    if exam_score is not None:
        assignment.exam_passed_at = now
    assignment.save()

    training.completed_by.add(assignment.user)
    counters = {'attendance_count': F('attendance_count') + 1}
    if exam_score is not None:
        counters['passed_count'] = F('passed_count') + 1
    Training.objects.filter(pk=training.pk).update(**counters)
    training.refresh_from_db(fields=['attendance_count', 'passed_count'])

    logger.info(f"Assignment {assignment.id} completed by {assignment.user.email}")
    return issue_certificate(assignment, exam_score=exam_score)


def finish_content_stage(assignment):
    """All required content is done: hand over to the exam or complete"""
    assignment.content_completed_at = timezone.now()
    training = assignment.training
    exam = active_exam(training) if training.assessment_required else None

    if exam is None:
        return complete_assignment(assignment)

    assignment.status = 'exam_pending'
    assignment.save()
    create_notification(
        assignment.user,
        'exam_available',
        'Exam Available',
        f'The exam for "{training.title}" is now available',
        link=f'/training/exam/{assignment.id}',
        related_type='Exam',
        related_id=exam.id,
        email_template='exam_available',
        email_context={
            'training_title': training.title,
            'exam_title': exam.title,
            'passing_score': exam.passing_score,
            'time_limit': exam.time_limit,
        },
    )
    logger.info(f"Assignment {assignment.id} is waiting for exam {exam.id}")
    return None


def start_assignment(assignment):
    """assigned -> in_progress; a training without required content finishes its content stage at once"""
    with transaction.atomic():
        assignment.status = 'in_progress'
        assignment.started_at = timezone.now()
        assignment.save()
        if required_content_done(assignment):
            finish_content_stage(assignment)
    return assignment


def complete_content(assignment, content_id, time_spent=0):
    """
    Record completion of one content item.
    Raises ContentProgress.DoesNotExist when the content is not part of the assignment.
    """
    time_spent = max(int(time_spent or 0), 0)
    with transaction.atomic():
        progress = assignment.content_progress.select_for_update().get(content_id=content_id)
        if not progress.completed:
            progress.completed = True
            progress.completed_at = timezone.now()
        progress.time_spent += time_spent
        progress.save()

        assignment.total_time_spent += time_spent
        if assignment.status == 'assigned':
            assignment.status = 'in_progress'
            assignment.started_at = timezone.now()
        assignment.save()

        if assignment.content_completed_at is None and required_content_done(assignment):
            finish_content_stage(assignment)
    return progress


def reset_assignment(assignment, reset_by):
    """Send an assignment back to the start, keeping its certificate history unlinked"""
    from backend.certificates.models import Certificate

    with transaction.atomic():
        Certificate.objects.filter(assignment=assignment).update(assignment=None)
        ExamAttempt.objects.filter(assignment=assignment, status='in_progress').update(status='abandoned')

        assignment.status = 'assigned'
        assignment.started_at = None
        assignment.content_completed_at = None
        assignment.completed_at = None
        assignment.exam_passed_at = None
        assignment.certificate_issued_at = None
        assignment.exam_attempts = 0
        assignment.last_exam_score = None
        assignment.total_time_spent = 0
        assignment.save()

        assignment.content_progress.all().delete()
        build_content_progress(assignment)
        assignment.training.completed_by.remove(assignment.user)

        create_notification(
            assignment.user,
            'general',
            'Training Reset',
            f'Your progress on "{assignment.training.title}" has been reset',
            link=assignment_link(assignment),
            related_type='TrainingAssignment',
            related_id=assignment.id,
        )
        create_audit_log(user=reset_by, action='reset', model_name='TrainingAssignment', object_id=assignment.id,
                         object_reference=assignment.training.training_number)
    logger.info(f"Assignment {assignment.id} reset by {reset_by.email}")
    return assignment


def assignment_stats(assignments):
    """Counts per status plus assignments past due that are still open"""
    counts = {status: 0 for status, _ in TrainingAssignment.STATUS_CHOICES}
    for row in assignments.values('status').annotate(count=Count('id')):
        counts[row['status']] = row['count']
    overdue = assignments.filter(due_date__lt=timezone.now()).exclude(status__in=['completed', 'overdue']).count()
    return {
        'by_status': counts,
        'overdue': overdue,
        'total': sum(counts.values()),
    }


def send_due_reminders(days=3, now=None):
    """
    Remind users of trainings due within `days`, at most once a day, and move
    past-due assignments still in the content stage to overdue. Returns (reminded, overdue) counts.
    """
    now = now or timezone.now()
    reminded = overdue = 0

    due_soon = TrainingAssignment.objects.filter(
        status__in=UNFINISHED_STATUSES,
        due_date__gte=now,
        due_date__lte=now + timedelta(days=days),
    ).filter(
        Q(last_reminder_at__isnull=True) | Q(last_reminder_at__lt=now - timedelta(days=1))
    ).select_related('training', 'user')

    for assignment in due_soon:
        days_left = max((assignment.due_date - now).days, 0)
        with transaction.atomic():
            create_notification(
                assignment.user,
                'training_reminder',
                'Training Reminder',
                f'"{assignment.training.title}" is due in {days_left} day{"s" if days_left != 1 else ""}',
                link=assignment_link(assignment),
                related_type='TrainingAssignment',
                related_id=assignment.id,
                email_template='training_reminder',
                email_context={
                    'training_title': assignment.training.title,
                    'due_date': format_email_date(assignment.due_date),
                    'days_left': days_left,
                },
            )
            assignment.last_reminder_at = now
            assignment.save(update_fields=['last_reminder_at', 'updated_at'])
        reminded += 1

    # Assignments past the content stage stay open for their exam
    past_due = TrainingAssignment.objects.filter(
        status__in=CONTENT_STAGE_STATUSES, content_completed_at__isnull=True, due_date__lt=now
    ).select_related('training', 'user')

    for assignment in past_due:
        with transaction.atomic():
            assignment.status = 'overdue'
            assignment.save(update_fields=['status', 'updated_at'])
            create_notification(
                assignment.user,
                'training_overdue',
                'Training Overdue',
                f'"{assignment.training.title}" is past its due date',
                link=assignment_link(assignment),
                related_type='TrainingAssignment',
                related_id=assignment.id,
                email_template='training_overdue',
                email_context={
                    'training_title': assignment.training.title,
                    'due_date': format_email_date(assignment.due_date),
                },
            )
        overdue += 1

    logger.info(f"Training reminders: {reminded} sent, {overdue} assignments marked overdue")
    return reminded, overdue
