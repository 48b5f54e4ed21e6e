import logging
import os
import uuid
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.files.storage import default_storage
from django.db import transaction
from django.db.models import Max
from django.shortcuts import get_object_or_404
from backend.certificates.serializers import CertificateSerializer
from backend.certificates.utils import issue_certificate
from backend.core.permissions import TenantIsolation, require_permission
from backend.core.utils import create_audit_log, generate_record_number, paginated_response, diff_changes
from .filters import TrainingFilter, AssignmentFilter
from .models import Training, TrainingContent, TrainingAssignment, ContentProgress
from .serializers import (
    TrainingSerializer, TrainingContentSerializer, TrainingAssignmentSerializer,
    AssignmentDetailSerializer, AssignRequestSerializer
)
from .workflow import (
    assign_training, start_assignment, complete_content, reset_assignment, assignment_stats,
    add_content_to_assignments
)

logger = logging.getLogger('backend.training')

User = get_user_model()

ALLOWED_MIME_TYPES = {
    'video/mp4', 'video/webm', 'video/ogg', 'video/quicktime',
    'application/pdf',
    'application/vnd.ms-powerpoint',
    'application/vnd.openxmlformats-officedocument.presentationml.presentation',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'application/vnd.ms-excel',
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'image/jpeg', 'image/png', 'image/gif', 'image/webp',
    'application/zip',
}


def get_content_type(mime_type):
    """Map an uploaded file's MIME type to a content type"""
    if mime_type.startswith('video/'):
        return 'video'
    if mime_type == 'application/pdf':
        return 'pdf'
    if 'powerpoint' in mime_type or 'presentation' in mime_type:
        return 'ppt'
    if 'word' in mime_type or 'document' in mime_type:
        return 'document'
    if 'zip' in mime_type:
        return 'scorm'
    return 'document'


def manage_forbidden(request, flag):
    if request.user.has_qms_permission(flag):
        return None
    logger.warning(f"User {request.user.email} denied {request.method} {request.path}: missing {flag}")
    return Response({'error': f'You do not have permission: {flag}'}, status=status.HTTP_403_FORBIDDEN)


def tenant_trainings(request):
    return Training.objects.filter(tenant_id=request.user.tenant_id)


def next_content_order(training):
    highest = training.contents.aggregate(highest=Max('order'))['highest']
    return 0 if highest is None else highest + 1


# Trainings
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, TenantIsolation])
def training_list_create(request):
    """List trainings or create a new training (create requires can_manage_trainings)"""
    try:
        if request.method == 'GET':
            trainings = tenant_trainings(request).select_related('created_by')
            filterset = TrainingFilter(request.query_params, queryset=trainings)
            if not filterset.is_valid():
                return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
            return paginated_response(request, filterset.qs, TrainingSerializer)

        forbidden = manage_forbidden(request, 'can_manage_trainings')
        if forbidden:
            return forbidden

        serializer = TrainingSerializer(data=request.data, context={'request': request})
        if not serializer.is_valid():
            logger.warning(f"Training creation validation failed: {serializer.errors}")
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        with transaction.atomic():
            number = generate_record_number(Training, request.user.tenant, Training.NUMBER_PREFIX, Training.NUMBER_FIELD)
            training = serializer.save(
                tenant=request.user.tenant,
                training_number=number,
                created_by=request.user,
                updated_by=request.user,
            )
        create_audit_log(request, 'create', 'Training', training.id, object_reference=training.training_number)
        logger.info(f"Training {training.training_number} created by {request.user.email}")
        return Response(TrainingSerializer(training).data, status=status.HTTP_201_CREATED)
    except Exception as e:
        logger.error(f"Unexpected error in training_list_create: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, TenantIsolation])
def training_detail(request, pk):
    """Retrieve, update or delete a training (writes require can_manage_trainings)"""
    training = get_object_or_404(tenant_trainings(request), pk=pk)
    try:
        if request.method == 'GET':
            data = TrainingSerializer(training).data
            data['contents'] = TrainingContentSerializer(training.contents.all(), many=True).data
            return Response(data)

        forbidden = manage_forbidden(request, 'can_manage_trainings')
        if forbidden:
            return forbidden

        if request.method in ('PUT', 'PATCH'):
            before = TrainingSerializer(training).data
            serializer = TrainingSerializer(training, data=request.data, partial=request.method == 'PATCH',
                                            context={'request': request})
            if not serializer.is_valid():
                logger.warning(f"Training update validation failed: {serializer.errors}")
                return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
            training = serializer.save(updated_by=request.user)
            after = TrainingSerializer(training).data
            create_audit_log(request, 'update', 'Training', training.id, object_reference=training.training_number,
                             changes=diff_changes(before, after))
            logger.info(f"Training {training.training_number} updated by {request.user.email}")
            return Response(after)

        number = training.training_number
        training.delete()
        create_audit_log(request, 'delete', 'Training', pk, object_reference=number)
        logger.info(f"Training {number} deleted by {request.user.email}")
        return Response({'message': 'Training deleted successfully'})
    except Exception as e:
        logger.error(f"Unexpected error in training_detail for pk {pk}: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


# Training content
@api_view(['GET'])
@permission_classes([IsAuthenticated, TenantIsolation, require_permission('can_manage_trainings')])
def content_list(request, training_id):
    """Content items of a training in display order"""
    training = get_object_or_404(tenant_trainings(request), pk=training_id)
    return Response(TrainingContentSerializer(training.contents.all(), many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, TenantIsolation, require_permission('can_manage_trainings')])
@parser_classes([MultiPartParser, FormParser])
def content_upload(request, training_id):
    """Upload a file as a new content item"""
    training = get_object_or_404(tenant_trainings(request), pk=training_id)
    upload = request.FILES.get('file')
    if upload is None:
        return Response({'error': 'No file uploaded'}, status=status.HTTP_400_BAD_REQUEST)

    mime_type = upload.content_type or 'application/octet-stream'
    if mime_type not in ALLOWED_MIME_TYPES:
        return Response({'error': f'File type {mime_type} is not allowed'}, status=status.HTTP_400_BAD_REQUEST)

    max_bytes = settings.CONTENT_MAX_UPLOAD_MB * 1024 * 1024
    if upload.size > max_bytes:
        return Response({'error': f'File exceeds the {settings.CONTENT_MAX_UPLOAD_MB} MB upload limit'},
                        status=status.HTTP_400_BAD_REQUEST)

    try:
        duration = int(request.data.get('duration') or 0)
    except (TypeError, ValueError):
        return Response({'error': 'Duration must be a number'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        extension = os.path.splitext(upload.name)[1].lower()
        path = default_storage.save(
            f'training-content/{request.user.tenant_id}/{training.id}/{uuid.uuid4().hex}{extension}', upload
        )
        with transaction.atomic():
            content = TrainingContent.objects.create(
                tenant=training.tenant,
                training=training,
                title=request.data.get('title') or os.path.splitext(upload.name)[0],
                description=request.data.get('description', ''),
                content_type=get_content_type(mime_type),
                content_url=default_storage.url(path),
                file_name=upload.name,
                file_size=upload.size,
                mime_type=mime_type,
                duration=duration,
                order=next_content_order(training),
                is_required=str(request.data.get('is_required', 'true')).lower() != 'false',
                created_by=request.user,
            )
            add_content_to_assignments(content)
        logger.info(f"Content '{content.title}' uploaded to {training.training_number} by {request.user.email}")
        return Response(TrainingContentSerializer(content).data, status=status.HTTP_201_CREATED)
    except Exception as e:
        logger.error(f"Content upload failed for training {training_id}: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['POST'])
@permission_classes([IsAuthenticated, TenantIsolation, require_permission('can_manage_trainings')])
def content_link(request, training_id):
    """Add an external link as a content item"""
    training = get_object_or_404(tenant_trainings(request), pk=training_id)
    if not request.data.get('content_url'):
        return Response({'error': 'Content URL is required'}, status=status.HTTP_400_BAD_REQUEST)

    data = request.data.copy()
    data['content_type'] = 'link'
    if not data.get('title'):
        data['title'] = data['content_url']
    serializer = TrainingContentSerializer(data=data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        content = serializer.save(
            tenant=training.tenant,
            training=training,
            order=next_content_order(training),
            created_by=request.user,
        )
        add_content_to_assignments(content)
    logger.info(f"Link '{content.title}' added to {training.training_number} by {request.user.email}")
    return Response(TrainingContentSerializer(content).data, status=status.HTTP_201_CREATED)


@api_view(['PUT', 'PATCH'])
@permission_classes([IsAuthenticated, TenantIsolation, require_permission('can_manage_trainings')])
def content_reorder(request, training_id):
    """Reorder content items; content_ids lists the ids in their new order"""
    training = get_object_or_404(tenant_trainings(request), pk=training_id)
    content_ids = request.data.get('content_ids')
    if not isinstance(content_ids, list):
        return Response({'error': 'content_ids must be a list'}, status=status.HTTP_400_BAD_REQUEST)

    contents = {content.id: content for content in training.contents.all()}
    with transaction.atomic():
        for order, content_id in enumerate(content_ids):
            content = contents.get(content_id)
            if content is not None and content.order != order:
                content.order = order
                content.save(update_fields=['order', 'updated_at'])
    return Response(TrainingContentSerializer(training.contents.all(), many=True).data)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, TenantIsolation, require_permission('can_manage_trainings')])
def content_detail(request, pk):
    """Retrieve, update or delete a content item"""
    content = get_object_or_404(TrainingContent, pk=pk, tenant_id=request.user.tenant_id)

    if request.method == 'GET':
        return Response(TrainingContentSerializer(content).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = TrainingContentSerializer(content, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        content = serializer.save()
        return Response(TrainingContentSerializer(content).data)

    training = content.training
    with transaction.atomic():
        content.delete()
        # Close the gap left in the ordering
        for order, remaining in enumerate(training.contents.all()):
            if remaining.order != order:
                remaining.order = order
                remaining.save(update_fields=['order', 'updated_at'])
    logger.info(f"Content {pk} removed from {training.training_number} by {request.user.email}")
    return Response({'message': 'Content deleted successfully'})


# Assignments: the current user's
def my_assignments_queryset(request):
    return TrainingAssignment.objects.filter(
        user=request.user, tenant_id=request.user.tenant_id
    ).select_related('training', 'user', 'assigned_by')


@api_view(['GET'])
@permission_classes([IsAuthenticated, TenantIsolation])
def my_assignments(request):
    """Trainings assigned to the current user"""
    assignments = my_assignments_queryset(request)
    status_filter = request.query_params.get('status')
    if status_filter:
        assignments = assignments.filter(status=status_filter)
    return Response(TrainingAssignmentSerializer(assignments, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, TenantIsolation])
def my_assignment_detail(request, pk):
    """One of the current user's assignments with content and progress"""
    assignment = get_object_or_404(
        my_assignments_queryset(request).prefetch_related('content_progress__content'), pk=pk
    )
    return Response(AssignmentDetailSerializer(assignment).data)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, TenantIsolation])
def start_my_assignment(request, pk):
    assignment = my_assignments_queryset(request).filter(pk=pk, status='assigned').first()
    if assignment is None:
        return Response({'error': 'Assignment not found or already started'}, status=status.HTTP_404_NOT_FOUND)
    try:
        start_assignment(assignment)
        logger.info(f"Assignment {assignment.id} started by {request.user.email}")
        return Response(AssignmentDetailSerializer(assignment).data)
    except Exception as e:
        logger.error(f"Failed to start assignment {pk}: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, TenantIsolation])
def complete_my_content(request, pk, content_id):
    """Mark a content item complete and advance the assignment when the content stage is done"""
    assignment = get_object_or_404(my_assignments_queryset(request), pk=pk)
    try:
        complete_content(assignment, content_id, request.data.get('time_spent', 0))
    except ContentProgress.DoesNotExist:
        return Response({'error': 'Content not found in assignment'}, status=status.HTTP_404_NOT_FOUND)
    except (TypeError, ValueError):
        return Response({'error': 'time_spent must be a number'}, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Failed to complete content {content_id} of assignment {pk}: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    assignment = my_assignments_queryset(request).prefetch_related('content_progress__content').get(pk=pk)
    return Response(AssignmentDetailSerializer(assignment).data)


# Assignments: managers
@api_view(['POST'])
@permission_classes([IsAuthenticated, TenantIsolation, require_permission('can_assign_trainings')])
def assign(request):
    """Assign a training to users, or to every active user in the given roles"""
    serializer = AssignRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    training = Training.objects.filter(pk=data['training_id'], tenant_id=request.user.tenant_id).first()
    if training is None:
        return Response({'error': 'Training not found'}, status=status.HTTP_404_NOT_FOUND)

    errors = []
    tenant_users = User.objects.filter(tenant_id=request.user.tenant_id)
    if data['role_filter']:
        users = list(tenant_users.filter(role__in=data['role_filter'], is_active=True))
    elif data['user_ids']:
        found = {user.id: user for user in tenant_users.filter(pk__in=data['user_ids'])}
        users = [found[user_id] for user_id in dict.fromkeys(data['user_ids']) if user_id in found]
        errors.extend({'user_id': user_id, 'error': 'User not found'}
                      for user_id in dict.fromkeys(data['user_ids']) if user_id not in found)
    else:
        return Response({'error': 'Please specify users or roles to assign'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        assigned, assign_errors = assign_training(training, users, request.user, data.get('due_date'))
    except Exception as e:
        logger.error(f"Failed to assign training {training.id}: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Response({
        'assigned': TrainingAssignmentSerializer(assigned, many=True).data,
        'errors': errors + assign_errors,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, TenantIsolation, require_permission('can_assign_trainings')])
def assignment_list(request):
    """All tenant assignments, filterable by training, status and user"""
    assignments = TrainingAssignment.objects.filter(tenant_id=request.user.tenant_id).select_related(
        'training', 'user', 'assigned_by'
    )
    filterset = AssignmentFilter(request.query_params, queryset=assignments)
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    return paginated_response(request, filterset.qs, TrainingAssignmentSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated, TenantIsolation])
def assignment_statistics(request):
    assignments = TrainingAssignment.objects.filter(tenant_id=request.user.tenant_id)
    training_id = request.query_params.get('training')
    if training_id:
        if not training_id.isdigit():
            return Response({'error': 'training must be a numeric id'}, status=status.HTTP_400_BAD_REQUEST)
        assignments = assignments.filter(training_id=training_id)
    return Response(assignment_stats(assignments))


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, TenantIsolation, require_permission('can_assign_trainings')])
def reset(request, pk):
    """Reset an assignment so the user takes the training again"""
    assignment = get_object_or_404(TrainingAssignment.objects.select_related('training', 'user'),
                                   pk=pk, tenant_id=request.user.tenant_id)
    try:
        reset_assignment(assignment, request.user)
        return Response(TrainingAssignmentSerializer(assignment).data)
    except Exception as e:
        logger.error(f"Failed to reset assignment {pk}: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['POST'])
@permission_classes([IsAuthenticated, TenantIsolation, require_permission('can_issue_certificates')])
def issue_assignment_certificate(request, pk):
    """Issue a certificate for an assignment completed without one"""
    assignment = get_object_or_404(TrainingAssignment.objects.select_related('training', 'user'),
                                   pk=pk, tenant_id=request.user.tenant_id)
    if assignment.status != 'completed':
        return Response({'error': 'Assignment is not completed yet'}, status=status.HTTP_400_BAD_REQUEST)
    if getattr(assignment, 'certificate', None) is not None:
        return Response({'error': 'Certificate already issued for this assignment'}, status=status.HTTP_400_BAD_REQUEST)
    if not assignment.training.certificate_enabled:
        return Response({'error': 'Certificates are disabled for this training'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        with transaction.atomic():
            certificate = issue_certificate(assignment, exam_score=assignment.best_exam_score, issued_by=request.user)
        return Response(CertificateSerializer(certificate).data, status=status.HTTP_201_CREATED)
    except Exception as e:
        logger.error(f"Failed to issue certificate for assignment {pk}: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
