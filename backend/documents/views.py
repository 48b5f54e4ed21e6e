import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.utils import timezone
from backend.core.permissions import TenantIsolation
from backend.core.utils import create_audit_log, paginated_response, diff_changes
from .filters import DocumentFilter
from .models import Document
from .serializers import DocumentSerializer

logger = logging.getLogger('backend.documents')


def stamp_approval(document, user):
    """Record who approved a document the first time it reaches 'approved'"""
    if document.status == 'approved' and document.approved_at is None:
        document.approved_by = user
        document.approved_at = timezone.now()
        document.save(update_fields=['approved_by', 'approved_at'])
        create_audit_log(user=user, action='approve', model_name='Document', object_id=document.id,
                         object_reference=document.title, changes={'version': document.version})
        logger.info(f"Document {document.id} approved by {user.email}")


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, TenantIsolation])
def document_list_create(request):
    """List documents or create a new document (create requires can_manage_documents)"""
    try:
        if request.method == 'GET':
            documents = Document.objects.filter(tenant_id=request.user.tenant_id).select_related(
                'created_by', 'updated_by', 'approved_by'
            )
            filterset = DocumentFilter(request.query_params, queryset=documents)
            if not filterset.is_valid():
                return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
            return paginated_response(request, filterset.qs, DocumentSerializer)

        if not request.user.has_qms_permission('can_manage_documents'):
            logger.warning(f"User {request.user.email} attempted to create a document without permission")
            return Response({'error': 'You do not have permission: can_manage_documents'}, status=status.HTTP_403_FORBIDDEN)

        if not request.data.get('title') or not request.data.get('document_type'):
            return Response({'error': 'Title and document type are required'}, status=status.HTTP_400_BAD_REQUEST)

        serializer = DocumentSerializer(data=request.data, context={'request': request})
        if serializer.is_valid():
            document = serializer.save(
                tenant=request.user.tenant,
                created_by=request.user,
                updated_by=request.user,
            )
            stamp_approval(document, request.user)
            create_audit_log(request, 'create', 'Document', document.id, object_reference=document.title)
            logger.info(f"Document '{document.title}' created by {request.user.email}")
            return Response(DocumentSerializer(document).data, status=status.HTTP_201_CREATED)

        logger.warning(f"Document creation validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Unexpected error in document_list_create: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, TenantIsolation])
def document_detail(request, pk):
    """Retrieve, update or delete a document (writes require can_manage_documents)"""
    document = get_object_or_404(Document, pk=pk, tenant_id=request.user.tenant_id)
    try:
        if request.method == 'GET':
            return Response(DocumentSerializer(document).data)

        if not request.user.has_qms_permission('can_manage_documents'):
            logger.warning(f"User {request.user.email} attempted to modify document {pk} without permission")
            return Response({'error': 'You do not have permission: can_manage_documents'}, status=status.HTTP_403_FORBIDDEN)

        if request.method in ('PUT', 'PATCH'):
            before = DocumentSerializer(document).data
            serializer = DocumentSerializer(document, data=request.data, partial=request.method == 'PATCH',
                                            context={'request': request})
            if serializer.is_valid():
                document = serializer.save(updated_by=request.user)
                stamp_approval(document, request.user)
                after = DocumentSerializer(document).data
                create_audit_log(request, 'update', 'Document', document.id, object_reference=document.title,
                                 changes=diff_changes(before, after))
                logger.info(f"Document {pk} updated by {request.user.email}")
                return Response(after)
            logger.warning(f"Document update validation failed: {serializer.errors}")
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        # DELETE
        title = document.title
        document.delete()
        create_audit_log(request, 'delete', 'Document', pk, object_reference=title)
        logger.info(f"Document {pk} ({title}) deleted by {request.user.email}")
        return Response({'message': 'Document deleted successfully'})
    except Exception as e:
        logger.error(f"Unexpected error in document_detail for pk {pk}: {str(e)}", exc_info=True)
        return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
