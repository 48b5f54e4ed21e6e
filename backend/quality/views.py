import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from backend.core.permissions import TenantIsolation
from backend.core.utils import create_audit_log, generate_record_number, paginated_response, diff_changes
from .filters import ChangeControlFilter, DeviationFilter, CAPAFilter, AuditFilter
from .models import ChangeControl, Deviation, CAPA, Audit
from .serializers import ChangeControlSerializer, DeviationSerializer, CAPASerializer, AuditSerializer

logger = logging.getLogger('backend.quality')


class RecordResource:
    """
    List/create/detail behaviour shared by the numbered quality records.
    Subclasses name the model, serializer and filter, and may hook creation
    and status changes.
    """
    model = None
    serializer_class = None
    filterset_class = None
    label = None
    # status -> field stamped the first time a record reaches it
    completion_stamps = {}
    select_related = ('created_by',)

    def queryset(self, request):
        return self.model.objects.filter(tenant_id=request.user.tenant_id).select_related(*self.select_related)

    def create_kwargs(self, request):
        return {}

    def after_create(self, request, record):
        pass

    def stamp_completion(self, record):
        field = self.completion_stamps.get(record.status)
        if field and getattr(record, field) is None:
            value = timezone.now()
            if record._meta.get_field(field).get_internal_type() == 'DateField':
                value = value.date()
            setattr(record, field, value)
            record.save(update_fields=[field])

    def list(self, request):
        filterset = self.filterset_class(request.query_params, queryset=self.queryset(request))
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        return paginated_response(request, filterset.qs, self.serializer_class)

    def create(self, request):
        serializer = self.serializer_class(data=request.data, context={'request': request})
        if not serializer.is_valid():
            logger.warning(f"{self.label} creation validation failed: {serializer.errors}")
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        with transaction.atomic():
            number = generate_record_number(self.model, request.user.tenant, self.model.NUMBER_PREFIX,
                                            self.model.NUMBER_FIELD)
            record = serializer.save(
                tenant=request.user.tenant,
                created_by=request.user,
                updated_by=request.user,
                **{self.model.NUMBER_FIELD: number},
                **self.create_kwargs(request),
            )
            self.stamp_completion(record)
            self.after_create(request, record)

        create_audit_log(request, 'create', self.model.__name__, record.id, object_reference=record.number)
        logger.info(f"{self.label} {record.number} created by {request.user.email}")
        return Response(self.serializer_class(record).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, record):
        return Response(self.serializer_class(record).data)

    def update(self, request, record, partial):
        before = self.serializer_class(record).data
        serializer = self.serializer_class(record, data=request.data, partial=partial, context={'request': request})
        if not serializer.is_valid():
            logger.warning(f"{self.label} update validation failed: {serializer.errors}")
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        with transaction.atomic():
            record = serializer.save(updated_by=request.user)
            self.stamp_completion(record)

        after = self.serializer_class(record).data
        create_audit_log(request, 'update', self.model.__name__, record.id, object_reference=record.number,
                         changes=diff_changes(before, after))
        logger.info(f"{self.label} {record.number} updated by {request.user.email}")
        return Response(after)

    def destroy(self, request, record):
        number, pk = record.number, record.pk
        record.delete()
        create_audit_log(request, 'delete', self.model.__name__, pk, object_reference=number)
        logger.info(f"{self.label} {number} deleted by {request.user.email}")
        return Response({'message': f'{self.label} deleted successfully'})

    def dispatch_list(self, request):
        try:
            if request.method == 'GET':
                return self.list(request)
            return self.create(request)
        except Exception as e:
            logger.error(f"Unexpected error in {self.label} list/create: {str(e)}", exc_info=True)
            return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    def dispatch_detail(self, request, pk):
        record = get_object_or_404(self.queryset(request), pk=pk)
        try:
            if request.method == 'GET':
                return self.retrieve(request, record)
            if request.method in ('PUT', 'PATCH'):
                return self.update(request, record, partial=request.method == 'PATCH')
            return self.destroy(request, record)
        except Exception as e:
            logger.error(f"Unexpected error in {self.label} detail for pk {pk}: {str(e)}", exc_info=True)
            return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


class ChangeControlResource(RecordResource):
    model = ChangeControl
    serializer_class = ChangeControlSerializer
    filterset_class = ChangeControlFilter
    label = 'Change control'
    completion_stamps = {'completed': 'completion_date'}

    def create_kwargs(self, request):
        # Requestor defaults to the creator
        if request.data.get('requestor'):
            return {}
        return {'requestor': request.user}


class DeviationResource(RecordResource):
    model = Deviation
    serializer_class = DeviationSerializer
    filterset_class = DeviationFilter
    label = 'Deviation'
    completion_stamps = {'closed': 'closure_date'}
    select_related = ('created_by', 'detected_by')

    def create_kwargs(self, request):
        return {'status': 'open', 'detected_by': request.user}


class CAPAResource(RecordResource):
    model = CAPA
    serializer_class = CAPASerializer
    filterset_class = CAPAFilter
    label = 'CAPA'
    completion_stamps = {'completed': 'completion_date'}

    def after_create(self, request, record):
        """Link the originating deviation to this CAPA"""
        deviation = record.deviation
        if deviation is None:
            return
        deviation.capa = record
        if deviation.status in ('open', 'investigation', 'capa_required'):
            deviation.status = 'capa_in_progress'
        deviation.updated_by = request.user
        deviation.save(update_fields=['capa', 'status', 'updated_by', 'updated_at'])
        logger.info(f"Deviation {deviation.deviation_number} linked to {record.capa_number}")


class AuditResource(RecordResource):
    model = Audit
    serializer_class = AuditSerializer
    filterset_class = AuditFilter
    label = 'Audit'
    completion_stamps = {'completed': 'completion_date', 'closed': 'completion_date'}
    select_related = ('created_by', 'lead_auditor')

    def queryset(self, request):
        return super().queryset(request).prefetch_related('audit_team')


change_controls = ChangeControlResource()
deviations = DeviationResource()
capas = CAPAResource()
audits = AuditResource()


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, TenantIsolation])
def change_control_list_create(request):
    """List change controls or raise a new change request"""
    return change_controls.dispatch_list(request)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, TenantIsolation])
def change_control_detail(request, pk):
    return change_controls.dispatch_detail(request, pk)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, TenantIsolation])
def deviation_list_create(request):
    """List deviations or report a new one (always opened as 'open')"""
    return deviations.dispatch_list(request)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, TenantIsolation])
def deviation_detail(request, pk):
    return deviations.dispatch_detail(request, pk)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, TenantIsolation])
def capa_list_create(request):
    """List CAPAs or open a new CAPA"""
    return capas.dispatch_list(request)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, TenantIsolation])
def capa_detail(request, pk):
    return capas.dispatch_detail(request, pk)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, TenantIsolation])
def audit_list_create(request):
    """List audits or schedule a new audit"""
    return audits.dispatch_list(request)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, TenantIsolation])
def audit_detail(request, pk):
    return audits.dispatch_detail(request, pk)
