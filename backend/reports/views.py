import logging
from datetime import datetime, timedelta
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Count
from django.db.models.functions import TruncMonth
from django.utils import timezone

from backend.core.model_cache import (
    get_dashboard_cache_key, get_compliance_cache_key, get_cached_report, cache_report,
    DASHBOARD_CACHE_TTL, COMPLIANCE_CACHE_TTL
)
from backend.core.permissions import TenantIsolation, require_permission
from backend.core.utils import round_half_up
from backend.documents.models import Document
from backend.quality.models import ChangeControl, Deviation, CAPA, Audit
from backend.training.models import Training

logger = logging.getLogger('backend.reports')

# Report module -> (model, field that dates its records)
REPORT_MODULES = {
    'documents': (Document, 'created_at'),
    'change-controls': (ChangeControl, 'created_at'),
    'deviations': (Deviation, 'occurrence_date'),
    'capas': (CAPA, 'created_at'),
    'audits': (Audit, 'scheduled_date'),
    'trainings': (Training, 'scheduled_date'),
}

DASHBOARD_MODULES = {
    'documents': Document,
    'change_controls': ChangeControl,
    'deviations': Deviation,
    'capas': CAPA,
    'audits': Audit,
    'trainings': Training,
}


def status_breakdown(queryset):
    return {row['status']: row['count'] for row in queryset.values('status').annotate(count=Count('id')).order_by()}


def completion_rate(done, total):
    """Percentage of records done; an empty module counts as fully compliant"""
    if not total:
        return 100
    return done / total * 100


def build_dashboard(tenant_id):
    now = timezone.now()
    data = {}
    for key, model in DASHBOARD_MODULES.items():
        records = model.objects.filter(tenant_id=tenant_id)
        data[key] = {
            'total': records.count(),
            'by_status': status_breakdown(records),
        }

    data['alerts'] = {
        'open_deviations': Deviation.objects.filter(tenant_id=tenant_id).exclude(
            status__in=['closed', 'rejected']).count(),
        'open_capas': CAPA.objects.filter(tenant_id=tenant_id).exclude(
            status__in=['completed', 'cancelled']).count(),
        'overdue_trainings': Training.objects.filter(tenant_id=tenant_id, due_date__lt=now).exclude(
            status__in=['completed', 'cancelled']).count(),
        'upcoming_audits': Audit.objects.filter(
            tenant_id=tenant_id,
            status='planned',
            scheduled_date__gte=now.date(),
            scheduled_date__lte=(now + timedelta(days=30)).date(),
        ).count(),
    }
    data['generated_at'] = now.isoformat()
    return data


def build_compliance(tenant_id):
    deviations = Deviation.objects.filter(tenant_id=tenant_id)
    capas = CAPA.objects.filter(tenant_id=tenant_id)
    trainings = Training.objects.filter(tenant_id=tenant_id)
    audits = Audit.objects.filter(tenant_id=tenant_id)

    raw_rates = {
        'deviation_closure_rate': completion_rate(deviations.filter(status='closed').count(), deviations.count()),
        'capa_completion_rate': completion_rate(capas.filter(status='completed').count(), capas.count()),
        'training_completion_rate': completion_rate(trainings.filter(status='completed').count(), trainings.count()),
        'audit_completion_rate': completion_rate(audits.filter(status__in=['completed', 'closed']).count(), audits.count()),
    }
    return {
        **{name: round_half_up(rate, 1) for name, rate in raw_rates.items()},
        'overall_score': round_half_up(sum(raw_rates.values()) / len(raw_rates)),
        'totals': {
            'deviations': deviations.count(),
            'capas': capas.count(),
            'trainings': trainings.count(),
            'audits': audits.count(),
        },
        'generated_at': timezone.now().isoformat(),
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated, TenantIsolation])
def dashboard(request):
    """Record counts per module and open-item alerts"""
    tenant_id = request.user.tenant_id
    cache_key = get_dashboard_cache_key(tenant_id)
    data = get_cached_report(cache_key)
    if data is None:
        try:
            data = build_dashboard(tenant_id)
        except Exception as e:
            logger.error(f"Failed to build dashboard for tenant {tenant_id}: {str(e)}", exc_info=True)
            return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        cache_report(cache_key, data, DASHBOARD_CACHE_TTL)
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, TenantIsolation, require_permission('can_view_reports')])
def compliance(request):
    """Closure and completion rates with an overall compliance score"""
    tenant_id = request.user.tenant_id
    cache_key = get_compliance_cache_key(tenant_id)
    data = get_cached_report(cache_key)
    if data is None:
        try:
            data = build_compliance(tenant_id)
        except Exception as e:
            logger.error(f"Failed to build compliance report for tenant {tenant_id}: {str(e)}", exc_info=True)
            return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        cache_report(cache_key, data, COMPLIANCE_CACHE_TTL)
    return Response(data)


def parse_date(value):
    return datetime.strptime(value, '%Y-%m-%d').date()


def recent_item(record, date_field):
    return {
        'id': record.id,
        'number': getattr(record, 'number', None),
        'title': record.title,
        'status': record.status,
        'date': getattr(record, date_field),
        'created_at': record.created_at,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated, TenantIsolation, require_permission('can_view_reports')])
def module_report(request, module):
    """Status and monthly breakdown of one module"""
    if module not in REPORT_MODULES:
        return Response({'error': 'Invalid module specified'}, status=status.HTTP_400_BAD_REQUEST)

    model, date_field = REPORT_MODULES[module]
    records = model.objects.filter(tenant_id=request.user.tenant_id)
    is_datetime = model._meta.get_field(date_field).get_internal_type() == 'DateTimeField'
    date_lookup = f'{date_field}__date' if is_datetime else date_field

    try:
        start_date = request.query_params.get('start_date')
        if start_date:
            records = records.filter(**{f'{date_lookup}__gte': parse_date(start_date)})
        end_date = request.query_params.get('end_date')
        if end_date:
            records = records.filter(**{f'{date_lookup}__lte': parse_date(end_date)})
    except ValueError:
        return Response({'error': 'Dates must be formatted as YYYY-MM-DD'}, status=status.HTTP_400_BAD_REQUEST)

    status_filter = request.query_params.get('status')
    if status_filter:
        records = records.filter(status=status_filter)

    year_ago = (timezone.now() - timedelta(days=365)).date()
    by_month = (
        records.filter(**{f'{date_lookup}__gte': year_ago})
        .annotate(month=TruncMonth(date_field))
        .values('month')
        .annotate(count=Count('id'))
        .order_by('month')
    )

    recent = records.order_by('-created_at')[:10]
    return Response({
        'module': module,
        'total_count': records.count(),
        'by_status': status_breakdown(records),
        'by_month': [
            {'month': row['month'].strftime('%Y-%m'), 'count': row['count']}
            for row in by_month if row['month'] is not None
        ],
        'recent_items': [recent_item(record, date_field) for record in recent],
    })
