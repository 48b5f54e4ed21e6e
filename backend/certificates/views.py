import logging
from datetime import timedelta
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.throttling import AnonRateThrottle
from django.core.exceptions import ValidationError
from django.db.models import Count, F
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from backend.core.permissions import TenantIsolation, require_permission, is_certificate_manager
from backend.core.utils import create_audit_log, paginated_response
from .certificate_generator import generate_certificate_pdf
from .filters import CertificateFilter
from .models import Certificate
from .serializers import CertificateSerializer

logger = logging.getLogger('backend.certificates')


def visible_certificates(request):
    """Certificate managers see the whole tenant, everyone else only their own"""
    certificates = Certificate.objects.filter(tenant_id=request.user.tenant_id)
    if not is_certificate_manager(request.user):
        certificates = certificates.filter(user=request.user)
    return certificates.select_related('user', 'training', 'tenant')


def record_download(certificate):
    Certificate.objects.filter(pk=certificate.pk).update(
        download_count=F('download_count') + 1, last_downloaded_at=timezone.now()
    )
    certificate.refresh_from_db(fields=['download_count', 'last_downloaded_at'])


@api_view(['GET'])
@permission_classes([AllowAny])
@throttle_classes([AnonRateThrottle])
def verify_certificate(request, code):
    """Public lookup of a certificate by its verification code"""
    try:
        certificate = Certificate.objects.select_related('tenant').filter(verification_code=code).first()
    except ValidationError:
        certificate = None
    if certificate is None:
        return Response({'valid': False, 'error': 'Certificate not found'}, status=status.HTTP_404_NOT_FOUND)

    is_expired = certificate.is_expired
    return Response({
        'valid': certificate.is_valid and not is_expired,
        'certificate_number': certificate.certificate_number,
        'user_name': certificate.user_name,
        'training_title': certificate.training_title,
        'issue_date': certificate.issue_date,
        'expiry_date': certificate.expiry_date,
        'is_expired': is_expired,
        'is_revoked': not certificate.is_valid,
        'organization': certificate.tenant.name,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, TenantIsolation])
def my_certificates(request):
    certificates = Certificate.objects.filter(
        user=request.user, tenant_id=request.user.tenant_id, is_valid=True
    ).order_by('-issue_date')
    return Response(CertificateSerializer(certificates, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, TenantIsolation, require_permission('can_issue_certificates')])
def certificate_list(request):
    """All tenant certificates, filterable by user, training and validity"""
    certificates = Certificate.objects.filter(tenant_id=request.user.tenant_id).select_related('user', 'revoked_by')
    filterset = CertificateFilter(request.query_params, queryset=certificates)
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    return paginated_response(request, filterset.qs, CertificateSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated, TenantIsolation, require_permission('can_view_reports')])
def certificate_stats(request):
    certificates = Certificate.objects.filter(tenant_id=request.user.tenant_id)
    now = timezone.now()
    valid = certificates.filter(is_valid=True)
    by_training = (
        certificates.values('training_id', 'training_title')
        .annotate(count=Count('id'))
        .order_by('-count', 'training_title')[:10]
    )
    return Response({
        'total': certificates.count(),
        'valid': valid.count(),
        'revoked': certificates.filter(is_valid=False).count(),
        'expiring_soon': valid.filter(expiry_date__gte=now, expiry_date__lte=now + timedelta(days=30)).count(),
        'expired': certificates.filter(expiry_date__lt=now).count(),
        'by_training': list(by_training),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, TenantIsolation])
def certificate_detail(request, pk):
    certificate = get_object_or_404(visible_certificates(request), pk=pk)
    return Response(CertificateSerializer(certificate).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, TenantIsolation])
def certificate_download(request, pk):
    """Certificate data with its template and organisation, for client-side rendering"""
    certificate = get_object_or_404(visible_certificates(request), pk=pk)
    record_download(certificate)
    return Response({
        'certificate': CertificateSerializer(certificate).data,
        'template': certificate.training.get_certificate_template(),
        'organization': {
            'name': certificate.tenant.name,
            'branding': certificate.tenant.branding,
        },
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, TenantIsolation])
def certificate_pdf(request, pk):
    """Rendered certificate as a PDF attachment"""
    certificate = get_object_or_404(visible_certificates(request), pk=pk)
    try:
        pdf = generate_certificate_pdf(certificate, certificate.training.get_certificate_template(), certificate.tenant.name)
    except Exception as e:
        logger.error(f"Failed to render certificate {certificate.certificate_number}: {str(e)}", exc_info=True)
        return Response({'error': 'Failed to generate certificate PDF'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    record_download(certificate)
    response = HttpResponse(pdf, content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="certificate-{certificate.certificate_number}.pdf"'
    return response


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, TenantIsolation, require_permission('can_issue_certificates')])
def revoke_certificate(request, pk):
    certificate = get_object_or_404(Certificate, pk=pk, tenant_id=request.user.tenant_id)
    if not certificate.is_valid:
        return Response({'error': 'Certificate is already revoked'}, status=status.HTTP_400_BAD_REQUEST)

    certificate.is_valid = False
    certificate.revoked_at = timezone.now()
    certificate.revoked_by = request.user
    certificate.revoke_reason = request.data.get('reason', '')
    certificate.save(update_fields=['is_valid', 'revoked_at', 'revoked_by', 'revoke_reason'])
    create_audit_log(request, 'certificate_revoke', 'Certificate', certificate.id,
                     object_reference=certificate.certificate_number, changes={'reason': certificate.revoke_reason})
    logger.info(f"Certificate {certificate.certificate_number} revoked by {request.user.email}")
    return Response(CertificateSerializer(certificate).data)
