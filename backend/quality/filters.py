import django_filters
from .models import ChangeControl, Deviation, CAPA, Audit


class ChangeControlFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(field_name='title', lookup_expr='icontains')

    class Meta:
        model = ChangeControl
        fields = ['status', 'priority', 'change_type', 'search']


class DeviationFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(field_name='title', lookup_expr='icontains')
    assigned_to = django_filters.NumberFilter(field_name='assigned_to_id')

    class Meta:
        model = Deviation
        fields = ['status', 'severity', 'category', 'assigned_to', 'search']


class CAPAFilter(django_filters.FilterSet):
    type = django_filters.CharFilter(field_name='capa_type')
    search = django_filters.CharFilter(field_name='title', lookup_expr='icontains')
    assigned_to = django_filters.NumberFilter(field_name='assigned_to_id')

    class Meta:
        model = CAPA
        fields = ['status', 'priority', 'capa_type', 'type', 'source', 'assigned_to', 'search']


class AuditFilter(django_filters.FilterSet):
    scheduled_from = django_filters.DateFilter(field_name='scheduled_date', lookup_expr='gte')
    scheduled_to = django_filters.DateFilter(field_name='scheduled_date', lookup_expr='lte')
    search = django_filters.CharFilter(field_name='title', lookup_expr='icontains')

    class Meta:
        model = Audit
        fields = ['status', 'audit_type', 'priority', 'scheduled_from', 'scheduled_to', 'search']
