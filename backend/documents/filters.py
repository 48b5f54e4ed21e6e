import django_filters
from .models import Document


class DocumentFilter(django_filters.FilterSet):
    """Filter for Document list"""
    status = django_filters.CharFilter(field_name='status')
    type = django_filters.CharFilter(field_name='document_type')
    search = django_filters.CharFilter(field_name='title', lookup_expr='icontains')
    tag = django_filters.CharFilter(method='filter_tag', label='Tag')

    class Meta:
        model = Document
        fields = ['status', 'type', 'search', 'tag']

    def filter_tag(self, queryset, name, value):
        """Tags live in a JSON list; match in Python for portability across databases"""
        if not value:
            return queryset
        ids = [pk for pk, tags in queryset.values_list('pk', 'tags') if value in (tags or [])]
        return queryset.filter(pk__in=ids)
