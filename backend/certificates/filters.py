import django_filters
from .models import Certificate


class CertificateFilter(django_filters.FilterSet):
    user = django_filters.NumberFilter(field_name='user_id')
    training = django_filters.NumberFilter(field_name='training_id')
    is_valid = django_filters.BooleanFilter(field_name='is_valid')

    class Meta:
        model = Certificate
        fields = ['user', 'training', 'is_valid']
