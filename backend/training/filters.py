import django_filters
from .models import Training, TrainingAssignment


class TrainingFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(field_name='title', lookup_expr='icontains')

    class Meta:
        model = Training
        fields = ['status', 'category', 'training_type', 'priority', 'search']


class AssignmentFilter(django_filters.FilterSet):
    training = django_filters.NumberFilter(field_name='training_id')
    user = django_filters.NumberFilter(field_name='user_id')

    class Meta:
        model = TrainingAssignment
        fields = ['training', 'status', 'user']
