import django_filters

from .models import Request


class RequestFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name='status')
    type = django_filters.CharFilter(field_name='type')
    approver = django_filters.NumberFilter(field_name='selected_approver_id')

    class Meta:
        model = Request
        fields = ['status', 'type', 'approver']
