import django_filters
from .models import DeliveryRoute


class DeliveryRouteFilter(django_filters.FilterSet):
    """
    Filters for the route list.

    `start` and `end` describe a window: together they return the routes
    overlapping [start, end).
    """
    vehicle = django_filters.NumberFilter(field_name='vehicle_id', lookup_expr='exact')
    service_order = django_filters.CharFilter(field_name='service_order__code', lookup_expr='exact')
    employee = django_filters.NumberFilter(field_name='team', lookup_expr='exact', distinct=True)
    status = django_filters.MultipleChoiceFilter(choices=DeliveryRoute.STATUS_CHOICES)
    type = django_filters.ChoiceFilter(choices=DeliveryRoute.TYPE_CHOICES)
    start = django_filters.IsoDateTimeFilter(method='filter_window_start', label='Window start')
    end = django_filters.IsoDateTimeFilter(method='filter_window_end', label='Window end')
    date = django_filters.DateFilter(method='filter_date', label='Day')

    class Meta:
        model = DeliveryRoute
        fields = ['vehicle', 'service_order', 'employee', 'status', 'type', 'start', 'end', 'date']

    def filter_window_start(self, queryset, name, value):
        return queryset.filter(end__gt=value)

    def filter_window_end(self, queryset, name, value):
        return queryset.filter(start__lt=value)

    def filter_date(self, queryset, name, value):
        return queryset.filter(start__date__lte=value, end__date__gte=value)
