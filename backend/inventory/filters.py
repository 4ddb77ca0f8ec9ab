import django_filters
from django.db.models import Q
from .models import StockItem


class StockItemFilter(django_filters.FilterSet):
    """
    Filters for the slab list.
    """
    search = django_filters.CharFilter(method='filter_search', label='Search')
    material = django_filters.NumberFilter(field_name='material_id', lookup_expr='exact')
    status = django_filters.MultipleChoiceFilter(choices=StockItem.STATUS_CHOICES)
    location = django_filters.CharFilter(field_name='location', lookup_expr='icontains')
    available = django_filters.BooleanFilter(method='filter_available', label='Available')

    class Meta:
        model = StockItem
        fields = ['search', 'material', 'status', 'location', 'available']

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(internal_id__icontains=value) |
            Q(qr_code_value__icontains=value) |
            Q(material__name__icontains=value)
        )

    def filter_available(self, queryset, name, value):
        if value:
            return queryset.filter(status__in=StockItem.AVAILABLE_STATUSES)
        return queryset.exclude(status__in=StockItem.AVAILABLE_STATUSES)
