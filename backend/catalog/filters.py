import django_filters
from django.db.models import Q, F

from .models import Item


class ItemFilter(django_filters.FilterSet):
    """Filter items by category, free-text search and low stock status"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    category = django_filters.NumberFilter(field_name='category_id', lookup_expr='exact')
    low_stock = django_filters.CharFilter(method='filter_low_stock', label='Low Stock')
    out_of_stock = django_filters.CharFilter(method='filter_out_of_stock', label='Out of Stock')

    class Meta:
        model = Item
        fields = ['search', 'category', 'low_stock', 'out_of_stock']

    def filter_search(self, queryset, name, value):
        """Match every word against name, description, category or vendor"""
        search = (value or '').strip()
        if not search:
            return queryset
        for word in search.split():
            queryset = queryset.filter(
                Q(name__icontains=word) |
                Q(description__icontains=word) |
                Q(category__name__icontains=word) |
                Q(vendor__name__icontains=word) |
                Q(vendor_name__icontains=word)
            )
        return queryset

    def filter_low_stock(self, queryset, name, value):
        if str(value).lower() not in ('true', '1', 'yes'):
            return queryset
        return queryset.with_effective_threshold().filter(quantity__lte=F('effective_low_stock_threshold'))

    def filter_out_of_stock(self, queryset, name, value):
        if str(value).lower() not in ('true', '1', 'yes'):
            return queryset
        return queryset.filter(quantity__lte=0)
