import django_filters
from django.db.models import Q
from .models import Product


SORT_ORDERING = {
    'price_asc': ['price', '-created_at'],
    'price_desc': ['-price', '-created_at'],
    'newest': ['-created_at', '-id'],
    'oldest': ['created_at', 'id'],
}


class ProductFilter(django_filters.FilterSet):
    """Catalog filters for the public product listing"""

    # Unknown categories are ignored rather than rejected
    category = django_filters.CharFilter(method='filter_category', label='Category')

    # Fabric attributes only apply when browsing fabrics
    color = django_filters.CharFilter(method='filter_fabric_attribute', label='Color')
    fabric_type = django_filters.CharFilter(method='filter_fabric_attribute', label='Fabric type')

    min_price = django_filters.NumberFilter(field_name='price', lookup_expr='gte')
    max_price = django_filters.NumberFilter(field_name='price', lookup_expr='lte')
    featured = django_filters.BooleanFilter(field_name='featured')
    search = django_filters.CharFilter(method='filter_search', label='Search')
    sort = django_filters.CharFilter(method='filter_sort', label='Sort')

    class Meta:
        model = Product
        fields = ['category', 'color', 'fabric_type', 'min_price', 'max_price', 'featured', 'search', 'sort']

    @property
    def qs(self):
        queryset = super().qs
        # Default ordering when no (valid) sort was requested
        if not queryset.query.order_by:
            queryset = queryset.order_by(*SORT_ORDERING['newest'])
        return queryset

    def filter_category(self, queryset, name, value):
        if value in (Product.CATEGORY_FABRIC, Product.CATEGORY_PRODUCT):
            return queryset.filter(category=value)
        return queryset

    def filter_fabric_attribute(self, queryset, name, value):
        if not value or self.data.get('category') != Product.CATEGORY_FABRIC:
            return queryset
        return queryset.filter(**{f'{name}__icontains': value})

    def filter_search(self, queryset, name, value):
        """Match products where any search word appears in name, description, color or fabric type"""
        words = value.split()
        if not words:
            return queryset

        query = Q()
        for word in words:
            query |= (
                Q(name__icontains=word) |
                Q(description__icontains=word) |
                Q(color__icontains=word) |
                Q(fabric_type__icontains=word)
            )
        return queryset.filter(query)

    def filter_sort(self, queryset, name, value):
        return queryset.order_by(*SORT_ORDERING.get(value, SORT_ORDERING['newest']))
