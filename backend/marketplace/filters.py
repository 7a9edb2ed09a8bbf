import django_filters

from backend.catalog.filters import ProductFilter


class MarketplaceProductFilter(ProductFilter):
    """Storefront product filters plus shop location and verification"""
    province = django_filters.CharFilter(field_name='shop__province', lookup_expr='iexact')
    city = django_filters.CharFilter(field_name='shop__city', lookup_expr='iexact')
    verified_only = django_filters.BooleanFilter(method='filter_verified_only')

    class Meta(ProductFilter.Meta):
        fields = ProductFilter.Meta.fields + ['province', 'city', 'verified_only']

    def filter_verified_only(self, queryset, name, value):
        if value:
            return queryset.filter(shop__is_verified=True)
        return queryset
