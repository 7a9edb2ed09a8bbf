import django_filters
from django.db.models import Q, Exists, OuterRef
from .models import Product, ProductVariant


def _active_variants():
    return ProductVariant.objects.filter(product=OuterRef('pk'), is_active=True)


class ProductFilter(django_filters.FilterSet):
    """
    Storefront product filters.

    Variant-level filters (price, stock, size, color) match when ANY active
    variant satisfies the condition. Prices are in cents.
    """
    search = django_filters.CharFilter(method='filter_search')
    category = django_filters.CharFilter(field_name='category__slug')
    min_price = django_filters.NumberFilter(method='filter_min_price')
    max_price = django_filters.NumberFilter(method='filter_max_price')
    in_stock = django_filters.BooleanFilter(method='filter_in_stock')
    size = django_filters.CharFilter(method='filter_size')
    color = django_filters.CharFilter(method='filter_color')

    class Meta:
        model = Product
        fields = ['search', 'category', 'min_price', 'max_price', 'in_stock', 'size', 'color']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(Q(name__icontains=value) | Q(description__icontains=value))

    def filter_min_price(self, queryset, name, value):
        if value is None:
            return queryset
        return queryset.filter(Exists(_active_variants().filter(price_in_cents__gte=value)))

    def filter_max_price(self, queryset, name, value):
        if value is None:
            return queryset
        return queryset.filter(Exists(_active_variants().filter(price_in_cents__lte=value)))

    def filter_in_stock(self, queryset, name, value):
        if value is None:
            return queryset
        in_stock = Exists(_active_variants().filter(stock__gt=0))
        return queryset.filter(in_stock) if value else queryset.exclude(in_stock)

    def filter_size(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(Exists(_active_variants().filter(size__iexact=value.strip())))

    def filter_color(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(Exists(_active_variants().filter(color__iexact=value.strip())))


def filter_products(products, query):
    """
    In-memory search over already-fetched products.

    `products` is a list of dicts (serialized catalog products) or objects with
    `name` and `description`. Case-insensitive substring match; an empty query
    returns the list unchanged.
    """
    needle = (query or '').strip().lower()
    if not needle:
        return list(products)

    def field(product, key):
        if isinstance(product, dict):
            return product.get(key) or ''
        return getattr(product, key, '') or ''

    return [
        p for p in products
        if needle in field(p, 'name').lower() or needle in field(p, 'description').lower()
    ]
