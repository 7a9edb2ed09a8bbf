"""Catalog helpers: category slugs and the cached public catalog payload"""
import logging
from django.db.models import Prefetch, Exists, OuterRef

from backend.core.cache_utils import get_cached_catalog, cache_catalog
from backend.core.utils import generate_slug, generate_unique_slug
from .models import Category, Product, ProductVariant

logger = logging.getLogger(__name__)


def unique_category_slug(shop, name, exclude_pk=None):
    base_slug = generate_slug(name) or 'category'

    def exists(slug):
        qs = Category.objects.filter(shop=shop, slug=slug)
        if exclude_pk:
            qs = qs.exclude(pk=exclude_pk)
        return qs.exists()

    return generate_unique_slug(base_slug, exists)


def public_products_queryset(shop):
    """Active products of a shop that have at least one active variant"""
    active_variants = ProductVariant.objects.filter(is_active=True)
    return (
        Product.objects.filter(shop=shop, is_active=True)
        .filter(Exists(active_variants.filter(product=OuterRef('pk'))))
        .select_related('category')
        .prefetch_related('images', Prefetch('variants', queryset=active_variants))
        .order_by('-created_at')
    )


def build_catalog_payload(shop):
    """Shop profile, categories and products for the public catalog page"""
    from backend.shops.serializers import ShopPublicSerializer
    from .serializers import PublicProductSerializer

    products = public_products_queryset(shop)
    categories = Category.objects.filter(shop=shop, products__in=products).distinct().order_by('name')
    return {
        'shop': dict(ShopPublicSerializer(shop).data),
        'categories': [{'id': c.id, 'name': c.name, 'slug': c.slug} for c in categories],
        'products': list(PublicProductSerializer(products, many=True).data),
    }


def get_catalog_payload(shop):
    payload = get_cached_catalog(shop.slug)
    if payload is not None:
        logger.debug(f"Catalog cache hit: {shop.slug}")
        return payload
    payload = build_catalog_payload(shop)
    cache_catalog(shop.slug, payload)
    return payload
