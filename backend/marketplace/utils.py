"""Marketplace queries and promoted-listing tracking"""
import logging

from django.db.models import F, Exists, OuterRef, Prefetch, Case, When, IntegerField, Count, Q
from django.utils import timezone

from backend.catalog.models import Product, ProductVariant
from backend.core.cache_utils import cached_query, MARKETPLACE_CACHE_TTL
from backend.promotions.models import PromotedListing, ProductView
from backend.promotions.tiers import PROMOTION_TIERS, SPOTLIGHT
from backend.shops.models import Shop

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 24
MAX_PAGE_SIZE = 100
SORT_ORDERS = {
    'newest': ['-created_at', '-id'],
    'price_asc': ['min_price_cents', '-created_at'],
    'price_desc': ['-max_price_cents', '-created_at'],
}


def tier_weight_expression(field='tier'):
    """SQL CASE giving each tier its rank weight"""
    return Case(
        *[When(**{field: key}, then=config['rank_weight']) for key, config in PROMOTION_TIERS.items()],
        default=0,
        output_field=IntegerField(),
    )


def marketplace_queryset():
    """Active products from active shops with at least one active variant"""
    active_variants = ProductVariant.objects.filter(is_active=True)
    return (
        Product.objects.filter(is_active=True, shop__is_active=True)
        .filter(Exists(active_variants.filter(product=OuterRef('pk'))))
        .select_related('shop', 'category')
        .prefetch_related('images', Prefetch('variants', queryset=active_variants))
    )


def active_listings():
    now = timezone.now()
    return PromotedListing.objects.filter(
        status=PromotedListing.STATUS_ACTIVE, starts_at__lte=now, expires_at__gt=now
    )


def get_promoted_products(limit=12):
    """
    Active listings whose product and shop are active, strongest tier first
    and most recently started within a tier.

    Returns (product, listing) pairs.
    """
    listings = (
        active_listings()
        .filter(product__is_active=True, product__shop__is_active=True)
        .filter(Exists(ProductVariant.objects.filter(product=OuterRef('product'), is_active=True)))
        .annotate(weight=tier_weight_expression())
        .order_by('-weight', '-starts_at')[:limit]
    )
    listings = list(listings)
    products = marketplace_queryset().in_bulk([listing.product_id for listing in listings])
    return [(products[listing.product_id], listing) for listing in listings if listing.product_id in products]


def track_promoted_impressions(listing_ids):
    """One impression per listing shown; failures are logged, never raised"""
    listing_ids = [listing_id for listing_id in listing_ids if listing_id]
    if not listing_ids:
        return 0
    try:
        return PromotedListing.objects.filter(pk__in=listing_ids).update(impressions=F('impressions') + 1)
    except Exception as e:
        logger.error(f"Failed to track impressions for {listing_ids}: {e}")
        return 0


def track_promoted_click(listing_id):
    """Count a click on a promoted listing and record a PROMOTED_CLICK view"""
    try:
        listing = PromotedListing.objects.filter(pk=listing_id).only('id', 'shop_id', 'product_id').first()
        if listing is None:
            return False
        PromotedListing.objects.filter(pk=listing.pk).update(clicks=F('clicks') + 1)
        ProductView.objects.create(shop_id=listing.shop_id, product_id=listing.product_id,
                                   kind=ProductView.KIND_PROMOTED_CLICK)
        return True
    except Exception as e:
        logger.error(f"Failed to track promoted click {listing_id}: {e}")
        return False


@cached_query(cache_ttl=MARKETPLACE_CACHE_TTL, key_prefix='featured_shops')
def get_featured_shops(limit=12):
    """Shops flagged as featured or running an active SPOTLIGHT promotion"""
    spotlight = active_listings().filter(tier=SPOTLIGHT, shop=OuterRef('pk'))
    shops = list(
        Shop.objects.filter(is_active=True)
        .annotate(has_spotlight=Exists(spotlight))
        .filter(Q(is_featured_shop=True) | Q(has_spotlight=True))
        .order_by('created_at')[:limit]
    )
    product_counts = dict(
        Product.objects.filter(shop__in=shops, is_active=True)
        .filter(Exists(ProductVariant.objects.filter(product=OuterRef('pk'), is_active=True)))
        .order_by()
        .values('shop')
        .annotate(n=Count('id'))
        .values_list('shop', 'n')
    )
    return [
        {
            'id': shop.id,
            'name': shop.name,
            'slug': shop.slug,
            'description': shop.description,
            'logo_url': shop.logo_url,
            'city': shop.city,
            'province': shop.province,
            'is_verified': shop.is_verified,
            'product_count': product_counts.get(shop.id, 0),
            'has_spotlight': shop.has_spotlight,
        }
        for shop in shops
    ]
