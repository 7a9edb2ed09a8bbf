"""Promoted listing lifecycle, stats and ROI figures"""
import logging
import math
from datetime import timedelta

from django.db import transaction
from django.db.models import Sum, Count, Q, Exists, OuterRef, Case, When, IntegerField
from django.utils import timezone

from backend.catalog.models import Product, ProductImage, ProductVariant
from backend.core.exceptions import PromotionError
from .models import PromotedListing, ProductView
from .tiers import is_valid_tier, get_duration, calculate_promotion_price, round_half_up

logger = logging.getLogger(__name__)

PERFORMANCE_WINDOW_DAYS = 90
PERFORMANCE_MAX_LISTINGS = 10
PERFORMANCE_MAX_DAILY_POINTS = 30
COMPARISON_WINDOW_DAYS = 30
DEFAULT_CONVERSION_RATE = 8.0
ESTIMATE_LOW_RATE = 0.10
ESTIMATE_HIGH_RATE = 0.18


def expire_promoted_listings():
    """Mark every ACTIVE listing past its expiry as EXPIRED; returns the count"""
    count = PromotedListing.objects.filter(
        status=PromotedListing.STATUS_ACTIVE, expires_at__lte=timezone.now()
    ).update(status=PromotedListing.STATUS_EXPIRED)
    if count:
        logger.info(f"Expired {count} promoted listing(s)")
    return count


def has_active_promotion(product):
    return PromotedListing.objects.filter(
        product=product, status=PromotedListing.STATUS_ACTIVE, expires_at__gt=timezone.now()
    ).exists()


def promotable_products(shop):
    """Active products with at least one image and one active variant"""
    return Product.objects.filter(shop=shop, is_active=True).filter(
        Exists(ProductImage.objects.filter(product=OuterRef('pk'))),
        Exists(ProductVariant.objects.filter(product=OuterRef('pk'), is_active=True)),
    ).annotate(
        has_promotion=Exists(PromotedListing.objects.filter(
            product=OuterRef('pk'), status=PromotedListing.STATUS_ACTIVE, expires_at__gt=timezone.now()
        ))
    ).order_by('name')


def create_promoted_listing(shop, product, tier, weeks, amount_paid_cents=None, payment_reference=None):
    """
    Start a promotion for a product once it has been paid for.

    Raises PromotionError for an unknown tier or duration, a product that is
    not promotable, or one that already has an active promotion.
    """
    if not is_valid_tier(tier):
        raise PromotionError(f"Unknown promotion tier: {tier}")
    if get_duration(weeks) is None:
        raise PromotionError(f"Unsupported promotion duration: {weeks} week(s)")

    if product.shop_id != shop.id:
        raise PromotionError('Product not found or access denied.')
    if not product.is_active:
        raise PromotionError('Only active products can be promoted.')
    if not product.images.exists():
        raise PromotionError('Add at least one image before promoting this product.')
    if not product.variants.filter(is_active=True).exists():
        raise PromotionError('Add at least one active variant before promoting this product.')

    if amount_paid_cents is None:
        amount_paid_cents = calculate_promotion_price(tier, weeks)

    with transaction.atomic():
        # Serialize concurrent promotions of the same product
        Product.objects.select_for_update().filter(pk=product.pk).first()
        if has_active_promotion(product):
            raise PromotionError('This product already has an active promotion.')

        now = timezone.now()
        listing = PromotedListing.objects.create(
            shop=shop,
            product=product,
            tier=tier,
            status=PromotedListing.STATUS_ACTIVE,
            starts_at=now,
            expires_at=now + timedelta(days=7 * weeks),
            amount_paid_cents=amount_paid_cents,
            payment_reference=payment_reference or None,
        )

    logger.info(f"Created {tier} promotion for product {product.id} (shop {shop.slug}), "
                f"expires {listing.expires_at.isoformat()}")
    return listing


def cancel_promotion(listing_id, shop):
    """ACTIVE -> CANCELLED; returns False when nothing was cancelled"""
    count = PromotedListing.objects.filter(
        pk=listing_id, shop=shop, status=PromotedListing.STATUS_ACTIVE
    ).update(status=PromotedListing.STATUS_CANCELLED, updated_at=timezone.now())
    if count:
        logger.info(f"Promotion {listing_id} cancelled for shop {shop.slug}")
    return count > 0


def get_shop_promotions(shop):
    """All promotions for a shop, ACTIVE first, newest first"""
    expire_promoted_listings()
    return (
        PromotedListing.objects.filter(shop=shop)
        .select_related('product')
        .annotate(active_first=Case(
            When(status=PromotedListing.STATUS_ACTIVE, then=0), default=1, output_field=IntegerField()
        ))
        .order_by('active_first', '-created_at')
    )


def get_shop_promotion_stats(shop):
    totals = PromotedListing.objects.filter(shop=shop).aggregate(
        active_count=Count('id', filter=Q(status=PromotedListing.STATUS_ACTIVE)),
        total_spent_cents=Sum('amount_paid_cents'),
        total_impressions=Sum('impressions'),
        total_clicks=Sum('clicks'),
    )
    return {key: value or 0 for key, value in totals.items()}


def click_through_rate(clicks, impressions):
    """Percentage with one decimal"""
    if impressions <= 0:
        return 0
    return round_half_up(clicks / impressions * 1000) / 10


def get_promotion_performance(shop):
    """
    Per-listing performance for the last 90 days (at most 10 listings).

    Listings only keep aggregate counters, so daily impressions are spread
    evenly over the run; daily clicks use PROMOTED_CLICK rows when present.
    """
    now = timezone.now()
    cutoff = now - timedelta(days=PERFORMANCE_WINDOW_DAYS)
    listings = list(
        PromotedListing.objects.filter(shop=shop, created_at__gte=cutoff)
        .select_related('product')
        .order_by('-created_at')[:PERFORMANCE_MAX_LISTINGS]
    )
    if not listings:
        return []

    clicks_by_day = {}
    click_rows = ProductView.objects.filter(
        shop=shop,
        product_id__in=[listing.product_id for listing in listings],
        kind=ProductView.KIND_PROMOTED_CLICK,
        created_at__gte=cutoff,
    ).values_list('product_id', 'created_at')
    for product_id, created_at in click_rows:
        day_key = created_at.date().isoformat()
        product_clicks = clicks_by_day.setdefault(product_id, {})
        product_clicks[day_key] = product_clicks.get(day_key, 0) + 1

    results = []
    for listing in listings:
        end = min(listing.expires_at, now)
        seconds = (end - listing.starts_at).total_seconds()
        days_active = max(1, math.ceil(seconds / 86400))
        avg_impressions = round_half_up(listing.impressions / days_active)
        avg_clicks = round_half_up(listing.clicks / days_active)
        product_clicks = clicks_by_day.get(listing.product_id, {})

        daily_data = []
        for i in range(min(days_active, PERFORMANCE_MAX_DAILY_POINTS)):
            day_key = (listing.starts_at + timedelta(days=i)).date().isoformat()
            daily_data.append({
                'date': day_key,
                'impressions': avg_impressions,
                'clicks': product_clicks.get(day_key) or avg_clicks,
            })

        results.append({
            'promotion_id': listing.id,
            'product_name': listing.product.name,
            'tier': listing.tier,
            'status': listing.status,
            'daily_data': daily_data,
            'total_impressions': listing.impressions,
            'total_clicks': listing.clicks,
            'ctr': click_through_rate(listing.clicks, listing.impressions),
            'days_active': days_active,
            'avg_impressions_per_day': avg_impressions,
            'avg_clicks_per_day': avg_clicks,
        })
    return results


def estimate_orders(total_clicks):
    low = max(1, round_half_up(total_clicks * ESTIMATE_LOW_RATE))
    high = max(low, round_half_up(total_clicks * ESTIMATE_HIGH_RATE))
    return {'low': low, 'high': high}


def get_promotion_comparison(shop):
    """Promoted vs organic views over the last 30 days, with order estimates"""
    since = timezone.now() - timedelta(days=COMPARISON_WINDOW_DAYS)
    promoted = PromotedListing.objects.filter(shop=shop, created_at__gte=since).aggregate(
        impressions=Sum('impressions'), clicks=Sum('clicks')
    )
    views = ProductView.objects.filter(shop=shop, created_at__gte=since).aggregate(
        organic=Count('id', filter=Q(kind=ProductView.KIND_PRODUCT_VIEW)),
        whatsapp=Count('id', filter=Q(kind=ProductView.KIND_WHATSAPP_CLICK)),
    )

    promoted_views = promoted['impressions'] or 0
    total_clicks = promoted['clicks'] or 0
    organic_views = views['organic']
    total_views = promoted_views + organic_views

    if organic_views > 0 and promoted_views > 0:
        multiplier = round_half_up(promoted_views / organic_views * 10) / 10
    else:
        multiplier = 0

    if total_views > 0:
        conversion_rate = round_half_up(views['whatsapp'] / total_views * 1000) / 10
    else:
        conversion_rate = DEFAULT_CONVERSION_RATE

    return {
        'promoted_views': promoted_views,
        'organic_views': organic_views,
        'multiplier': multiplier,
        'estimated_orders': estimate_orders(total_clicks),
        'conversion_rate': conversion_rate,
    }


def estimate_roi(listing, avg_order_cents):
    """
    Estimated revenue over amount paid, using the low order estimate.

    Returns a dict with estimated_orders, estimated_revenue_cents and roi
    (a ratio rounded to one decimal; 0 when nothing was paid).
    """
    orders = estimate_orders(listing.clicks)['low']
    revenue = orders * avg_order_cents
    roi = round_half_up(revenue / listing.amount_paid_cents * 10) / 10 if listing.amount_paid_cents else 0
    return {'estimated_orders': orders, 'estimated_revenue_cents': revenue, 'roi': roi}


def record_product_view(shop, product, kind=ProductView.KIND_PRODUCT_VIEW):
    """Write a ProductView row; failures are logged, never raised"""
    product_id = getattr(product, 'pk', product)
    try:
        return ProductView.objects.create(shop=shop, product_id=product_id, kind=kind)
    except Exception as e:
        logger.warning(f"Failed to record {kind} for product {product_id}: {e}")
        return None
