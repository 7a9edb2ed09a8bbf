import logging
import math
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import AllowAny

from .filters import MarketplaceProductFilter
from .ranking import interleave_promoted_products, rank_by_promotion
from .serializers import MarketplaceProductSerializer
from .utils import (
    marketplace_queryset, active_listings, get_promoted_products, track_promoted_impressions, track_promoted_click,
    get_featured_shops, SORT_ORDERS, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE,
)

logger = logging.getLogger('backend.marketplace')


def _positive_int(value, default, maximum=None):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    if number < 1:
        return default
    return min(number, maximum) if maximum else number


@api_view(['GET'])
@permission_classes([AllowAny])
def marketplace_products(request):
    """
    Cross-shop product feed.

    Query params:
        search, category, min_price, max_price, province, city, verified_only
        sort: newest (default) | price_asc | price_desc
        page, page_size (default 24)

    With the newest sort, promoted products on a page rank above the rest
    of that page. Page 1 also mixes the top promoted products into every
    5th slot. Each promoted listing shown gets one impression.
    """
    product_filter = MarketplaceProductFilter(request.query_params, queryset=marketplace_queryset())
    if not product_filter.is_valid():
        return Response(product_filter.errors, status=status.HTTP_400_BAD_REQUEST)

    sort = request.query_params.get('sort', 'newest')
    queryset = product_filter.qs.order_by(*SORT_ORDERS.get(sort, SORT_ORDERS['newest']))

    page = _positive_int(request.query_params.get('page'), 1)
    page_size = _positive_int(request.query_params.get('page_size'), DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE)
    total = queryset.count()
    offset = (page - 1) * page_size
    organic = list(queryset[offset:offset + page_size])

    listings = {
        listing.product_id: listing
        for listing in active_listings().filter(product_id__in=[product.id for product in organic])
    }
    if sort not in ('price_asc', 'price_desc'):
        organic = rank_by_promotion(organic, listings)

    products = organic
    if page == 1:
        promoted_pairs = get_promoted_products()
        promoted = [product for product, _ in promoted_pairs]
        listings.update({product.id: listing for product, listing in promoted_pairs})
        products = interleave_promoted_products(organic, promoted)

    shown = {product.id for product in products}
    track_promoted_impressions([listing.id for product_id, listing in listings.items() if product_id in shown])

    serializer = MarketplaceProductSerializer(products, many=True, context={'listings': listings})
    return Response({
        'products': serializer.data,
        'total': total,
        'page': page,
        'page_size': page_size,
        'total_pages': math.ceil(total / page_size) if total else 0,
    })


@api_view(['POST'])
@permission_classes([AllowAny])
def promoted_click(request, pk):
    """Count a click on a promoted card; always answers 200 so the UI never breaks"""
    tracked = track_promoted_click(pk)
    return Response({'tracked': tracked})


@api_view(['GET'])
@permission_classes([AllowAny])
def featured_shops(request):
    limit = _positive_int(request.query_params.get('limit'), 12, 50)
    return Response(get_featured_shops(limit))
