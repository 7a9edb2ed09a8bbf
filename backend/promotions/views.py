import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from django.shortcuts import get_object_or_404

from backend.catalog.models import Product
from backend.core.cache_utils import cached_query, PROMOTION_TIERS_CACHE_TTL
from backend.core.exceptions import PromotionError
from backend.core.utils import create_audit_log
from backend.shops.models import ShopUser
from backend.shops.permissions import get_member_shop
from .serializers import (
    PromotedListingSerializer, PromotionCreateSerializer, PromotionQuoteSerializer, PromotableProductSerializer,
)
from .tiers import (
    calculate_promotion_price, get_promotion_summary, build_promotion_payment_id, tiers_payload,
)
from .utils import (
    create_promoted_listing, cancel_promotion, get_shop_promotions, get_shop_promotion_stats,
    get_promotion_performance, get_promotion_comparison, promotable_products,
)

logger = logging.getLogger('backend.promotions')

PROMOTION_MANAGER_ROLES = [ShopUser.ROLE_OWNER, ShopUser.ROLE_MANAGER]


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def shop_promotions(request, slug):
    """
    GET: the shop's promotions (ACTIVE first) with totals
    POST: record a paid promotion for a product
    """
    if request.method == 'GET':
        shop = get_member_shop(request, slug)
        serializer = PromotedListingSerializer(get_shop_promotions(shop), many=True)
        return Response({'promotions': serializer.data, 'stats': get_shop_promotion_stats(shop)})

    shop = get_member_shop(request, slug, roles=PROMOTION_MANAGER_ROLES)
    serializer = PromotionCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    product = get_object_or_404(Product, pk=data['product_id'], shop=shop)
    try:
        listing = create_promoted_listing(
            shop, product, data['tier'], data['weeks'],
            amount_paid_cents=data.get('amount_paid_cents'),
            payment_reference=data.get('payment_reference') or build_promotion_payment_id(
                shop.id, product.id, data['tier'], data['weeks']
            ),
        )
    except PromotionError as e:
        logger.info(f"Promotion rejected for product {product.id} in shop '{shop.slug}': {e.message}")
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, action='promotion_create', model_name='PromotedListing', object_id=listing.id,
                     object_name=product.name,
                     changes={'tier': listing.tier, 'weeks': data['weeks'], 'amount_paid_cents': listing.amount_paid_cents},
                     shop=shop)
    return Response(PromotedListingSerializer(listing).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def promotion_cancel(request, slug, pk):
    shop = get_member_shop(request, slug, roles=PROMOTION_MANAGER_ROLES)
    if not cancel_promotion(pk, shop):
        return Response({'error': 'Promotion not found or not active'}, status=status.HTTP_404_NOT_FOUND)
    create_audit_log(request=request, action='promotion_cancel', model_name='PromotedListing', object_id=pk, shop=shop)
    return Response({'id': pk, 'status': 'CANCELLED'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def promotion_performance(request, slug):
    shop = get_member_shop(request, slug)
    return Response({
        'performance': get_promotion_performance(shop),
        'comparison': get_promotion_comparison(shop),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def promotable_product_list(request, slug):
    """Products that meet the promotion requirements (image + active variant)"""
    shop = get_member_shop(request, slug)
    products = promotable_products(shop).prefetch_related('images')
    serializer = PromotableProductSerializer(products, many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([AllowAny])
def promotion_quote(request):
    serializer = PromotionQuoteSerializer(data=request.query_params)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    tier = serializer.validated_data['tier']
    weeks = serializer.validated_data['weeks']
    return Response({
        'tier': tier,
        'weeks': weeks,
        'price_cents': calculate_promotion_price(tier, weeks),
        'summary': get_promotion_summary(tier, weeks),
    })


@cached_query(cache_ttl=PROMOTION_TIERS_CACHE_TTL, key_prefix='promotion_tiers')
def get_tiers_payload():
    return tiers_payload()


@api_view(['GET'])
@permission_classes([AllowAny])
def promotion_tiers(request):
    return Response(get_tiers_payload())
