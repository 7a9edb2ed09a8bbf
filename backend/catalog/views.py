import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from django.shortcuts import get_object_or_404
from django.db import transaction

from backend.core.exceptions import ProductLimitReached
from backend.core.utils import create_audit_log
from backend.shops.models import Shop
from backend.shops.permissions import get_member_shop
from backend.shops.utils import enforce_product_limit
from .filters import ProductFilter, filter_products
from .models import Category, Product, ProductVariant
from .serializers import (
    CategorySerializer, ProductSerializer, ProductVariantSerializer, PublicProductSerializer,
)
from .utils import unique_category_slug, public_products_queryset, get_catalog_payload

logger = logging.getLogger('backend.catalog')

PUBLIC_FILTER_PARAMS = ['search', 'category', 'min_price', 'max_price', 'in_stock', 'size', 'color']


def product_limit_response(error):
    return Response({'error': error.message, 'limit': error.limit}, status=status.HTTP_403_FORBIDDEN)


# Category views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def category_list_create(request, slug):
    shop = get_member_shop(request, slug)
    if request.method == 'GET':
        categories = Category.objects.filter(shop=shop)
        serializer = CategorySerializer(categories, many=True)
        return Response(serializer.data)
    else:
        serializer = CategorySerializer(data=request.data)
        if serializer.is_valid():
            name = serializer.validated_data['name']
            serializer.save(shop=shop, slug=unique_category_slug(shop, name))
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def category_detail(request, slug, pk):
    """Retrieve, update or delete a category"""
    shop = get_member_shop(request, slug)
    category = get_object_or_404(Category, pk=pk, shop=shop)

    if request.method == 'GET':
        serializer = CategorySerializer(category)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CategorySerializer(category, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            extra = {}
            if 'name' in serializer.validated_data:
                extra['slug'] = unique_category_slug(shop, serializer.validated_data['name'], exclude_pk=category.pk)
            serializer.save(**extra)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        category.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Product views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_list_create(request, slug):
    """List a shop's products (with filters) or create a product"""
    shop = get_member_shop(request, slug)

    if request.method == 'GET':
        queryset = (
            Product.objects.filter(shop=shop)
            .select_related('category')
            .prefetch_related('images', 'variants')
            .order_by('-created_at')
        )
        is_active = request.query_params.get('is_active')
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active.lower() == 'true')
        product_filter = ProductFilter(request.query_params, queryset=queryset)
        if not product_filter.is_valid():
            return Response(product_filter.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer = ProductSerializer(product_filter.qs, many=True)
        return Response(serializer.data)

    serializer = ProductSerializer(data=request.data, context={'shop': shop})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    if serializer.validated_data.get('is_active', True):
        try:
            enforce_product_limit(shop)
        except ProductLimitReached as e:
            logger.info(f"Product limit reached for shop '{shop.slug}' ({e.limit})")
            return product_limit_response(e)

    with transaction.atomic():
        product = serializer.save(shop=shop)
    logger.info(f"Product '{product.name}' created in shop '{shop.slug}' by {request.user.username}")
    create_audit_log(request=request, action='product_create', model_name='Product', object_id=product.id,
                     object_name=product.name, shop=shop)
    return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_detail(request, slug, pk):
    """Retrieve, update or delete a product"""
    shop = get_member_shop(request, slug)
    product = get_object_or_404(Product, pk=pk, shop=shop)

    if request.method == 'GET':
        serializer = ProductSerializer(product)
        return Response(serializer.data)

    if request.method == 'DELETE':
        product_id, product_name = product.id, product.name
        product.delete()
        create_audit_log(request=request, action='product_delete', model_name='Product', object_id=product_id,
                         object_name=product_name, shop=shop)
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH',
                                   context={'shop': shop})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    if not product.is_active and serializer.validated_data.get('is_active'):
        try:
            enforce_product_limit(shop)
        except ProductLimitReached as e:
            return product_limit_response(e)

    with transaction.atomic():
        serializer.save()
    create_audit_log(request=request, action='product_update', model_name='Product', object_id=product.id,
                     object_name=product.name, changes=dict(request.data), shop=shop)
    return Response(ProductSerializer(product).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_variant_list_create(request, slug, pk):
    shop = get_member_shop(request, slug)
    product = get_object_or_404(Product, pk=pk, shop=shop)

    if request.method == 'GET':
        serializer = ProductVariantSerializer(product.variants.all(), many=True)
        return Response(serializer.data)
    else:
        serializer = ProductVariantSerializer(data=request.data, context={'product': product})
        if serializer.is_valid():
            serializer.save(product=product)
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_variant_detail(request, slug, pk):
    """Retrieve, update or delete a variant"""
    shop = get_member_shop(request, slug)
    variant = get_object_or_404(ProductVariant.objects.select_related('product'), pk=pk, product__shop=shop)

    if request.method == 'GET':
        serializer = ProductVariantSerializer(variant)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ProductVariantSerializer(variant, data=request.data, partial=request.method == 'PATCH',
                                              context={'product': variant.product})
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, action='variant_update', model_name='ProductVariant',
                             object_id=variant.id, object_name=str(variant), changes=dict(request.data), shop=shop)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        variant.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Public catalog views
@api_view(['GET'])
@permission_classes([AllowAny])
def public_catalog(request, slug):
    """
    Public storefront for a shop.

    Without filter params the full payload comes from the catalog cache.
    A plain search is matched in memory against the cached products; any
    other filter goes through ProductFilter and is not cached.
    """
    shop = get_object_or_404(Shop, slug=slug, is_active=True)

    active_params = [param for param in PUBLIC_FILTER_PARAMS if request.query_params.get(param)]
    if not active_params:
        return Response(get_catalog_payload(shop))

    if active_params == ['search']:
        payload = get_catalog_payload(shop)
        return Response({
            'shop': payload['shop'],
            'categories': payload['categories'],
            'products': filter_products(payload['products'], request.query_params['search']),
        })

    product_filter = ProductFilter(request.query_params, queryset=public_products_queryset(shop))
    if not product_filter.is_valid():
        return Response(product_filter.errors, status=status.HTTP_400_BAD_REQUEST)
    payload = get_catalog_payload(shop)
    return Response({
        'shop': payload['shop'],
        'categories': payload['categories'],
        'products': PublicProductSerializer(product_filter.qs, many=True).data,
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def public_product_detail(request, slug, pk):
    from backend.promotions.utils import record_product_view

    shop = get_object_or_404(Shop, slug=slug, is_active=True)
    product = get_object_or_404(public_products_queryset(shop), pk=pk)
    record_product_view(shop, product)
    data = PublicProductSerializer(product).data
    data['shop'] = {'name': shop.name, 'slug': shop.slug, 'whatsapp_number': shop.whatsapp_number}
    return Response(data)
