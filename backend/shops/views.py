import logging
from rest_framework import status, serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser, AllowAny
from rest_framework.pagination import PageNumberPagination
from django.shortcuts import get_object_or_404
from django.db import transaction
from django.db.models import Count, Q

from backend.core.exceptions import UpgradeRequestError
from backend.core.utils import create_audit_log
from .models import Shop, ShopUser, PaymentMethod, UpgradeRequest
from .permissions import get_member_shop
from .serializers import (
    ShopSerializer, ShopAdminSerializer, PaymentMethodSerializer,
    UpgradeRequestSerializer, UpgradeRequestCreateSerializer, UpgradeReviewSerializer,
)
from .utils import unique_shop_slug, check_product_limit, submit_upgrade_request, review_upgrade_request

logger = logging.getLogger('backend.shops')


# Seller shop views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def shop_list_create(request):
    """List the shops the user belongs to, or create a new shop"""
    if request.method == 'GET':
        shops = Shop.objects.filter(memberships__user=request.user).distinct()
        serializer = ShopSerializer(shops, many=True, context={'request': request})
        return Response(serializer.data)

    serializer = ShopSerializer(data=request.data, context={'request': request})
    if not serializer.is_valid():
        logger.warning(f"Shop creation validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        shop = serializer.save(slug=unique_shop_slug(serializer.validated_data['name']))
        ShopUser.objects.create(user=request.user, shop=shop, role=ShopUser.ROLE_OWNER)

    logger.info(f"Shop '{shop.slug}' created by {request.user.username}")
    create_audit_log(request=request, action='shop_create', model_name='Shop', object_id=shop.id,
                     object_name=shop.name, shop=shop)
    return Response(ShopSerializer(shop, context={'request': request}).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def shop_detail(request, slug):
    """Retrieve or update a shop (members), or delete it (owner only)"""
    if request.method == 'DELETE':
        shop = get_member_shop(request, slug, roles=[ShopUser.ROLE_OWNER])
        shop_id, shop_name = shop.id, shop.name
        shop.delete()
        logger.info(f"Shop '{slug}' deleted by {request.user.username}")
        create_audit_log(request=request, action='shop_delete', model_name='Shop', object_id=shop_id,
                         object_name=shop_name, shop=slug)
        return Response(status=status.HTTP_204_NO_CONTENT)

    shop = get_member_shop(request, slug)

    if request.method == 'GET':
        serializer = ShopSerializer(shop, context={'request': request})
        return Response(serializer.data)

    serializer = ShopSerializer(shop, data=request.data, partial=request.method == 'PATCH',
                                context={'request': request})
    if serializer.is_valid():
        serializer.save()
        create_audit_log(request=request, action='shop_update', model_name='Shop', object_id=shop.id,
                         object_name=shop.name, changes=dict(request.data), shop=shop)
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def shop_product_limit(request, slug):
    shop = get_member_shop(request, slug)
    return Response(check_product_limit(shop))


# Back office views
class AdminShopPagination(PageNumberPagination):
    page_size = 50
    page_size_query_param = 'page_size'
    max_page_size = 200


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def admin_shop_list(request):
    """
    List all shops for moderation.

    Query params:
        filter: verified | unverified | inactive | featured
        search: substring of the shop name
    """
    shops = Shop.objects.annotate(
        product_count=Count('products', filter=Q(products__is_active=True), distinct=True),
        order_count=Count('orders', distinct=True),
    ).order_by('-created_at')

    shop_filter = request.query_params.get('filter')
    if shop_filter == 'verified':
        shops = shops.filter(is_verified=True)
    elif shop_filter == 'unverified':
        shops = shops.filter(is_verified=False)
    elif shop_filter == 'inactive':
        shops = shops.filter(is_active=False)
    elif shop_filter == 'featured':
        shops = shops.filter(is_featured_shop=True)

    search = request.query_params.get('search', '').strip()
    if search:
        shops = shops.filter(name__icontains=search)

    paginator = AdminShopPagination()
    page = paginator.paginate_queryset(shops, request)
    serializer = ShopAdminSerializer(page, many=True)
    return paginator.get_paginated_response(serializer.data)


def _set_shop_flag(request, pk, field, action):
    shop = get_object_or_404(Shop, pk=pk)

    value_field = serializers.BooleanField()
    try:
        value = value_field.to_internal_value(request.data.get(field))
    except serializers.ValidationError:
        return Response({field: ['A boolean value is required.']}, status=status.HTTP_400_BAD_REQUEST)

    old_value = getattr(shop, field)
    setattr(shop, field, value)
    shop.save(update_fields=[field, 'updated_at'])

    logger.info(f"Admin {request.user.username} set {field}={value} on shop '{shop.slug}'")
    create_audit_log(request=request, action=action, model_name='Shop', object_id=shop.id,
                     object_name=shop.name, changes={field: {'old': old_value, 'new': value}}, shop=shop)
    return Response({'id': shop.id, 'slug': shop.slug, field: value})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def admin_shop_verify(request, pk):
    return _set_shop_flag(request, pk, 'is_verified', 'shop_verify')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def admin_shop_activate(request, pk):
    return _set_shop_flag(request, pk, 'is_active', 'shop_activate')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def admin_shop_feature(request, pk):
    return _set_shop_flag(request, pk, 'is_featured_shop', 'shop_feature')


# Payment method views
@api_view(['GET'])
@permission_classes([AllowAny])
def payment_method_active_list(request):
    """Active payment methods in display order"""
    methods = PaymentMethod.objects.filter(is_active=True).order_by('display_order', 'name')
    serializer = PaymentMethodSerializer(methods, many=True)
    return Response(serializer.data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def payment_method_list_create(request):
    if request.method == 'GET':
        methods = PaymentMethod.objects.all()
        serializer = PaymentMethodSerializer(methods, many=True)
        return Response(serializer.data)
    else:
        serializer = PaymentMethodSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def payment_method_detail(request, pk):
    """Retrieve, update or delete a payment method"""
    method = get_object_or_404(PaymentMethod, pk=pk)

    if request.method == 'GET':
        serializer = PaymentMethodSerializer(method)
        return Response(serializer.data)
    elif request.method == 'PUT':
        serializer = PaymentMethodSerializer(method, data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    elif request.method == 'PATCH':
        serializer = PaymentMethodSerializer(method, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        method.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Plan upgrades (manual payment)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def shop_upgrade_requests(request, slug):
    """
    GET: the shop's upgrade requests, newest first (any member)
    POST: submit a request with payment_method, payment_reference and an optional proof_of_payment_url (owner only)
    """
    if request.method == 'GET':
        shop = get_member_shop(request, slug)
        upgrade_requests = shop.upgrade_requests.select_related('requested_by', 'reviewed_by', 'shop')
        return Response(UpgradeRequestSerializer(upgrade_requests, many=True).data)

    shop = get_member_shop(request, slug, roles=[ShopUser.ROLE_OWNER])
    serializer = UpgradeRequestCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        upgrade_request = submit_upgrade_request(
            shop, request.user, data['payment_method'], data['payment_reference'],
            data.get('proof_of_payment_url', ''),
        )
    except UpgradeRequestError as e:
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, action='upgrade_request', model_name='UpgradeRequest',
                     object_id=upgrade_request.id, object_name=shop.name,
                     changes={'payment_method': upgrade_request.payment_method_name,
                              'payment_reference': upgrade_request.payment_reference}, shop=shop)
    return Response(UpgradeRequestSerializer(upgrade_request).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def admin_upgrade_request_list(request):
    """
    Upgrade requests for review.

    Query params:
        status: PENDING | APPROVED | REJECTED (default: all)
    """
    upgrade_requests = UpgradeRequest.objects.select_related('shop', 'requested_by', 'reviewed_by')
    request_status = request.query_params.get('status', '').upper()
    if request_status:
        upgrade_requests = upgrade_requests.filter(status=request_status)

    paginator = AdminShopPagination()
    page = paginator.paginate_queryset(upgrade_requests, request)
    serializer = UpgradeRequestSerializer(page, many=True)
    return paginator.get_paginated_response(serializer.data)


def _review_upgrade_request(request, pk, approve):
    upgrade_request = get_object_or_404(UpgradeRequest, pk=pk)
    serializer = UpgradeReviewSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    old_tier = upgrade_request.shop.subscription_tier
    try:
        upgrade_request = review_upgrade_request(
            upgrade_request, request.user, approve, serializer.validated_data.get('admin_note', '')
        )
    except UpgradeRequestError as e:
        return Response({'error': e.message}, status=status.HTTP_409_CONFLICT)

    shop = upgrade_request.shop
    changes = {'status': upgrade_request.status}
    if approve:
        changes['subscription_tier'] = {'old': old_tier, 'new': shop.subscription_tier}
    create_audit_log(request=request, action='upgrade_approve' if approve else 'upgrade_reject',
                     model_name='UpgradeRequest', object_id=upgrade_request.id, object_name=shop.name,
                     changes=changes, shop=shop)
    return Response(UpgradeRequestSerializer(upgrade_request).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def admin_upgrade_request_approve(request, pk):
    return _review_upgrade_request(request, pk, approve=True)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def admin_upgrade_request_reject(request, pk):
    return _review_upgrade_request(request, pk, approve=False)
