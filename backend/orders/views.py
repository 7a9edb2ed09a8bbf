import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.pagination import PageNumberPagination
from django.shortcuts import get_object_or_404

from backend.catalog.models import ProductVariant
from backend.core.exceptions import InsufficientStockError, InvalidStatusTransition, TradeFeedError
from backend.core.utils import create_audit_log, format_zar
from backend.shops.models import Shop
from backend.shops.permissions import get_member_shop
from backend.shops.utils import get_whatsapp_number_for
from .cart import CartLine, SessionCart, WHOLESALE, RETAIL
from .models import Order
from .serializers import (
    OrderSerializer, OrderStatusSerializer, OrderTrackingSerializer,
    CartAddSerializer, CartUpdateSerializer, CheckoutSerializer,
)
from .utils import (
    create_order, lines_from_order, update_order_status, get_order_stats, find_order_for_tracking,
)
from .whatsapp import build_whatsapp_message, build_whatsapp_url

logger = logging.getLogger('backend.orders')


def stock_error_response(error):
    return Response({'error': error.message, 'stock_errors': error.errors}, status=status.HTTP_409_CONFLICT)


def cart_response(cart, status_code=status.HTTP_200_OK):
    return Response({
        'shop_slug': cart.shop_slug,
        'lines': cart.to_list(),
        'wholesale_lines': [line.to_dict() for line in cart.lines_for(WHOLESALE)],
        'retail_lines': [line.to_dict() for line in cart.lines_for(RETAIL)],
        'total_items': cart.total_items,
        'total_price_cents': cart.total_price_cents,
        'total_display': format_zar(cart.total_price_cents),
    }, status=status_code)


# Cart views
@api_view(['GET', 'POST', 'PATCH', 'DELETE'])
@permission_classes([AllowAny])
def cart_detail(request, slug):
    """
    Session cart for one shop.

    GET: view the cart with totals
    POST: add a variant (price and max stock come from the variant)
    PATCH: set a line's quantity (below the minimum removes it)
    DELETE: clear the cart
    """
    shop = get_object_or_404(Shop, slug=slug, is_active=True)
    cart = SessionCart(request, shop.slug)

    if request.method == 'GET':
        return cart_response(cart)

    if request.method == 'DELETE':
        cart.clear()
        return cart_response(cart)

    if request.method == 'PATCH':
        serializer = CartUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        cart.update_quantity(data['variant_id'], data['quantity'], data['order_type'])
        cart.save()
        return cart_response(cart)

    serializer = CartAddSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    variant = get_object_or_404(
        ProductVariant.objects.select_related('product'),
        pk=data['variant_id'], is_active=True, product__shop=shop, product__is_active=True,
    )
    if variant.stock <= 0:
        return stock_error_response(InsufficientStockError([{
            'variant_id': variant.id, 'product_name': variant.product.name,
            'requested': data['quantity'], 'available': 0,
        }]))

    product = variant.product
    order_type = data['order_type']
    line = CartLine(
        variant_id=variant.id,
        product_id=product.id,
        product_name=product.name,
        size=variant.size,
        color=variant.color,
        option1_label=product.option1_label,
        option2_label=product.option2_label,
        price_in_cents=variant.price_for(order_type),
        max_stock=variant.stock,
        min_wholesale_qty=product.min_wholesale_qty if order_type == WHOLESALE else 1,
        order_type=order_type,
    )
    cart.add(line, data['quantity'])
    cart.save()
    return cart_response(cart, status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([AllowAny])
def cart_line_remove(request, slug, variant_id):
    shop = get_object_or_404(Shop, slug=slug, is_active=True)
    cart = SessionCart(request, shop.slug)
    order_type = request.query_params.get('order_type', WHOLESALE)
    cart.remove(variant_id, order_type)
    cart.save()
    return cart_response(cart)


# Checkout
@api_view(['POST'])
@permission_classes([AllowAny])
def checkout(request, slug):
    """
    Turn the cart into an Order and a wa.me link.

    Stock is re-checked and decremented atomically. The returned link opens
    WhatsApp with the full order message addressed to the shop.
    """
    from backend.promotions.models import ProductView
    from backend.promotions.utils import record_product_view

    shop = get_object_or_404(Shop, slug=slug, is_active=True)
    serializer = CheckoutSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    cart = SessionCart(request, shop.slug)
    if data.get('items'):
        items = [dict(item) for item in data['items']]
    else:
        items = [
            {'variant_id': line.variant_id, 'quantity': line.quantity,
             'order_type': line.order_type, 'product_name': line.product_name}
            for line in cart.lines
        ]
    if not items:
        return Response({'error': 'Your cart is empty.'}, status=status.HTTP_400_BAD_REQUEST)

    delivery = serializer.delivery()
    try:
        order = create_order(
            shop, items,
            buyer_name=data.get('buyer_name', ''),
            buyer_phone=data.get('buyer_phone', ''),
            buyer_note=data.get('buyer_note', ''),
            delivery=delivery,
        )
    except InsufficientStockError as e:
        return stock_error_response(e)
    except TradeFeedError as e:
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    message = build_whatsapp_message(lines_from_order(order), delivery, order.order_number, shop.slug)
    order.whatsapp_message = message
    order.save(update_fields=['whatsapp_message', 'updated_at'])

    whatsapp_number = get_whatsapp_number_for(shop, order.order_type)
    cart.clear()

    for product_id in {item.product_id for item in order.items.all() if item.product_id}:
        record_product_view(shop, product_id, kind=ProductView.KIND_WHATSAPP_CLICK)

    create_audit_log(request=request, action='order_create', model_name='Order', object_id=order.id,
                     object_name=order.order_number, changes={'total_cents': order.total_cents}, shop=shop)
    return Response({
        'order_id': order.id,
        'order_number': order.order_number,
        'whatsapp_url': build_whatsapp_url(whatsapp_number, message),
        'whatsapp_message': message,
        'total_cents': order.total_cents,
        'item_count': order.item_count,
    }, status=status.HTTP_201_CREATED)


# Seller order management
class OrderPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_list(request, slug):
    """List a shop's orders, newest first, optionally filtered by status"""
    shop = get_member_shop(request, slug)
    orders = Order.objects.filter(shop=shop).prefetch_related('items').order_by('-created_at')

    status_filter = request.query_params.get('status')
    if status_filter:
        orders = orders.filter(status=status_filter.upper())

    search = request.query_params.get('search', '').strip()
    if search:
        orders = orders.filter(order_number__icontains=search)

    paginator = OrderPagination()
    page = paginator.paginate_queryset(orders, request)
    serializer = OrderSerializer(page, many=True)
    return paginator.get_paginated_response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_detail(request, slug, pk):
    shop = get_member_shop(request, slug)
    order = get_object_or_404(Order.objects.prefetch_related('items'), pk=pk, shop=shop)
    return Response(OrderSerializer(order).data)


@api_view(['POST', 'PATCH'])
@permission_classes([IsAuthenticated])
def order_update_status(request, slug, pk):
    shop = get_member_shop(request, slug)
    order = get_object_or_404(Order, pk=pk, shop=shop)

    serializer = OrderStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    old_status = order.status
    new_status = serializer.validated_data['status']
    try:
        order = update_order_status(order, new_status)
    except InvalidStatusTransition as e:
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, action='order_status', model_name='Order', object_id=order.id,
                     object_name=order.order_number,
                     changes={'status': {'old': old_status, 'new': new_status}}, shop=shop)
    return Response(OrderSerializer(order).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_stats(request, slug):
    shop = get_member_shop(request, slug)
    return Response(get_order_stats(shop))


@api_view(['GET'])
@permission_classes([AllowAny])
def track_order(request, order_number):
    """Public order tracking by order number"""
    order = find_order_for_tracking(order_number)
    if order is None:
        return Response({'error': 'Order not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(OrderTrackingSerializer(order).data)
