"""Order creation, stock checks and status changes"""
import logging
import secrets

from django.conf import settings
from django.db import transaction
from django.db.models import F, Sum, Count
from django.utils import timezone

from backend.catalog.models import ProductVariant
from backend.core.cache_signals import invalidate_catalog_after_commit
from backend.core.exceptions import InsufficientStockError, InvalidStatusTransition, TradeFeedError
from .cart import CartLine, WHOLESALE, RETAIL, ORDER_TYPES
from .models import Order, OrderItem

logger = logging.getLogger(__name__)

# No 0/O/1/I so numbers read back unambiguously over the phone
ORDER_NUMBER_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
ORDER_NUMBER_SUFFIX_LENGTH = 4
ORDER_NUMBER_MAX_RETRIES = 5

VALID_TRANSITIONS = {
    Order.STATUS_PENDING: [Order.STATUS_CONFIRMED, Order.STATUS_CANCELLED],
    Order.STATUS_CONFIRMED: [Order.STATUS_SHIPPED, Order.STATUS_CANCELLED],
    Order.STATUS_SHIPPED: [Order.STATUS_DELIVERED],
    Order.STATUS_DELIVERED: [],
    Order.STATUS_CANCELLED: [],
}


def generate_order_number():
    """TF-YYYYMMDD-XXXX"""
    prefix = getattr(settings, 'TRADEFEED_ORDER_PREFIX', 'TF')
    suffix = ''.join(secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(ORDER_NUMBER_SUFFIX_LENGTH))
    return f"{prefix}-{timezone.localdate().strftime('%Y%m%d')}-{suffix}"


def generate_unique_order_number():
    order_number = generate_order_number()
    retries = 0
    while retries < ORDER_NUMBER_MAX_RETRIES and Order.objects.filter(order_number=order_number).exists():
        order_number = generate_order_number()
        retries += 1
    return order_number


def _requested_by_variant(items):
    """Total requested quantity per variant, in first-seen order"""
    requested = {}
    for item in items:
        requested[item['variant_id']] = requested.get(item['variant_id'], 0) + item['quantity']
    return requested


def _stock_errors(items, stock_map, product_names=None, default_name=''):
    """
    One error per variant whose stock can't cover the summed request.
    A variant missing from stock_map counts as unavailable (available 0).
    """
    product_names = dict(product_names or {})
    for item in items:
        product_names.setdefault(item['variant_id'], item.get('product_name') or default_name)

    errors = []
    for variant_id, requested in _requested_by_variant(items).items():
        available = stock_map.get(variant_id)
        if available is None or available < requested:
            errors.append({
                'variant_id': variant_id,
                'product_name': product_names[variant_id],
                'requested': requested,
                'available': available or 0,
            })
    return errors


def validate_stock(items):
    """
    Check requested quantities against live stock.

    Lines for the same variant (a wholesale and a retail line) are added
    together before comparing.

    Args:
        items: iterable of dicts with variant_id, product_name and quantity

    Returns:
        {'valid': bool, 'errors': [{variant_id, product_name, requested, available}]}
    """
    items = list(items)
    stock_map = dict(
        ProductVariant.objects.filter(pk__in=[item['variant_id'] for item in items], is_active=True)
        .values_list('id', 'stock')
    )
    errors = _stock_errors(items, stock_map)
    return {'valid': not errors, 'errors': errors}


def resolve_order_type(items):
    """Retail only when every line is retail"""
    types = {item.get('order_type', WHOLESALE) for item in items}
    return RETAIL if types == {RETAIL} else WHOLESALE


def create_order(shop, items, buyer_name='', buyer_phone='', buyer_note='', delivery=None, whatsapp_message=''):
    """
    Create an order and decrement stock in one transaction.

    Prices are taken from the variants, never from the caller. Stock is
    decremented with a conditional update, so a concurrent checkout that
    takes the last units makes this one fail with InsufficientStockError
    and roll back completely.

    Args:
        shop: Shop the order belongs to
        items: list of dicts with variant_id, quantity and optional order_type

    Returns:
        The created Order with its items.
    """
    items = [dict(item) for item in items if item.get('quantity', 0) > 0]
    if not items:
        raise TradeFeedError('Your cart is empty.')
    for item in items:
        if item.get('order_type') not in ORDER_TYPES:
            item['order_type'] = WHOLESALE

    delivery = delivery or {}

    with transaction.atomic():
        variants = ProductVariant.objects.select_related('product').filter(
            pk__in=[item['variant_id'] for item in items],
            product__shop=shop,
            product__is_active=True,
            is_active=True,
        ).in_bulk()

        errors = _stock_errors(
            items,
            {pk: variant.stock for pk, variant in variants.items()},
            product_names={pk: variant.product.name for pk, variant in variants.items()},
            default_name='Unavailable item',
        )
        if errors:
            logger.info(f"Checkout rejected for shop '{shop.slug}': {len(errors)} stock error(s)")
            raise InsufficientStockError(errors)

        order = Order.objects.create(
            order_number=generate_unique_order_number(),
            shop=shop,
            buyer_name=buyer_name or '',
            buyer_phone=buyer_phone or '',
            buyer_note=buyer_note or '',
            delivery_address=delivery.get('address', ''),
            delivery_city=delivery.get('city', ''),
            delivery_province=delivery.get('province', ''),
            delivery_postal_code=delivery.get('postal_code', ''),
            order_type=resolve_order_type(items),
            whatsapp_message=whatsapp_message or '',
        )

        order_items = []
        for item in items:
            variant = variants[item['variant_id']]
            product = variant.product
            order_items.append(OrderItem(
                order=order,
                product=product,
                variant=variant,
                product_name=product.name,
                option1_label=product.option1_label,
                option1_value=variant.size,
                option2_label=product.option2_label,
                option2_value=variant.color,
                price_in_cents=variant.price_for(item['order_type']),
                quantity=item['quantity'],
                order_type=item['order_type'],
            ))
        OrderItem.objects.bulk_create(order_items)

        # One update per variant, so a failed update has not touched that row yet
        for variant_id, quantity in _requested_by_variant(items).items():
            updated = ProductVariant.objects.filter(
                pk=variant_id, stock__gte=quantity
            ).update(stock=F('stock') - quantity)
            if updated == 0:
                available = ProductVariant.objects.filter(pk=variant_id).values_list('stock', flat=True).first()
                logger.warning(
                    f"Stock conflict on variant {variant_id} for order {order.order_number}: "
                    f"requested {quantity}, available {available}"
                )
                raise InsufficientStockError([{
                    'variant_id': variant_id,
                    'product_name': variants[variant_id].product.name,
                    'requested': quantity,
                    'available': available or 0,
                }])

        order.total_cents = sum(i.price_in_cents * i.quantity for i in order_items)
        order.item_count = sum(i.quantity for i in order_items)
        order.save(update_fields=['total_cents', 'item_count', 'updated_at'])

        # Stock changed through .update(), which sends no post_save
        invalidate_catalog_after_commit(shop.slug)

    logger.info(f"Order {order.order_number} created for shop '{shop.slug}': "
                f"{order.item_count} items, {order.total_cents} cents")
    return order


def lines_from_order(order):
    """Rebuild cart lines from order items for the WhatsApp message"""
    return [
        CartLine(
            variant_id=item.variant_id,
            product_id=item.product_id,
            product_name=item.product_name,
            size=item.option1_value,
            color=item.option2_value,
            option1_label=item.option1_label,
            option2_label=item.option2_label,
            price_in_cents=item.price_in_cents,
            quantity=item.quantity,
            max_stock=item.quantity,
            order_type=item.order_type,
        )
        for item in order.items.all()
    ]


def can_transition(current, new_status):
    return new_status in VALID_TRANSITIONS.get(current, [])


def update_order_status(order, new_status):
    """
    Move an order to a new status.

    Cancelling puts the ordered quantities back on variants that still exist.
    Raises InvalidStatusTransition for moves VALID_TRANSITIONS does not allow.
    """
    with transaction.atomic():
        order = Order.objects.select_for_update().get(pk=order.pk)
        old_status = order.status
        if not can_transition(old_status, new_status):
            raise InvalidStatusTransition(old_status, new_status)

        order.status = new_status
        order.save(update_fields=['status', 'updated_at'])

        if new_status == Order.STATUS_CANCELLED:
            restored = 0
            for item in order.items.filter(variant__isnull=False):
                restored += ProductVariant.objects.filter(pk=item.variant_id).update(stock=F('stock') + item.quantity)
            logger.info(f"Order {order.order_number} cancelled; stock restored on {restored} variant(s)")
            invalidate_catalog_after_commit(order.shop.slug)

    logger.info(f"Order {order.order_number} status {old_status} -> {new_status}")
    return order


def get_order_stats(shop):
    counts = dict(
        Order.objects.filter(shop=shop).order_by().values('status').annotate(n=Count('id')).values_list('status', 'n')
    )
    revenue = Order.objects.filter(shop=shop).exclude(status=Order.STATUS_CANCELLED).aggregate(
        total=Sum('total_cents')
    )['total'] or 0
    return {
        'total': sum(counts.values()),
        'pending': counts.get(Order.STATUS_PENDING, 0),
        'confirmed': counts.get(Order.STATUS_CONFIRMED, 0),
        'shipped': counts.get(Order.STATUS_SHIPPED, 0),
        'delivered': counts.get(Order.STATUS_DELIVERED, 0),
        'cancelled': counts.get(Order.STATUS_CANCELLED, 0),
        'revenue_cents': revenue,
    }


def find_order_for_tracking(order_number):
    order_number = (order_number or '').strip()
    if not order_number:
        return None
    return (
        Order.objects.select_related('shop')
        .prefetch_related('items')
        .filter(order_number__iexact=order_number)
        .first()
    )
