"""
WhatsApp order message and wa.me checkout link.

The seller receives a message shaped like:

    🛒 *New Order #TF-20260302-A1B2*

    ┌─────────────────────────
    │ 6× *Mint Green Suit Jacket*
    │    Size: 44 | Color: Teal
    │    💰 R 750.00 × 6 = R 4,500.00
    │    🔗 https://tradefeed.co.za/catalog/shop/products/12
    └─────────────────────────

    ━━━━━━━━━━━━━━━━━━━━━━━━
    💰 *Total: R 4,500.00*
    📦 Items: 6

    📦 *Track:* https://tradefeed.co.za/track/TF-20260302-A1B2

    Thank you for your order! 🙏
"""
from urllib.parse import quote

from django.conf import settings

from backend.core.utils import format_zar
from .cart import RETAIL

BOX_TOP = '┌' + '─' * 25
BOX_BOTTOM = '└' + '─' * 25
DIVIDER = '━' * 24
RETAIL_MARKER = ' 🛍️'
# Left unescaped in the wa.me text parameter, matching browser encoding
URI_SAFE_CHARS = "!*'()"


def _base_url():
    return getattr(settings, 'TRADEFEED_BASE_URL', 'https://tradefeed.co.za').rstrip('/')


def _format_line(line, shop_slug=None):
    details = [f"{line.option1_label or 'Size'}: {line.size}"]
    if line.color:
        details.append(f"{line.option2_label or 'Color'}: {line.color}")

    line_total = format_zar(line.price_in_cents * line.quantity)
    if line.quantity > 1:
        price = f"{format_zar(line.price_in_cents)} × {line.quantity} = {line_total}"
    else:
        price = line_total

    marker = RETAIL_MARKER if line.order_type == RETAIL else ''
    rows = [
        BOX_TOP,
        f"│ {line.quantity}× *{line.product_name}*{marker}",
        f"│    {' | '.join(details)}",
        f"│    💰 {price}",
    ]
    if shop_slug:
        rows.append(f"│    🔗 {_base_url()}/catalog/{shop_slug}/products/{line.product_id}")
    rows.append(BOX_BOTTOM)
    return '\n'.join(rows)


def build_whatsapp_message(lines, delivery=None, order_number=None, shop_slug=None):
    """
    Build the order message from cart lines.

    Args:
        lines: CartLine objects (or anything with the same attributes)
        delivery: optional dict with address, city, province, postal_code
        order_number: adds the order number header and a tracking link
        shop_slug: adds a product link to every line

    Returns:
        The message text, or "" for an empty cart.
    """
    lines = list(lines)
    if not lines:
        return ''

    total_cents = sum(line.price_in_cents * line.quantity for line in lines)
    total_items = sum(line.quantity for line in lines)

    if order_number:
        header = f"🛒 *New Order #{order_number}*"
    else:
        header = '🛒 *New Order from TradeFeed*'

    message = (
        f"{header}\n\n"
        + '\n\n'.join(_format_line(line, shop_slug) for line in lines)
        + f"\n\n{DIVIDER}\n"
        + f"💰 *Total: {format_zar(total_cents)}*\n"
        + f"📦 Items: {total_items}"
    )

    if delivery and delivery.get('address'):
        message += (
            f"\n\n📍 *Deliver to:*\n   {delivery['address']}\n"
            f"   {delivery.get('city', '')}, {delivery.get('province', '')} {delivery.get('postal_code', '')}"
        )

    if order_number:
        message += f"\n\n📦 *Track:* {_base_url()}/track/{order_number}"

    message += '\n\nThank you for your order! 🙏'
    return message


def build_whatsapp_url(whatsapp_number, message):
    phone = (whatsapp_number or '').replace('+', '')
    return f"https://wa.me/{phone}?text={quote(message, safe=URI_SAFE_CHARS)}"


def build_whatsapp_checkout_url(whatsapp_number, lines, delivery=None, order_number=None, shop_slug=None):
    """wa.me link that opens WhatsApp with the order message prefilled"""
    message = build_whatsapp_message(lines, delivery, order_number, shop_slug)
    return build_whatsapp_url(whatsapp_number, message)
