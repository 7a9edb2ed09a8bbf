"""Utility functions for audit logging, slugs, phone numbers and money"""
import logging
import re
import time

from .models import AuditLog

logger = logging.getLogger(__name__)

SA_WHATSAPP_PATTERN = re.compile(r'^\+27\d{9}$')


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, shop=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (shop_create, order_status, promotion_create, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., product name, order number)
        shop: Shop instance or slug the action belongs to
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or not object_id:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        shop_slug = getattr(shop, 'slug', shop)

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            shop_slug=shop_slug,
            changes=changes or {},
            ip_address=ip_address
        )
    except Exception as e:
        # Don't fail the main operation if audit logging fails
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def format_zar(cents):
    """Format cents as "R 1,234.56" """
    return f"R {cents / 100:,.2f}"


def format_zar_compact(cents):
    """Format cents as "R49.00" (no thousands separator)"""
    return f"R{cents / 100:.2f}"


def rands_to_cents(rands):
    """Convert a rand amount (str/float/Decimal) to integer cents, rounding half up"""
    from decimal import Decimal, ROUND_HALF_UP
    value = Decimal(str(rands).strip())
    return int((value * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def generate_slug(text):
    """
    Generate a URL-safe slug.

    "Marble Tower Fashions" -> "marble-tower-fashions"
    "  Hello   World!!  " -> "hello-world"
    """
    slug = (text or '').lower().strip()
    slug = re.sub(r'[^\w\s-]', '', slug)
    slug = re.sub(r'[\s_]+', '-', slug)
    slug = re.sub(r'-+', '-', slug)
    return slug.strip('-')


def generate_unique_slug(base_slug, exists_fn):
    """
    Return base_slug, or base_slug-1, base_slug-2... whichever is free.
    Falls back to a timestamp suffix after 100 attempts.
    """
    slug = base_slug
    counter = 1
    while exists_fn(slug):
        slug = f"{base_slug}-{counter}"
        counter += 1
        if counter > 100:
            slug = f"{base_slug}-{int(time.time() * 1000)}"
            break
    return slug


def normalize_whatsapp_number(value):
    """
    Normalize a South African number to +27XXXXXXXXX.
    Accepts 0712345678, 27712345678 and +27712345678 with spaces, dashes or brackets.
    Unrecognised input is returned cleaned but otherwise unchanged.
    """
    cleaned = re.sub(r'[\s\-()]', '', value or '')
    if SA_WHATSAPP_PATTERN.match(cleaned):
        return cleaned
    if re.match(r'^27\d{9}$', cleaned):
        return f"+{cleaned}"
    if re.match(r'^0\d{9}$', cleaned):
        return f"+27{cleaned[1:]}"
    return cleaned


def is_valid_whatsapp_number(value):
    return bool(SA_WHATSAPP_PATTERN.match(normalize_whatsapp_number(value)))


def mask_phone(phone):
    """Show only the last 4 digits of a phone number"""
    if not phone:
        return None
    return f"***{phone[-4:]}"
