"""Shop helpers shared by the catalog, checkout and back office"""
import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from backend.core.utils import generate_slug, generate_unique_slug
from backend.core.exceptions import ProductLimitReached, UpgradeRequestError
from .models import Shop, UpgradeRequest

ORDER_TYPE_RETAIL = 'retail'

logger = logging.getLogger(__name__)


def unique_shop_slug(name, exclude_pk=None):
    base_slug = generate_slug(name) or 'shop'

    def exists(slug):
        qs = Shop.objects.filter(slug=slug)
        if exclude_pk:
            qs = qs.exclude(pk=exclude_pk)
        return qs.exists()

    return generate_unique_slug(base_slug, exists)


def get_whatsapp_number_for(shop, order_type):
    """Retail orders go to the retail number when the shop has one"""
    if order_type == ORDER_TYPE_RETAIL and shop.retail_whatsapp_number:
        return shop.retail_whatsapp_number
    return shop.whatsapp_number


def get_product_limit(shop):
    """None means unlimited"""
    if shop.is_pro:
        return None
    return getattr(settings, 'TRADEFEED_FREE_PRODUCT_LIMIT', 10)


def check_product_limit(shop):
    """
    Check whether the shop may add another active product.

    Returns:
        dict with allowed, current, limit and unlimited
    """
    limit = get_product_limit(shop)
    current = shop.products.filter(is_active=True).count()
    if limit is None:
        return {'allowed': True, 'current': current, 'limit': None, 'unlimited': True}
    return {'allowed': current < limit, 'current': current, 'limit': limit, 'unlimited': False}


def enforce_product_limit(shop):
    """Raise ProductLimitReached when the shop cannot add another active product"""
    result = check_product_limit(shop)
    if not result['allowed']:
        raise ProductLimitReached(result['limit'])
    return result


def submit_upgrade_request(shop, user, payment_method, payment_reference, proof_of_payment_url=''):
    """
    Record a manual-payment upgrade request for admin review.

    The plan is not changed here. Raises UpgradeRequestError when the shop
    is already PRO, already has a request under review, the payment method
    is inactive or the reference is blank.
    """
    payment_reference = (payment_reference or '').strip()
    if shop.is_pro:
        raise UpgradeRequestError("You're already on the Pro plan.")
    if not payment_reference:
        raise UpgradeRequestError('Payment reference is required.')
    if payment_method is None or not payment_method.is_active:
        raise UpgradeRequestError('Choose an active payment method.')

    with transaction.atomic():
        # Lock the shop row so two submissions can't both pass the pending check
        Shop.objects.select_for_update().get(pk=shop.pk)
        if shop.upgrade_requests.filter(status=UpgradeRequest.STATUS_PENDING).exists():
            raise UpgradeRequestError('You already have a pending upgrade request.')
        upgrade_request = UpgradeRequest.objects.create(
            shop=shop,
            requested_by=user,
            requested_tier=Shop.TIER_PRO,
            payment_method=payment_method,
            payment_method_name=payment_method.name,
            payment_reference=payment_reference,
            proof_of_payment_url=proof_of_payment_url or '',
        )

    logger.info(f"Upgrade request {upgrade_request.id} submitted for shop '{shop.slug}' via {payment_method.name}")
    return upgrade_request


def review_upgrade_request(upgrade_request, admin_user, approve, admin_note=''):
    """
    Approve or reject a pending upgrade request.

    Approval moves the shop to the requested tier. Only PENDING requests
    can be reviewed.
    """

    with transaction.atomic():
        upgrade_request = UpgradeRequest.objects.select_for_update().select_related('shop').get(pk=upgrade_request.pk)
        if upgrade_request.status != UpgradeRequest.STATUS_PENDING:
            raise UpgradeRequestError(f'This request was already {upgrade_request.get_status_display().lower()}.')

        upgrade_request.status = UpgradeRequest.STATUS_APPROVED if approve else UpgradeRequest.STATUS_REJECTED
        upgrade_request.admin_note = admin_note or ''
        upgrade_request.reviewed_by = admin_user
        upgrade_request.reviewed_at = timezone.now()
        upgrade_request.save(update_fields=['status', 'admin_note', 'reviewed_by', 'reviewed_at', 'updated_at'])

        if approve:
            shop = upgrade_request.shop
            shop.subscription_tier = upgrade_request.requested_tier
            shop.save(update_fields=['subscription_tier', 'updated_at'])

    logger.info(f"Upgrade request {upgrade_request.id} for shop '{upgrade_request.shop.slug}' "
                f"{upgrade_request.status.lower()} by {admin_user.username}")
    return upgrade_request
