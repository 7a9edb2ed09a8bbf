"""
Cache invalidation signals
Automatically invalidate the public catalog cache when shop data changes
"""
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import invalidate_catalog_cache, invalidate_marketplace_cache

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk operations (seeding, imports) to prevent excessive cache clearing.
    Remember to manually invalidate cache after the block!
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


def _shop_slug_for(instance):
    """Resolve the owning shop slug for any catalog-related instance"""
    model_name = type(instance).__name__
    if model_name == 'Shop':
        return instance.slug
    if model_name in ('Product', 'Category'):
        return instance.shop.slug if instance.shop_id else None
    if model_name in ('ProductVariant', 'ProductImage'):
        product = instance.product
        return product.shop.slug if product and product.shop_id else None
    return None


def invalidate_catalog_after_commit(shop_slug):
    """Invalidate after the DB commit so the cache isn't repopulated with stale data"""
    if not shop_slug:
        return
    transaction.on_commit(lambda: invalidate_catalog_cache(shop_slug))


# --- Signal Handlers ---

@receiver([post_save, post_delete])
def invalidate_catalog_on_change(sender, instance, **kwargs):
    """Invalidate catalog cache when shops, products, variants or images change"""
    if is_suspended():
        return

    if sender.__name__ not in ['Shop', 'Category', 'Product', 'ProductVariant', 'ProductImage']:
        return

    try:
        invalidate_catalog_after_commit(_shop_slug_for(instance))
        if sender.__name__ == 'Shop':
            transaction.on_commit(invalidate_marketplace_cache)
    except Exception as e:
        # Related rows may already be gone during cascading deletes
        logger.warning(f"Error in invalidate_catalog_on_change signal: {e}")
