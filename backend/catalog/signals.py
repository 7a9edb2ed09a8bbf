"""Keep the denormalized product price range in step with its variants"""
import logging
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from .models import Product, ProductVariant

logger = logging.getLogger(__name__)


@receiver([post_save, post_delete], sender=ProductVariant)
def refresh_product_price_range(sender, instance, **kwargs):
    try:
        product = Product.objects.get(pk=instance.product_id)
    except Product.DoesNotExist:
        # Product deleted in the same cascade
        return
    product.refresh_price_range()
