from django.db import models

from .tiers import TIER_CHOICES


class PromotedListing(models.Model):
    """A paid promotion placing a product higher in the marketplace"""
    STATUS_ACTIVE = 'ACTIVE'
    STATUS_EXPIRED = 'EXPIRED'
    STATUS_CANCELLED = 'CANCELLED'
    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_EXPIRED, 'Expired'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    shop = models.ForeignKey('shops.Shop', on_delete=models.CASCADE, related_name='promotions')
    product = models.ForeignKey('catalog.Product', on_delete=models.CASCADE, related_name='promotions')
    tier = models.CharField(max_length=20, choices=TIER_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    starts_at = models.DateTimeField()
    expires_at = models.DateTimeField(db_index=True)
    impressions = models.PositiveIntegerField(default=0)
    clicks = models.PositiveIntegerField(default=0)
    amount_paid_cents = models.PositiveIntegerField(default=0)
    payment_reference = models.CharField(max_length=100, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.tier} - {self.product} ({self.status})"

    class Meta:
        db_table = 'promoted_listings'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'expires_at'], name='idx_promo_status_expiry'),
            models.Index(fields=['shop', 'status'], name='idx_promo_shop_status'),
        ]


class ProductView(models.Model):
    """Counter row for storefront events that feed promotion ROI figures"""
    KIND_PRODUCT_VIEW = 'PRODUCT_VIEW'
    KIND_PROMOTED_CLICK = 'PROMOTED_CLICK'
    KIND_WHATSAPP_CLICK = 'WHATSAPP_CLICK'
    KIND_CHOICES = [
        (KIND_PRODUCT_VIEW, 'Product View'),
        (KIND_PROMOTED_CLICK, 'Promoted Click'),
        (KIND_WHATSAPP_CLICK, 'WhatsApp Click'),
    ]

    shop = models.ForeignKey('shops.Shop', on_delete=models.CASCADE, related_name='product_views')
    product = models.ForeignKey('catalog.Product', on_delete=models.SET_NULL, null=True, blank=True, related_name='views')
    kind = models.CharField(max_length=20, choices=KIND_CHOICES, default=KIND_PRODUCT_VIEW)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    def __str__(self):
        return f"{self.kind} {self.product_id} @ {self.created_at}"

    class Meta:
        db_table = 'product_views'
        indexes = [
            models.Index(fields=['shop', 'kind', 'created_at'], name='idx_view_shop_kind_created'),
        ]
