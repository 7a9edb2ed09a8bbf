from django.contrib import admin
from .models import PromotedListing, ProductView


@admin.register(PromotedListing)
class PromotedListingAdmin(admin.ModelAdmin):
    list_display = ['product', 'shop', 'tier', 'status', 'starts_at', 'expires_at', 'impressions', 'clicks', 'amount_paid_cents']
    list_filter = ['tier', 'status', 'starts_at']
    search_fields = ['product__name', 'shop__name', 'payment_reference']
    ordering = ['-created_at']
    actions = ['cancel_selected']

    @admin.action(description='Cancel selected active promotions')
    def cancel_selected(self, request, queryset):
        count = queryset.filter(status=PromotedListing.STATUS_ACTIVE).update(status=PromotedListing.STATUS_CANCELLED)
        self.message_user(request, f"Cancelled {count} promotion(s).")


@admin.register(ProductView)
class ProductViewAdmin(admin.ModelAdmin):
    list_display = ['shop', 'product', 'kind', 'created_at']
    list_filter = ['kind', 'created_at']
    search_fields = ['shop__name', 'product__name']
    ordering = ['-created_at']
