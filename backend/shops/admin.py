from django.contrib import admin
from backend.core.utils import create_audit_log
from .models import Shop, ShopUser, PaymentMethod, UpgradeRequest
from .utils import review_upgrade_request


class ShopUserInline(admin.TabularInline):
    model = ShopUser
    extra = 0
    raw_id_fields = ['user']


@admin.register(Shop)
class ShopAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'whatsapp_number', 'city', 'province', 'is_active', 'is_verified',
                    'is_featured_shop', 'subscription_tier', 'created_at']
    list_filter = ['is_active', 'is_verified', 'is_featured_shop', 'subscription_tier', 'province']
    search_fields = ['name', 'slug', 'whatsapp_number', 'city']
    ordering = ['-created_at']
    readonly_fields = ['slug', 'created_at', 'updated_at']
    inlines = [ShopUserInline]
    actions = ['mark_verified', 'mark_unverified', 'mark_featured', 'unmark_featured', 'deactivate']

    @admin.action(description='Verify selected shops')
    def mark_verified(self, request, queryset):
        # .update() skips post_save, so invalidate per shop via save()
        for shop in queryset:
            shop.is_verified = True
            shop.save(update_fields=['is_verified', 'updated_at'])

    @admin.action(description='Remove verification from selected shops')
    def mark_unverified(self, request, queryset):
        for shop in queryset:
            shop.is_verified = False
            shop.save(update_fields=['is_verified', 'updated_at'])

    @admin.action(description='Feature selected shops')
    def mark_featured(self, request, queryset):
        for shop in queryset:
            shop.is_featured_shop = True
            shop.save(update_fields=['is_featured_shop', 'updated_at'])

    @admin.action(description='Unfeature selected shops')
    def unmark_featured(self, request, queryset):
        for shop in queryset:
            shop.is_featured_shop = False
            shop.save(update_fields=['is_featured_shop', 'updated_at'])

    @admin.action(description='Deactivate selected shops')
    def deactivate(self, request, queryset):
        for shop in queryset:
            shop.is_active = False
            shop.save(update_fields=['is_active', 'updated_at'])


@admin.register(ShopUser)
class ShopUserAdmin(admin.ModelAdmin):
    list_display = ['user', 'shop', 'role', 'created_at']
    list_filter = ['role']
    search_fields = ['user__username', 'shop__name']


@admin.register(PaymentMethod)
class PaymentMethodAdmin(admin.ModelAdmin):
    list_display = ['name', 'is_active', 'display_order', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name']
    ordering = ['display_order', 'name']


@admin.register(UpgradeRequest)
class UpgradeRequestAdmin(admin.ModelAdmin):
    list_display = ['shop', 'requested_tier', 'payment_method_name', 'payment_reference', 'status',
                    'reviewed_by', 'created_at']
    list_filter = ['status', 'requested_tier']
    search_fields = ['shop__name', 'shop__slug', 'payment_reference']
    readonly_fields = ['created_at', 'updated_at', 'reviewed_at']
    raw_id_fields = ['shop', 'requested_by', 'reviewed_by']
    actions = ['approve', 'reject']

    def _review(self, request, queryset, approve):
        reviewed = 0
        for upgrade_request in queryset.filter(status=UpgradeRequest.STATUS_PENDING):
            review_upgrade_request(upgrade_request, request.user, approve)
            create_audit_log(request=request, action='upgrade_approve' if approve else 'upgrade_reject',
                             model_name='UpgradeRequest', object_id=upgrade_request.id,
                             object_name=upgrade_request.shop.name, shop=upgrade_request.shop)
            reviewed += 1
        self.message_user(request, f"{reviewed} request(s) {'approved' if approve else 'rejected'}.")

    @admin.action(description='Approve selected requests (moves the shop to Pro)')
    def approve(self, request, queryset):
        self._review(request, queryset, approve=True)

    @admin.action(description='Reject selected requests')
    def reject(self, request, queryset):
        self._review(request, queryset, approve=False)
