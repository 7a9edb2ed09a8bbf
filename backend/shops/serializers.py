from rest_framework import serializers

from backend.core.utils import normalize_whatsapp_number, is_valid_whatsapp_number
from .models import Shop, ShopUser, PaymentMethod, UpgradeRequest

WHATSAPP_ERROR = 'Enter a valid SA WhatsApp number (e.g. 071 234 5678)'


class ShopSerializer(serializers.ModelSerializer):
    """Seller-facing shop serializer; slug and moderation flags are read-only"""
    name = serializers.CharField(min_length=2, max_length=100, trim_whitespace=True)
    description = serializers.CharField(max_length=500, required=False, allow_blank=True, trim_whitespace=True)
    role = serializers.SerializerMethodField()
    product_count = serializers.SerializerMethodField()

    class Meta:
        model = Shop
        fields = ['id', 'name', 'slug', 'description', 'whatsapp_number', 'retail_whatsapp_number',
                  'logo_url', 'city', 'province', 'is_active', 'is_verified', 'is_featured_shop',
                  'subscription_tier', 'role', 'product_count', 'created_at', 'updated_at']
        read_only_fields = ['slug', 'is_active', 'is_verified', 'is_featured_shop', 'subscription_tier',
                            'created_at', 'updated_at']

    def validate_whatsapp_number(self, value):
        normalized = normalize_whatsapp_number(value)
        if not is_valid_whatsapp_number(normalized):
            raise serializers.ValidationError(WHATSAPP_ERROR)
        return normalized

    def validate_retail_whatsapp_number(self, value):
        if not value:
            return ''
        normalized = normalize_whatsapp_number(value)
        if not is_valid_whatsapp_number(normalized):
            raise serializers.ValidationError(WHATSAPP_ERROR)
        return normalized

    def get_role(self, obj):
        request = self.context.get('request')
        if not request or not request.user.is_authenticated:
            return None
        membership = obj.memberships.filter(user=request.user).first()
        return membership.role if membership else None

    def get_product_count(self, obj):
        return obj.products.filter(is_active=True).count()


class ShopPublicSerializer(serializers.ModelSerializer):
    """Public shop profile shown on the catalog and tracking pages"""
    class Meta:
        model = Shop
        fields = ['id', 'name', 'slug', 'description', 'whatsapp_number', 'retail_whatsapp_number',
                  'logo_url', 'city', 'province', 'is_verified']


class ShopAdminSerializer(serializers.ModelSerializer):
    owner = serializers.SerializerMethodField()
    product_count = serializers.IntegerField(read_only=True)
    order_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Shop
        fields = ['id', 'name', 'slug', 'whatsapp_number', 'city', 'province', 'is_active',
                  'is_verified', 'is_featured_shop', 'subscription_tier', 'owner',
                  'product_count', 'order_count', 'created_at']

    def get_owner(self, obj):
        membership = obj.memberships.filter(role=ShopUser.ROLE_OWNER).select_related('user').first()
        if not membership:
            return None
        return {'id': membership.user.id, 'username': membership.user.username, 'email': membership.user.email}


class PaymentMethodSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentMethod
        fields = ['id', 'name', 'description', 'instructions', 'is_active', 'display_order', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class UpgradeRequestSerializer(serializers.ModelSerializer):
    shop_name = serializers.CharField(source='shop.name', read_only=True)
    shop_slug = serializers.CharField(source='shop.slug', read_only=True)
    shop_whatsapp_number = serializers.CharField(source='shop.whatsapp_number', read_only=True)
    requested_by_username = serializers.CharField(source='requested_by.username', read_only=True, default=None)
    reviewed_by_username = serializers.CharField(source='reviewed_by.username', read_only=True, default=None)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = UpgradeRequest
        fields = ['id', 'shop', 'shop_name', 'shop_slug', 'shop_whatsapp_number', 'requested_by_username',
                  'requested_tier', 'payment_method', 'payment_method_name', 'payment_reference',
                  'proof_of_payment_url', 'status', 'status_display', 'admin_note', 'reviewed_by_username',
                  'reviewed_at', 'created_at']


class UpgradeRequestCreateSerializer(serializers.Serializer):
    payment_method = serializers.PrimaryKeyRelatedField(queryset=PaymentMethod.objects.filter(is_active=True))
    payment_reference = serializers.CharField(max_length=100)
    proof_of_payment_url = serializers.URLField(required=False, allow_blank=True)


class UpgradeReviewSerializer(serializers.Serializer):
    admin_note = serializers.CharField(required=False, allow_blank=True, max_length=1000)
