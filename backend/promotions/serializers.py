from rest_framework import serializers

from backend.core.utils import format_zar
from .models import PromotedListing
from .tiers import TIER_CHOICES, PROMOTION_TIERS, PROMOTION_DURATIONS, parse_promotion_payment_id
from .utils import click_through_rate

DURATION_CHOICES = [d['weeks'] for d in PROMOTION_DURATIONS]


class PromotedListingSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    tier_name = serializers.SerializerMethodField()
    badge_label = serializers.SerializerMethodField()
    amount_paid_display = serializers.SerializerMethodField()
    ctr = serializers.SerializerMethodField()

    class Meta:
        model = PromotedListing
        fields = ['id', 'shop', 'product', 'product_name', 'tier', 'tier_name', 'badge_label', 'status',
                  'starts_at', 'expires_at', 'impressions', 'clicks', 'ctr', 'amount_paid_cents',
                  'amount_paid_display', 'payment_reference', 'created_at', 'updated_at']
        read_only_fields = fields

    def get_tier_name(self, obj):
        return PROMOTION_TIERS[obj.tier]['name']

    def get_badge_label(self, obj):
        return PROMOTION_TIERS[obj.tier]['badge_label']

    def get_amount_paid_display(self, obj):
        return format_zar(obj.amount_paid_cents)

    def get_ctr(self, obj):
        return click_through_rate(obj.clicks, obj.impressions)


class PromotionCreateSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    tier = serializers.ChoiceField(choices=TIER_CHOICES)
    weeks = serializers.ChoiceField(choices=DURATION_CHOICES)
    amount_paid_cents = serializers.IntegerField(min_value=0, required=False)
    payment_reference = serializers.CharField(max_length=100, required=False, allow_blank=True)

    def validate(self, attrs):
        reference = attrs.get('payment_reference')
        if reference and reference.startswith('promo_'):
            parsed = parse_promotion_payment_id(reference)
            if parsed is None:
                raise serializers.ValidationError({'payment_reference': 'Invalid promotion payment reference'})
            if (parsed['product_id'] != str(attrs['product_id']) or parsed['tier'] != attrs['tier']
                    or parsed['weeks'] != attrs['weeks']):
                raise serializers.ValidationError({'payment_reference': 'Payment reference does not match this promotion'})
        return attrs


class PromotionQuoteSerializer(serializers.Serializer):
    tier = serializers.ChoiceField(choices=TIER_CHOICES)
    weeks = serializers.IntegerField(min_value=1, max_value=52)


class PromotableProductSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()
    min_price_cents = serializers.IntegerField(allow_null=True)
    cover_image = serializers.CharField(allow_null=True)
    has_promotion = serializers.BooleanField()
