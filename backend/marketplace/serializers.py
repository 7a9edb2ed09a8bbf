from rest_framework import serializers

from backend.catalog.models import Product
from backend.promotions.tiers import PROMOTION_TIERS


class MarketplaceShopSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    slug = serializers.CharField()
    name = serializers.CharField()
    city = serializers.CharField()
    province = serializers.CharField()
    is_verified = serializers.BooleanField()
    logo_url = serializers.CharField()


class MarketplaceProductSerializer(serializers.ModelSerializer):
    """Product card for the cross-shop marketplace; pass `listings` in context to mark promotions"""
    image_url = serializers.SerializerMethodField()
    variant_count = serializers.SerializerMethodField()
    shop = MarketplaceShopSerializer(read_only=True)
    category = serializers.SerializerMethodField()
    promotion = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = ['id', 'name', 'description', 'image_url', 'min_price_cents', 'max_price_cents',
                  'variant_count', 'shop', 'category', 'promotion', 'created_at']

    def get_image_url(self, obj):
        images = list(obj.images.all())
        return images[0].url if images else None

    def get_variant_count(self, obj):
        return len(obj.variants.all())

    def get_category(self, obj):
        if not obj.category:
            return None
        return {'name': obj.category.name, 'slug': obj.category.slug}

    def get_promotion(self, obj):
        listing = self.context.get('listings', {}).get(obj.id)
        if listing is None:
            return None
        return {
            'tier': listing.tier,
            'promoted_listing_id': listing.id,
            'badge_label': PROMOTION_TIERS[listing.tier]['badge_label'],
        }
