from rest_framework import serializers

from backend.core.utils import format_zar, mask_phone
from backend.shops.models import Shop
from backend.shops.serializers import ShopPublicSerializer
from .cart import WHOLESALE, ORDER_TYPES
from .models import Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    line_total_cents = serializers.IntegerField(read_only=True)

    class Meta:
        model = OrderItem
        fields = ['id', 'product', 'variant', 'product_name', 'option1_label', 'option1_value',
                  'option2_label', 'option2_value', 'price_in_cents', 'quantity', 'order_type',
                  'line_total_cents']


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    total_display = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = ['id', 'order_number', 'shop', 'status', 'status_display', 'buyer_name', 'buyer_phone',
                  'buyer_note', 'delivery_address', 'delivery_city', 'delivery_province',
                  'delivery_postal_code', 'order_type', 'total_cents', 'total_display', 'item_count',
                  'whatsapp_message', 'items', 'created_at', 'updated_at']
        read_only_fields = fields

    def get_total_display(self, obj):
        return format_zar(obj.total_cents)


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES)


class CartAddSerializer(serializers.Serializer):
    variant_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1, max_value=999999, default=1)
    order_type = serializers.ChoiceField(choices=ORDER_TYPES, default=WHOLESALE)


class CartUpdateSerializer(serializers.Serializer):
    variant_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=0, max_value=999999)
    order_type = serializers.ChoiceField(choices=ORDER_TYPES, default=WHOLESALE)


class CheckoutItemSerializer(serializers.Serializer):
    variant_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1, max_value=999999)
    order_type = serializers.ChoiceField(choices=ORDER_TYPES, default=WHOLESALE)


class CheckoutSerializer(serializers.Serializer):
    """Buyer and delivery details; items default to the session cart"""
    items = CheckoutItemSerializer(many=True, required=False)
    buyer_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    buyer_phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    buyer_note = serializers.CharField(max_length=500, required=False, allow_blank=True)
    delivery_address = serializers.CharField(max_length=300, required=False, allow_blank=True)
    delivery_city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    delivery_province = serializers.ChoiceField(choices=Shop.PROVINCE_CHOICES, required=False, allow_blank=True)
    delivery_postal_code = serializers.RegexField(r'^\d{4}$', required=False, allow_blank=True,
                                                  error_messages={'invalid': 'Postal code must be 4 digits'})

    def validate(self, attrs):
        if attrs.get('delivery_address') and not attrs.get('delivery_city'):
            raise serializers.ValidationError({'delivery_city': 'City is required for delivery'})
        return attrs

    def delivery(self):
        data = self.validated_data
        if not data.get('delivery_address'):
            return None
        return {
            'address': data['delivery_address'],
            'city': data.get('delivery_city', ''),
            'province': data.get('delivery_province', ''),
            'postal_code': data.get('delivery_postal_code', ''),
        }


class OrderTrackingSerializer(serializers.ModelSerializer):
    """Public view of an order; the buyer phone is masked"""
    items = OrderItemSerializer(many=True, read_only=True)
    buyer_phone = serializers.SerializerMethodField()
    shop = ShopPublicSerializer(read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Order
        fields = ['order_number', 'status', 'status_display', 'buyer_name', 'buyer_phone', 'order_type',
                  'total_cents', 'item_count', 'delivery_city', 'delivery_province', 'items', 'shop',
                  'created_at', 'updated_at']

    def get_buyer_phone(self, obj):
        return mask_phone(obj.buyer_phone)
