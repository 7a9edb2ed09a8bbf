from decimal import Decimal, InvalidOperation
from rest_framework import serializers

from backend.core.utils import rands_to_cents, format_zar
from .models import Category, Product, ProductImage, ProductVariant

MAX_PRICE_CENTS = 99999900  # R999,999
MAX_STOCK = 999999


class CategorySerializer(serializers.ModelSerializer):
    name = serializers.CharField(min_length=1, max_length=100, trim_whitespace=True)
    product_count = serializers.SerializerMethodField()

    class Meta:
        model = Category
        fields = ['id', 'name', 'slug', 'product_count', 'created_at', 'updated_at']
        read_only_fields = ['slug', 'created_at', 'updated_at']

    def get_product_count(self, obj):
        return obj.products.filter(is_active=True).count()


class ProductImageSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductImage
        fields = ['id', 'url', 'alt_text', 'position']
        read_only_fields = ['position']


class ProductVariantSerializer(serializers.ModelSerializer):
    """
    Seller variant serializer.

    Price is accepted either as integer cents (price_in_cents) or as a rand
    amount string (price_in_rands, e.g. "299.99"); rands win when both are sent.
    """
    size = serializers.CharField(min_length=1, max_length=20, trim_whitespace=True)
    color = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True, trim_whitespace=True)
    price_in_cents = serializers.IntegerField(required=False)
    price_in_rands = serializers.CharField(write_only=True, required=False)
    retail_price_in_cents = serializers.IntegerField(required=False, allow_null=True)
    retail_price_in_rands = serializers.CharField(write_only=True, required=False, allow_blank=True)
    stock = serializers.IntegerField(min_value=0, max_value=MAX_STOCK, required=False)
    sku = serializers.CharField(max_length=100, required=False, allow_blank=True, trim_whitespace=True)
    price_display = serializers.SerializerMethodField()

    class Meta:
        model = ProductVariant
        fields = ['id', 'product', 'size', 'color', 'price_in_cents', 'price_in_rands',
                  'retail_price_in_cents', 'retail_price_in_rands', 'price_display',
                  'stock', 'sku', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['product', 'created_at', 'updated_at']
        # Uniqueness of (product, size, color) is checked in validate()
        validators = []

    def _parse_rands(self, value, field):
        try:
            if Decimal(str(value).strip()) <= 0:
                raise serializers.ValidationError({field: 'Price must be greater than zero'})
            return rands_to_cents(value)
        except (InvalidOperation, ValueError):
            raise serializers.ValidationError({field: 'Enter a valid amount in rands'})

    def validate_color(self, value):
        return value or None

    def validate(self, attrs):
        rands = attrs.pop('price_in_rands', None)
        if rands not in (None, ''):
            attrs['price_in_cents'] = self._parse_rands(rands, 'price_in_rands')

        retail_rands = attrs.pop('retail_price_in_rands', None)
        if retail_rands not in (None, ''):
            attrs['retail_price_in_cents'] = self._parse_rands(retail_rands, 'retail_price_in_rands')

        if self.instance is None:
            if attrs.get('price_in_cents') is None:
                raise serializers.ValidationError({'price_in_cents': 'Price is required'})
            attrs.setdefault('stock', 0)

        price = attrs.get('price_in_cents')
        if price is not None:
            if price <= 0:
                raise serializers.ValidationError({'price_in_cents': 'Price must be greater than zero'})
            if price > MAX_PRICE_CENTS:
                raise serializers.ValidationError({'price_in_cents': 'Price cannot exceed R999,999'})

        retail = attrs.get('retail_price_in_cents')
        if retail is not None:
            if retail <= 0:
                raise serializers.ValidationError({'retail_price_in_cents': 'Retail price must be greater than zero'})
            if retail > MAX_PRICE_CENTS:
                raise serializers.ValidationError({'retail_price_in_cents': 'Price cannot exceed R999,999'})

        product = self.context.get('product') or getattr(self.instance, 'product', None)
        if product is not None:
            size = attrs.get('size', getattr(self.instance, 'size', None))
            color = attrs.get('color', getattr(self.instance, 'color', None))
            duplicates = ProductVariant.objects.filter(product=product, size=size, color=color)
            if self.instance is not None:
                duplicates = duplicates.exclude(pk=self.instance.pk)
            if duplicates.exists():
                raise serializers.ValidationError('A variant with this size and color already exists.')
        return attrs

    def get_price_display(self, obj):
        return format_zar(obj.price_in_cents)


class ProductSerializer(serializers.ModelSerializer):
    """Seller product serializer with nested images"""
    name = serializers.CharField(min_length=2, max_length=200, trim_whitespace=True)
    description = serializers.CharField(max_length=2000, required=False, allow_blank=True, trim_whitespace=True)
    option1_label = serializers.CharField(min_length=1, max_length=50, required=False)
    option2_label = serializers.CharField(min_length=1, max_length=50, required=False)
    min_wholesale_qty = serializers.IntegerField(min_value=1, required=False)
    category = serializers.PrimaryKeyRelatedField(queryset=Category.objects.all(), required=False, allow_null=True)
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    images = ProductImageSerializer(many=True, required=False)
    variants = ProductVariantSerializer(many=True, read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'shop', 'category', 'category_name', 'name', 'description', 'is_active',
                  'option1_label', 'option2_label', 'min_wholesale_qty', 'min_price_cents',
                  'max_price_cents', 'images', 'variants', 'created_at', 'updated_at']
        read_only_fields = ['shop', 'min_price_cents', 'max_price_cents', 'created_at', 'updated_at']

    def validate_category(self, value):
        shop = self.context.get('shop')
        if value is not None and shop is not None and value.shop_id != shop.id:
            raise serializers.ValidationError('Category does not belong to this shop.')
        return value

    def _replace_images(self, product, images):
        product.images.all().delete()
        ProductImage.objects.bulk_create([
            ProductImage(product=product, url=image['url'], alt_text=image.get('alt_text', ''), position=index)
            for index, image in enumerate(images)
        ])

    def create(self, validated_data):
        images = validated_data.pop('images', [])
        product = Product.objects.create(**validated_data)
        self._replace_images(product, images)
        return product

    def update(self, instance, validated_data):
        images = validated_data.pop('images', None)
        instance = super().update(instance, validated_data)
        if images is not None:
            self._replace_images(instance, images)
        return instance


# Public catalog serializers
class PublicVariantSerializer(serializers.ModelSerializer):
    in_stock = serializers.SerializerMethodField()

    class Meta:
        model = ProductVariant
        fields = ['id', 'size', 'color', 'price_in_cents', 'retail_price_in_cents', 'stock', 'in_stock']

    def get_in_stock(self, obj):
        return obj.stock > 0


class PublicProductSerializer(serializers.ModelSerializer):
    category = serializers.SerializerMethodField()
    images = ProductImageSerializer(many=True, read_only=True)
    variants = serializers.SerializerMethodField()
    price_range = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = ['id', 'name', 'description', 'category', 'option1_label', 'option2_label',
                  'min_wholesale_qty', 'min_price_cents', 'max_price_cents', 'price_range',
                  'images', 'variants', 'created_at']

    def get_category(self, obj):
        if not obj.category:
            return None
        return {'id': obj.category.id, 'name': obj.category.name, 'slug': obj.category.slug}

    def get_variants(self, obj):
        variants = [v for v in obj.variants.all() if v.is_active]
        return PublicVariantSerializer(variants, many=True).data

    def get_price_range(self, obj):
        if obj.min_price_cents is None:
            return None
        if obj.min_price_cents == obj.max_price_cents:
            return format_zar(obj.min_price_cents)
        return f"{format_zar(obj.min_price_cents)} - {format_zar(obj.max_price_cents)}"
