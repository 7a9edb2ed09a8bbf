from django.contrib import admin
from .models import Category, Product, ProductImage, ProductVariant


class ProductImageInline(admin.TabularInline):
    model = ProductImage
    extra = 0


class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 0
    fields = ['size', 'color', 'price_in_cents', 'retail_price_in_cents', 'stock', 'sku', 'is_active']


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'shop', 'created_at']
    search_fields = ['name', 'shop__name']
    ordering = ['shop__name', 'name']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'shop', 'category', 'min_price_cents', 'max_price_cents', 'is_active', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['name', 'description', 'shop__name']
    ordering = ['-created_at']
    readonly_fields = ['min_price_cents', 'max_price_cents']
    inlines = [ProductImageInline, ProductVariantInline]


@admin.register(ProductVariant)
class ProductVariantAdmin(admin.ModelAdmin):
    list_display = ['product', 'size', 'color', 'price_in_cents', 'stock', 'is_active']
    list_filter = ['is_active']
    search_fields = ['product__name', 'sku', 'size', 'color']
