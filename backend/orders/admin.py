from django.contrib import admin
from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['product', 'variant', 'product_name', 'option1_value', 'option2_value',
                       'price_in_cents', 'quantity', 'order_type']
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'shop', 'status', 'buyer_name', 'order_type', 'total_cents', 'item_count', 'created_at']
    list_filter = ['status', 'order_type', 'created_at']
    search_fields = ['order_number', 'buyer_name', 'buyer_phone', 'shop__name']
    ordering = ['-created_at']
    readonly_fields = ['order_number', 'total_cents', 'item_count', 'whatsapp_message', 'created_at', 'updated_at']
    inlines = [OrderItemInline]
