from django.db import models

from .cart import WHOLESALE, RETAIL


class Order(models.Model):
    """An order placed through WhatsApp checkout"""
    STATUS_PENDING = 'PENDING'
    STATUS_CONFIRMED = 'CONFIRMED'
    STATUS_SHIPPED = 'SHIPPED'
    STATUS_DELIVERED = 'DELIVERED'
    STATUS_CANCELLED = 'CANCELLED'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_SHIPPED, 'Shipped'),
        (STATUS_DELIVERED, 'Delivered'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    ORDER_TYPE_CHOICES = [
        (WHOLESALE, 'Wholesale'),
        (RETAIL, 'Retail'),
    ]

    order_number = models.CharField(max_length=30, unique=True)
    shop = models.ForeignKey('shops.Shop', on_delete=models.CASCADE, related_name='orders')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    buyer_name = models.CharField(max_length=100, blank=True)
    buyer_phone = models.CharField(max_length=20, blank=True)
    buyer_note = models.TextField(blank=True)
    delivery_address = models.CharField(max_length=300, blank=True)
    delivery_city = models.CharField(max_length=100, blank=True)
    delivery_province = models.CharField(max_length=30, blank=True)
    delivery_postal_code = models.CharField(max_length=10, blank=True)
    order_type = models.CharField(max_length=10, choices=ORDER_TYPE_CHOICES, default=WHOLESALE)
    total_cents = models.PositiveIntegerField(default=0)
    item_count = models.PositiveIntegerField(default=0)
    whatsapp_message = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Order {self.order_number}"

    def delivery_dict(self):
        if not self.delivery_address:
            return None
        return {
            'address': self.delivery_address,
            'city': self.delivery_city,
            'province': self.delivery_province,
            'postal_code': self.delivery_postal_code,
        }

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['shop', 'status'], name='idx_order_shop_status'),
        ]


class OrderItem(models.Model):
    """Snapshot of a purchased variant; survives product and variant deletion"""
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey('catalog.Product', on_delete=models.SET_NULL, null=True, blank=True, related_name='order_items')
    variant = models.ForeignKey('catalog.ProductVariant', on_delete=models.SET_NULL, null=True, blank=True, related_name='order_items')
    product_name = models.CharField(max_length=200)
    option1_label = models.CharField(max_length=50, default='Size')
    option1_value = models.CharField(max_length=50)
    option2_label = models.CharField(max_length=50, default='Color')
    option2_value = models.CharField(max_length=50, blank=True, null=True)
    price_in_cents = models.PositiveIntegerField()
    quantity = models.PositiveIntegerField()
    order_type = models.CharField(max_length=10, choices=Order.ORDER_TYPE_CHOICES, default=WHOLESALE)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.product_name} x {self.quantity}"

    @property
    def line_total_cents(self):
        return self.price_in_cents * self.quantity

    class Meta:
        db_table = 'order_items'
        ordering = ['id']
